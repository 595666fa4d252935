"""Regression tests for the business plan calculations."""

import math
import unittest

from businessplan_cci import (
    amortization_schedule,
    compute_amortization,
    compute_annual_totals,
    compute_costs_total,
    compute_financing_global,
    compute_financing_plan_total,
    compute_monthly_cashflow,
    compute_monthly_statement,
    generate_amortization_schedule,
    new_business_plan,
    recompute_all,
    to_dict,
)
from businessplan_cci.domain import (
    CostItem,
    CostOfSales,
    FinancementGlobal,
    FinancingSource,
    FixedAssets,
    FixedCharges,
    MonthRecord,
    PreLaunchCosts,
    WorkingCapital,
)
from businessplan_cci.formatting import format_fcfa, format_percentage, parse_amount
from businessplan_cci.logic import (
    break_even_reached,
    gross_margin,
    margin_pct,
    net_margin,
    round_half_up,
)


def _sample_month(label: str = "Janvier") -> MonthRecord:
    return MonthRecord(
        month=label,
        total_sales=2_500_000,
        cost_of_sales=CostOfSales(raw_materials=800_000, other_costs=100_000, labor=300_000),
        fixed_charges=FixedCharges(
            rent=150_000,
            electricity=30_000,
            water=10_000,
            phone=15_000,
            transport=45_000,
            salaries=400_000,
            other=50_000,
        ),
    )


class CostAndFinancingTests(unittest.TestCase):
    def test_costs_total_sums_fixed_categories_and_extras(self) -> None:
        costs = PreLaunchCosts(
            constitution=100_000,
            license_fees=50_000,
            training=75_000,
            project_info=25_000,
            business_plan_fee=150_000,
            extras=[CostItem("Caution loyer", 200_000), CostItem("Site web", 80_000)],
        )
        self.assertEqual(compute_costs_total(costs), 680_000)

    def test_costs_total_of_empty_costs_is_zero(self) -> None:
        self.assertEqual(compute_costs_total(PreLaunchCosts()), 0.0)

    def test_financing_global_chains_assets_capital_and_gap(self) -> None:
        financement = FinancementGlobal(
            fixed_assets=FixedAssets(
                land=0, construction=1_000_000, equipment=2_500_000, tooling=300_000, vehicles=1_200_000
            ),
            working_capital_3_months=WorkingCapital(
                salaries=900_000, owner_draw=450_000, marketing_cost=150_000, raw_materials=600_000
            ),
            personal_contribution=2_000_000,
        )
        out = compute_financing_global(financement, 680_000)
        self.assertEqual(out.pre_launch_expenses, 680_000)
        self.assertEqual(out.fixed_assets.total, 5_000_000)
        self.assertEqual(out.working_capital_3_months.total, 2_100_000)
        self.assertEqual(out.total_project_cost, 7_780_000)
        self.assertEqual(out.financing_gap, 5_780_000)
        # input left untouched
        self.assertEqual(financement.financing_gap, 0.0)

    def test_financing_gap_clamps_at_zero(self) -> None:
        financement = FinancementGlobal(
            fixed_assets=FixedAssets(equipment=1_000_000), personal_contribution=10_000_000
        )
        out = compute_financing_global(financement, 500_000)
        self.assertEqual(out.total_project_cost, 1_500_000)
        self.assertEqual(out.financing_gap, 0.0)

    def test_coverage_ratio_exactly_covered(self) -> None:
        coverage = compute_financing_plan_total(
            1_000_000, [FinancingSource("Banque", 4_000_000)], financing_gap=5_000_000
        )
        self.assertEqual(coverage.total, 5_000_000)
        self.assertEqual(coverage.coverage_ratio, 100)
        self.assertEqual(coverage.shortfall, 0.0)
        self.assertTrue(coverage.fully_funded)

    def test_coverage_ratio_surplus_gives_negative_shortfall(self) -> None:
        coverage = compute_financing_plan_total(
            1_000_000,
            [FinancingSource("Banque", 3_000_000), FinancingSource("FAFCI", 2_000_000)],
            financing_gap=5_000_000,
        )
        self.assertEqual(coverage.total, 6_000_000)
        self.assertEqual(coverage.coverage_ratio, 120)
        self.assertEqual(coverage.shortfall, -1_000_000)
        self.assertTrue(coverage.fully_funded)

    def test_coverage_ratio_without_gap_is_zero(self) -> None:
        coverage = compute_financing_plan_total(500_000, [], financing_gap=0.0)
        self.assertEqual(coverage.total, 500_000)
        self.assertEqual(coverage.coverage_ratio, 0)

    def test_partial_coverage_is_not_fully_funded(self) -> None:
        coverage = compute_financing_plan_total(0, [FinancingSource("Tontine", 1_500_000)], 4_000_000)
        self.assertEqual(coverage.coverage_ratio, 38)
        self.assertEqual(coverage.shortfall, 2_500_000)
        self.assertFalse(coverage.fully_funded)


class AmortizationTests(unittest.TestCase):
    def test_reference_loan(self) -> None:
        loan = compute_amortization(10_000_000, 5, 12)
        self.assertEqual(loan.duration_months, 60)
        self.assertAlmostEqual(loan.monthly_rate, 0.01)
        self.assertEqual(loan.monthly_payment, 222_444)
        self.assertLessEqual(abs(loan.total_interest - 3_346_640), 60)
        self.assertEqual(loan.total_payment, loan.principal + loan.total_interest)

    def test_interest_consistent_with_rounded_payment(self) -> None:
        for principal, years, rate in [(2_500_000, 2, 9.5), (750_000, 1, 18), (40_000_000, 10, 7)]:
            loan = compute_amortization(principal, years, rate)
            self.assertEqual(loan.total_payment, principal + loan.total_interest)
            self.assertLessEqual(
                abs(loan.total_interest - (loan.monthly_payment * loan.duration_months - principal)),
                loan.duration_months,
            )

    def test_zero_rate_loan_is_repaid_linearly(self) -> None:
        loan = compute_amortization(1_200_000, 1, 0)
        self.assertEqual(loan.duration_months, 12)
        self.assertEqual(loan.monthly_rate, 0.0)
        self.assertEqual(loan.monthly_payment, 100_000)
        self.assertEqual(loan.total_interest, 0)
        self.assertEqual(loan.total_payment, 1_200_000)

    def test_non_positive_inputs_give_zeroed_plan(self) -> None:
        for principal, years, rate in [(0, 5, 12), (1_000_000, 0, 12), (1_000_000, -1, 12), (1_000_000, 5, -3)]:
            loan = compute_amortization(principal, years, rate)
            self.assertEqual(loan.principal, principal)
            self.assertEqual(loan.duration_months, 0)
            self.assertEqual(loan.monthly_payment, 0.0)
            self.assertEqual(loan.total_interest, 0.0)
            self.assertEqual(loan.total_payment, 0.0)
            self.assertFalse(math.isnan(loan.monthly_rate))

    def test_schedule_converges_to_zero(self) -> None:
        loan = compute_amortization(10_000_000, 5, 12)
        rows = amortization_schedule(loan)
        self.assertEqual(len(rows), 60)
        self.assertEqual([r.month for r in rows], list(range(1, 61)))
        remaining = [r.remaining_principal for r in rows]
        self.assertTrue(all(b <= a for a, b in zip(remaining, remaining[1:])))
        self.assertEqual(remaining[-1], 0.0)

    def test_first_schedule_month_splits_interest_and_principal(self) -> None:
        loan = compute_amortization(10_000_000, 5, 12)
        first = amortization_schedule(loan, 12)[0]
        self.assertEqual(first.interest_portion, 100_000)
        self.assertEqual(first.principal_portion, 122_444)
        self.assertEqual(first.payment, 222_444)

    def test_schedule_is_restartable(self) -> None:
        rows_1 = generate_amortization_schedule(5_000_000, 450_000, 0.01, 12)
        rows_2 = generate_amortization_schedule(5_000_000, 450_000, 0.01, 12)
        self.assertEqual(len(rows_1), 12)
        self.assertEqual(rows_1, rows_2)

    def test_schedule_clamps_overshooting_payment(self) -> None:
        rows = generate_amortization_schedule(1_000, 600, 0.0, 3)
        self.assertEqual([r.remaining_principal for r in rows], [400, 0, 0])

    def test_schedule_of_zeroed_loan_is_empty(self) -> None:
        self.assertEqual(amortization_schedule(compute_amortization(0, 5, 12)), [])


class CashflowAndIncomeStatementTests(unittest.TestCase):
    def test_monthly_cashflow_reference(self) -> None:
        out = compute_monthly_cashflow(3_000_000, 1_500_000, 800_000, 200_000)
        self.assertEqual(out.gross_result, 1_500_000)
        self.assertEqual(out.net_result, 700_000)
        self.assertEqual(out.net_cashflow, 500_000)

    def test_negative_cashflow_is_not_clamped(self) -> None:
        out = compute_monthly_cashflow(100, 200, 50, 10)
        self.assertEqual(out.gross_result, -100)
        self.assertEqual(out.net_result, -150)
        self.assertEqual(out.net_cashflow, -160)

    def test_monthly_statement(self) -> None:
        month = compute_monthly_statement(_sample_month())
        self.assertEqual(month.cost_of_sales.total, 1_200_000)
        self.assertEqual(month.gross_result, 1_300_000)
        self.assertEqual(month.fixed_charges.total, 700_000)
        self.assertEqual(month.net_result, 600_000)

    def test_annual_totals_of_identical_months(self) -> None:
        months = [compute_monthly_statement(_sample_month(str(i))) for i in range(12)]
        totals = compute_annual_totals(months)
        self.assertEqual(totals.total_sales, 30_000_000)
        self.assertEqual(totals.cost_of_sales, 14_400_000)
        self.assertEqual(totals.gross_result, 15_600_000)
        self.assertEqual(totals.fixed_charges, 8_400_000)
        self.assertEqual(totals.net_result, 12 * 600_000)
        self.assertAlmostEqual(gross_margin(totals), 52.0)
        self.assertAlmostEqual(net_margin(totals), 24.0)
        self.assertTrue(break_even_reached(totals))

    def test_annual_totals_requires_twelve_months(self) -> None:
        with self.assertRaises(ValueError):
            compute_annual_totals([compute_monthly_statement(_sample_month())] * 11)

    def test_margin_without_sales_is_zero(self) -> None:
        self.assertEqual(margin_pct(-50_000, 0), 0.0)

    def test_round_half_up(self) -> None:
        self.assertEqual(round_half_up(2.5), 3.0)
        self.assertEqual(round_half_up(3.5), 4.0)
        self.assertEqual(round_half_up(-2.5), -2.0)
        self.assertEqual(round_half_up(float("nan")), 0.0)


class RecomputeAllTests(unittest.TestCase):
    def _plan(self):
        plan = new_business_plan("Atelier de couture", "Artisanat et Mode", "Abidjan")
        plan.couts_predemarrage.constitution = 150_000
        plan.couts_predemarrage.extras.append(CostItem("Aménagement", 350_000))
        plan.financement_global.fixed_assets.equipment = 2_000_000
        plan.financement_global.working_capital_3_months.salaries = 600_000
        plan.financement_global.personal_contribution = 1_000_000
        plan.plan_financement.personal_contribution = 1_000_000
        plan.plan_financement.sources.append(FinancingSource("Banque", 2_100_000))
        loan = plan.remboursement_cashflow.loan_plan
        loan.principal, loan.duration_years, loan.annual_rate = 2_100_000, 3, 10
        cashflow = plan.remboursement_cashflow.monthly_cashflow
        cashflow.estimated_sales, cashflow.cost_of_sales, cashflow.fixed_charges = 1_800_000, 700_000, 400_000
        plan.compte_resultat.months[0] = _sample_month("Janvier")
        return plan

    def test_derived_fields_follow_dependencies(self) -> None:
        plan = recompute_all(self._plan())
        self.assertEqual(plan.couts_predemarrage.total, 500_000)
        self.assertEqual(plan.financement_global.pre_launch_expenses, 500_000)
        self.assertEqual(plan.financement_global.total_project_cost, 3_100_000)
        self.assertEqual(plan.financement_global.financing_gap, 2_100_000)
        self.assertEqual(plan.plan_financement.total, 3_100_000)
        loan = plan.remboursement_cashflow.loan_plan
        self.assertEqual(loan.duration_months, 36)
        self.assertGreater(loan.monthly_payment, 0)
        cashflow = plan.remboursement_cashflow.monthly_cashflow
        self.assertEqual(cashflow.net_result, 700_000)
        self.assertEqual(cashflow.net_cashflow, 700_000 - loan.monthly_payment)
        self.assertEqual(plan.compte_resultat.months[0].net_result, 600_000)
        self.assertEqual(plan.compte_resultat.annual_totals.total_sales, 2_500_000)

    def test_recompute_is_idempotent(self) -> None:
        plan = recompute_all(self._plan())
        first = to_dict(plan)
        second = to_dict(recompute_all(plan))
        self.assertEqual(first, second)

    def test_recompute_refreshes_after_mutation(self) -> None:
        plan = recompute_all(self._plan())
        plan.couts_predemarrage.extras.clear()
        recompute_all(plan)
        self.assertEqual(plan.couts_predemarrage.total, 150_000)
        self.assertEqual(plan.financement_global.total_project_cost, 2_750_000)

    def test_new_plan_has_zeroed_derived_fields(self) -> None:
        plan = recompute_all(new_business_plan())
        self.assertEqual(plan.financement_global.total_project_cost, 0.0)
        self.assertEqual(plan.remboursement_cashflow.loan_plan.monthly_payment, 0.0)
        self.assertEqual(plan.compte_resultat.annual_totals.net_result, 0.0)
        self.assertEqual(len(plan.compte_resultat.months), 12)


class FormattingTests(unittest.TestCase):
    def test_format_fcfa(self) -> None:
        self.assertEqual(format_fcfa(1_234_567), "1 234 567 FCFA")
        self.assertEqual(format_fcfa(-500_000.4), "-500 000 FCFA")

    def test_format_percentage(self) -> None:
        self.assertEqual(format_percentage(52), "52,0%")

    def test_parse_amount(self) -> None:
        self.assertEqual(parse_amount("1 000 000"), 1_000_000.0)
        self.assertEqual(parse_amount("1.000.000 FCFA"), 1_000_000.0)
        self.assertEqual(parse_amount("12,5"), 12.5)
        with self.assertRaises(ValueError):
            parse_amount("  ")


if __name__ == "__main__":
    unittest.main()

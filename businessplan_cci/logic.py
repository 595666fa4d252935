"""Pure calculation logic for the CCI business plan.

Every function here is pure apart from :func:`recompute_all`, which writes
the derived fields back into the aggregate it is given.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from math import floor
from typing import Iterable, List, Optional

import numpy as np

from businessplan_cci.domain import (
    MOIS_ANNEE,
    AmortizationRow,
    AnnualTotals,
    BusinessPlanData,
    FinancementGlobal,
    FinancingCoverage,
    FinancingSource,
    FixedAssets,
    LoanPlan,
    MonthlyCashflow,
    MonthRecord,
    PreLaunchCosts,
    WorkingCapital,
)

logger = logging.getLogger(__name__)


def _safe_float(value: float) -> float:
    if not np.isfinite(value):
        return 0.0
    return float(value)


def round_half_up(value: float) -> float:
    """Round to the nearest whole FCFA, halves going up."""
    return float(floor(_safe_float(value) + 0.5))


# --- Page 4 ------------------------------------------------------------------


def compute_costs_total(costs: PreLaunchCosts) -> float:
    """Constitution + licence + formation + informations + plan d'affaires + autres."""
    fixed = (
        costs.constitution
        + costs.license_fees
        + costs.training
        + costs.project_info
        + costs.business_plan_fee
    )
    return _safe_float(fixed + sum(item.amount for item in costs.extras))


# --- Page 5 ------------------------------------------------------------------


def compute_fixed_assets_total(assets: FixedAssets) -> float:
    return _safe_float(
        assets.land + assets.construction + assets.equipment + assets.tooling + assets.vehicles
    )


def compute_working_capital_total(capital: WorkingCapital) -> float:
    return _safe_float(
        capital.salaries + capital.owner_draw + capital.marketing_cost + capital.raw_materials
    )


def compute_financing_global(
    financement: FinancementGlobal, pre_launch_expenses: float
) -> FinancementGlobal:
    """Return the financing synthesis with every derived field refreshed.

    ``pre_launch_expenses`` is the pre-launch costs total; it is copied in
    as is. The financing gap never goes below zero: a personal contribution
    larger than the project cost simply means nothing has to be borrowed.
    """
    fixed_assets = replace(
        financement.fixed_assets, total=compute_fixed_assets_total(financement.fixed_assets)
    )
    working_capital = replace(
        financement.working_capital_3_months,
        total=compute_working_capital_total(financement.working_capital_3_months),
    )
    total_project_cost = _safe_float(pre_launch_expenses + fixed_assets.total + working_capital.total)
    financing_gap = max(0.0, total_project_cost - financement.personal_contribution)

    return replace(
        financement,
        pre_launch_expenses=_safe_float(pre_launch_expenses),
        fixed_assets=fixed_assets,
        working_capital_3_months=working_capital,
        total_project_cost=total_project_cost,
        financing_gap=_safe_float(financing_gap),
    )


# --- Page 6 ------------------------------------------------------------------


def compute_financing_plan_total(
    personal_contribution: float,
    sources: Iterable[FinancingSource],
    financing_gap: float = 0.0,
) -> FinancingCoverage:
    total = _safe_float(personal_contribution + sum(source.amount for source in sources))
    if financing_gap > 0:
        coverage_ratio = int(round_half_up(total / financing_gap * 100.0))
    else:
        coverage_ratio = 0
    return FinancingCoverage(
        total=total,
        coverage_ratio=coverage_ratio,
        shortfall=_safe_float(financing_gap - total),
        fully_funded=total >= financing_gap,
    )


# --- Page 7 ------------------------------------------------------------------


def _annuity_payment(principal: float, monthly_rate: float, months: int) -> float:
    if months <= 0:
        return 0.0
    if monthly_rate > 0:
        growth = (1.0 + monthly_rate) ** months
        return _safe_float(principal * monthly_rate * growth / (growth - 1.0))
    return _safe_float(principal / months)


def compute_amortization(
    principal: float, duration_years: float, annual_rate_percent: float
) -> LoanPlan:
    """Fixed-rate loan repayment (CCI formulas A to F).

    A principal, B months, C monthly rate, D monthly payment, E total interest,
    F total payment. D, E and F are rounded to whole FCFA only when stored.
    A zero rate is repaid linearly. Non-positive principal or duration and
    negative rates give a loan plan with every derived field at zero.
    """
    inputs = LoanPlan(
        principal=principal, duration_years=duration_years, annual_rate=annual_rate_percent
    )
    if principal <= 0 or duration_years <= 0 or annual_rate_percent < 0:
        return inputs

    duration_months = int(round_half_up(duration_years * 12))
    if duration_months <= 0:
        return inputs

    monthly_rate = _safe_float(annual_rate_percent / 100.0 / 12.0)
    monthly_payment = _annuity_payment(principal, monthly_rate, duration_months)
    total_interest = _safe_float(monthly_payment * duration_months - principal)
    total_payment = _safe_float(principal + total_interest)

    return replace(
        inputs,
        duration_months=duration_months,
        monthly_rate=monthly_rate,
        monthly_payment=round_half_up(monthly_payment),
        total_interest=round_half_up(total_interest),
        total_payment=round_half_up(total_payment),
    )


def generate_amortization_schedule(
    principal: float,
    monthly_payment: float,
    monthly_rate: float,
    number_of_months: int,
) -> List[AmortizationRow]:
    """Month-by-month split of each payment into interest and principal.

    The running balance is kept unrounded; row values are whole FCFA. The
    balance is floored at zero so a final payment that overshoots because of
    rounding never produces a negative remainder.
    """
    rows: List[AmortizationRow] = []
    remaining = float(principal)
    for month in range(1, int(number_of_months) + 1):
        interest_portion = _safe_float(remaining * monthly_rate)
        principal_portion = _safe_float(monthly_payment - interest_portion)
        remaining = max(0.0, _safe_float(remaining - principal_portion))
        rows.append(
            AmortizationRow(
                month=month,
                remaining_principal=round_half_up(remaining),
                interest_portion=round_half_up(interest_portion),
                principal_portion=round_half_up(principal_portion),
                payment=round_half_up(monthly_payment),
            )
        )
    return rows


def amortization_schedule(
    loan: LoanPlan, number_of_months: Optional[int] = None
) -> List[AmortizationRow]:
    """Schedule for a computed loan plan, over its full duration by default.

    Uses the unrounded annuity payment so the balance is paid off exactly in
    the last month.
    """
    months = loan.duration_months if number_of_months is None else number_of_months
    if loan.duration_months <= 0:
        return []
    payment = _annuity_payment(loan.principal, loan.monthly_rate, loan.duration_months)
    return generate_amortization_schedule(loan.principal, payment, loan.monthly_rate, months)


def compute_monthly_cashflow(
    sales: float,
    cost_of_sales: float,
    fixed_charges: float,
    monthly_loan_payment: float,
) -> MonthlyCashflow:
    """Monthly cashflow after the loan payment. Negative results are kept."""
    gross_result = _safe_float(sales - cost_of_sales)
    net_result = _safe_float(gross_result - fixed_charges)
    return MonthlyCashflow(
        estimated_sales=sales,
        cost_of_sales=cost_of_sales,
        fixed_charges=fixed_charges,
        gross_result=gross_result,
        net_result=net_result,
        net_cashflow=_safe_float(net_result - monthly_loan_payment),
    )


# --- Page 8 ------------------------------------------------------------------


def compute_monthly_statement(month: MonthRecord) -> MonthRecord:
    cost = month.cost_of_sales
    charges = month.fixed_charges
    cost_of_sales = replace(cost, total=_safe_float(cost.raw_materials + cost.other_costs + cost.labor))
    fixed_charges = replace(
        charges,
        total=_safe_float(
            charges.rent
            + charges.electricity
            + charges.water
            + charges.phone
            + charges.transport
            + charges.salaries
            + charges.other
        ),
    )
    gross_result = _safe_float(month.total_sales - cost_of_sales.total)
    return replace(
        month,
        cost_of_sales=cost_of_sales,
        gross_result=gross_result,
        fixed_charges=fixed_charges,
        net_result=_safe_float(gross_result - fixed_charges.total),
    )


def compute_annual_totals(months: List[MonthRecord]) -> AnnualTotals:
    """Sum the twelve computed months column by column."""
    if len(months) != len(MOIS_ANNEE):
        raise ValueError(
            f"Le compte de résultat annuel exige {len(MOIS_ANNEE)} mois (reçu: {len(months)})."
        )
    columns = np.array(
        [
            [m.total_sales, m.cost_of_sales.total, m.gross_result, m.fixed_charges.total, m.net_result]
            for m in months
        ],
        dtype=float,
    ).sum(axis=0)
    total_sales, cost_of_sales, gross_result, fixed_charges, net_result = (
        _safe_float(x) for x in columns
    )
    return AnnualTotals(
        total_sales=total_sales,
        cost_of_sales=cost_of_sales,
        gross_result=gross_result,
        fixed_charges=fixed_charges,
        net_result=net_result,
    )


def margin_pct(result: float, sales: float) -> float:
    if sales == 0:
        return 0.0
    return _safe_float(result / sales * 100.0)


def gross_margin(totals: AnnualTotals) -> float:
    return margin_pct(totals.gross_result, totals.total_sales)


def net_margin(totals: AnnualTotals) -> float:
    return margin_pct(totals.net_result, totals.total_sales)


def break_even_reached(totals: AnnualTotals) -> bool:
    return totals.net_result >= 0


# --- Pipeline ----------------------------------------------------------------


def recompute_all(plan: BusinessPlanData) -> BusinessPlanData:
    """Refresh every derived field of ``plan`` in dependency order.

    Costs -> financing synthesis -> financing plan; loan plan -> monthly
    cashflow; each month -> annual totals. Mutates ``plan`` and returns it.
    Running it twice gives the same result.
    """
    couts = plan.couts_predemarrage
    couts.total = compute_costs_total(couts)

    plan.financement_global = compute_financing_global(plan.financement_global, couts.total)

    financing = plan.plan_financement
    financing.total = compute_financing_plan_total(
        financing.personal_contribution,
        financing.sources,
        plan.financement_global.financing_gap,
    ).total

    remboursement = plan.remboursement_cashflow
    loan = remboursement.loan_plan
    remboursement.loan_plan = compute_amortization(loan.principal, loan.duration_years, loan.annual_rate)
    cashflow = remboursement.monthly_cashflow
    remboursement.monthly_cashflow = compute_monthly_cashflow(
        cashflow.estimated_sales,
        cashflow.cost_of_sales,
        cashflow.fixed_charges,
        remboursement.loan_plan.monthly_payment,
    )

    compte = plan.compte_resultat
    compte.months = [compute_monthly_statement(month) for month in compte.months]
    compte.annual_totals = compute_annual_totals(compte.months)

    logger.debug(
        "Plan %s recalculé: coût total %.0f, besoin %.0f, mensualité %.0f",
        plan.id,
        plan.financement_global.total_project_cost,
        plan.financement_global.financing_gap,
        remboursement.loan_plan.monthly_payment,
    )
    return plan


def financing_coverage(plan: BusinessPlanData) -> FinancingCoverage:
    """Coverage of the plan's financing gap by its financing sources."""
    return compute_financing_plan_total(
        plan.plan_financement.personal_contribution,
        plan.plan_financement.sources,
        plan.financement_global.financing_gap,
    )

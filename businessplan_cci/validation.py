"""Per-page completeness checks and overall progress of a business plan.

Nothing is stored: every answer is derived from the plan data on each call,
so a page that was complete becomes incomplete again as soon as a required
field is cleared. Incomplete pages never block navigation.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Set

from businessplan_cci.domain import MAX_SOURCES_EXTERNES, PAGES, TOTAL_PAGES, BusinessPlanData
from businessplan_cci.logic import (
    break_even_reached,
    compute_amortization,
    compute_annual_totals,
    compute_costs_total,
    compute_financing_global,
    compute_financing_plan_total,
    compute_monthly_cashflow,
    compute_monthly_statement,
    round_half_up,
)


@dataclass
class PageValidation:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _blank(text: str) -> bool:
    return not (text or "").strip()


def _validate_idee(plan: BusinessPlanData, errors: List[str], warnings: List[str]) -> None:
    idee = plan.idee
    if _blank(idee.description):
        errors.append("La description du projet est requise")
    if _blank(idee.specificity):
        errors.append("La spécificité de l'idée est requise")
    if not any(not _blank(owner.name) for owner in idee.owners):
        errors.append("Au moins un propriétaire est requis")


def _validate_marche(plan: BusinessPlanData, errors: List[str], warnings: List[str]) -> None:
    marche = plan.marche
    required = [
        (marche.product, "Le produit/service est requis"),
        (marche.price, "Le prix est requis"),
        (marche.place, "Le lieu d'installation est requis"),
        (marche.promotion, "La stratégie de promotion est requise"),
        (marche.supplies, "L'approvisionnement est requis"),
        (marche.competitors, "Le comportement face aux concurrents est requis"),
    ]
    for value, message in required:
        if _blank(value):
            errors.append(message)
    if marche.clients <= 0:
        errors.append("Le nombre de clients doit être supérieur à 0")


def _validate_ressources(plan: BusinessPlanData, errors: List[str], warnings: List[str]) -> None:
    ressources = plan.ressources
    if _blank(ressources.equipment):
        errors.append("La description des équipements est requise")
    if _blank(ressources.registration):
        errors.append("Les procédures d'enregistrement sont requises")
    if not ressources.machines:
        errors.append("Au moins une machine ou un équipement est requis")
    for index, machine in enumerate(ressources.machines, start=1):
        if _blank(machine.name):
            errors.append(f"Le nom de la machine {index} est requis")
        if machine.price < 0:
            errors.append(f"Le prix de la machine {index} ne peut pas être négatif")
    if ressources.employees.count < 0:
        errors.append("Le nombre d'employés ne peut pas être négatif")
    if ressources.employees.monthly_cost < 0:
        errors.append("Le coût des employés ne peut pas être négatif")


def _validate_couts(plan: BusinessPlanData, errors: List[str], warnings: List[str]) -> None:
    couts = plan.couts_predemarrage
    fixed = [
        (couts.constitution, "constitution"),
        (couts.license_fees, "autorisation/licence"),
        (couts.training, "formation"),
        (couts.project_info, "informations sur le projet"),
        (couts.business_plan_fee, "plan d'affaires"),
    ]
    for amount, label in fixed:
        if amount < 0:
            errors.append(f"Le coût de {label} ne peut pas être négatif")
    for index, item in enumerate(couts.extras, start=1):
        if _blank(item.description):
            errors.append(f"La description du coût supplémentaire {index} est requise")
        if item.amount < 0:
            errors.append(f"Le montant du coût supplémentaire {index} ne peut pas être négatif")
    if compute_costs_total(couts) <= 0:
        errors.append("Le total des coûts doit être supérieur à 0")


def _validate_financement_global(plan: BusinessPlanData, errors: List[str], warnings: List[str]) -> None:
    financement = plan.financement_global
    assets = financement.fixed_assets
    capital = financement.working_capital_3_months
    amounts = [
        assets.land,
        assets.construction,
        assets.equipment,
        assets.tooling,
        assets.vehicles,
        capital.salaries,
        capital.owner_draw,
        capital.marketing_cost,
        capital.raw_materials,
    ]
    if any(amount < 0 for amount in amounts):
        errors.append("Les immobilisations et le fonds de roulement ne peuvent pas être négatifs")
    computed = compute_financing_global(financement, compute_costs_total(plan.couts_predemarrage))
    if computed.total_project_cost <= 0:
        errors.append("Le coût total du projet doit être supérieur à 0")
    if financement.personal_contribution < 0:
        errors.append("L'apport personnel ne peut pas être négatif")


def _validate_plan_financement(plan: BusinessPlanData, errors: List[str], warnings: List[str]) -> None:
    financing = plan.plan_financement
    if financing.personal_contribution < 0:
        errors.append("L'apport personnel ne peut pas être négatif")
    if len(financing.sources) > MAX_SOURCES_EXTERNES:
        errors.append(f"{MAX_SOURCES_EXTERNES} sources externes maximum")
    for index, source in enumerate(financing.sources, start=1):
        if _blank(source.source_name):
            errors.append(f"Le nom de la source de financement {index} est requis")
        if source.amount < 0:
            errors.append(f"Le montant de la source de financement {index} ne peut pas être négatif")

    gap = compute_financing_global(
        plan.financement_global, compute_costs_total(plan.couts_predemarrage)
    ).financing_gap
    coverage = compute_financing_plan_total(financing.personal_contribution, financing.sources, gap)
    if coverage.total <= 0:
        errors.append("Le total du financement doit être supérieur à 0")
    elif not coverage.fully_funded:
        warnings.append(
            f"Le financement couvre {coverage.coverage_ratio}% du besoin "
            f"(manque {round_half_up(coverage.shortfall):.0f} FCFA)"
        )


def _validate_remboursement(plan: BusinessPlanData, errors: List[str], warnings: List[str]) -> None:
    loan = plan.remboursement_cashflow.loan_plan
    cashflow = plan.remboursement_cashflow.monthly_cashflow
    if loan.principal < 0:
        errors.append("Le montant emprunté ne peut pas être négatif")
    if loan.duration_years <= 0:
        errors.append("La durée de remboursement doit être supérieure à 0")
    if loan.annual_rate < 0:
        errors.append("Le taux d'intérêt ne peut pas être négatif")
    if cashflow.estimated_sales < 0 or cashflow.cost_of_sales < 0 or cashflow.fixed_charges < 0:
        errors.append("Les ventes, coûts des ventes et charges fixes ne peuvent pas être négatifs")

    payment = compute_amortization(loan.principal, loan.duration_years, loan.annual_rate).monthly_payment
    projected = compute_monthly_cashflow(
        cashflow.estimated_sales, cashflow.cost_of_sales, cashflow.fixed_charges, payment
    )
    if projected.net_cashflow < 0:
        warnings.append("Le cashflow net mensuel est négatif après remboursement")


def _validate_compte_resultat(plan: BusinessPlanData, errors: List[str], warnings: List[str]) -> None:
    months = plan.compte_resultat.months
    for month in months:
        cost = month.cost_of_sales
        charges = month.fixed_charges
        amounts = [
            month.total_sales,
            cost.raw_materials,
            cost.other_costs,
            cost.labor,
            charges.rent,
            charges.electricity,
            charges.water,
            charges.phone,
            charges.transport,
            charges.salaries,
            charges.other,
        ]
        if any(amount < 0 for amount in amounts):
            errors.append(f"{month.month}: les montants ne peuvent pas être négatifs")
    if not any(month.total_sales > 0 for month in months):
        errors.append("Au moins un mois doit avoir des ventes supérieures à 0")
        return

    totals = compute_annual_totals([compute_monthly_statement(month) for month in months])
    if not break_even_reached(totals):
        warnings.append("Seuil de rentabilité non atteint sur l'année")


_VALIDATORS: Dict[int, Callable[[BusinessPlanData, List[str], List[str]], None]] = {
    1: _validate_idee,
    2: _validate_marche,
    3: _validate_ressources,
    4: _validate_couts,
    5: _validate_financement_global,
    6: _validate_plan_financement,
    7: _validate_remboursement,
    8: _validate_compte_resultat,
}


def validate_page(page_id: int, plan: BusinessPlanData) -> PageValidation:
    """Check one wizard page. Business problems are reported, never raised."""
    validator = _VALIDATORS.get(page_id)
    if validator is None:
        raise ValueError(f"Page inconnue: {page_id} (attendu 1 à {TOTAL_PAGES}).")
    errors: List[str] = []
    warnings: List[str] = []
    validator(plan, errors, warnings)
    return PageValidation(is_valid=not errors, errors=errors, warnings=warnings)


def completed_pages(plan: BusinessPlanData) -> Set[int]:
    return {page.id for page in PAGES if validate_page(page.id, plan).is_valid}


def progress_percentage(plan: BusinessPlanData) -> int:
    return int(round_half_up(len(completed_pages(plan)) / TOTAL_PAGES * 100.0))


def is_export_ready(plan: BusinessPlanData) -> bool:
    return len(completed_pages(plan)) == TOTAL_PAGES

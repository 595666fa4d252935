"""Domain models for the CCI business plan calculation engine."""

from dataclasses import dataclass, field
from typing import List, Optional


MOIS_ANNEE = [
    "Janvier",
    "Février",
    "Mars",
    "Avril",
    "Mai",
    "Juin",
    "Juillet",
    "Août",
    "Septembre",
    "Octobre",
    "Novembre",
    "Décembre",
]

SECTEURS_ACTIVITE = [
    "Agriculture et Agroalimentaire",
    "Technologies et Digital",
    "Commerce et Distribution",
    "Services Financiers",
    "Santé et Bien-être",
    "Éducation et Formation",
    "Transport et Logistique",
    "Énergie et Environnement",
    "Tourisme et Hôtellerie",
    "Artisanat et Mode",
    "Autre",
]

VILLES_COTE_IVOIRE = [
    "Abidjan",
    "Bouaké",
    "Daloa",
    "Korhogo",
    "San-Pédro",
    "Yamoussoukro",
    "Man",
    "Divo",
    "Gagnoa",
    "Autre ville de Côte d'Ivoire",
]

_STATUTS_AUTORISES = {"brouillon", "en_cours", "termine", "valide"}

MAX_SOURCES_EXTERNES = 5


@dataclass(frozen=True)
class PageConfig:
    id: int
    title: str
    description: str


PAGES = [
    PageConfig(1, "L'Idée", "Description et spécificité du projet"),
    PageConfig(2, "Le Marché", "4P Marketing - Produit, Prix, Place, Promotion"),
    PageConfig(3, "Ressources", "Équipements, machines et employés"),
    PageConfig(4, "Coûts", "Coûts avant démarrage"),
    PageConfig(5, "Financement Global", "Coût total et synthèse"),
    PageConfig(6, "Plan de Financement", "Sources de financement externes"),
    PageConfig(7, "Remboursement & Cashflow", "Plan de remboursement et flux de trésorerie"),
    PageConfig(8, "Compte de Résultat", "Prévisions financières mensuelles"),
]

TOTAL_PAGES = len(PAGES)


def _check_items(items: list, item_type: type, label: str) -> None:
    for item in items:
        if not isinstance(item, item_type):
            raise ValueError(f"{label} ne peut contenir que des objets {item_type.__name__}.")


# --- Page 1: l'idée ---------------------------------------------------------


@dataclass
class Owner:
    name: str = ""
    role: str = ""
    experience: str = ""


@dataclass
class Idee:
    """The project idea and its owners."""

    description: str = ""
    specificity: str = ""
    owners: List[Owner] = field(default_factory=lambda: [Owner()])

    def __post_init__(self) -> None:
        _check_items(self.owners, Owner, "idee.owners")


# --- Page 2: le marché -------------------------------------------------------


@dataclass
class Marche:
    """The 4P marketing answers plus the expected number of clients per month."""

    product: str = ""
    price: str = ""
    supplies: str = ""
    promotion: str = ""
    place: str = ""
    competitors: str = ""
    clients: int = 0


# --- Page 3: ressources ------------------------------------------------------


@dataclass
class Machine:
    name: str = ""
    price: float = 0.0
    description: str = ""


@dataclass
class Employees:
    count: int = 0
    monthly_cost: float = 0.0
    details: str = ""


@dataclass
class Ressources:
    equipment: str = ""
    machines: List[Machine] = field(default_factory=list)
    registration: str = ""
    employees: Employees = field(default_factory=Employees)

    def __post_init__(self) -> None:
        _check_items(self.machines, Machine, "ressources.machines")


# --- Page 4: coûts avant démarrage ------------------------------------------


@dataclass
class CostItem:
    description: str = ""
    amount: float = 0.0


@dataclass
class PreLaunchCosts:
    """Pre-launch costs.

    ``total`` is derived: the five fixed categories plus every extra item.
    It is only ever written by the recomputation pipeline.
    """

    constitution: float = 0.0
    license_fees: float = 0.0
    training: float = 0.0
    project_info: float = 0.0
    business_plan_fee: float = 0.0
    extras: List[CostItem] = field(default_factory=list)
    total: float = 0.0

    def __post_init__(self) -> None:
        _check_items(self.extras, CostItem, "coutsPredemarrage.extras")


# --- Page 5: financement global ---------------------------------------------


@dataclass
class FixedAssets:
    land: float = 0.0
    construction: float = 0.0
    equipment: float = 0.0
    tooling: float = 0.0
    vehicles: float = 0.0
    total: float = 0.0


@dataclass
class WorkingCapital:
    """Three months of operating cash needed before revenue stabilizes."""

    salaries: float = 0.0
    owner_draw: float = 0.0
    marketing_cost: float = 0.0
    raw_materials: float = 0.0
    total: float = 0.0


@dataclass
class FinancementGlobal:
    """Global financing synthesis.

    Derived fields: ``pre_launch_expenses`` (copy of the pre-launch costs
    total), ``fixed_assets.total``, ``working_capital_3_months.total``,
    ``total_project_cost`` and ``financing_gap``.
    """

    pre_launch_expenses: float = 0.0
    fixed_assets: FixedAssets = field(default_factory=FixedAssets)
    working_capital_3_months: WorkingCapital = field(default_factory=WorkingCapital)
    total_project_cost: float = 0.0
    personal_contribution: float = 0.0
    financing_gap: float = 0.0


# --- Page 6: plan de financement --------------------------------------------


@dataclass
class FinancingSource:
    source_name: str = ""
    amount: float = 0.0


@dataclass
class PlanFinancement:
    personal_contribution: float = 0.0
    sources: List[FinancingSource] = field(default_factory=list)
    total: float = 0.0

    def __post_init__(self) -> None:
        _check_items(self.sources, FinancingSource, "planFinancement.sources")


@dataclass
class FinancingCoverage:
    """How well the financing plan covers the financing gap.

    ``shortfall`` is negative when the plan raises more than needed.
    ``coverage_ratio`` is 0 when there is no gap to cover.
    """

    total: float
    coverage_ratio: int
    shortfall: float
    fully_funded: bool


# --- Page 7: remboursement & cashflow ---------------------------------------


@dataclass
class LoanPlan:
    """Loan inputs and the derived repayment figures.

    Inputs: ``principal``, ``duration_years`` and ``annual_rate`` (percent).
    ``monthly_rate`` is stored as a fraction (0.01 for 1%). The other derived
    amounts are whole FCFA.
    """

    principal: float = 0.0
    duration_years: float = 0.0
    annual_rate: float = 0.0
    duration_months: int = 0
    monthly_rate: float = 0.0
    monthly_payment: float = 0.0
    total_interest: float = 0.0
    total_payment: float = 0.0


@dataclass
class AmortizationRow:
    month: int
    remaining_principal: float
    interest_portion: float
    principal_portion: float
    payment: float


@dataclass
class MonthlyCashflow:
    estimated_sales: float = 0.0
    cost_of_sales: float = 0.0
    fixed_charges: float = 0.0
    gross_result: float = 0.0
    net_result: float = 0.0
    net_cashflow: float = 0.0


@dataclass
class RemboursementCashflow:
    loan_plan: LoanPlan = field(default_factory=LoanPlan)
    monthly_cashflow: MonthlyCashflow = field(default_factory=MonthlyCashflow)


# --- Page 8: compte de résultat ---------------------------------------------


@dataclass
class CostOfSales:
    raw_materials: float = 0.0
    other_costs: float = 0.0
    labor: float = 0.0
    total: float = 0.0


@dataclass
class FixedCharges:
    rent: float = 0.0
    electricity: float = 0.0
    water: float = 0.0
    phone: float = 0.0
    transport: float = 0.0
    salaries: float = 0.0
    other: float = 0.0
    total: float = 0.0


@dataclass
class MonthRecord:
    month: str = ""
    total_sales: float = 0.0
    cost_of_sales: CostOfSales = field(default_factory=CostOfSales)
    gross_result: float = 0.0
    fixed_charges: FixedCharges = field(default_factory=FixedCharges)
    net_result: float = 0.0


@dataclass
class AnnualTotals:
    total_sales: float = 0.0
    cost_of_sales: float = 0.0
    gross_result: float = 0.0
    fixed_charges: float = 0.0
    net_result: float = 0.0


def _default_months() -> List[MonthRecord]:
    return [MonthRecord(month=label) for label in MOIS_ANNEE]


@dataclass
class CompteResultat:
    """Forecast income statement: exactly twelve months plus annual totals."""

    months: List[MonthRecord] = field(default_factory=_default_months)
    annual_totals: AnnualTotals = field(default_factory=AnnualTotals)

    def __post_init__(self) -> None:
        _check_items(self.months, MonthRecord, "compteResultat.months")
        if len(self.months) != len(MOIS_ANNEE):
            raise ValueError(
                f"compteResultat.months doit contenir exactement {len(MOIS_ANNEE)} mois "
                f"(reçu: {len(self.months)})."
            )


# --- Aggregate ---------------------------------------------------------------


@dataclass
class BusinessPlanData:
    """Root aggregate of one business plan.

    Inputs and derived fields live side by side so the aggregate serializes
    as one snapshot. Derived fields are refreshed by
    :func:`businessplan_cci.logic.recompute_all` after every mutation.
    """

    title: str = ""
    sector: str = ""
    location: str = ""
    status: str = "brouillon"
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    idee: Idee = field(default_factory=Idee)
    marche: Marche = field(default_factory=Marche)
    ressources: Ressources = field(default_factory=Ressources)
    couts_predemarrage: PreLaunchCosts = field(default_factory=PreLaunchCosts)
    financement_global: FinancementGlobal = field(default_factory=FinancementGlobal)
    plan_financement: PlanFinancement = field(default_factory=PlanFinancement)
    remboursement_cashflow: RemboursementCashflow = field(default_factory=RemboursementCashflow)
    compte_resultat: CompteResultat = field(default_factory=CompteResultat)

    def __post_init__(self) -> None:
        if self.status not in _STATUTS_AUTORISES:
            raise ValueError(f"status doit être l'un de {sorted(_STATUTS_AUTORISES)}.")


def new_business_plan(title: str = "", sector: str = "", location: str = "") -> BusinessPlanData:
    """Fresh plan: empty inputs, zeroed derived fields, twelve labelled months."""
    return BusinessPlanData(title=title, sector=sector, location=location)

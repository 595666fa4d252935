"""CCI business plan package: derived financial fields, validation and progress."""

from businessplan_cci.domain import BusinessPlanData, PAGES, new_business_plan
from businessplan_cci.logic import (
    amortization_schedule,
    compute_amortization,
    compute_annual_totals,
    compute_costs_total,
    compute_financing_global,
    compute_financing_plan_total,
    compute_monthly_cashflow,
    compute_monthly_statement,
    generate_amortization_schedule,
    recompute_all,
)
from businessplan_cci.serialization import from_dict, to_dict
from businessplan_cci.validation import (
    PageValidation,
    completed_pages,
    is_export_ready,
    progress_percentage,
    validate_page,
)

__all__ = [
    "BusinessPlanData",
    "PAGES",
    "PageValidation",
    "amortization_schedule",
    "completed_pages",
    "compute_amortization",
    "compute_annual_totals",
    "compute_costs_total",
    "compute_financing_global",
    "compute_financing_plan_total",
    "compute_monthly_cashflow",
    "compute_monthly_statement",
    "from_dict",
    "generate_amortization_schedule",
    "is_export_ready",
    "new_business_plan",
    "progress_percentage",
    "recompute_all",
    "to_dict",
    "validate_page",
]

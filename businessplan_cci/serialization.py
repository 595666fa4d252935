"""Conversion between the plan aggregate and its JSON document shape.

Documents use camelCase keys (``coutsPredemarrage.licenseFees``,
``remboursementCashflow.loanPlan.monthlyPayment``). Missing scalar fields fall
back to their defaults; a missing nested section is a malformed document and
raises ``ValueError``. Scalars are validated strictly: no booleans as amounts,
no truncated integers, no NaN or infinity.
"""

from __future__ import annotations

import json
from dataclasses import fields, is_dataclass
from typing import Any, Dict, get_type_hints

from pydantic import ConfigDict, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from businessplan_cci import domain
from businessplan_cci.domain import BusinessPlanData

_DOCUMENT_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    strict=True,
    allow_inf_nan=False,
)

_DOCUMENT_CLASSES = (
    domain.Owner,
    domain.Idee,
    domain.Marche,
    domain.Machine,
    domain.Employees,
    domain.Ressources,
    domain.CostItem,
    domain.PreLaunchCosts,
    domain.FixedAssets,
    domain.WorkingCapital,
    domain.FinancementGlobal,
    domain.FinancingSource,
    domain.PlanFinancement,
    domain.LoanPlan,
    domain.MonthlyCashflow,
    domain.RemboursementCashflow,
    domain.CostOfSales,
    domain.FixedCharges,
    domain.MonthRecord,
    domain.AnnualTotals,
    domain.CompteResultat,
    domain.BusinessPlanData,
)

for _cls in _DOCUMENT_CLASSES:
    _cls.__pydantic_config__ = _DOCUMENT_CONFIG

_PLAN_ADAPTER = TypeAdapter(BusinessPlanData)


def _check_sections(cls: type, raw: Any, path: str) -> None:
    """Nested sections must be present; pydantic would silently use their defaults."""
    if not isinstance(raw, dict):
        return
    hints = get_type_hints(cls)
    for f in fields(cls):
        section_type = hints[f.name]
        if not is_dataclass(section_type):
            continue
        key = to_camel(f.name)
        field_path = f"{path}.{key}" if path else key
        section = raw.get(key, raw.get(f.name))
        if section is None:
            raise ValueError(f"{field_path}: section manquante")
        _check_sections(section_type, section, field_path)


def _error_message(exc: ValidationError) -> str:
    error = exc.errors()[0]
    path = ".".join(str(part) for part in error["loc"])
    return f"{path}: {error['msg']}" if path else error["msg"]


def to_dict(plan: BusinessPlanData) -> Dict[str, Any]:
    """JSON-ready snapshot of the plan, derived fields included."""
    return _PLAN_ADAPTER.dump_python(plan, mode="json", by_alias=True)


def from_dict(payload: Dict[str, Any]) -> BusinessPlanData:
    """Rebuild a plan from its document. Derived fields are taken as stored;
    run :func:`businessplan_cci.logic.recompute_all` to refresh them."""
    _check_sections(BusinessPlanData, payload, "")
    try:
        # JSON mode: strict scalars while nested sections still arrive as objects
        return _PLAN_ADAPTER.validate_json(json.dumps(payload))
    except ValidationError as exc:
        raise ValueError(_error_message(exc)) from exc

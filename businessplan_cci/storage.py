"""JSON file store for business plan snapshots.

One file per plan, named after the plan id. The calculation engine never
touches this module; callers load a plan, edit and recompute it, then save.
Last write wins.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Union

from businessplan_cci.domain import BusinessPlanData
from businessplan_cci.serialization import from_dict, to_dict

logger = logging.getLogger(__name__)

_PLAN_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


class PlanNotFoundError(LookupError):
    """Raised when no snapshot exists for the requested plan id."""

    def __init__(self, plan_id: str) -> None:
        super().__init__(f"Business plan introuvable: {plan_id}")
        self.plan_id = plan_id


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class JsonPlanStore:
    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)

    def _path(self, plan_id: str) -> Path:
        if not isinstance(plan_id, str) or not _PLAN_ID_PATTERN.fullmatch(plan_id):
            raise ValueError(f"Identifiant de plan invalide: {plan_id!r}")
        return self.directory / f"{plan_id}.json"

    def load(self, plan_id: str) -> BusinessPlanData:
        path = self._path(plan_id)
        if not path.exists():
            raise PlanNotFoundError(plan_id)
        with path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
        plan = from_dict(payload)
        logger.info("Plan %s chargé depuis %s", plan_id, path)
        return plan

    def save(self, plan_id: str, plan: BusinessPlanData) -> None:
        """Write the snapshot atomically and stamp its timestamps."""
        path = self._path(plan_id)
        self.directory.mkdir(parents=True, exist_ok=True)

        now = _now_iso()
        stamped = dataclasses.replace(
            plan, id=plan_id, created_at=plan.created_at or now, updated_at=now
        )

        tmp_path = path.with_suffix(".json.tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as fh:
                json.dump(to_dict(stamped), fh, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise

        # the caller's plan only carries the stamps once the snapshot is on disk
        plan.id, plan.created_at, plan.updated_at = stamped.id, stamped.created_at, stamped.updated_at
        logger.info("Plan %s enregistré dans %s", plan_id, path)

    def delete(self, plan_id: str) -> None:
        path = self._path(plan_id)
        if not path.exists():
            raise PlanNotFoundError(plan_id)
        path.unlink()
        logger.info("Plan %s supprimé", plan_id)

    def list_ids(self) -> List[str]:
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json"))

# cx_core/intents.py
"""
Update intents for the storage collaborator.

The core never writes anything itself: it validates an intent, translates
internal keys to the descriptive storage names and hands the write to a
store. Failures come back as an `UpdateResult(ok=False)`; nothing is retried.
"""
from __future__ import annotations
import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

from pydantic import ValidationError

from cx_core.fields import BY_SOURCE, plan_fields
from cx_core.schemas import BulkSetStagePlanDates, SetField, UpdateResult

logger = logging.getLogger(__name__)

Intent = Union[SetField, BulkSetStagePlanDates]


class EquipmentStore(Protocol):
    mode: str

    def load_all(self) -> List[Dict[str, Any]]: ...

    def update_fields(self, equipment_id: str, fields: Mapping[str, Any]) -> None: ...

    def update_area(self, area: str, fields: Mapping[str, Any]) -> int: ...


def _validation_message(exc: ValidationError) -> str:
    return "; ".join(err.get("msg", "") for err in exc.errors()) or str(exc)


def set_field(equipment_id: str, field: str, value: Optional[date] = None) -> SetField:
    return SetField(equipment_id=equipment_id, field=field, value=value)


def reset_field(equipment_id: str, field: str) -> SetField:
    return SetField(equipment_id=equipment_id, field=field, value=None)


def bulk_set_stage_plan_dates(area: str, stage: Any, start: date, end: date) -> BulkSetStagePlanDates:
    return BulkSetStagePlanDates(area=area, stage=stage, start=start, end=end)


def intent_fields(intent: Intent) -> Dict[str, Any]:
    """Storage-name -> value payload an intent writes."""
    if isinstance(intent, SetField):
        return {intent.field: intent.value}
    start_name, end_name = plan_fields(intent.stage)
    return {start_name: intent.start, end_name: intent.end}


def apply_intent(intent: Intent, store: EquipmentStore) -> UpdateResult:
    mode = getattr(store, "mode", "")
    payload = intent_fields(intent)
    try:
        if isinstance(intent, SetField):
            store.update_fields(intent.equipment_id, payload)
            logger.info("Set %s on %s to %s", intent.field, intent.equipment_id, intent.value)
            return UpdateResult(ok=True, mode=mode, count=1)
        count = store.update_area(intent.area, payload)
        logger.info("Set %s plan dates for %d equipment in area %s", intent.stage.value, count, intent.area)
        return UpdateResult(ok=True, mode=mode, count=count)
    except Exception as e:
        logger.exception("Update intent %s failed", intent.kind)
        return UpdateResult(ok=False, mode=mode, error=str(e))


def submit(store: EquipmentStore, kind: str, **params: Any) -> UpdateResult:
    """Validate and apply in one step; invalid input is reported, not raised."""
    builders = {
        "set_field": set_field,
        "reset_field": reset_field,
        "bulk_plan_dates": bulk_set_stage_plan_dates,
    }
    builder = builders.get(kind)
    if builder is None:
        return UpdateResult(ok=False, mode=getattr(store, "mode", ""), error=f"Unknown intent: {kind}")
    try:
        intent = builder(**params)
    except ValidationError as e:
        return UpdateResult(ok=False, mode=getattr(store, "mode", ""), error=_validation_message(e))
    except (TypeError, ValueError) as e:
        return UpdateResult(ok=False, mode=getattr(store, "mode", ""), error=str(e))
    return apply_intent(intent, store)


def mirror_internal_keys(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Add the internal key next to each descriptive storage name (local mock rows carry both)."""
    out = dict(fields)
    for name, value in fields.items():
        spec = BY_SOURCE.get(name)
        if spec is not None:
            out[spec.key] = value
    return out

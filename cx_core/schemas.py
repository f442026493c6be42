# ============================ schemas.py ============================
from __future__ import annotations
from datetime import date
from typing import Optional, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from cx_core.fields import Stage, lookup


class StagePlan(BaseModel):
    plan_start: date
    plan_end: Optional[date] = None

    @model_validator(mode="after")
    def _end_not_before_start(self) -> "StagePlan":
        if self.plan_end is not None and self.plan_end < self.plan_start:
            raise ValueError("plan_end must not be before plan_start")
        return self


class ReferenceDates(BaseModel):
    l1: StagePlan
    l2: StagePlan
    l3: StagePlan

    def for_stage(self, stage: Stage) -> StagePlan:
        return getattr(self, Stage.parse(stage).value.lower())

    @property
    def calendar_start(self) -> date:
        """Week 1 of the shared project calendar."""
        return self.l1.plan_start


class SetField(BaseModel):
    kind: Literal["set_field"] = "set_field"
    equipment_id: str = Field(min_length=1)
    field: str
    value: Optional[date] = None

    @field_validator("field")
    @classmethod
    def _known_date_field(cls, v: str) -> str:
        spec = lookup(v)
        if spec is None:
            raise ValueError(f"Unknown equipment field: {v!r}")
        if not spec.editable:
            raise ValueError(f"Field {v!r} is not a date field")
        return spec.source


class BulkSetStagePlanDates(BaseModel):
    kind: Literal["bulk_plan_dates"] = "bulk_plan_dates"
    area: str = Field(min_length=1)
    stage: Stage
    start: date
    end: date

    @field_validator("stage", mode="before")
    @classmethod
    def _parse_stage(cls, v):
        return Stage.parse(v)

    @model_validator(mode="after")
    def _end_not_before_start(self) -> "BulkSetStagePlanDates":
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self


class UpdateResult(BaseModel):
    ok: bool
    mode: str = ""
    count: Optional[int] = None
    error: Optional[str] = None

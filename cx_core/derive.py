# cx_core/derive.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from cx_core.dates import coerce_date, format_display_date
from cx_core.fields import BY_KEY, REMARK_KEYS, Stage, project_record, sort_records
from cx_core.milestones import StageLadder, inst_term_duration, project_stage
from cx_core.schemas import ReferenceDates
from cx_core.status import is_passed, resolve_stage

ALL = "All"
LEVELS = [ALL, "L1", "L2", "L3"]


@dataclass(frozen=True)
class StageView:
    ladder: StageLadder
    status: str
    remarks: Dict[str, Any] = field(default_factory=dict)

    @property
    def stage(self) -> Stage:
        return self.ladder.stage

    @property
    def passed(self) -> bool:
        return is_passed(self.stage, self.status)


@dataclass(frozen=True)
class EquipmentView:
    record: Dict[str, Any]
    l1: StageView
    l2: StageView
    l3: StageView
    inst_term_duration: str

    @property
    def id(self) -> str:
        return str(self.record.get("id") or "")

    def stage(self, stage: Any) -> StageView:
        return getattr(self, Stage.parse(stage).value.lower())

    @property
    def stages(self) -> List[StageView]:
        return [self.l1, self.l2, self.l3]


def _stage_view(stage: Stage, record: Mapping[str, Any], refs: ReferenceDates, now: date) -> StageView:
    ladder = project_stage(stage, record, refs.for_stage(stage), refs.calendar_start)
    status = resolve_stage(stage, record, ladder.plan_start, now)
    remarks = {k: record.get(k) for k in REMARK_KEYS[stage]}
    return StageView(ladder=ladder, status=status, remarks=remarks)


def derive_record(raw: Mapping[str, Any], refs: ReferenceDates, now: Any = None) -> EquipmentView:
    """Project one raw record and resolve all three stages against `now`."""
    record = project_record(raw)
    today = coerce_date(now) or date.today()
    l1 = _stage_view(Stage.L1, record, refs, today)
    l2 = _stage_view(Stage.L2, record, refs, today)
    l3 = _stage_view(Stage.L3, record, refs, today)
    return EquipmentView(
        record=record,
        l1=l1,
        l2=l2,
        l3=l3,
        inst_term_duration=inst_term_duration(l1.ladder, l2.ladder),
    )


def derive_batch(records: Iterable[Mapping[str, Any]], refs: ReferenceDates, now: Any = None) -> List[EquipmentView]:
    today = coerce_date(now) or date.today()
    return [derive_record(r, refs, today) for r in sort_records(records)]


# ---------------- filters ----------------
def _text(value: Any) -> str:
    return str(value or "").strip()


def filter_options(records: Iterable[Mapping[str, Any]], key: str) -> List[str]:
    values = sorted({_text(r.get(key)) for r in records if _text(r.get(key))})
    return [ALL] + values


def filter_records(records: Iterable[Mapping[str, Any]], vendor: str = ALL, area: str = ALL,
                   search: str = "") -> List[Mapping[str, Any]]:
    needle = (search or "").strip().lower()

    def _pass(r: Mapping[str, Any]) -> bool:
        if vendor != ALL and _text(r.get("subcont_vendor")) != vendor:
            return False
        if area != ALL and _text(r.get("area")) != area:
            return False
        if needle:
            hay = " ".join(_text(r.get(k)) for k in ("equipment_id", "area", "subcont_vendor")).lower()
            if needle not in hay:
                return False
        return True

    return [r for r in records if _pass(r)]


def paginate(items: Sequence[Any], page: int, page_size: int) -> Sequence[Any]:
    if page_size <= 0:
        return items
    page = max(1, page)
    start = (page - 1) * page_size
    return items[start:start + page_size]


def page_count(total: int, page_size: int) -> int:
    if page_size <= 0:
        return 1
    return max(1, -(-total // page_size))


# ---------------- summary ----------------
@dataclass
class Summary:
    total: int = 0
    passed: Dict[str, int] = field(default_factory=lambda: {"L1": 0, "L2": 0, "L3": 0})
    areas: Dict[str, int] = field(default_factory=dict)
    statuses: Dict[str, Dict[str, int]] = field(default_factory=lambda: {"L1": {}, "L2": {}, "L3": {}})


def summarize(views: Iterable[EquipmentView]) -> Summary:
    out = Summary()
    for v in views:
        out.total += 1
        area = _text(v.record.get("area")) or "Unknown"
        out.areas[area] = out.areas.get(area, 0) + 1
        for sv in v.stages:
            level = sv.stage.value
            if sv.passed:
                out.passed[level] += 1
            bucket = out.statuses[level]
            bucket[sv.status] = bucket.get(sv.status, 0) + 1
    return out


# ---------------- table rows ----------------
# Raw answers shown next to the projected milestones, per stage
STAGE_ANSWERS: Dict[Stage, List[str]] = {
    Stage.L1: [],
    Stage.L2: ["vendor_ps_required", "cyt_required", "cyt_finished"],
    Stage.L3: ["load_bank_required", "fok_witnessed", "open_close_issues"],
}


def _stage_columns(sv: StageView, record: Mapping[str, Any]) -> Dict[str, Any]:
    ladder = sv.ladder
    prefix = sv.stage.value
    cols: Dict[str, Any] = {
        f"{prefix} Plan Start": format_display_date(ladder.plan_start),
        f"{prefix} Plan End": format_display_date(ladder.plan_end),
        f"{prefix} Total Days": ladder.total_days,
        f"{prefix} Plan Weeks": ladder.plan_weeks,
    }
    for m in ladder.milestones:
        cols[f"{prefix} {m.label}"] = m.display
    for key in STAGE_ANSWERS[sv.stage]:
        cols[f"{prefix} {BY_KEY[key].label}"] = _text(record.get(key)) or "-"
    cols[f"{prefix} Actual Weeks"] = ladder.actual_weeks
    cols[f"{prefix} Status"] = sv.status
    for key, value in sv.remarks.items():
        cols[f"{prefix} {BY_KEY[key].label}"] = _text(value) or "-"
    return cols


def view_to_row(view: EquipmentView, level: str = ALL, show_type: bool = True,
                index: Optional[int] = None) -> Dict[str, Any]:
    r = view.record
    row: Dict[str, Any] = {
        "No": _text(r.get("no")) or (index if index is not None else ""),
        "Equipment ID": _text(r.get("equipment_id")) or view.id,
    }
    if show_type:
        row["Type"] = _text(r.get("type")) or "-"
    row["Area"] = _text(r.get("area")) or "-"
    row["Subcont/ Vendor"] = _text(r.get("subcont_vendor")) or "-"
    for sv in view.stages:
        if level in (ALL, sv.stage.value):
            row.update(_stage_columns(sv, r))
            if sv.stage is Stage.L1:
                row["Inst & Term Duration"] = view.inst_term_duration
    return row


def to_rows(views: Sequence[EquipmentView], level: str = ALL, show_type: bool = True,
            offset: int = 0) -> List[Dict[str, Any]]:
    return [view_to_row(v, level, show_type, offset + i + 1) for i, v in enumerate(views)]

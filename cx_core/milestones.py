# cx_core/milestones.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from cx_core.completion import is_present, yes_no
from cx_core.dates import add_days, coerce_date, duration_days, format_display_date, week_number
from cx_core.fields import BY_KEY, Stage, plan_keys
from cx_core.schemas import StagePlan

# ---------------- schedule template offsets (days) ----------------
# L1: all offsets from plan start P
L1_OFFSETS: Dict[str, int] = {
    "roj_date": -28,
    "msra_submit": -14,
    "ptw_submit": -1,
    "sai_date": 7,
    "submit_anchore_spec": 7,
    "positioning_anchoring_start_date": 14,
    "anchored_verified_qc": 21,
    "red_tag_passed_date": 21,   # same day as anchored verified QC
}
L1_PLAN_DAYS = 21

# L2: chained, see project_l2
L2_PLAN_DAYS = 21

# L3: all offsets from plan start R (R doubles as the energized date)
L3_OFFSETS: Dict[str, int] = {
    "energization_msra_submitted": -30,
    "comm_scripts_submitted": -30,
    "load_bank_plan_submitted": -45,
    "startup_plan_submitted": -30,
    "pre_energization_meeting": -7,
    "energization_plan_submitted": -5,
    "temp_load_bank_install": -7,
    "l3_ptw_submit": -1,
    "energized_date": 0,
    "l3_startup_scripts_completed": 1,
    "load_burn_in_completed": 1,
    "ir_scan_uploaded": 3,
    "epms_verification_completed": 3,
    "green_tag_passed_date": 3,  # same day as EPMS verification
}
L3_PLAN_DAYS = 8

PLAN_DAYS: Dict[Stage, int] = {Stage.L1: L1_PLAN_DAYS, Stage.L2: L2_PLAN_DAYS, Stage.L3: L3_PLAN_DAYS}
TERMINAL_KEYS: Dict[Stage, str] = {
    Stage.L1: "red_tag_passed_date",
    Stage.L2: "yt_passed_date",
    Stage.L3: "green_tag_passed_date",
}


@dataclass(frozen=True)
class Milestone:
    key: str
    projected: Optional[date]
    stored: Any = None

    @property
    def label(self) -> str:
        spec = BY_KEY.get(self.key)
        return spec.label if spec else self.key

    @property
    def stored_date(self) -> Optional[date]:
        return coerce_date(self.stored)

    @property
    def effective_date(self) -> Optional[date]:
        """Stored date when the record has one, else the projection."""
        return self.stored_date or self.projected

    @property
    def display(self) -> str:
        if self.stored_date is None and is_present(self.stored):
            return str(self.stored).strip()
        return format_display_date(self.effective_date)


@dataclass(frozen=True)
class StageLadder:
    stage: Stage
    plan_start: Optional[date]
    plan_end: Optional[date]
    milestones: Tuple[Milestone, ...]
    total_days: Union[int, str]
    plan_weeks: Union[int, str]
    actual_weeks: Union[int, str]

    def get(self, key: str) -> Milestone:
        for m in self.milestones:
            if m.key == key:
                return m
        raise KeyError(key)

    def projected(self, key: str) -> Optional[date]:
        return self.get(key).projected

    @property
    def terminal(self) -> Milestone:
        return self.get(TERMINAL_KEYS[self.stage])


# ---------------- plan anchors ----------------
def effective_plan(stage: Stage, record: Mapping[str, Any], plan: StagePlan) -> Tuple[Optional[date], Optional[date]]:
    """
    Plan start/end for one record. A plan start stored on the record
    (per-area override) wins over the stage reference; the end falls back
    to stored end, then reference end, then the template duration.
    """
    start_key, end_key = plan_keys(stage)
    stored_start = coerce_date(record.get(start_key))
    stored_end = coerce_date(record.get(end_key))
    start = stored_start or plan.plan_start
    end = stored_end or plan.plan_end
    if end is None:
        end = add_days(start, PLAN_DAYS[stage])
    return start, end


def _ladder(stage: Stage, record: Mapping[str, Any], start: Optional[date], end: Optional[date],
            projected: Dict[str, Optional[date]], calendar_start: Optional[date],
            plan_week_ref: Optional[date] = None) -> StageLadder:
    milestones = tuple(Milestone(key, value, record.get(key)) for key, value in projected.items())
    terminal = next(m for m in milestones if m.key == TERMINAL_KEYS[stage])
    return StageLadder(
        stage=stage,
        plan_start=start,
        plan_end=end,
        milestones=milestones,
        total_days=duration_days(start, end),
        plan_weeks=week_number(start, plan_week_ref or calendar_start),
        actual_weeks=week_number(terminal.effective_date, calendar_start),
    )


# ---------------- projectors ----------------
def project_l1(record: Mapping[str, Any], plan: StagePlan, calendar_start: Optional[date] = None) -> StageLadder:
    start, end = effective_plan(Stage.L1, record, plan)
    projected = {key: add_days(start, off) for key, off in L1_OFFSETS.items()}
    return _ladder(Stage.L1, record, start, end, projected, calendar_start or plan.plan_start)


def cyt_required(record: Mapping[str, Any]) -> bool:
    """A blank CYT flag defaults to required; anything but Y otherwise is not."""
    value = record.get("cyt_required")
    if not is_present(value):
        return True
    return yes_no(value) == "Y"


def project_l2(record: Mapping[str, Any], plan: StagePlan, calendar_start: Optional[date] = None) -> StageLadder:
    start, end = effective_plan(Stage.L2, record, plan)
    msra = add_days(start, -14)
    cable = add_days(start, -1)
    elec = start
    mech = start
    installer = add_days(mech, 7)
    qaqc = add_days(installer, 1)
    docs = add_days(qaqc, 2)
    loto = add_days(qaqc, 2)
    ivc = add_days(loto, 1)
    cyt_end = add_days(ivc, 7) if cyt_required(record) else None
    yt_passed = cyt_end or ivc

    projected: Dict[str, Optional[date]] = {
        "msra_loto_submit": msra,
        "power_control_cable_inplace": cable,
        "elec_tests_completed": elec,
        "mech_tests_completed": mech,
        "installer_pre_startup_completed": installer,
        "vendor_pre_startup_completed": None,
        "l2_qa_qc_script_completed": qaqc,
        "l2_docs_uploaded": docs,
        "loto_plan_implemented": loto,
        "ivc_completed": ivc,
        "cyt_end_date": cyt_end,
        "yt_passed_date": yt_passed,
    }
    # L2 plan weeks count from the L2 reference start; actual weeks stay on the project calendar
    return _ladder(Stage.L2, record, start, end, projected, calendar_start or plan.plan_start,
                   plan_week_ref=plan.plan_start)


def project_l3(record: Mapping[str, Any], plan: StagePlan, calendar_start: Optional[date] = None) -> StageLadder:
    start, end = effective_plan(Stage.L3, record, plan)
    projected = {key: add_days(start, off) for key, off in L3_OFFSETS.items()}
    return _ladder(Stage.L3, record, start, end, projected, calendar_start or plan.plan_start)


PROJECTORS = {
    Stage.L1: project_l1,
    Stage.L2: project_l2,
    Stage.L3: project_l3,
}


def project_stage(stage: Any, record: Mapping[str, Any], plan: StagePlan,
                  calendar_start: Optional[date] = None) -> StageLadder:
    return PROJECTORS[Stage.parse(stage)](record, plan, calendar_start)


def inst_term_duration(l1: StageLadder, l2: StageLadder) -> str:
    """Installation & termination window between Red Tag passed and L2 start."""
    red_tag = l1.terminal.effective_date
    if red_tag is None or l2.plan_start is None:
        return ""
    return f"{duration_days(red_tag, l2.plan_start)} days"


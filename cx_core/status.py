# cx_core/status.py
"""
Stage status resolution.

Each stage is an ordered checklist of `Check` descriptors. `resolve_status`
walks the list top to bottom and reports the first applicable check whose
field is not satisfied; when every check passes the stage's terminal label
is returned. Nothing is stored: the status is recomputed from the record on
every pass.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from cx_core.completion import is_done, is_present, yes_no
from cx_core.dates import add_days, coerce_date, diff_days
from cx_core.fields import Stage
from cx_core.milestones import L3_OFFSETS

Predicate = Callable[[Mapping[str, Any]], bool]


def _always(record: Mapping[str, Any]) -> bool:
    return True


def present(field: str) -> Predicate:
    return lambda record: is_present(record.get(field))


def done(field: str) -> Predicate:
    return lambda record: is_done(record.get(field))


def flag_is(field: str, *values: Optional[str]) -> Predicate:
    return lambda record: yes_no(record.get(field)) in values


@dataclass(frozen=True)
class Check:
    id: str
    field: str
    label: str
    satisfied: Predicate
    applies: Predicate = _always
    due_offset: Optional[int] = None
    overdue_label: Optional[str] = None
    describe: Optional[Callable[[Mapping[str, Any], date], str]] = None

    def due_date(self, plan_start: Optional[date]) -> Optional[date]:
        if self.due_offset is None:
            return None
        return add_days(plan_start, self.due_offset)

    def message(self, record: Mapping[str, Any], plan_start: Optional[date], now: date) -> str:
        if self.describe is not None:
            return self.describe(record, now)
        if self.due_offset is None:
            return self.label
        days = diff_days(self.due_date(plan_start), now)
        if days is not None and days < 0 and self.overdue_label:
            return self.overdue_label.format(days=abs(days))
        return self.label.format(days=days if days is not None else 0)


def first_unmet(checks: Tuple[Check, ...], record: Mapping[str, Any]) -> Optional[Check]:
    for check in checks:
        if check.applies(record) and not check.satisfied(record):
            return check
    return None


def resolve_status(checks: Tuple[Check, ...], record: Mapping[str, Any], plan_start: Any,
                   now: Any, terminal: str) -> str:
    check = first_unmet(checks, record)
    if check is None:
        return terminal
    return check.message(record, coerce_date(plan_start), coerce_date(now) or date.today())


# ---------------- L1 - RED TAG ----------------
L1_CHECKS: Tuple[Check, ...] = (
    Check("roj", "roj_date", "ROJ Late Information ({days}d)", present("roj_date"),
          due_offset=-28, overdue_label="ROJ OVERDUE ({days}d)"),
    Check("msra", "msra_submit", "MSRA Submission ({days}d)", present("msra_submit"),
          due_offset=-14, overdue_label="MSRA OVERDUE ({days}d)"),
    Check("sai", "sai_date", "SAI Date ({days}d)", present("sai_date"),
          due_offset=7, overdue_label="SAI Date OVERDUE ({days}d)"),
    Check("anchor_spec", "submit_anchore_spec", "Submit Anchor Spec ({days}d)", done("submit_anchore_spec"),
          due_offset=14, overdue_label="Submit Anchor Spec OVERDUE ({days}d)"),
    Check("positioning", "positioning_anchoring_start_date", "Positioning Start ({days}d)",
          present("positioning_anchoring_start_date"),
          due_offset=21, overdue_label="Positioning Start OVERDUE ({days}d)"),
    Check("anchored_qc", "anchored_verified_qc", "Anchored QC Verified ({days}d)", done("anchored_verified_qc"),
          due_offset=28, overdue_label="Anchored In Place Verified OVERDUE ({days}d)"),
    # TODO: confirm with the Cx lead whether the Red Tag deadline should sit after anchored QC (+28) or on it (+21)
    Check("red_tag", "red_tag_passed_date", "Red Tag Overdue ({days}d)", present("red_tag_passed_date"),
          due_offset=28, overdue_label="Red Tag Passed OVERDUE ({days}d)"),
)
L1_TERMINAL = "Red Tag Passed"


# ---------------- L2 - YELLOW TAG ----------------
def _cyt_message(record: Mapping[str, Any], now: date) -> str:
    cyt_end = coerce_date(record.get("cyt_end_date"))
    if cyt_end is not None and now > cyt_end:
        return "Overdue CYT"
    return "Need Approval"


L2_CHECKS: Tuple[Check, ...] = (
    Check("msra_loto", "msra_loto_submit", "MSRA LOTO Plan Submit? ({days}d)", present("msra_loto_submit"),
          due_offset=-14, overdue_label="MSRA Overdue {days}days"),
    Check("cable", "power_control_cable_inplace", "Power, EPMS/BAS inplace?", present("power_control_cable_inplace")),
    Check("elec_tests", "elec_tests_completed", "Electrical Tests Completed?", done("elec_tests_completed")),
    Check("mech_tests", "mech_tests_completed", "Mech Tests Completed?", done("mech_tests_completed")),
    Check("installer_ps", "installer_pre_startup_completed", "Installer Pre-Startup Completed?",
          done("installer_pre_startup_completed")),
    Check("vendor_ps_flag", "vendor_ps_required", "Vendor PS Required?", flag_is("vendor_ps_required", "Y", "N")),
    Check("vendor_ps", "vendor_pre_startup_completed", "Vendor Pre-Startup Completed?",
          done("vendor_pre_startup_completed"), applies=flag_is("vendor_ps_required", "Y")),
    Check("qaqc", "l2_qa_qc_script_completed", "QA/QC Script Completed?", done("l2_qa_qc_script_completed")),
    Check("docs", "l2_docs_uploaded", "Uploaded Doc (ACMS)?", done("l2_docs_uploaded")),
    Check("loto", "loto_plan_implemented", "LOTO Must Implemented?", done("loto_plan_implemented")),
    Check("ivc", "ivc_completed", "IVC Completed?", done("ivc_completed")),
    Check("cyt_flag", "cyt_required", "Need CYT?", flag_is("cyt_required", "Y", "N")),
    Check("cyt", "cyt_finished", "Need Approval", done("cyt_finished"),
          applies=flag_is("cyt_required", "Y"), describe=_cyt_message),
    Check("yt_passed", "yt_passed_date", "YT Passed Date?", present("yt_passed_date")),
)
L2_TERMINAL = "YT Passed"


# ---------------- L3 - GREEN TAG ----------------
def _l3(check_id: str, field: str, pending: str, overdue: str, satisfied: Optional[Predicate] = None,
        applies: Predicate = _always) -> Check:
    return Check(check_id, field, pending, satisfied or done(field), applies=applies,
                 due_offset=L3_OFFSETS[field], overdue_label=overdue)


_lb_unknown = flag_is("load_bank_required", None)
_lb_needed = flag_is("load_bank_required", "Y")


def _no_open_issue(record: Mapping[str, Any]) -> bool:
    return "OPEN" not in str(record.get("open_close_issues") or "").strip().upper()


L3_CHECKS: Tuple[Check, ...] = (
    _l3("energization_msra", "energization_msra_submitted", "MSRA due in {days}d", "MSRA Overdue {days}d"),
    _l3("comm_scripts", "comm_scripts_submitted",
        "Commissioning Scripts due in {days}d", "Commissioning Scripts Overdue {days}d"),
    Check("load_bank_flag_plan", "load_bank_plan_submitted", "Load Bank Required? (Y/N)",
          done("load_bank_plan_submitted"), applies=_lb_unknown),
    _l3("load_bank_plan", "load_bank_plan_submitted",
        "Load Bank Plan due in {days}d", "Load Bank Plan Overdue {days}d", applies=_lb_needed),
    _l3("startup_plan", "startup_plan_submitted", "Startup Plan due in {days}d", "Startup Plan Overdue {days}d"),
    _l3("pre_energization", "pre_energization_meeting",
        "Pre-Energization Meeting due in {days}d", "Pre-Energization Meeting Overdue {days}d"),
    _l3("energization_plan", "energization_plan_submitted",
        "Energization Plan due in {days}d", "Energization Plan Overdue {days}d"),
    Check("load_bank_flag_install", "temp_load_bank_install", "Load Bank Required? (Y/N)",
          done("temp_load_bank_install"), applies=_lb_unknown),
    Check("temp_load_bank", "temp_load_bank_install", "Temporary Load Bank Installation?",
          done("temp_load_bank_install"), applies=_lb_needed),
    Check("ptw", "l3_ptw_submit", "PTW Not Submitted", present("l3_ptw_submit")),
    _l3("energized", "energized_date", "Energized Date?", "Energized Date Overdue {days}d",
        satisfied=present("energized_date")),
    _l3("l3_scripts", "l3_startup_scripts_completed",
        "L3 Startup Scripts Completed?", "L3 Scripts Overdue {days}d"),
    Check("fok", "fok_witnessed", "FoK Witnessed? (Y/N)", present("fok_witnessed")),
    _l3("load_burn_in", "load_burn_in_completed",
        "Load & Burn-in Test Completed?", "Load & Burn-in Overdue {days}d"),
    _l3("ir_scan", "ir_scan_uploaded", "IR Scan / TMS Uploaded?", "IR/TMS Upload Overdue {days}d"),
    _l3("epms", "epms_verification_completed",
        "EPMS Verification Completed?", "EPMS Verification Overdue {days}d"),
    Check("cx_issue", "open_close_issues", "Cx Issue", _no_open_issue),
)
L3_TERMINAL = "Completed"


CHECKLISTS: Dict[Stage, Tuple[Check, ...]] = {
    Stage.L1: L1_CHECKS,
    Stage.L2: L2_CHECKS,
    Stage.L3: L3_CHECKS,
}
TERMINAL_LABELS: Dict[Stage, str] = {
    Stage.L1: L1_TERMINAL,
    Stage.L2: L2_TERMINAL,
    Stage.L3: L3_TERMINAL,
}


def resolve_stage(stage: Any, record: Mapping[str, Any], plan_start: Any, now: Any) -> str:
    s = Stage.parse(stage)
    return resolve_status(CHECKLISTS[s], record, plan_start, now, TERMINAL_LABELS[s])


def l1_status(record: Mapping[str, Any], plan_start: Any, now: Any) -> str:
    return resolve_stage(Stage.L1, record, plan_start, now)


def l2_status(record: Mapping[str, Any], plan_start: Any, now: Any) -> str:
    return resolve_stage(Stage.L2, record, plan_start, now)


def l3_status(record: Mapping[str, Any], plan_start: Any, now: Any) -> str:
    return resolve_stage(Stage.L3, record, plan_start, now)


def is_passed(stage: Any, label: str) -> bool:
    return label == TERMINAL_LABELS[Stage.parse(stage)]

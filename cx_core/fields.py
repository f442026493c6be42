# cx_core/fields.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


class Stage(str, Enum):
    L1 = "L1"
    L2 = "L2"
    L3 = "L3"

    @property
    def tag(self) -> str:
        return {"L1": "RED TAG", "L2": "YELLOW TAG", "L3": "GREEN TAG"}[self.value]

    @property
    def heading(self) -> str:
        return f"{self.value} - {self.tag}"

    @classmethod
    def parse(cls, value: Any) -> "Stage":
        if isinstance(value, Stage):
            return value
        text = str(value or "").strip().upper()
        for stage in cls:
            if text in (stage.value, stage.heading, stage.tag):
                return stage
        raise ValueError(f"Unknown stage: {value!r}")


# kind: "date" (milestone date), "flag" (Y/N answer), "text" (remark / status / identity)
@dataclass(frozen=True)
class FieldSpec:
    key: str
    source: str
    stage: Optional[Stage]
    label: str
    kind: str = "date"

    @property
    def editable(self) -> bool:
        return self.kind == "date"


def _stage_fields(stage: Stage, rows: Iterable[Tuple[str, str, str, str]]) -> List[FieldSpec]:
    prefix = stage.heading
    return [FieldSpec(key, f"{prefix} {suffix}", stage, label, kind) for key, suffix, label, kind in rows]


IDENTITY_FIELDS: List[FieldSpec] = [
    FieldSpec("no", "NO", None, "No", "text"),
    FieldSpec("equipment_id", "EQUIPMENT ID", None, "Equipment ID", "text"),
    FieldSpec("type", "TYPE", None, "Type", "text"),
    FieldSpec("area", "AREA", None, "Area", "text"),
    FieldSpec("subcont_vendor", "Subcont/ Vendor", None, "Subcont/ Vendor", "text"),
]

L1_FIELDS = _stage_fields(Stage.L1, [
    ("l1_plan_start",                    "Plan Start",                     "Plan Start",                 "date"),
    ("l1_plan_end",                      "Plan End",                       "Plan End",                   "date"),
    ("roj_date",                         "ROJ Date",                       "ROJ Date",                   "date"),
    ("msra_submit",                      "MSRA Submit",                    "MSRA Submit",                "date"),
    ("ptw_submit",                       "PTW Submit",                     "PTW Submit",                 "date"),
    ("sai_date",                         "SAI Date",                       "SAI Date",                   "date"),
    ("submit_anchore_spec",              "Submit Anchore Spec",            "Submit Anchore Spec",        "date"),
    ("positioning_anchoring_start_date", "Positioning Anchoring Start Date", "Positioning Anchoring Start", "date"),
    ("anchored_verified_qc",             "Anchored Verified QC",           "Anchored Verified QC",       "date"),
    ("red_tag_passed_date",              "Red Tag Passed Date",            "Red Tag Passed",             "date"),
    ("l1_status",                        "Status",                         "Stored Status",              "text"),
    ("l1_remark_cx",                     "Remark Cx Issue",                "Remark Cx",                  "text"),
    ("l1_remarks_ptw",                   "Remarks PTW + MSRA Issue",       "Remarks PTW+MSRA",           "text"),
])

L2_FIELDS = _stage_fields(Stage.L2, [
    ("l2_plan_start",                   "Plan Start",                                  "Plan Start",            "date"),
    ("l2_plan_end",                     "Plan End",                                    "Plan End",              "date"),
    ("l2_start_date",                   "Start Date",                                  "Start Date",            "date"),
    ("l2_end_date",                     "End Date",                                    "End Date",              "date"),
    ("msra_loto_submit",                "MSRA + LOTO Plan Submit",                     "MSRA+LOTO Submit",      "date"),
    ("power_control_cable_inplace",     "Power and Control Cable (EPMS/BAS) Inplace",  "Power/Control Cable Inplace", "date"),
    ("elec_tests_completed",            "Electrical Tests Completed",                  "Elec Tests",            "date"),
    ("mech_tests_completed",            "Mech Tests Completed",                        "Mech Tests",            "date"),
    ("installer_pre_startup_completed", "Installer Pre-Startup Completed",             "Installer Pre-Startup", "date"),
    ("vendor_ps_required",              "Vendor PS Required (Y/N)",                    "Vendor PS Req?",        "flag"),
    ("vendor_pre_startup_completed",    "Vendor Pre-Startup Completed",                "Vendor Pre-Startup",    "date"),
    ("l2_qa_qc_script_completed",       "L2 QA/QC Script Completed",                   "L2 QA/QC Script",       "date"),
    ("l2_docs_uploaded",                "L2 Docs Uploaded (ACMS)",                     "L2 Docs Uploaded",      "date"),
    ("loto_plan_implemented",           "LOTO Plan Implemented",                       "LOTO Implemented",      "date"),
    ("ivc_completed",                   "IVC Completed (CxA)",                         "IVC Completed",         "date"),
    ("cyt_required",                    "CYT? (Y/N)",                                  "CYT?",                  "flag"),
    ("cyt_end_date",                    "CYT End Date",                                "CYT End Date",          "date"),
    ("cyt_finished",                    "CYT Finish? (Y/N)",                           "CYT Finish?",           "flag"),
    ("yt_passed_date",                  "YT Passed Date",                              "YT Passed",             "date"),
    ("l2_status",                       "Status",                                      "Stored Status",         "text"),
    ("l2_remark_cx",                    "Remark Cx Issue",                             "Remark Cx",             "text"),
    ("l2_remarks_ptw",                  "Remarks PTW Issue",                           "Remarks PTW",           "text"),
])

L3_FIELDS = _stage_fields(Stage.L3, [
    ("l3_plan_start",                "Plan Start",                              "Plan Start",          "date"),
    ("l3_plan_end",                  "Plan End",                                "Plan End",            "date"),
    ("l3_start_date",                "Start Date",                              "Start Date",          "date"),
    ("l3_end_date",                  "End Date",                                "End Date",            "date"),
    ("energization_msra_submitted",  "Energization MSRA Submitted",             "Energization MSRA",   "date"),
    ("comm_scripts_submitted",       "Commissioning Scripts Submitted",         "Comm Scripts",        "date"),
    ("load_bank_plan_submitted",     "Load Bank Plan Submitted",                "Load Bank Plan",      "date"),
    ("startup_plan_submitted",       "Startup Plan Submitted",                  "Startup Plan",        "date"),
    ("pre_energization_meeting",     "Pre-Energization Meeting",                "Pre-Energ Mtg",       "date"),
    ("energization_plan_submitted",  "Energization Plan Submitted",             "Energization Plan",   "date"),
    ("load_bank_required",           "Load Bank Required? (Y/N)",               "LB Req?",             "flag"),
    ("temp_load_bank_install",       "Temporary Load bank installation",        "Temp LB Install",     "date"),
    ("l3_ptw_submit",                "PTW Submit",                              "PTW Submit",          "date"),
    ("energized_date",               "Energized Date",                          "Energized Date",      "date"),
    ("l3_startup_scripts_completed", "L3 Startup Scripts Completed (ACMS)",     "L3 Startup Scripts",  "date"),
    ("fok_witnessed",                "FoK Witnessed (Y/N)",                     "FoK Witnessed?",      "flag"),
    ("load_burn_in_completed",       "Load & Burn in Test Completed",           "Load & Burn in",      "date"),
    ("ir_scan_uploaded",             "IR Scan / TMS Report Uploaded",           "IR Scan/TMS Rpt",     "date"),
    ("epms_verification_completed",  "EPMS Verification Completed",             "EPMS Verif",          "date"),
    ("open_close_issues",            "Open/ Close Cx Issues",                   "Open/Close Issues",   "text"),
    ("green_tag_passed_date",        "Green Tag Passed Date (Completed)",       "Green Tag Passed",    "date"),
    ("l3_status",                    "Status",                                  "Stored Status",       "text"),
    ("l3_remarks",                   "Remarks Cx / PTW Issue",                  "Remarks Cx/PTW",      "text"),
])

FIELDS: List[FieldSpec] = IDENTITY_FIELDS + L1_FIELDS + L2_FIELDS + L3_FIELDS

BY_KEY: Dict[str, FieldSpec] = {f.key: f for f in FIELDS}
BY_SOURCE: Dict[str, FieldSpec] = {f.source: f for f in FIELDS}

STAGE_FIELDS: Dict[Stage, List[FieldSpec]] = {
    Stage.L1: L1_FIELDS,
    Stage.L2: L2_FIELDS,
    Stage.L3: L3_FIELDS,
}

REMARK_KEYS: Dict[Stage, List[str]] = {
    Stage.L1: ["l1_remark_cx", "l1_remarks_ptw"],
    Stage.L2: ["l2_remark_cx", "l2_remarks_ptw"],
    Stage.L3: ["l3_remarks"],
}


def lookup(name: str) -> Optional[FieldSpec]:
    """Find a field by internal key or by its descriptive storage name."""
    return BY_KEY.get(name) or BY_SOURCE.get(name)


def storage_name(name: str) -> str:
    spec = lookup(name)
    if spec is None:
        raise KeyError(f"Unknown equipment field: {name!r}")
    return spec.source


def plan_fields(stage: Any) -> Tuple[str, str]:
    """Storage names of (plan start, plan end) for a stage."""
    s = Stage.parse(stage)
    return f"{s.heading} Plan Start", f"{s.heading} Plan End"


def plan_keys(stage: Any) -> Tuple[str, str]:
    s = Stage.parse(stage)
    low = s.value.lower()
    return f"{low}_plan_start", f"{low}_plan_end"


def editable_fields(stage: Optional[Any] = None) -> List[FieldSpec]:
    specs = FIELDS if stage is None else STAGE_FIELDS[Stage.parse(stage)]
    return [f for f in specs if f.editable]


def project_record(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Rename the descriptive storage keys of a raw record to internal keys.
    Mapped keys that are missing come back as None; keys outside the
    table pass through untouched.
    """
    out: Dict[str, Any] = {}
    for name, value in raw.items():
        if name not in BY_SOURCE:
            out[name] = value
    for spec in FIELDS:
        if spec.source in raw:
            out[spec.key] = raw[spec.source]
        else:
            out.setdefault(spec.key, None)
    return out


def sort_number(record: Mapping[str, Any]) -> int:
    raw = str(record.get("no", record.get("NO"))).strip()
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        return 0


def sort_records(records: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    return sorted(records, key=sort_number)

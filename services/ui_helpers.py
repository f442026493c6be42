from typing import Any, Dict, Iterable, List

import pandas as pd

from cx_core.fields import Stage
from cx_core.status import is_passed

STATUS_COLORS = {
    "Passed":  "#27AE60",
    "Pending": "#F2C94C",
    "Overdue": "#EB5757",
    "Issue":   "#F2994A",
    "Unknown": "#9AA0A6",
}


def status_tone(stage: Any, label: str) -> str:
    """Bucket a status label for colouring: Passed, Overdue, Issue or Pending."""
    if not label:
        return "Unknown"
    if is_passed(stage, label):
        return "Passed"
    text = label.upper()
    # "Red Tag Overdue (Nd)" is the pre-due wording for the red tag step
    if "OVERDUE" in text and not text.startswith("RED TAG OVERDUE"):
        return "Overdue"
    if "ISSUE" in text:
        return "Issue"
    return "Pending"


def status_color(stage: Any, label: str) -> str:
    return STATUS_COLORS[status_tone(stage, label)]


def style_status(stage: Any, label: str) -> str:
    return f"background-color: {status_color(stage, label)}; color: #111"


def status_chart_frame(views: Iterable[Any]) -> pd.DataFrame:
    """One row per (stage, tone) with the number of equipment in it."""
    counts: Dict[tuple, int] = {}
    for v in views:
        for sv in v.stages:
            key = (sv.stage.value, status_tone(sv.stage, sv.status))
            counts[key] = counts.get(key, 0) + 1
    rows: List[Dict[str, Any]] = [
        {"Stage": stage, "Tone": tone, "Count": n} for (stage, tone), n in sorted(counts.items())
    ]
    return pd.DataFrame(rows, columns=["Stage", "Tone", "Count"])


def status_columns(level: str) -> List[str]:
    if level in (s.value for s in Stage):
        return [f"{level} Status"]
    return [f"{s.value} Status" for s in Stage]

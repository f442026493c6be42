from datetime import date

import pytest

from cx_core.derive import derive_batch
from services.ui_helpers import STATUS_COLORS, status_chart_frame, status_columns, status_color, status_tone


class TestStatusTone:
    @pytest.mark.parametrize("stage,label,tone", [
        ("L1", "Red Tag Passed", "Passed"),
        ("L2", "YT Passed", "Passed"),
        ("L3", "Completed", "Passed"),
        ("L1", "ROJ OVERDUE (19d)", "Overdue"),
        ("L1", "Red Tag Overdue (18d)", "Pending"),
        ("L1", "Red Tag Passed OVERDUE (2d)", "Overdue"),
        ("L2", "Overdue CYT", "Overdue"),
        ("L2", "MSRA Overdue 8days", "Overdue"),
        ("L2", "Need Approval", "Pending"),
        ("L3", "Cx Issue", "Issue"),
        ("L3", "", "Unknown"),
    ])
    def test_tone(self, stage, label, tone):
        assert status_tone(stage, label) == tone

    def test_color(self):
        assert status_color("L3", "Completed") == STATUS_COLORS["Passed"]


class TestChartFrame:
    def test_counts_per_stage(self, refs):
        views = derive_batch([{"id": "a", "NO": "1"}, {"id": "b", "NO": "2"}], refs, date(2025, 11, 1))
        df = status_chart_frame(views)
        assert set(df["Stage"]) == {"L1", "L2", "L3"}
        l1 = df[df["Stage"] == "L1"]
        assert l1["Count"].sum() == 2
        assert list(l1["Tone"]) == ["Overdue"]

    def test_empty(self):
        df = status_chart_frame([])
        assert df.empty
        assert list(df.columns) == ["Stage", "Tone", "Count"]


class TestStatusColumns:
    def test_single_level(self):
        assert status_columns("L2") == ["L2 Status"]

    def test_all(self):
        assert status_columns("All") == ["L1 Status", "L2 Status", "L3 Status"]

from datetime import date

import pytest
from pydantic import ValidationError

from cx_core.fields import Stage
from cx_core.intents import apply_intent, bulk_set_stage_plan_dates, intent_fields, mirror_internal_keys, set_field, submit
from cx_core.schemas import BulkSetStagePlanDates, SetField


class FakeStore:
    mode = "fake"

    def __init__(self, area_count=3, fail=False):
        self.area_count = area_count
        self.fail = fail
        self.field_updates = []
        self.area_updates = []

    def load_all(self):
        return []

    def update_fields(self, equipment_id, fields):
        if self.fail:
            raise RuntimeError("permission denied")
        self.field_updates.append((equipment_id, dict(fields)))

    def update_area(self, area, fields):
        if self.fail:
            raise RuntimeError("permission denied")
        self.area_updates.append((area, dict(fields)))
        return self.area_count


class TestIntentModels:
    def test_set_field_uses_storage_name(self):
        intent = set_field("doc1", "roj_date", date(2025, 10, 10))
        assert intent.field == "L1 - RED TAG ROJ Date"
        assert intent_fields(intent) == {"L1 - RED TAG ROJ Date": date(2025, 10, 10)}

    def test_descriptive_name_accepted(self):
        assert SetField(equipment_id="doc1", field="L2 - YELLOW TAG CYT End Date").field == "L2 - YELLOW TAG CYT End Date"

    @pytest.mark.parametrize("field", ["nope", "l1_status", "cyt_required"])
    def test_rejects_non_date_fields(self, field):
        with pytest.raises(ValidationError):
            SetField(equipment_id="doc1", field=field)

    def test_bulk_stage_parsed(self):
        intent = BulkSetStagePlanDates(area="A1", stage="yellow tag", start=date(2026, 1, 26), end=date(2026, 2, 16))
        assert intent.stage is Stage.L2
        assert intent_fields(intent) == {
            "L2 - YELLOW TAG Plan Start": date(2026, 1, 26),
            "L2 - YELLOW TAG Plan End": date(2026, 2, 16),
        }

    def test_bulk_end_before_start(self):
        with pytest.raises(ValidationError):
            bulk_set_stage_plan_dates("A1", "L1", date(2025, 12, 1), date(2025, 11, 10))

    def test_bulk_unknown_stage(self):
        with pytest.raises(ValidationError):
            bulk_set_stage_plan_dates("A1", "L9", date(2025, 11, 10), date(2025, 12, 1))


class TestApply:
    def test_set_field(self):
        store = FakeStore()
        result = apply_intent(set_field("doc1", "sai_date", date(2025, 11, 17)), store)
        assert result.ok and result.count == 1 and result.mode == "fake"
        assert store.field_updates == [("doc1", {"L1 - RED TAG SAI Date": date(2025, 11, 17)})]

    def test_bulk_reports_count(self):
        store = FakeStore(area_count=5)
        result = apply_intent(bulk_set_stage_plan_dates("A2", "L3", date(2026, 4, 22), date(2026, 4, 30)), store)
        assert result.ok and result.count == 5
        assert store.area_updates[0][0] == "A2"

    def test_store_failure_is_a_result(self):
        result = apply_intent(set_field("doc1", "sai_date", date(2025, 11, 17)), FakeStore(fail=True))
        assert not result.ok
        assert result.error == "permission denied"


class TestSubmit:
    def test_reset_field_writes_none(self):
        store = FakeStore()
        assert submit(store, "reset_field", equipment_id="doc1", field="roj_date").ok
        assert store.field_updates == [("doc1", {"L1 - RED TAG ROJ Date": None})]

    def test_invalid_input_reported(self):
        store = FakeStore()
        result = submit(store, "set_field", equipment_id="doc1", field="nope", value=date(2025, 1, 1))
        assert not result.ok
        assert "Unknown equipment field" in result.error
        assert store.field_updates == []

    def test_bad_date_reported(self):
        result = submit(FakeStore(), "bulk_plan_dates", area="A1", stage="L1", start=date(2025, 12, 1), end=date(2025, 11, 1))
        assert not result.ok

    def test_unknown_kind(self):
        result = submit(FakeStore(), "delete_everything")
        assert not result.ok
        assert "Unknown intent" in result.error

    def test_missing_params(self):
        assert not submit(FakeStore(), "set_field", equipment_id="doc1").ok


class TestMirror:
    def test_adds_internal_keys(self):
        out = mirror_internal_keys({"L1 - RED TAG Plan Start": "2025-11-10", "other": 1})
        assert out["l1_plan_start"] == "2025-11-10"
        assert out["L1 - RED TAG Plan Start"] == "2025-11-10"
        assert out["other"] == 1

from datetime import date

from cx_core.fields import Stage
from cx_core.milestones import (
    Milestone, effective_plan, inst_term_duration, project_l1, project_l2, project_l3, project_stage,
)
from cx_core.schemas import StagePlan

from conftest import L1_START, L2_START, L3_START


class TestL1Ladder:
    def test_offsets(self, refs):
        ladder = project_l1({}, refs.l1)
        assert ladder.projected("roj_date") == date(2025, 10, 13)
        assert ladder.projected("msra_submit") == date(2025, 10, 27)
        assert ladder.projected("ptw_submit") == date(2025, 11, 9)
        assert ladder.projected("sai_date") == date(2025, 11, 17)
        assert ladder.projected("submit_anchore_spec") == date(2025, 11, 17)
        assert ladder.projected("positioning_anchoring_start_date") == date(2025, 11, 24)
        assert ladder.projected("anchored_verified_qc") == date(2025, 12, 1)
        assert ladder.projected("red_tag_passed_date") == date(2025, 12, 1)

    def test_plan_and_weeks(self, refs):
        ladder = project_l1({}, refs.l1)
        assert ladder.plan_start == L1_START
        assert ladder.plan_end == date(2025, 12, 1)
        assert ladder.total_days == 21
        assert ladder.plan_weeks == 1
        assert ladder.actual_weeks == 4

    def test_plan_end_defaults_to_template(self):
        ladder = project_l1({}, StagePlan(plan_start=L1_START))
        assert ladder.plan_end == date(2025, 12, 1)

    def test_stored_value_wins_for_display(self, refs):
        ladder = project_l1({"roj_date": "2025-10-20", "sai_date": "TBC"}, refs.l1)
        assert ladder.get("roj_date").effective_date == date(2025, 10, 20)
        assert ladder.get("roj_date").display == "20/10/2025"
        assert ladder.get("sai_date").display == "TBC"
        assert ladder.get("msra_submit").display == "27/10/2025"

    def test_actual_weeks_follow_stored_red_tag(self, refs):
        ladder = project_l1({"red_tag_passed_date": "2025-11-24"}, refs.l1)
        assert ladder.actual_weeks == 3


class TestL2Ladder:
    def test_chain_with_cyt(self, refs):
        ladder = project_l2({"cyt_required": "Y"}, refs.l2, L1_START)
        assert ladder.projected("msra_loto_submit") == date(2026, 1, 12)
        assert ladder.projected("power_control_cable_inplace") == date(2026, 1, 25)
        assert ladder.projected("elec_tests_completed") == L2_START
        assert ladder.projected("mech_tests_completed") == L2_START
        assert ladder.projected("installer_pre_startup_completed") == date(2026, 2, 2)
        assert ladder.projected("l2_qa_qc_script_completed") == date(2026, 2, 3)
        assert ladder.projected("l2_docs_uploaded") == date(2026, 2, 5)
        assert ladder.projected("loto_plan_implemented") == date(2026, 2, 5)
        assert ladder.projected("ivc_completed") == date(2026, 2, 6)
        assert ladder.projected("cyt_end_date") == date(2026, 2, 13)
        assert ladder.projected("yt_passed_date") == date(2026, 2, 13)

    def test_no_cyt_falls_back_to_ivc(self, refs):
        ladder = project_l2({"cyt_required": "N"}, refs.l2, L1_START)
        assert ladder.projected("cyt_end_date") is None
        assert ladder.projected("yt_passed_date") == date(2026, 2, 6)

    def test_blank_cyt_flag_counts_as_required(self, refs):
        ladder = project_l2({}, refs.l2, L1_START)
        assert ladder.projected("cyt_end_date") == date(2026, 2, 13)

    def test_weeks(self, refs):
        ladder = project_l2({"cyt_required": "Y"}, refs.l2, L1_START)
        # plan weeks on the L2 reference, actual weeks on the project calendar
        assert ladder.plan_weeks == 1
        assert ladder.actual_weeks == 14

    def test_plan_weeks_follow_stored_start(self, refs):
        ladder = project_l2({"l2_plan_start": "2026-02-09"}, refs.l2, L1_START)
        assert ladder.plan_weeks == 3

    def test_stored_plan_start_overrides_reference(self, refs):
        ladder = project_l2({"l2_plan_start": "2026-02-02"}, refs.l2, L1_START)
        assert ladder.plan_start == date(2026, 2, 2)
        assert ladder.plan_end == date(2026, 2, 16)
        assert ladder.projected("msra_loto_submit") == date(2026, 1, 19)

    def test_plan_end_precedence(self):
        plan = StagePlan(plan_start=L2_START, plan_end=date(2026, 3, 1))
        stored = {"l2_plan_start": "2026-02-02"}
        assert effective_plan(Stage.L2, stored, plan) == (date(2026, 2, 2), date(2026, 3, 1))
        stored_end = dict(stored, l2_plan_end="2026-02-20")
        assert effective_plan(Stage.L2, stored_end, plan) == (date(2026, 2, 2), date(2026, 2, 20))
        no_ref_end = StagePlan(plan_start=L2_START)
        assert effective_plan(Stage.L2, stored, no_ref_end) == (date(2026, 2, 2), date(2026, 2, 23))


class TestL3Ladder:
    def test_offsets(self, refs):
        ladder = project_l3({}, refs.l3, L1_START)
        assert ladder.projected("energization_msra_submitted") == date(2026, 3, 23)
        assert ladder.projected("load_bank_plan_submitted") == date(2026, 3, 8)
        assert ladder.projected("pre_energization_meeting") == date(2026, 4, 15)
        assert ladder.projected("energization_plan_submitted") == date(2026, 4, 17)
        assert ladder.projected("l3_ptw_submit") == date(2026, 4, 21)
        assert ladder.projected("energized_date") == L3_START
        assert ladder.projected("load_burn_in_completed") == date(2026, 4, 23)
        assert ladder.projected("epms_verification_completed") == date(2026, 4, 25)
        assert ladder.terminal.projected == date(2026, 4, 25)

    def test_plan_end(self, refs):
        assert project_l3({}, refs.l3).plan_end == date(2026, 4, 30)
        assert project_l3({}, StagePlan(plan_start=L3_START)).plan_end == date(2026, 4, 30)


class TestHelpers:
    def test_unparseable_stored_start_uses_reference(self):
        plan = StagePlan(plan_start=L1_START)
        start, end = effective_plan(Stage.L1, {"l1_plan_start": "garbage"}, plan)
        assert start == L1_START
        assert end == date(2025, 12, 1)

    def test_project_stage_dispatch(self, refs):
        assert project_stage("L3", {}, refs.l3).stage is Stage.L3

    def test_milestone_label(self):
        assert Milestone("red_tag_passed_date", None).label == "Red Tag Passed"

    def test_inst_term_duration(self, refs):
        l1 = project_l1({}, refs.l1)
        l2 = project_l2({}, refs.l2, L1_START)
        assert inst_term_duration(l1, l2) == "56 days"

import pytest

from gpa_planner.calculator import calculate_all
from gpa_planner.explanation import CASE_LABELS, build_explanation, verify_displayed
from gpa_planner.models import AcademicRecordSnapshot


@pytest.fixture
def plan(make_course):
    return (
        make_course("A", 3, catalog_key="MATH101", is_major=True),
        make_course("P", 3, is_repeat=True, previous_grade="C"),
        make_course("W", 3),
    )


@pytest.fixture
def reports(snapshot, plan, scale):
    return calculate_all(snapshot, plan, scale, 3.0, 3.0)


def _lines(section):
    return dict(section.lines)


class TestBuildExplanation:
    def test_section_order(self, plan, reports):
        titles = [s.title for s in build_explanation(plan, reports).sections]

        assert titles == [
            "1. Base Cumulative Data Used",
            "2. Planner State Used",
            "3a. Overall Projection",
            "3b. Major Projection",
            "4a. Overall Requirement",
            "4b. Major Requirement",
        ]

    def test_base_data(self, plan, reports):
        base = build_explanation(plan, reports).sections[0]

        assert _lines(base) == {
            "Overall Credits": "60",
            "Overall Points": "180.00",
            "Major Credits": "12",
            "Major Points": "30.00",
        }
        assert base.note == "Current Overall GPA: 3.000, Major GPA: 2.500"

    def test_projection_steps(self, plan, reports):
        overall = _lines(build_explanation(plan, reports).sections[2])

        assert overall["+ Net Points (Non-Repeats)"] == "12.00"
        assert overall["- Points Removed (P-Repeats)"] == "6.00"
        assert overall["= Final Projected Points"] == "186.00"
        assert overall["+ Net Credits Added"] == "3"
        assert overall["- Credits Removed (P-Repeats)"] == "3"
        assert overall["= Final Projected Credits"] == "60"
        assert overall["Projected GPA"] == reports.projected.overall.display

    def test_requirement_steps(self, plan, reports):
        overall = _lines(build_explanation(plan, reports).sections[4])

        assert overall["- Points Removed (All Repeats)"] == "6.00"
        assert overall["= Adjusted Base Points"] == "174.00"
        assert overall["- Credits Removed (P-Repeats)"] == "3"
        assert overall["+ Net Credits Added (Non-Repeats)"] == "3"
        assert overall["= Final Cumulative Credits"] == "60"
        assert overall["= Required Semester GPA"] == reports.required.overall.display_string

    def test_impossible_requirement_is_a_warning(self, make_course, scale):
        base = AcademicRecordSnapshot(overall_credits=57, overall_points=171)
        plan = (make_course(None, 3),)
        reports = calculate_all(base, plan, scale, 3.5)
        section = build_explanation(plan, reports).sections[4]

        assert section.is_warning
        assert section.note == reports.required.overall.warning

    def test_empty_plan_note(self, snapshot, scale):
        reports = calculate_all(snapshot, (), scale)
        explanation = build_explanation((), reports)

        assert explanation.sections[1].note == "No courses in planner."
        assert explanation.course_rows == ()

    def test_course_rows(self, plan, reports):
        rows = build_explanation(plan, reports).course_rows

        assert rows[0]["Course"] == "MATH101"
        assert rows[0]["Major?"] == "Yes"
        assert rows[0]["Effect"] == CASE_LABELS["a"]
        assert rows[0]["Points"] == "12.00"
        assert rows[1]["Prev. Grade"] == "C"
        assert rows[1]["Effect"] == CASE_LABELS["d"]
        assert rows[1]["Credits Change"] == "-3"
        assert rows[1]["In Target Calc?"] == "Yes"
        assert rows[2]["In Target Calc?"] == "No"


class TestVerifyDisplayed:
    def test_matching_figures(self, reports):
        assert verify_displayed(reports, reports.displayed_values()) == {}

    def test_mismatch_is_reported(self, reports):
        displayed = dict(reports.displayed_values(), projected_overall="3.500")

        assert verify_displayed(reports, displayed) == {
            "projected_overall": ("3.500", reports.projected.overall.display),
        }

    def test_unknown_keys_are_ignored(self, reports):
        assert verify_displayed(reports, {"favourite_colour": "blue"}) == {}

import json
from urllib.parse import quote

import pytest

from gpa_planner.errors import GpaPlannerError, ShareLinkError
from gpa_planner.share import (
    build_share_url,
    course_to_payload,
    decode_payload,
    encode_state,
    parse_payload,
    state_from_share_payload,
    state_from_share_url,
    state_to_payload,
)
from gpa_planner.state import CalculatorState, edit_course, load_plan, load_snapshot, reset_plan, set_targets


@pytest.fixture
def state(snapshot, make_course):
    plan = [
        make_course("A", 3, catalog_key="MATH 101", is_major=True),
        make_course("P", 4, is_repeat=True, previous_grade="C", original_course_was_major=False),
        make_course(None, 1.5, catalog_key="Course 1"),
    ]
    state = load_plan(load_snapshot(CalculatorState(), snapshot), plan)
    return set_targets(state, overall=3.25, major=3.0)


class TestPayload:
    def test_keys(self, state):
        payload = state_to_payload(state)

        assert payload["bOC"] == 60
        assert payload["bMP"] == 30
        assert payload["tO"] == 3.25
        assert payload["sId"] is None
        assert payload["planner"][1] == {
            "id": "c2",
            "catalogKey": "TEST102",
            "credits": 4.0,
            "selectedGrade": "P",
            "isMajor": False,
            "isRepeat": True,
            "previousGrade": "C",
            "originalCourseWasMajor": False,
        }

    def test_course_to_payload_uses_camel_case(self, make_course):
        assert set(course_to_payload(make_course("A"))) == {
            "id", "catalogKey", "credits", "selectedGrade", "isMajor", "isRepeat",
            "previousGrade", "originalCourseWasMajor",
        }


class TestShareUrl:
    def test_round_trip(self, state, scale):
        restored = state_from_share_url(build_share_url("https://gpa.example.edu/", state), scale)

        assert restored.plan == state.plan
        assert restored.snapshot == state.snapshot
        assert restored.target_overall == 3.25
        assert restored.target_major == 3.0
        assert restored.next_course_number == 2

    def test_separator(self, state):
        assert build_share_url("https://gpa.example.edu/", state).startswith("https://gpa.example.edu/?data=")
        assert build_share_url("https://gpa.example.edu/?lang=en", state).startswith(
            "https://gpa.example.edu/?lang=en&data="
        )

    def test_encoded_value_is_url_safe(self, state):
        encoded = encode_state(state)

        assert " " not in encoded
        assert "&" not in encoded
        assert decode_payload(encoded) == json.loads(json.dumps(state_to_payload(state)))

    def test_shared_plan_becomes_reset_baseline(self, state, scale):
        restored = state_from_share_url(build_share_url("https://gpa.example.edu/", state), scale)
        edited = edit_course(restored, "c1", selected_grade="F")

        assert reset_plan(edited).plan == state.plan

    def test_missing_data_parameter(self, scale):
        with pytest.raises(ShareLinkError):
            state_from_share_url("https://gpa.example.edu/?lang=en", scale)


class TestDecode:
    def test_invalid_json(self):
        with pytest.raises(ShareLinkError):
            decode_payload(quote("{not json"))

    @pytest.mark.parametrize("payload", [[], {"bOC": 10}, {"planner": []}, {"bOC": 10, "planner": {}}])
    def test_unexpected_structure(self, payload):
        with pytest.raises(ShareLinkError):
            parse_payload(json.dumps(payload))

    def test_errors_share_a_base_class(self):
        with pytest.raises(GpaPlannerError):
            parse_payload("")

    def test_bad_planner_entry(self, scale):
        with pytest.raises(ShareLinkError):
            state_from_share_payload({"bOC": 0, "planner": ["MATH101"]}, scale)

    def test_missing_values_fall_back(self, scale):
        payload = {
            "bOC": "60",
            "bOP": "not a number",
            "planner": [{"catalogKey": "BIO100", "credits": "4", "selectedGrade": ""}],
            "tO": "",
            "sId": "S123",
            "bDN": "Loaded from registrar data",
        }
        state = state_from_share_payload(payload, scale)

        assert state.snapshot.overall_credits == 60.0
        assert state.snapshot.overall_points == 0.0
        assert state.snapshot.major_credits == 0.0
        assert state.target_overall == 2.0
        assert state.target_major == 2.0
        assert state.student_id == "S123"
        assert state.base_data_note == "Loaded from registrar data"

        course = state.plan[0]
        assert course.id == "BIO100-0"
        assert course.credits == 4.0
        assert course.selected_grade is None
        assert course.original_course_was_major is None

    def test_infinite_values_are_treated_as_zero(self, scale):
        payload = parse_payload(
            '{"bOC": 60, "bOP": Infinity, "bMC": 0, "bMP": -Infinity,'
            ' "planner": [{"catalogKey": "BIO100", "credits": Infinity, "selectedGrade": "A"}]}'
        )
        state = state_from_share_payload(payload, scale)

        assert state.snapshot.overall_points == 0.0
        assert state.snapshot.major_points == 0.0
        assert state.plan[0].credits == 0.0

        displayed = state.reports().displayed_values()
        assert displayed["current_overall"] == "0.000"
        assert displayed["projected_overall"] == "0.000"

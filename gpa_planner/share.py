"""
Shareable links.

The whole calculator state travels in a single ``data`` query parameter as
URL-encoded JSON, so a link can be opened without signing in.
"""

import json
import logging
from dataclasses import replace
from typing import Optional
from urllib.parse import parse_qs, quote, unquote, urlsplit

from .config import get_settings
from .errors import ShareLinkError
from .grade_scale import GradeScale, coerce_number
from .models import AcademicRecordSnapshot, PlannerCourse
from .state import CalculatorState, load_plan, load_snapshot

logger = logging.getLogger(__name__)

_COURSE_KEYS = {
    "id": "id",
    "catalog_key": "catalogKey",
    "credits": "credits",
    "selected_grade": "selectedGrade",
    "is_major": "isMajor",
    "is_repeat": "isRepeat",
    "previous_grade": "previousGrade",
    "original_course_was_major": "originalCourseWasMajor",
}


def course_to_payload(course: PlannerCourse) -> dict:
    return {wire: getattr(course, attr) for attr, wire in _COURSE_KEYS.items()}


def course_from_payload(data: dict, index: int = 0) -> PlannerCourse:
    if not isinstance(data, dict):
        raise ShareLinkError(f"Planner entry {index} is not an object")
    catalog_key = str(data.get("catalogKey") or "")
    original = data.get("originalCourseWasMajor")
    return PlannerCourse(
        id=str(data.get("id") or f"{catalog_key}-{index}"),
        catalog_key=catalog_key,
        credits=coerce_number(data.get("credits")),
        selected_grade=data.get("selectedGrade") or None,
        is_major=bool(data.get("isMajor")),
        is_repeat=bool(data.get("isRepeat")),
        previous_grade=data.get("previousGrade") or None,
        original_course_was_major=None if original is None else bool(original),
    )


def state_to_payload(state: CalculatorState) -> dict:
    snapshot = state.snapshot
    return {
        "bOC": snapshot.overall_credits,
        "bOP": snapshot.overall_points,
        "bMC": snapshot.major_credits,
        "bMP": snapshot.major_points,
        "planner": [course_to_payload(c) for c in state.plan],
        "tO": state.target_overall,
        "tM": state.target_major,
        "sId": state.student_id,
        "bDN": state.base_data_note,
    }


def encode_state(state: CalculatorState) -> str:
    return quote(json.dumps(state_to_payload(state), separators=(",", ":")), safe="")


def build_share_url(base_url: str, state: CalculatorState) -> str:
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}data={encode_state(state)}"


def decode_payload(data: str) -> dict:
    """Decode the URL-encoded ``data`` parameter."""
    return parse_payload(unquote(data))


def parse_payload(text: str) -> dict:
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ShareLinkError(f"Shared data is not valid JSON: {e}") from e
    if not isinstance(payload, dict) or not isinstance(payload.get("planner"), list) or "bOC" not in payload:
        raise ShareLinkError("Shared data has an unexpected structure")
    return payload


def state_from_share_payload(payload: dict, scale: GradeScale,
                             state: Optional[CalculatorState] = None) -> CalculatorState:
    """
    Restore a shared calculator. The shared base data and plan become what
    reset returns to; targets fall back to the default when absent.
    """
    state = state or CalculatorState(grade_scale=scale)
    snapshot = AcademicRecordSnapshot.from_values(
        payload.get("bOC"), payload.get("bOP"), payload.get("bMC"), payload.get("bMP"),
    )
    plan = [course_from_payload(c, i) for i, c in enumerate(payload["planner"])]

    state = load_plan(load_snapshot(state, snapshot), plan)
    default_target = get_settings().default_target_gpa
    changes = {}
    for key, attr in (("tO", "target_overall"), ("tM", "target_major")):
        value = payload.get(key)
        changes[attr] = default_target if value in (None, "") else coerce_number(value)
    state = replace(
        state,
        grade_scale=scale,
        student_id=payload.get("sId") or None,
        base_data_note=payload.get("bDN") or None,
        **changes,
    )
    logger.info("Loaded calculator state from share link (%d courses)", len(state.plan))
    return state


def state_from_share_url(url: str, scale: GradeScale) -> CalculatorState:
    query = parse_qs(urlsplit(url).query)
    if "data" not in query:
        raise ShareLinkError("Link has no shared data")
    # parse_qs has already undone the URL encoding
    return state_from_share_payload(parse_payload(query["data"][0]), scale)

"""
Calculator state and the transitions the pages apply to it.

``CalculatorState`` is immutable: every transition returns a new state, and
the GPA reports are always derived from a state on demand.
"""

import logging
import re
import uuid
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Mapping, Optional

from .calculator import GpaReports, calculate_all
from .config import get_settings
from .grade_scale import DEFAULT_GRADE_SCALE, GradeScale, coerce_number
from .models import AcademicRecordSnapshot, CoursePlan, PlannerCourse

logger = logging.getLogger(__name__)

_CUSTOM_COURSE_KEY = re.compile(r"^Course \d+$")

_SNAPSHOT_FIELDS = ("overall_credits", "overall_points", "major_credits", "major_points")


def _default_target() -> float:
    return get_settings().default_target_gpa


@dataclass(frozen=True)
class CalculatorState:
    grade_scale: GradeScale = DEFAULT_GRADE_SCALE
    snapshot: AcademicRecordSnapshot = AcademicRecordSnapshot()
    loaded_snapshot: AcademicRecordSnapshot = AcademicRecordSnapshot()
    plan: CoursePlan = ()
    baseline_plan: CoursePlan = ()
    target_overall: float = field(default_factory=_default_target)
    target_major: float = field(default_factory=_default_target)
    next_course_number: int = 1
    student_id: Optional[str] = None
    base_data_note: Optional[str] = None

    def course(self, course_id: str) -> PlannerCourse:
        for course in self.plan:
            if course.id == course_id:
                return course
        raise KeyError(course_id)

    def reports(self) -> GpaReports:
        return calculate_all(self.snapshot, self.plan, self.grade_scale, self.target_overall, self.target_major)


def _next_course_number(plan: Iterable[PlannerCourse]) -> int:
    return sum(1 for c in plan if _CUSTOM_COURSE_KEY.match(c.catalog_key or "")) + 1


def plan_from_registrations(registrations: Iterable[Mapping], scale: GradeScale) -> CoursePlan:
    """
    Seed a plan from registration rows.

    Each row has CatalogKey, Credits, RegGrade, MajorCourse, Rpeat and
    PrevGrade. Grades that aren't on the scale are dropped to ungraded.
    """
    courses: List[PlannerCourse] = []
    for index, reg in enumerate(registrations):
        catalog_key = str(reg.get("CatalogKey") or "").strip()
        is_repeat = str(reg.get("Rpeat") or "").strip() == "Yes"
        reg_grade = reg.get("RegGrade")
        prev_grade = reg.get("PrevGrade")
        courses.append(PlannerCourse(
            id=f"{catalog_key}-{index}",
            catalog_key=catalog_key,
            credits=coerce_number(reg.get("Credits")),
            selected_grade=reg_grade if reg_grade in scale else None,
            is_major=str(reg.get("MajorCourse") or "").strip() == "Yes",
            is_repeat=is_repeat,
            previous_grade=prev_grade if is_repeat and prev_grade in scale else None,
            original_course_was_major=None,
        ))
    logger.info("Seeded planner with %d registrations", len(courses))
    return tuple(courses)


# ------------------------
# Transitions
# ------------------------
def load_grade_scale(state: CalculatorState, scale: GradeScale) -> CalculatorState:
    return replace(state, grade_scale=scale)


def load_snapshot(state: CalculatorState, snapshot: AcademicRecordSnapshot) -> CalculatorState:
    """A freshly loaded record becomes what reset goes back to."""
    return replace(state, snapshot=snapshot, loaded_snapshot=snapshot)


def edit_snapshot(state: CalculatorState, **values) -> CalculatorState:
    unknown = set(values) - set(_SNAPSHOT_FIELDS)
    if unknown:
        raise TypeError(f"Unknown snapshot fields: {sorted(unknown)}")
    snapshot = replace(state.snapshot, **{k: coerce_number(v) for k, v in values.items()})
    return replace(state, snapshot=snapshot)


def load_plan(state: CalculatorState, plan: Iterable[PlannerCourse]) -> CalculatorState:
    plan = tuple(plan)
    return replace(state, plan=plan, baseline_plan=plan, next_course_number=_next_course_number(plan))


def add_course(state: CalculatorState, credits=None) -> CalculatorState:
    if credits is None:
        credits = get_settings().new_course_credits
    course = PlannerCourse(
        id=f"new-{uuid.uuid4().hex}",
        catalog_key=f"Course {state.next_course_number}",
        credits=credits,
    )
    return replace(state, plan=state.plan + (course,), next_course_number=state.next_course_number + 1)


def remove_course(state: CalculatorState, course_id: str) -> CalculatorState:
    state.course(course_id)
    return replace(state, plan=tuple(c for c in state.plan if c.id != course_id))


def _apply_course_changes(course: PlannerCourse, changes: Mapping) -> PlannerCourse:
    changes = dict(changes)
    for key in ("selected_grade", "previous_grade"):
        if key in changes and changes[key] == "":
            changes[key] = None
    if "credits" in changes:
        changes["credits"] = coerce_number(changes["credits"])

    updated = course.with_changes(**changes)
    pass_grade = get_settings().pass_grade

    if not updated.is_repeat:
        updated = updated.with_changes(previous_grade=None, original_course_was_major=None)
    elif updated.selected_grade != pass_grade:
        # The original-attempt flag only means something for a P-repeat
        updated = updated.with_changes(original_course_was_major=None)
    return updated


def edit_course(state: CalculatorState, course_id: str, **changes) -> CalculatorState:
    """Edit one course, clearing fields that stop applying (e.g. previous grade once it's not a repeat)."""
    if "id" in changes:
        raise TypeError("A course's id cannot be edited")
    state.course(course_id)
    plan = tuple(_apply_course_changes(c, changes) if c.id == course_id else c for c in state.plan)
    return replace(state, plan=plan)


def apply_plan_edits(state: CalculatorState, rows: Iterable[Mapping]) -> CalculatorState:
    """
    Bring the plan in line with an edited table of course rows.

    Rows whose id isn't in the plan are added as new courses; courses with
    no row are removed. Plan order follows the rows.
    """
    known = {c.id for c in state.plan}
    order = []
    for row in rows:
        changes = dict(row)
        course_id = changes.pop("id", None)
        if course_id not in known:
            state = add_course(state, changes.get("credits"))
            course_id = state.plan[-1].id
        state = edit_course(state, course_id, **changes)
        order.append(course_id)
    plan = tuple(state.course(course_id) for course_id in order)
    return replace(state, plan=plan)


def edits_were_cleared(edited: CalculatorState, rows: Iterable[Mapping]) -> bool:
    """
    True when ``apply_plan_edits`` dropped a previous grade or original-major
    flag that a row asked for.

    The plan can come out unchanged in that case, so a table showing the
    rejected value has to be redrawn from the state.
    """
    for row, course in zip(rows, edited.plan):
        if row.get("previous_grade") and course.previous_grade is None:
            return True
        if row.get("original_course_was_major") and not course.original_course_was_major:
            return True
    return False


def set_targets(state: CalculatorState, overall=None, major=None) -> CalculatorState:
    """Targets are taken as given; range checks belong to the page."""
    changes = {}
    if overall is not None:
        changes["target_overall"] = coerce_number(overall)
    if major is not None:
        changes["target_major"] = coerce_number(major)
    return replace(state, **changes)


def reset_plan(state: CalculatorState) -> CalculatorState:
    logger.info("Resetting planner to its loaded state")
    return replace(state, plan=state.baseline_plan, next_course_number=_next_course_number(state.baseline_plan))


def reset_all(state: CalculatorState) -> CalculatorState:
    default = get_settings().default_target_gpa
    state = replace(state, snapshot=state.loaded_snapshot, target_overall=default, target_major=default)
    return reset_plan(state)

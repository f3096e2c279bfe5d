"""
GPA calculation engine.

Pure functions over a grade scale, an academic record snapshot and a course
plan. Every page that shows GPA numbers (the calculator and the calculation
details view) goes through ``calculate_all`` so the figures always agree.

Values are kept at full precision inside the reports; rounding to three
decimals (half up) happens only when a value is formatted.
"""

import logging
import math
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from typing import Dict, Iterable, Optional, Tuple, Union

import numpy as np

from .config import Settings, get_settings
from .grade_scale import GradeScale, coerce_number
from .models import AcademicRecordSnapshot, PlannerCourse

logger = logging.getLogger(__name__)

NA = "N/A"

GpaValue = Union[float, str]


# ------------------------
# Rounding / formatting
# ------------------------
def round_3dp_half_up(x: float) -> float:
    # + 0.0 turns a rounded -0.0 into 0.0
    return float(Decimal(str(x)).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)) + 0.0


def gpa(points: float, credits: float) -> GpaValue:
    """points / credits rounded to 3 dp, or "N/A" when there are no credits."""
    points = coerce_number(points)
    credits = coerce_number(credits)
    if credits <= 0:
        return NA
    value = points / credits
    if not math.isfinite(value):
        return NA
    return round_3dp_half_up(value)


def format_gpa(value: GpaValue) -> str:
    if value == NA or value is None or not math.isfinite(value):
        return NA
    return f"{round_3dp_half_up(value):.3f}"


def format_credits(credits: float) -> str:
    credits = float(credits)
    if credits.is_integer():
        return str(int(credits))
    return f"{credits:g}"


def _total(values) -> float:
    return float(np.sum(np.asarray(values, dtype=float))) if len(values) else 0.0


# ------------------------
# Report types
# ------------------------
@dataclass(frozen=True)
class GpaAxis:
    points: float
    credits: float

    @property
    def gpa(self) -> GpaValue:
        return gpa(self.points, self.credits)

    @property
    def display(self) -> str:
        return format_gpa(self.gpa)


@dataclass(frozen=True)
class CurrentGpaReport:
    overall: GpaAxis
    major: GpaAxis

    @property
    def overall_gpa(self) -> GpaValue:
        return self.overall.gpa

    @property
    def major_gpa(self) -> GpaValue:
        return self.major.gpa


@dataclass(frozen=True)
class SemesterGpaReport:
    overall: GpaAxis
    major: GpaAxis

    @property
    def overall_gpa(self) -> GpaValue:
        return self.overall.gpa

    @property
    def major_gpa(self) -> GpaValue:
        return self.major.gpa

    @property
    def overall_credits(self) -> float:
        return self.overall.credits

    @property
    def major_credits(self) -> float:
        return self.major.credits


@dataclass(frozen=True)
class CourseEffect:
    """
    How one planner course changes the cumulative totals.

    case:
        "a" new GPA grade, "b" no GPA effect, "c" repeat of a non-GPA grade
        that now counts, "d" P-repeat removing the old attempt, "e" repeat
        replacing the old grade's points.
    """

    course_id: str
    case: str
    points: float
    credits: float
    counts_for_major: bool


@dataclass(frozen=True)
class ProjectedAxis:
    base_points: float
    base_credits: float
    new_points: float            # cases a and c
    credits_added: float         # cases a and c
    repeat_point_change: float   # case e
    points_removed: float        # case d
    credits_removed: float       # case d

    @property
    def final_points(self) -> float:
        return self.base_points + self.new_points + self.repeat_point_change - self.points_removed

    @property
    def final_credits(self) -> float:
        return self.base_credits + self.credits_added - self.credits_removed

    @property
    def gpa(self) -> GpaValue:
        return gpa(self.final_points, self.final_credits)

    @property
    def display(self) -> str:
        return format_gpa(self.gpa)


@dataclass(frozen=True)
class ProjectedGpaReport:
    overall: ProjectedAxis
    major: ProjectedAxis
    effects: Tuple[CourseEffect, ...] = ()

    @property
    def overall_gpa(self) -> GpaValue:
        return self.overall.gpa

    @property
    def major_gpa(self) -> GpaValue:
        return self.major.gpa


@dataclass(frozen=True)
class RequiredAxis:
    target: float
    base_points: float
    base_credits: float
    points_removed: float
    credits_removed: float
    net_credits_added: float
    divisor_credits: float
    credit_label: str = "GPA credits"
    max_grade_point: float = 4.0

    @property
    def adjusted_base_points(self) -> float:
        return self.base_points - self.points_removed

    @property
    def adjusted_base_credits(self) -> float:
        return self.base_credits - self.credits_removed

    @property
    def final_cumulative_credits(self) -> float:
        return self.adjusted_base_credits + self.net_credits_added

    @property
    def required_total_points(self) -> float:
        return self.target * self.final_cumulative_credits

    @property
    def required_semester_points(self) -> float:
        return self.required_total_points - self.adjusted_base_points

    @property
    def gpa(self) -> Optional[float]:
        if self.divisor_credits > 0:
            return self.required_semester_points / self.divisor_credits
        return None

    @property
    def is_impossible(self) -> bool:
        value = self.gpa
        return value is not None and value > self.max_grade_point

    @property
    def display_string(self) -> str:
        value = self.gpa
        if value is not None:
            return f"{format_gpa(value)} (Based on {format_credits(self.divisor_credits)} {self.credit_label})"
        return f"{self.required_semester_points:.2f} points needed (over 0 {self.credit_label})"

    @property
    def warning(self) -> Optional[str]:
        if not self.is_impossible:
            return None
        return (
            f"A semester GPA of {format_gpa(self.gpa)} is above the maximum of "
            f"{self.max_grade_point:.3f}; the target of {self.target:.2f} cannot be reached this term."
        )

    def to_dict(self) -> dict:
        return {
            **asdict(self),
            "adjusted_base_points": self.adjusted_base_points,
            "adjusted_base_credits": self.adjusted_base_credits,
            "final_cumulative_credits": self.final_cumulative_credits,
            "required_total_points": self.required_total_points,
            "required_semester_points": self.required_semester_points,
            "gpa": self.gpa,
            "is_impossible": self.is_impossible,
            "display_string": self.display_string,
        }


@dataclass(frozen=True)
class RequiredSemesterGpaReport:
    overall: RequiredAxis
    major: RequiredAxis
    relevant_course_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class GpaReports:
    current: CurrentGpaReport
    semester: SemesterGpaReport
    projected: ProjectedGpaReport
    required: RequiredSemesterGpaReport

    def displayed_values(self) -> Dict[str, str]:
        """The formatted figures a page shows, keyed for cross-checking."""
        return {
            "current_overall": self.current.overall.display,
            "current_major": self.current.major.display,
            "semester_overall": self.semester.overall.display,
            "semester_major": self.semester.major.display,
            "projected_overall": self.projected.overall.display,
            "projected_major": self.projected.major.display,
            "required_overall": self.required.overall.display_string,
            "required_major": self.required.major.display_string,
        }

    def to_dict(self) -> dict:
        def axis(a):
            return {**asdict(a), "gpa": a.gpa, "display": a.display}

        def projected_axis(a):
            return {**axis(a), "final_points": a.final_points, "final_credits": a.final_credits}

        return {
            "current": {"overall": axis(self.current.overall), "major": axis(self.current.major)},
            "semester": {"overall": axis(self.semester.overall), "major": axis(self.semester.major)},
            "projected": {
                "overall": projected_axis(self.projected.overall),
                "major": projected_axis(self.projected.major),
                "effects": [asdict(e) for e in self.projected.effects],
            },
            "required": {
                "overall": self.required.overall.to_dict(),
                "major": self.required.major.to_dict(),
                "relevant_course_ids": list(self.required.relevant_course_ids),
            },
        }


# ------------------------
# Core logic
# ------------------------
def current_gpa(snapshot: AcademicRecordSnapshot) -> CurrentGpaReport:
    return CurrentGpaReport(
        overall=GpaAxis(coerce_number(snapshot.overall_points), coerce_number(snapshot.overall_credits)),
        major=GpaAxis(coerce_number(snapshot.major_points), coerce_number(snapshot.major_credits)),
    )


def semester_gpa(plan: Iterable[PlannerCourse], scale: GradeScale) -> SemesterGpaReport:
    """
    GPA of the courses being taken this term.

    Repeat status is ignored: this is only what the term itself earns.
    """
    graded = [c for c in plan if scale.affects_gpa(c.selected_grade)]
    major = [c for c in graded if c.is_major]

    def axis(courses) -> GpaAxis:
        credits = np.array([c.credits for c in courses], dtype=float)
        points = np.array([scale.gpa_point(c.selected_grade) for c in courses], dtype=float)
        return GpaAxis(float(np.dot(points, credits)), float(credits.sum()))

    return SemesterGpaReport(overall=axis(graded), major=axis(major))


def _repeat_counts_for_major(course: PlannerCourse, pass_grade: str) -> bool:
    # A P-repeat is attributed by where the original attempt counted, since
    # the course's current major flag may have been edited since.
    if course.selected_grade == pass_grade:
        return bool(course.original_course_was_major)
    return course.is_major


def _replaces_previous_grade(course: PlannerCourse, scale: GradeScale) -> bool:
    return course.is_repeat and scale.affects_gpa(course.previous_grade)


def course_effect(course: PlannerCourse, scale: GradeScale, settings: Optional[Settings] = None) -> CourseEffect:
    settings = settings or get_settings()
    credits = course.credits

    if _replaces_previous_grade(course, scale):
        previous_point = scale.gpa_point(course.previous_grade)
        counts_for_major = _repeat_counts_for_major(course, settings.pass_grade)
        if course.selected_grade == settings.pass_grade:
            return CourseEffect(course.id, "d", -previous_point * credits, -credits, counts_for_major)
        new_point = scale.gpa_point(course.selected_grade)
        return CourseEffect(course.id, "e", (new_point - previous_point) * credits, 0.0, counts_for_major)

    # Non-repeats, and repeats whose previous grade never counted (including
    # repeats with no previous grade recorded)
    if scale.affects_gpa(course.selected_grade):
        case = "c" if course.is_repeat else "a"
        return CourseEffect(course.id, case, scale.gpa_point(course.selected_grade) * credits, credits,
                            course.is_major)
    return CourseEffect(course.id, "b", 0.0, 0.0, course.is_major)


def _projected_axis(base_points: float, base_credits: float, effects) -> ProjectedAxis:
    added = [e for e in effects if e.case in ("a", "c")]
    replaced = [e for e in effects if e.case == "e"]
    removed = [e for e in effects if e.case == "d"]
    return ProjectedAxis(
        base_points=base_points,
        base_credits=base_credits,
        new_points=_total([e.points for e in added]),
        credits_added=_total([e.credits for e in added]),
        repeat_point_change=_total([e.points for e in replaced]),
        points_removed=_total([-e.points for e in removed]),
        credits_removed=_total([-e.credits for e in removed]),
    )


def projected_gpa(snapshot: AcademicRecordSnapshot, plan: Iterable[PlannerCourse], scale: GradeScale,
                  settings: Optional[Settings] = None) -> ProjectedGpaReport:
    """Cumulative GPA once this term posts, with grade replacement for repeats."""
    settings = settings or get_settings()
    effects = tuple(course_effect(c, scale, settings) for c in plan)
    major_effects = [e for e in effects if e.counts_for_major]

    return ProjectedGpaReport(
        overall=_projected_axis(coerce_number(snapshot.overall_points), coerce_number(snapshot.overall_credits),
                                effects),
        major=_projected_axis(coerce_number(snapshot.major_points), coerce_number(snapshot.major_credits),
                              major_effects),
        effects=effects,
    )


def is_relevant_for_target(course: PlannerCourse, settings: Optional[Settings] = None,
                           scale: Optional[GradeScale] = None) -> bool:
    """
    Withdrawn/exempt/incomplete courses and first-attempt passes have no bearing on a target.

    Given a scale, a repeat whose previous grade never counted is judged as a
    first attempt.
    """
    settings = settings or get_settings()
    if course.selected_grade in settings.excluded_target_grades:
        return False
    replaces = course.is_repeat if scale is None else _replaces_previous_grade(course, scale)
    if course.selected_grade == settings.pass_grade and not replaces:
        return False
    return True


def required_semester_gpa(snapshot: AcademicRecordSnapshot, plan: Iterable[PlannerCourse], scale: GradeScale,
                          target_overall=None, target_major=None,
                          settings: Optional[Settings] = None) -> RequiredSemesterGpaReport:
    """
    Semester GPA needed in this term's GPA courses to reach a target cumulative GPA.

    Courses without a grade yet are the open slots being solved for, so their
    credits are part of the divisor alongside GPA-graded courses.
    """
    settings = settings or get_settings()
    relevant = [c for c in plan if is_relevant_for_target(c, settings, scale)]

    totals = {
        axis: {"points_removed": [], "credits_removed": [], "net_credits_added": [], "divisor_credits": []}
        for axis in ("overall", "major")
    }

    for course in relevant:
        credits = course.credits
        # Repeats of a non-GPA or missing previous grade count as new courses
        if _replaces_previous_grade(course, scale):
            previous_points = scale.gpa_point(course.previous_grade) * credits
            removes_credits = course.selected_grade == settings.pass_grade
            axes = ["overall"]
            if _repeat_counts_for_major(course, settings.pass_grade):
                axes.append("major")
            for axis in axes:
                totals[axis]["points_removed"].append(previous_points)
                if removes_credits:
                    totals[axis]["credits_removed"].append(credits)
        else:
            totals["overall"]["net_credits_added"].append(credits)
            if course.is_major:
                totals["major"]["net_credits_added"].append(credits)

        if course.selected_grade is None or scale.affects_gpa(course.selected_grade):
            totals["overall"]["divisor_credits"].append(credits)
            if course.is_major:
                totals["major"]["divisor_credits"].append(credits)

    def axis(name, target, base_points, base_credits, credit_label):
        sums = {key: _total(values) for key, values in totals[name].items()}
        return RequiredAxis(
            target=_target(target, settings),
            base_points=coerce_number(base_points),
            base_credits=coerce_number(base_credits),
            credit_label=credit_label,
            max_grade_point=settings.max_grade_point,
            **sums,
        )

    report = RequiredSemesterGpaReport(
        overall=axis("overall", target_overall, snapshot.overall_points, snapshot.overall_credits, "GPA credits"),
        major=axis("major", target_major, snapshot.major_points, snapshot.major_credits, "Major GPA credits"),
        relevant_course_ids=tuple(c.id for c in relevant),
    )
    for name, result in (("overall", report.overall), ("major", report.major)):
        logger.debug(
            "Target calc (%s): adjusted base points=%s, final cumulative credits=%s, divisor credits=%s, "
            "required semester points=%s",
            name, result.adjusted_base_points, result.final_cumulative_credits, result.divisor_credits,
            result.required_semester_points,
        )
    return report


def _target(value, settings: Settings) -> float:
    if value is None:
        return settings.default_target_gpa
    return coerce_number(value)


@lru_cache(maxsize=256)
def _calculate_all(snapshot, plan, scale, target_overall, target_major, settings) -> GpaReports:
    return GpaReports(
        current=current_gpa(snapshot),
        semester=semester_gpa(plan, scale),
        projected=projected_gpa(snapshot, plan, scale, settings),
        required=required_semester_gpa(snapshot, plan, scale, target_overall, target_major, settings),
    )


def calculate_all(snapshot: AcademicRecordSnapshot, plan: Iterable[PlannerCourse], scale: GradeScale,
                  target_overall=None, target_major=None, settings: Optional[Settings] = None) -> GpaReports:
    """All four reports for one set of inputs. Results are memoized on the inputs."""
    settings = settings or get_settings()
    return _calculate_all(
        snapshot,
        tuple(plan),
        scale,
        _target(target_overall, settings),
        _target(target_major, settings),
        settings,
    )

"""
Step-by-step breakdown of a calculation, for users who want to check the math.

Everything here is read off the calculator's own reports; nothing is
recomputed independently, so the breakdown cannot drift from the figures
on the calculator page.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .calculator import GpaReports, ProjectedAxis, RequiredAxis, format_credits
from .models import PlannerCourse

CASE_LABELS = {
    "a": "New grade counts",
    "b": "No GPA effect",
    "c": "Repeat of a non-GPA grade, new grade counts",
    "d": "P-repeat: previous attempt removed",
    "e": "Repeat: previous grade replaced",
}


@dataclass(frozen=True)
class ExplanationSection:
    title: str
    lines: Tuple[Tuple[str, str], ...] = ()
    note: Optional[str] = None
    is_warning: bool = False


@dataclass(frozen=True)
class Explanation:
    sections: Tuple[ExplanationSection, ...]
    course_rows: Tuple[Dict[str, str], ...] = field(default_factory=tuple)


def _pts(value: float) -> str:
    return f"{value:.2f}"


def _projected_lines(axis: ProjectedAxis) -> List[Tuple[str, str]]:
    return [
        ("Base Points", _pts(axis.base_points)),
        ("+ Net Points (Non-P Repeats)", _pts(axis.repeat_point_change)),
        ("+ Net Points (Non-Repeats)", _pts(axis.new_points)),
        ("- Points Removed (P-Repeats)", _pts(axis.points_removed)),
        ("= Final Projected Points", _pts(axis.final_points)),
        ("Base Credits", format_credits(axis.base_credits)),
        ("+ Net Credits Added", format_credits(axis.credits_added)),
        ("- Credits Removed (P-Repeats)", format_credits(axis.credits_removed)),
        ("= Final Projected Credits", format_credits(axis.final_credits)),
        ("Projected GPA", axis.display),
    ]


def _required_lines(axis: RequiredAxis) -> List[Tuple[str, str]]:
    return [
        ("Base Points", _pts(axis.base_points)),
        ("- Points Removed (All Repeats)", _pts(axis.points_removed)),
        ("= Adjusted Base Points", _pts(axis.adjusted_base_points)),
        ("Base Credits", format_credits(axis.base_credits)),
        ("- Credits Removed (P-Repeats)", format_credits(axis.credits_removed)),
        ("+ Net Credits Added (Non-Repeats)", format_credits(axis.net_credits_added)),
        ("= Final Cumulative Credits", format_credits(axis.final_cumulative_credits)),
        (f"Total Points Needed (Target {axis.target:.2f} x Final Credits)", _pts(axis.required_total_points)),
        ("= Required Semester Points", _pts(axis.required_semester_points)),
        ("/ Semester Divisor Credits", format_credits(axis.divisor_credits)),
        ("= Required Semester GPA", axis.display_string),
    ]


def course_rows(plan: Sequence[PlannerCourse], reports: GpaReports) -> Tuple[Dict[str, str], ...]:
    effects = {e.course_id: e for e in reports.projected.effects}
    relevant = set(reports.required.relevant_course_ids)
    rows = []
    for course in plan:
        effect = effects.get(course.id)
        rows.append({
            "Course": course.catalog_key,
            "Credits": format_credits(course.credits),
            "Grade": course.selected_grade or "-",
            "Major?": "Yes" if course.is_major else "No",
            "Repeat?": "Yes" if course.is_repeat else "No",
            "Prev. Grade": (course.previous_grade or "-") if course.is_repeat else "-",
            "Effect": CASE_LABELS[effect.case] if effect else "-",
            "Points": _pts(effect.points) if effect else "-",
            "Credits Change": format_credits(effect.credits) if effect else "-",
            "In Target Calc?": "Yes" if course.id in relevant else "No",
        })
    return tuple(rows)


def build_explanation(plan: Sequence[PlannerCourse], reports: GpaReports) -> Explanation:
    current, semester = reports.current, reports.semester
    projected, required = reports.projected, reports.required

    sections = (
        ExplanationSection(
            "1. Base Cumulative Data Used",
            (
                ("Overall Credits", format_credits(current.overall.credits)),
                ("Overall Points", _pts(current.overall.points)),
                ("Major Credits", format_credits(current.major.credits)),
                ("Major Points", _pts(current.major.points)),
            ),
            note=f"Current Overall GPA: {current.overall.display}, Major GPA: {current.major.display}",
        ),
        ExplanationSection(
            "2. Planner State Used",
            (
                ("Semester Overall GPA", f"{semester.overall.display} [{format_credits(semester.overall_credits)} credits]"),
                ("Semester Major GPA", f"{semester.major.display} [{format_credits(semester.major_credits)} credits]"),
            ),
            note=None if plan else "No courses in planner.",
        ),
        ExplanationSection("3a. Overall Projection", tuple(_projected_lines(projected.overall))),
        ExplanationSection("3b. Major Projection", tuple(_projected_lines(projected.major))),
        ExplanationSection(
            "4a. Overall Requirement",
            tuple(_required_lines(required.overall)),
            note=required.overall.warning,
            is_warning=required.overall.is_impossible,
        ),
        ExplanationSection(
            "4b. Major Requirement",
            tuple(_required_lines(required.major)),
            note=required.major.warning,
            is_warning=required.major.is_impossible,
        ),
    )
    return Explanation(sections=sections, course_rows=course_rows(plan, reports))


def verify_displayed(reports: GpaReports, displayed: Mapping[str, str]) -> Dict[str, Tuple[str, str]]:
    """
    Compare figures shown elsewhere against these reports.

    Returns ``{key: (displayed, recomputed)}`` for every figure that
    differs; an empty dict means the page and this breakdown agree.
    """
    expected = reports.displayed_values()
    mismatches = {}
    for key, shown in displayed.items():
        if key not in expected:
            continue
        if shown != expected[key]:
            mismatches[key] = (shown, expected[key])
    return mismatches

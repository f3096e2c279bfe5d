from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .grade_scale import coerce_number


@dataclass(frozen=True)
class AcademicRecordSnapshot:
    """Officially recorded cumulative totals before the planning term (points on a 0-4 per credit basis)."""

    overall_credits: float = 0.0
    overall_points: float = 0.0
    major_credits: float = 0.0
    major_points: float = 0.0

    @classmethod
    def from_values(cls, overall_credits=0, overall_points=0, major_credits=0, major_points=0):
        return cls(
            overall_credits=coerce_number(overall_credits),
            overall_points=coerce_number(overall_points),
            major_credits=coerce_number(major_credits),
            major_points=coerce_number(major_points),
        )


@dataclass(frozen=True)
class PlannerCourse:
    id: str
    catalog_key: str
    credits: float = 0.0
    selected_grade: Optional[str] = None
    is_major: bool = False
    is_repeat: bool = False
    # Only meaningful when is_repeat
    previous_grade: Optional[str] = None
    # Only meaningful for a repeat graded P: whether the original attempt counted
    # toward the major GPA. None means unknown and is treated as not-major.
    original_course_was_major: Optional[bool] = None

    def __post_init__(self):
        credits = coerce_number(self.credits)
        object.__setattr__(self, "credits", credits if credits >= 0 else 0.0)
        if not self.is_repeat and self.previous_grade is not None:
            object.__setattr__(self, "previous_grade", None)

    def is_p_repeat(self, pass_grade: str = "P") -> bool:
        return self.is_repeat and self.selected_grade == pass_grade

    def with_changes(self, **changes) -> "PlannerCourse":
        return replace(self, **changes)


CoursePlan = Tuple[PlannerCourse, ...]

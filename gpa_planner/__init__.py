"""GPA planning engine: current, semester, projected and required-semester GPA."""

from .calculator import GpaReports, calculate_all
from .grade_scale import DEFAULT_GRADE_SCALE, GradeScale
from .models import AcademicRecordSnapshot, PlannerCourse
from .state import CalculatorState

__version__ = "0.1.0"

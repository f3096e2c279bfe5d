import itertools
import os

import pytest

from gpa_planner.config import get_settings
from gpa_planner.grade_scale import DEFAULT_GRADE_SCALE
from gpa_planner.models import AcademicRecordSnapshot, PlannerCourse


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Each test sees default settings unless it sets GPA_PLANNER_* itself."""
    for name in list(os.environ):
        if name.startswith("GPA_PLANNER_"):
            monkeypatch.delenv(name)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def scale():
    return DEFAULT_GRADE_SCALE


@pytest.fixture
def snapshot():
    """60 credits at 3.0 overall, 12 major credits at 2.5."""
    return AcademicRecordSnapshot(overall_credits=60, overall_points=180, major_credits=12, major_points=30)


@pytest.fixture
def make_course():
    counter = itertools.count(1)

    def _make(grade=None, credits=3.0, catalog_key=None, **kwargs):
        n = next(counter)
        return PlannerCourse(
            id=f"c{n}",
            catalog_key=catalog_key or f"TEST{100 + n}",
            credits=credits,
            selected_grade=grade,
            **kwargs,
        )

    return _make

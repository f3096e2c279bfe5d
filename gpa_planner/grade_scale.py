"""
Grade scale: grade label -> point value, and whether the grade counts in GPA.

Grades such as P, W, I and IP carry a note on the registrar's sheet marking
them as not calculated in GPA; those contribute neither points nor credits.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from .config import get_settings

logger = logging.getLogger(__name__)

_CORRECTED_MARKER = "not calculated in gpa"


def coerce_number(value, default: float = 0.0) -> float:
    """Turn user/sheet input into a float; anything unparseable becomes ``default``."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    # NaN (e.g. an empty pandas cell) and infinities can't be calculated with
    if not math.isfinite(number):
        return default
    return number


def note_affects_gpa(note: Optional[str], marker: Optional[str] = None) -> bool:
    marker = (marker or get_settings().non_gpa_note_marker).lower()
    text = (note or "").lower()
    return marker not in text and _CORRECTED_MARKER not in text


@dataclass(frozen=True)
class GradeScaleEntry:
    grade: str
    grade_point: float
    affects_gpa: bool
    note: str = ""


class GradeScale:
    """Read-only lookup table of grade labels."""

    def __init__(self, entries: Iterable[GradeScaleEntry] = ()):
        self._entries: Dict[str, GradeScaleEntry] = {}
        for entry in entries:
            if entry.grade in self._entries:
                logger.warning("Duplicate grade %r in grade scale; keeping the first entry", entry.grade)
                continue
            self._entries[entry.grade] = entry

    @classmethod
    def from_rows(cls, rows: Iterable[Sequence]) -> "GradeScale":
        """
        Build a scale from sheet rows of ``(Grade, Point, Note)``.

        Rows without a grade are skipped. A missing or invalid point
        defaults to 0.
        """
        entries: List[GradeScaleEntry] = []
        for index, row in enumerate(rows):
            row = list(row) + [None] * (3 - len(row))
            grade = str(row[0] or "").strip()
            if not grade:
                continue
            point = coerce_number(row[1], default=float("nan"))
            if point != point:
                logger.warning("Row %d: invalid point value %r for grade %r. Defaulting to 0.",
                               index + 2, row[1], grade)
                point = 0.0
            note = str(row[2] or "").strip()
            entries.append(GradeScaleEntry(grade, point, note_affects_gpa(note), note))
        logger.debug("Loaded %d grade scale entries", len(entries))
        return cls(entries)

    def lookup(self, grade: Optional[str]) -> Optional[GradeScaleEntry]:
        if grade is None:
            return None
        return self._entries.get(grade)

    def affects_gpa(self, grade: Optional[str]) -> bool:
        entry = self.lookup(grade)
        return entry is not None and entry.affects_gpa

    def gpa_point(self, grade: Optional[str]) -> float:
        """Point value if the grade counts in GPA, else 0."""
        entry = self.lookup(grade)
        if entry is None or not entry.affects_gpa:
            return 0.0
        return entry.grade_point

    def grades(self) -> List[str]:
        return list(self._entries)

    def __contains__(self, grade) -> bool:
        return grade in self._entries

    def __iter__(self) -> Iterator[GradeScaleEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other) -> bool:
        return isinstance(other, GradeScale) and list(self) == list(other)

    def __hash__(self) -> int:
        return hash(tuple(self))

    def __repr__(self) -> str:
        return f"GradeScale({list(self._entries.values())!r})"


DEFAULT_GRADE_SCALE = GradeScale([
    GradeScaleEntry("A", 4.0, True),
    GradeScaleEntry("A-", 3.7, True),
    GradeScaleEntry("B+", 3.3, True),
    GradeScaleEntry("B", 3.0, True),
    GradeScaleEntry("B-", 2.7, True),
    GradeScaleEntry("C+", 2.3, True),
    GradeScaleEntry("C", 2.0, True),
    GradeScaleEntry("C-", 1.7, True),
    GradeScaleEntry("D+", 1.3, True),
    GradeScaleEntry("D", 1.0, True),
    GradeScaleEntry("F", 0.0, True),
    GradeScaleEntry("P", 0.0, False, "Pass - Not Calcualted in GPA"),
    GradeScaleEntry("W", 0.0, False, "Withdraw - Not Calcualted in GPA"),
    GradeScaleEntry("E", 0.0, False, "Exempt - Not Calcualted in GPA"),
    GradeScaleEntry("I", 0.0, False, "Incomplete - Not Calcualted in GPA"),
    GradeScaleEntry("IP", 0.0, False, "In Progress - Not Calcualted in GPA"),
])

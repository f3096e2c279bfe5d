import logging
from typing import Dict, Iterable, List

import pandas as pd

from .errors import GradeScaleError, PlanImportError
from .grade_scale import GradeScale
from .models import PlannerCourse

logger = logging.getLogger(__name__)

# ------------------------
# CSV helpers (UI-side)
# ------------------------

PLAN_COLUMNS = {
    "id": "id",
    "Course": "catalog_key",
    "Credits": "credits",
    "Grade": "selected_grade",
    "Major": "is_major",
    "Repeat": "is_repeat",
    "Prev Grade": "previous_grade",
    "Orig. Major (P-repeat)": "original_course_was_major",
}

_REGISTRATION_COLUMNS = {
    "catalogkey": "CatalogKey",
    "credits": "Credits",
    "reggrade": "RegGrade",
    "majorcourse": "MajorCourse",
    "rpeat": "Rpeat",
    "prevgrade": "PrevGrade",
}


def _normalise_cols(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(c).strip().lower().replace(" ", "") for c in df.columns]
    # allow singular "credit" / "point"
    if "credit" in df.columns and "credits" not in df.columns:
        df = df.rename(columns={"credit": "credits"})
    if "points" in df.columns and "point" not in df.columns:
        df = df.rename(columns={"points": "point"})
    if "repeat" in df.columns and "rpeat" not in df.columns:
        df = df.rename(columns={"repeat": "rpeat"})
    return df


def read_csv_upload(uploaded_file) -> pd.DataFrame:
    df = pd.read_csv(uploaded_file, dtype=str, keep_default_na=False)
    return _normalise_cols(df)


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return bool(pd.isna(value))


def _cell(value):
    """Empty or missing cells become None."""
    if _is_blank(value):
        return None
    return str(value).strip()


def grade_scale_from_csv(df: pd.DataFrame) -> GradeScale:
    required = {"grade", "point"}
    missing = required - set(df.columns)
    if missing:
        raise GradeScaleError(f"Missing columns: {sorted(missing)}. Expected: Grade, Point, Note.")
    notes = df["note"] if "note" in df.columns else [None] * len(df)
    rows = zip(df["grade"], df["point"], notes)
    return GradeScale.from_rows((_cell(g), _cell(p), _cell(n)) for g, p, n in rows)


def registrations_from_csv(df: pd.DataFrame) -> List[Dict]:
    required = {"catalogkey", "credits"}
    missing = required - set(df.columns)
    if missing:
        raise PlanImportError(
            f"Missing columns: {sorted(missing)}. "
            "Expected: CatalogKey, Credits, RegGrade, MajorCourse, Rpeat, PrevGrade."
        )
    rows = []
    for _, row in df.iterrows():
        record = {key: _cell(row.get(col)) for col, key in _REGISTRATION_COLUMNS.items()}
        if not record["CatalogKey"]:
            continue
        rows.append(record)
    logger.info("Read %d registrations from CSV", len(rows))
    return rows


# ------------------------
# Planner table <-> data editor
# ------------------------

def plan_to_frame(plan: Iterable[PlannerCourse]) -> pd.DataFrame:
    records = [{col: getattr(course, attr) for col, attr in PLAN_COLUMNS.items()} for course in plan]
    df = pd.DataFrame(records, columns=list(PLAN_COLUMNS))
    return df.astype({"Credits": float, "Major": bool, "Repeat": bool})


def _flag(value) -> bool:
    if _is_blank(value):
        return False
    if isinstance(value, str):
        return value.strip().lower() in ("yes", "true", "1")
    return bool(value)


def _optional_flag(value):
    if _is_blank(value):
        return None
    return _flag(value)


def plan_rows_from_frame(df: pd.DataFrame) -> List[Dict]:
    """
    Turn an edited planner table into rows of course fields.

    Rows added in the editor have no id yet. Blank course names and credits
    are left out, so a new course keeps its generated "Course N" name and
    default credits.
    """
    rows = []
    for _, row in df.iterrows():
        record = {
            "id": _cell(row.get("id")),
            "selected_grade": _cell(row.get("Grade")),
            "is_major": _flag(row.get("Major")),
            "is_repeat": _flag(row.get("Repeat")),
            "previous_grade": _cell(row.get("Prev Grade")),
            "original_course_was_major": _optional_flag(row.get("Orig. Major (P-repeat)")),
        }
        catalog_key = _cell(row.get("Course"))
        if catalog_key:
            record["catalog_key"] = catalog_key
        if not _is_blank(row.get("Credits")):
            record["credits"] = row.get("Credits")
        rows.append(record)
    return rows

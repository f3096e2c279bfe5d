"""
Application settings.

Values are read from the environment (prefix ``GPA_PLANNER_``) or a local
``.env`` file, e.g. ``GPA_PLANNER_DEFAULT_TARGET_GPA=3.0``.
"""

from functools import lru_cache
from typing import Annotated, Literal, Optional, Tuple

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GPA_PLANNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------
    # Calculator defaults
    # ------------------------
    default_target_gpa: float = 2.0
    max_grade_point: float = 4.0
    new_course_credits: float = 3.0

    # ------------------------
    # Grade scale rules
    # ------------------------
    # The registrar sheet spells it this way; the corrected spelling is matched too.
    non_gpa_note_marker: str = "Not Calcualted in GPA"
    pass_grade: str = "P"
    # Grades that have no bearing on a target GPA calculation
    excluded_target_grades: Annotated[Tuple[str, ...], NoDecode] = ("W", "E", "I", "IP")

    # ------------------------
    # App
    # ------------------------
    share_base_url: Optional[str] = None
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("excluded_target_grades", mode="before")
    @classmethod
    def _split_grades(cls, v):
        if isinstance(v, str):
            # "W, E ,I" -> ["W","E","I"]
            return [s.strip() for s in v.split(",") if s.strip()]
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()

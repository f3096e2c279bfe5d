import logging

from .config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level=None) -> None:
    """Configure the root logger once for the Streamlit process."""
    level = level or get_settings().log_level
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("gpa_planner").setLevel(level)

"""Shared setup for the command-line scripts.

Usage:
    from scripts.bootstrap import configure, get_session, settings
"""
import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from config.settings import settings
from jobtrack.logging_config import setup_logging
from jobtrack.persistence.database import get_session, init_db


def configure(with_db: bool = True) -> None:
    """Configure logging from settings and, optionally, ensure the schema exists."""
    setup_logging(level=settings.log_level, log_file=settings.log_file)
    if with_db:
        init_db()


__all__ = ["settings", "get_session", "init_db", "configure"]

"""Process-wide logging for the tracker service and its scripts."""
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Held at WARNING regardless of the root level
NOISY_LOGGERS = (
    "aiohttp",
    "apscheduler",
    "google_auth_httplib2",
    "googleapiclient",
    "googleapiclient.discovery_cache",
    "oauthlib",
    "requests_oauthlib",
    "sqlalchemy.engine",
    "urllib3",
)

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _rotating_file_handler(log_file: str) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
    )


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure the root logger once per process.

    A second call is ignored, so scripts and ``jobtrack.main`` can both
    call it without stacking handlers.

    Args:
        level: Root log level name; unknown names fall back to INFO
        log_file: Optional path for a size-rotated log file
    """
    root = logging.getLogger()
    if root.handlers:
        return

    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(_rotating_file_handler(log_file))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

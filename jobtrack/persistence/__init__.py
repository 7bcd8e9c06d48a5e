"""Database persistence layer."""
from .database import get_session, init_db
from .models import (
    JOB_STATUSES,
    TERMINAL_STATUSES,
    Base,
    EmailUpdateLog,
    MailboxConnection,
    StatusHistory,
    TrackedJob,
    User,
)

__all__ = [
    "Base",
    "User",
    "TrackedJob",
    "StatusHistory",
    "EmailUpdateLog",
    "MailboxConnection",
    "JOB_STATUSES",
    "TERMINAL_STATUSES",
    "init_db",
    "get_session",
]

"""SQLAlchemy models for Job Tracker."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, relationship


# Job statuses, in pipeline order
JOB_STATUSES = ("saved", "applied", "interviewing", "offered", "rejected")

# Automated transitions stop once a job reaches one of these
TERMINAL_STATUSES = ("offered", "rejected")


def utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class User(Base):
    """Authenticated user owning tracked jobs and a mailbox connection."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=generate_uuid)
    email = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    jobs = relationship("TrackedJob", back_populates="owner", cascade="all, delete-orphan")
    mailbox = relationship(
        "MailboxConnection",
        back_populates="owner",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class TrackedJob(Base):
    """A job posting the user saved to their tracked list."""

    __tablename__ = "tracked_jobs"
    __table_args__ = (
        UniqueConstraint("owner_id", "external_id", name="uq_tracked_jobs_owner_external"),
        # NULLs never collide in a unique constraint, so single-user rows need their own index
        Index(
            "uq_tracked_jobs_external_no_owner",
            "external_id",
            unique=True,
            sqlite_where=text("owner_id IS NULL"),
            postgresql_where=text("owner_id IS NULL"),
        ),
    )

    id = Column(String, primary_key=True, default=generate_uuid)
    owner_id = Column(String, ForeignKey("users.id"), nullable=True)  # Null in single-user mode
    external_id = Column(String, nullable=False, index=True)  # Id from the job listing
    title = Column(String, nullable=False)
    company_name = Column(String, nullable=False)
    apply_link = Column(String)

    # Status: saved, applied, interviewing, offered, rejected
    status = Column(String, nullable=False, default="saved")

    date_added = Column(DateTime, default=utcnow)
    last_updated = Column(DateTime, default=utcnow)

    owner = relationship("User", back_populates="jobs")
    history = relationship(
        "StatusHistory",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="StatusHistory.changed_at",
    )

    def __repr__(self) -> str:
        return f"<TrackedJob {self.company_name} - {self.title} ({self.status})>"


class StatusHistory(Base):
    """Track status changes for tracked jobs."""

    __tablename__ = "status_history"

    id = Column(String, primary_key=True, default=generate_uuid)
    job_id = Column(String, ForeignKey("tracked_jobs.id"), nullable=False)
    old_status = Column(String)
    new_status = Column(String, nullable=False)
    source = Column(String, nullable=False, default="manual")  # manual, email
    changed_at = Column(DateTime, default=utcnow)
    notes = Column(Text)

    job = relationship("TrackedJob", back_populates="history")


class EmailUpdateLog(Base):
    """Append-only audit log of classified mailbox messages."""

    __tablename__ = "email_updates"

    id = Column(String, primary_key=True, default=generate_uuid)
    owner_id = Column(String, ForeignKey("users.id"), nullable=True)
    message_id = Column(String)  # Provider message id, when known
    company_key = Column(String, nullable=False, index=True)
    verdict = Column(String, nullable=False)  # positive, negative
    suggested_status = Column(String)
    subject = Column(String)
    sender = Column(String)
    received_at = Column(DateTime)
    applied = Column(Boolean, default=False)
    job_ids = Column(JSON, default=list)
    logged_at = Column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<EmailUpdateLog {self.verdict}: {self.subject}>"


class MailboxConnection(Base):
    """Stored OAuth credentials for a connected mailbox (one per owner)."""

    __tablename__ = "mailbox_sessions"

    id = Column(String, primary_key=True, default=generate_uuid)
    owner_id = Column(String, ForeignKey("users.id"), unique=True, nullable=True)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text)
    expiry = Column(DateTime)
    scopes = Column(JSON, default=list)
    connected_at = Column(DateTime, default=utcnow)

    owner = relationship("User", back_populates="mailbox")

    def __repr__(self) -> str:
        return f"<MailboxConnection owner={self.owner_id}>"


def owned_by(column, owner_id):
    """Filter clause matching ``owner_id``, treating None as single-user mode."""
    if owner_id is None:
        return column.is_(None)
    return column == owner_id

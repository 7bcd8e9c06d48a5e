"""Tracked-job store backed by SQLAlchemy."""
import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from jobtrack.persistence.models import (
    JOB_STATUSES,
    EmailUpdateLog,
    StatusHistory,
    TrackedJob,
    owned_by,
    utcnow,
)

from .exceptions import InvalidStatusError, JobValidationError, PersistenceFailure

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("external_id", "title", "company_name")


class JobStore:
    """Owner-scoped access to tracked jobs."""

    def __init__(self, session: Session):
        """
        Initialize job store.

        Args:
            session: Database session
        """
        self.session = session

    @staticmethod
    def _validate_status(status: str) -> None:
        if status not in JOB_STATUSES:
            raise InvalidStatusError(status)

    @contextmanager
    def _guard(self, operation: str):
        """Roll back and wrap any database error raised inside the block."""
        try:
            yield
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Store %s failed: %s", operation, e)
            raise PersistenceFailure(operation, str(e)) from e

    def _commit(self, operation: str) -> None:
        with self._guard(operation):
            self.session.commit()

    def save_job(
        self,
        external_id: str,
        title: str,
        company_name: str,
        apply_link: Optional[str] = None,
        owner_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> TrackedJob:
        """
        Save a job to the owner's tracked list.

        Saving the same ``external_id`` twice never creates a second record.
        An existing record only changes when ``status`` is given and differs.

        Args:
            external_id: Stable id from the job listing
            title: Job title
            company_name: Employer name
            apply_link: URL to apply
            owner_id: Owning user (None in single-user mode)
            status: Initial or new status (new jobs default to "saved")

        Returns:
            The stored TrackedJob

        Raises:
            JobValidationError: A required field is missing
            InvalidStatusError: Unknown status
            PersistenceFailure: The write failed
        """
        values = {"external_id": external_id, "title": title, "company_name": company_name}
        missing = [name for name in REQUIRED_FIELDS if not (values[name] or "").strip()]
        if missing:
            raise JobValidationError(missing)
        if status is not None:
            self._validate_status(status)

        existing = self.find_by_external_id(external_id, owner_id)
        if existing is not None:
            if status is not None and existing.status != status:
                self._apply_status(existing, status, source="manual", notes="Status set on save")
                self._commit("save_job")
            return existing

        job = TrackedJob(
            owner_id=owner_id,
            external_id=external_id,
            title=title.strip(),
            company_name=company_name.strip(),
            apply_link=apply_link,
            status=status or "saved",
        )
        self.session.add(job)
        try:
            self.session.commit()
        except IntegrityError:
            # Lost an insert race for the same (owner, external_id)
            self.session.rollback()
            existing = self.find_by_external_id(external_id, owner_id)
            if existing is None:
                raise PersistenceFailure("save_job", "duplicate key but no record found")
            return existing
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Store save_job failed: %s", e)
            raise PersistenceFailure("save_job", str(e)) from e

        with self._guard("save_job"):
            self.session.refresh(job)
        logger.info("Saved job %s at %s", job.title, job.company_name)
        return job

    def get(self, job_id: str) -> Optional[TrackedJob]:
        """Get a job by ID."""
        with self._guard("get"):
            return self.session.get(TrackedJob, job_id)

    def find_by_external_id(
        self,
        external_id: str,
        owner_id: Optional[str] = None,
    ) -> Optional[TrackedJob]:
        stmt = select(TrackedJob).where(
            TrackedJob.external_id == external_id,
            owned_by(TrackedJob.owner_id, owner_id),
        )
        with self._guard("find_by_external_id"):
            return self.session.execute(stmt).scalars().first()

    def find_by_owner(self, owner_id: Optional[str] = None) -> list[TrackedJob]:
        """All of an owner's tracked jobs, newest first."""
        stmt = (
            select(TrackedJob)
            .where(owned_by(TrackedJob.owner_id, owner_id))
            .order_by(TrackedJob.date_added.desc())
        )
        with self._guard("find_by_owner"):
            return list(self.session.execute(stmt).scalars().all())

    def update_status(
        self,
        job_id: str,
        new_status: str,
        notes: Optional[str] = None,
    ) -> Optional[TrackedJob]:
        """
        Manually set a job's status.

        Manual edits may move a job in any direction, including out of a
        terminal status.

        Returns:
            Updated job or None if not found
        """
        self._validate_status(new_status)

        job = self.get(job_id)
        if not job:
            return None

        # Skip if already at the same status (prevents duplicate history entries)
        if job.status == new_status:
            return job

        self._apply_status(job, new_status, source="manual", notes=notes)
        self._commit("update_status")
        with self._guard("update_status"):
            self.session.refresh(job)
        return job

    def compare_and_set_status(
        self,
        job_id: str,
        expected_status: str,
        new_status: str,
        source: str = "email",
        notes: Optional[str] = None,
    ) -> bool:
        """
        Set a job's status only if it still equals ``expected_status``.

        Returns:
            True if this call changed the status
        """
        self._validate_status(new_status)

        with self._guard("compare_and_set_status"):
            result = self.session.execute(
                update(TrackedJob)
                .where(TrackedJob.id == job_id, TrackedJob.status == expected_status)
                .values(status=new_status, last_updated=utcnow())
            )
            if result.rowcount != 1:
                return False

            self.session.add(
                StatusHistory(
                    job_id=job_id,
                    old_status=expected_status,
                    new_status=new_status,
                    source=source,
                    notes=notes,
                )
            )

        self._commit("compare_and_set_status")
        return True

    def delete(self, external_id: str, owner_id: Optional[str] = None) -> bool:
        """Remove a job from the tracked list. Returns True if one was deleted."""
        job = self.find_by_external_id(external_id, owner_id)
        if job is None:
            return False

        self.session.delete(job)
        self._commit("delete")
        return True

    def log_email_update(
        self,
        update_record,
        owner_id: Optional[str],
        applied: bool,
        job_ids: list[str],
    ) -> EmailUpdateLog:
        """Append a consumed update record to the audit log."""
        entry = EmailUpdateLog(
            owner_id=owner_id,
            message_id=update_record.message_id,
            company_key=update_record.company_key,
            verdict=update_record.verdict.value,
            suggested_status=update_record.suggested_status,
            subject=update_record.subject,
            sender=update_record.sender,
            received_at=update_record.timestamp,
            applied=applied,
            job_ids=list(job_ids),
        )
        self.session.add(entry)
        self._commit("log_email_update")
        return entry

    def get_email_updates(self, owner_id: Optional[str] = None, limit: int = 50) -> list[EmailUpdateLog]:
        """Most recent audit log entries for an owner."""
        stmt = (
            select(EmailUpdateLog)
            .where(owned_by(EmailUpdateLog.owner_id, owner_id))
            .order_by(EmailUpdateLog.logged_at.desc())
            .limit(limit)
        )
        with self._guard("get_email_updates"):
            return list(self.session.execute(stmt).scalars().all())

    def _apply_status(
        self,
        job: TrackedJob,
        new_status: str,
        source: str,
        notes: Optional[str] = None,
    ) -> None:
        self.session.add(
            StatusHistory(
                job_id=job.id,
                old_status=job.status,
                new_status=new_status,
                source=source,
                notes=notes,
            )
        )
        job.status = new_status
        job.last_updated = utcnow()

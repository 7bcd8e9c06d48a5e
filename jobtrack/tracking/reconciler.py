"""Apply classified mailbox signals to tracked job statuses."""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from jobtrack.gmail.scanner import EmailUpdateRecord
from jobtrack.persistence.models import JOB_STATUSES, TERMINAL_STATUSES, TrackedJob

from .job_store import JobStore

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of reconciling one update record."""

    applied: bool
    job_ids: list[str] = field(default_factory=list)


@dataclass
class ReconcileSummary:
    """Outcome of reconciling a batch of update records."""

    applied_count: int = 0
    touched_job_ids: list[str] = field(default_factory=list)


def company_matches(company_key: str, company_name: str) -> bool:
    """Substring match in both directions, case-insensitive."""
    key = (company_key or "").strip().lower()
    name = (company_name or "").strip().lower()
    if not key or not name:
        return False
    return key in name or name in key


def can_transition(current: str, target: Optional[str]) -> bool:
    """Whether the email pipeline may move a job from ``current`` to ``target``."""
    if target is None or target not in JOB_STATUSES:
        return False
    if current in TERMINAL_STATUSES:
        return False
    return current != target


class StatusReconciler:
    """Match update records to tracked jobs and apply status transitions."""

    def __init__(self, store: JobStore, log_updates: bool = True):
        """
        Initialize the reconciler.

        Args:
            store: Job store used for compare-and-swap writes
            log_updates: Append each consumed record to the email update log
        """
        self.store = store
        self.log_updates = log_updates

    @staticmethod
    def matching_jobs(update: EmailUpdateRecord, jobs: Iterable[TrackedJob]) -> list[TrackedJob]:
        return [job for job in jobs if company_matches(update.company_key, job.company_name)]

    def reconcile(self, update: EmailUpdateRecord, jobs: Iterable[TrackedJob]) -> ReconcileResult:
        """
        Apply one update record to the owner's jobs.

        Every matching job is handled on its own. A job whose status already
        equals the suggestion, or that is offered/rejected, is left alone.
        The write is a compare-and-swap on the status that was read, so a
        concurrent scan or manual edit wins over a stale read.

        Args:
            update: Classified message
            jobs: The owner's tracked jobs

        Returns:
            ReconcileResult listing the jobs whose status changed
        """
        matches = self.matching_jobs(update, jobs)
        if not matches:
            logger.debug("No tracked job matches company key %r", update.company_key)
            return ReconcileResult(applied=False)

        target = update.suggested_status
        changed = []
        for job in matches:
            current = job.status
            if not can_transition(current, target):
                continue

            swapped = self.store.compare_and_set_status(
                job.id,
                expected_status=current,
                new_status=target,
                source="email",
                notes=f"Email from {update.sender}: {update.subject}",
            )
            if swapped:
                logger.info(
                    "%s: %s -> %s (%s)", job.company_name, current, target, update.verdict.value
                )
                changed.append(job.id)
            else:
                logger.info("Status of job %s changed concurrently, skipping", job.id)

        return ReconcileResult(applied=bool(changed), job_ids=changed)

    def reconcile_all(
        self,
        updates: Iterable[EmailUpdateRecord],
        jobs: Iterable[TrackedJob],
        owner_id: Optional[str] = None,
    ) -> ReconcileSummary:
        """
        Reconcile a batch of update records in order.

        Args:
            updates: Records from one scan, in listing order
            jobs: The owner's tracked jobs
            owner_id: Owner recorded on the audit log entries

        Returns:
            ReconcileSummary with the number of status changes and the
            ids of jobs that changed
        """
        jobs = list(jobs)
        summary = ReconcileSummary()

        for update in updates:
            result = self.reconcile(update, jobs)
            summary.applied_count += len(result.job_ids)
            for job_id in result.job_ids:
                if job_id not in summary.touched_job_ids:
                    summary.touched_job_ids.append(job_id)

            if self.log_updates:
                self.store.log_email_update(update, owner_id, result.applied, result.job_ids)

        return summary

"""Mailbox check: scan a connected mailbox and reconcile tracked jobs."""
import logging
from dataclasses import dataclass, field
from typing import Optional

from jobtrack.gmail.auth import MailboxSession, MailboxSessionStore
from jobtrack.gmail.exceptions import SessionExpired, Unauthenticated
from jobtrack.gmail.scanner import EmailUpdateRecord, MailboxScanner
from jobtrack.persistence.database import get_session

from .job_store import JobStore
from .reconciler import StatusReconciler

logger = logging.getLogger(__name__)


@dataclass
class ScanReport:
    """Result of one mailbox check."""

    updates: list[EmailUpdateRecord] = field(default_factory=list)
    applied_count: int = 0
    touched_job_ids: list[str] = field(default_factory=list)


class EmailSync:
    """Run scan -> reconcile for one owner at a time."""

    def __init__(self, session_factory=get_session, scanner: Optional[MailboxScanner] = None):
        """
        Initialize the sync service.

        Args:
            session_factory: Context manager yielding a database session
            scanner: Mailbox scanner (defaults to one built from settings)
        """
        self.session_factory = session_factory
        self.scanner = scanner or MailboxScanner()

    def connection_status(self, owner_id: Optional[str] = None) -> bool:
        """Whether the owner has a connected mailbox."""
        with self.session_factory() as db:
            return MailboxSessionStore(db).is_connected(owner_id)

    def load_session(self, owner_id: Optional[str] = None) -> MailboxSession:
        with self.session_factory() as db:
            mailbox = MailboxSessionStore(db).get(owner_id)
        if mailbox is None:
            raise Unauthenticated(owner_id)
        return mailbox

    async def trigger_scan(self, owner_id: Optional[str] = None) -> ScanReport:
        """
        Check the owner's mailbox now.

        Raises:
            Unauthenticated: No mailbox connected
            SessionExpired: Credential rejected; the stored session is cleared
            ProviderFailure: Listing failed; the session is kept
        """
        return await self.run(self.load_session(owner_id))

    async def run(self, mailbox: MailboxSession) -> ScanReport:
        """Scan with an explicit session and reconcile the owner's jobs."""
        try:
            updates = await self.scanner.scan(mailbox)
        except SessionExpired:
            with self.session_factory() as db:
                MailboxSessionStore(db).invalidate(mailbox.owner_id)
            raise

        if not updates:
            return ScanReport()

        with self.session_factory() as db:
            store = JobStore(db)
            jobs = store.find_by_owner(mailbox.owner_id)
            summary = StatusReconciler(store).reconcile_all(updates, jobs, owner_id=mailbox.owner_id)

        logger.info(
            "Mailbox check for owner %s: %d updates, %d status changes",
            mailbox.owner_id,
            len(updates),
            summary.applied_count,
        )
        return ScanReport(
            updates=updates,
            applied_count=summary.applied_count,
            touched_job_ids=summary.touched_job_ids,
        )

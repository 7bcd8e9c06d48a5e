"""Recurring and on-demand mailbox checks."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from config.settings import settings
from jobtrack.gmail.auth import GmailAuthorizer, MailboxSession, MailboxSessionStore
from jobtrack.gmail.exceptions import ProviderFailure, SessionExpired, Unauthenticated
from jobtrack.tracking.email_sync import EmailSync, ScanReport
from jobtrack.tracking.exceptions import TrackingError

logger = logging.getLogger(__name__)

INITIAL_PREFIX = "mailbox_initial:"
RECURRING_PREFIX = "mailbox_recurring:"
WATCH_JOB_ID = "mailbox_connections"


class MailboxScheduler:
    """Schedule mailbox checks per connected owner.

    A manual ``check_now`` and the recurring job may overlap; the
    reconciler's idempotent compare-and-swap keeps that safe, so the two
    paths are not serialized.
    """

    def __init__(
        self,
        sync: EmailSync,
        scheduler: Optional[AsyncIOScheduler] = None,
        interval_minutes: Optional[int] = None,
        initial_delay_seconds: Optional[int] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            sync: Service that runs one scan -> reconcile pass
            scheduler: APScheduler instance (created if omitted)
            interval_minutes: Minutes between recurring checks
            initial_delay_seconds: Delay before the first check after connecting
        """
        self.sync = sync
        self.scheduler = scheduler or AsyncIOScheduler()
        self.interval_minutes = interval_minutes or settings.email_check_interval_minutes
        if initial_delay_seconds is None:
            initial_delay_seconds = settings.email_initial_scan_delay_seconds
        self.initial_delay_seconds = initial_delay_seconds

    @staticmethod
    def _job_ids(owner_id: Optional[str]) -> tuple[str, str]:
        key = owner_id or "default"
        return f"{INITIAL_PREFIX}{key}", f"{RECURRING_PREFIX}{key}"

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def on_connected(self, owner_id: Optional[str] = None) -> None:
        """Schedule a first check shortly after connecting, then recurring checks."""
        initial_id, recurring_id = self._job_ids(owner_id)

        # Reconnecting replaces the previous schedule
        self.disconnect(owner_id)

        run_at = datetime.now(timezone.utc) + timedelta(seconds=self.initial_delay_seconds)
        self.scheduler.add_job(
            self._scheduled_check,
            DateTrigger(run_date=run_at),
            args=[owner_id],
            id=initial_id,
            name=f"Initial mailbox check ({owner_id or 'default'})",
        )
        self.scheduler.add_job(
            self._scheduled_check,
            IntervalTrigger(minutes=self.interval_minutes),
            args=[owner_id],
            id=recurring_id,
            name=f"Mailbox check ({owner_id or 'default'})",
            max_instances=1,
            coalesce=True,
        )
        logger.info(
            "Mailbox checks scheduled for owner %s: first in %ds, then every %d minutes",
            owner_id,
            self.initial_delay_seconds,
            self.interval_minutes,
        )

    def disconnect(self, owner_id: Optional[str] = None) -> None:
        """Stop all scheduled checks for an owner."""
        for job_id in self._job_ids(owner_id):
            if self.scheduler.get_job(job_id) is not None:
                self.scheduler.remove_job(job_id)

    def is_scheduled(self, owner_id: Optional[str] = None) -> bool:
        _, recurring_id = self._job_ids(owner_id)
        return self.scheduler.get_job(recurring_id) is not None

    def scheduled_owners(self) -> set[Optional[str]]:
        """Owners that currently have a recurring check."""
        return {
            job.args[0]
            for job in self.scheduler.get_jobs()
            if job.id.startswith(RECURRING_PREFIX)
        }

    def connect(
        self,
        authorizer: GmailAuthorizer,
        code: str,
        owner_id: Optional[str] = None,
    ) -> MailboxSession:
        """
        Finish the OAuth flow for an owner and start checking their mailbox.

        Args:
            authorizer: OAuth flow wrapper
            code: Authorization code from the redirect
            owner_id: Owning user (None in single-user mode)

        Returns:
            The stored mailbox session

        Raises:
            ProviderFailure: The code exchange failed; nothing is stored
        """
        mailbox = authorizer.exchange_code(code, owner_id=owner_id)
        with self.sync.session_factory() as db:
            MailboxSessionStore(db).save(mailbox)
        self.on_connected(owner_id)
        return mailbox

    def resume_all(self) -> int:
        """Schedule checks for every stored mailbox session."""
        with self.sync.session_factory() as db:
            sessions = MailboxSessionStore(db).all_sessions()
        for mailbox in sessions:
            self.on_connected(mailbox.owner_id)
        return len(sessions)

    def refresh_connections(self) -> None:
        """Match the schedule to the stored sessions.

        Picks up mailboxes connected by another process (the setup script)
        and drops owners whose session was removed.
        """
        with self.sync.session_factory() as db:
            stored = {mailbox.owner_id for mailbox in MailboxSessionStore(db).all_sessions()}
        scheduled = self.scheduled_owners()

        for owner_id in stored - scheduled:
            logger.info("New mailbox connection for owner %s", owner_id)
            self.on_connected(owner_id)
        for owner_id in scheduled - stored:
            logger.info("Mailbox for owner %s no longer connected", owner_id)
            self.disconnect(owner_id)

    def watch_connections(self, interval_seconds: Optional[int] = None) -> None:
        """Periodically run ``refresh_connections``."""
        self.scheduler.add_job(
            self.refresh_connections,
            IntervalTrigger(seconds=interval_seconds or settings.email_connection_poll_seconds),
            id=WATCH_JOB_ID,
            name="Mailbox connection watch",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    async def check_now(self, owner_id: Optional[str] = None) -> ScanReport:
        """
        Run one check immediately and return its report.

        The recurring job keeps its own timer. Authorization failures stop
        the owner's schedule and are re-raised for the caller.
        """
        try:
            return await self.sync.trigger_scan(owner_id)
        except (Unauthenticated, SessionExpired):
            self.disconnect(owner_id)
            raise

    async def _scheduled_check(self, owner_id: Optional[str]) -> None:
        try:
            report = await self.sync.trigger_scan(owner_id)
        except Unauthenticated:
            logger.warning("Mailbox for owner %s not connected, stopping checks", owner_id)
            self.disconnect(owner_id)
        except SessionExpired as e:
            logger.warning("Reconnect required for owner %s: %s", owner_id, e)
            self.disconnect(owner_id)
        except ProviderFailure as e:
            logger.error("Mailbox check failed for owner %s: %s", owner_id, e)
        except TrackingError as e:
            logger.error("Could not record mailbox updates for owner %s: %s", owner_id, e)
        else:
            logger.info(
                "Scheduled check for owner %s: %d updates, %d applied",
                owner_id,
                len(report.updates),
                report.applied_count,
            )

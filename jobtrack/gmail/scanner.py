"""Mailbox scanner: list recent messages, classify them, emit update records."""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from config.settings import settings

from .auth import MailboxSession
from .classifier import Verdict, classify
from .client import EmailMessage, GmailClient
from .exceptions import MailboxError, SessionExpired, Unauthenticated

logger = logging.getLogger(__name__)

# Server-side subject filter; the classifier re-checks every message
SUBJECT_KEYWORDS = ("interview", "offer", "application", "update", "unfortunately")


@dataclass(frozen=True)
class EmailUpdateRecord:
    """A classified message that may move a tracked job's status."""

    company_key: str
    verdict: Verdict
    suggested_status: Optional[str]
    subject: str
    sender: str
    timestamp: datetime
    message_id: Optional[str] = None


def build_query(lookback_days: int, subject_keywords=SUBJECT_KEYWORDS) -> str:
    """Gmail search query for recent messages with job-ish subjects."""
    subjects = " OR ".join(f"subject:{keyword}" for keyword in subject_keywords)
    return f"newer_than:{lookback_days}d ({subjects})"


def to_update_record(email: EmailMessage) -> Optional[EmailUpdateRecord]:
    """Classify one message; None when it carries no job signal."""
    result = classify(email.subject, email.body_text, email.sender)
    if not result.is_job_signal:
        return None

    return EmailUpdateRecord(
        company_key=result.company_key,
        verdict=result.verdict,
        suggested_status=result.suggested_status,
        subject=email.subject,
        sender=email.sender,
        timestamp=email.date,
        message_id=email.id,
    )


class MailboxScanner:
    """Scan a connected mailbox for recruiter responses."""

    def __init__(
        self,
        client_factory: Callable[[MailboxSession], GmailClient] = GmailClient,
        lookback_days: Optional[int] = None,
        max_messages: Optional[int] = None,
        concurrency: Optional[int] = None,
    ):
        """
        Initialize the scanner.

        Args:
            client_factory: Builds a mail client for a session
            lookback_days: Recency window for the listing query
            max_messages: Maximum messages listed per scan
            concurrency: Maximum message fetches in flight
        """
        self.client_factory = client_factory
        self.lookback_days = lookback_days or settings.email_lookback_days
        self.max_messages = max_messages or settings.email_max_messages
        self.concurrency = concurrency or settings.email_fetch_concurrency

    async def scan(self, session: Optional[MailboxSession]) -> list[EmailUpdateRecord]:
        """
        Run one scan.

        Args:
            session: Mailbox session to scan with

        Returns:
            Update records in listing order

        Raises:
            Unauthenticated: No session given
            SessionExpired: The provider rejected the credential
            ProviderFailure: The listing call failed
        """
        if session is None:
            raise Unauthenticated()

        client = self.client_factory(session)
        query = build_query(self.lookback_days)

        message_ids = await asyncio.to_thread(client.list_messages, query, self.max_messages)
        logger.info("Listed %d candidate messages for owner %s", len(message_ids), session.owner_id)

        semaphore = asyncio.Semaphore(self.concurrency)

        async def fetch(message_id: str) -> Optional[EmailMessage]:
            async with semaphore:
                try:
                    return await asyncio.to_thread(client.get_message, message_id)
                except SessionExpired:
                    raise
                except MailboxError as e:
                    logger.warning("Skipping message %s: %s", message_id, e)
                except Exception as e:
                    logger.warning("Skipping message %s after unexpected error: %r", message_id, e)
                return None

        # gather keeps listing order; every fetch finishes before an auth failure is raised
        results = await asyncio.gather(
            *(fetch(message_id) for message_id in message_ids),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

        records = []
        for email in results:
            if email is None:
                continue
            record = to_update_record(email)
            if record is None:
                logger.debug("No job signal in %r", email.subject)
                continue
            records.append(record)

        logger.info("Scan produced %d update records", len(records))
        return records

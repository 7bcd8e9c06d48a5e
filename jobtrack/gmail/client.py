"""Gmail API client."""
import base64
import binascii
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

import google_auth_httplib2
import httplib2
from bs4 import BeautifulSoup
from google.auth.exceptions import RefreshError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .auth import MailboxSession
from .exceptions import MessageParseFailure, ProviderFailure, SessionExpired

logger = logging.getLogger(__name__)

# HTTP statuses meaning the credential itself was refused
AUTH_FAILURE_STATUSES = {401, 403}

TRANSPORT_ERRORS = (HttpError, RefreshError, httplib2.HttpLib2Error, OSError)


@dataclass
class EmailMessage:
    """Parsed email message."""

    id: str
    thread_id: str
    subject: str
    sender: str
    date: datetime
    body_text: str
    body_html: Optional[str] = None
    snippet: str = ""
    labels: list[str] = field(default_factory=list)


def html_to_text(html: str) -> str:
    """Flatten an HTML body to whitespace-normalized text."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return " ".join(soup.get_text(" ").split())


def _decode_body(data: str) -> str:
    # Gmail returns unpadded base64url
    padding = -len(data) % 4
    return base64.urlsafe_b64decode(data + "=" * padding).decode("utf-8", errors="replace")


class GmailClient:
    """Gmail API client bound to one mailbox session."""

    def __init__(self, session: MailboxSession, service=None):
        """
        Initialize Gmail client.

        Args:
            session: Mailbox session whose token authorizes the calls
            service: Prebuilt Gmail API resource (tests inject a mock)
        """
        self.session = session
        self._credentials = session.credentials()
        self._service = service

    def _get_service(self):
        """Get or create Gmail API service."""
        if self._service is None:
            self._service = build(
                "gmail",
                "v1",
                credentials=self._credentials,
                cache_discovery=False,
            )
        return self._service

    def _new_http(self):
        # httplib2 is not thread-safe; each request gets its own transport
        return google_auth_httplib2.AuthorizedHttp(self._credentials, http=httplib2.Http())

    @staticmethod
    def _translate_error(operation: str, error: Exception) -> Exception:
        """Map a transport error onto the mailbox error taxonomy."""
        if isinstance(error, RefreshError):
            return SessionExpired(str(error))
        if isinstance(error, HttpError) and error.resp.status in AUTH_FAILURE_STATUSES:
            return SessionExpired(f"HTTP {error.resp.status}")
        return ProviderFailure(operation, str(error))

    def list_messages(self, query: str, max_results: int = 10) -> list[str]:
        """
        List message IDs matching a Gmail search query.

        Args:
            query: Gmail search query (same syntax as Gmail search)
            max_results: Maximum number of message IDs to return

        Returns:
            List of message IDs in provider order

        Raises:
            SessionExpired: The credential was rejected
            ProviderFailure: Any other listing failure
        """
        service = self._get_service()
        try:
            result = (
                service.users()
                .messages()
                .list(userId="me", q=query, maxResults=max_results)
                .execute(http=self._new_http())
            )
        except TRANSPORT_ERRORS as e:
            logger.error("Gmail list error: %s", e)
            raise self._translate_error("list", e) from e

        return [msg["id"] for msg in result.get("messages", [])][:max_results]

    def get_message(self, message_id: str) -> EmailMessage:
        """
        Get full message details.

        Args:
            message_id: Gmail message ID

        Returns:
            EmailMessage

        Raises:
            SessionExpired: The credential was rejected
            ProviderFailure: The fetch failed for another reason
            MessageParseFailure: The payload could not be decoded
        """
        service = self._get_service()
        try:
            result = (
                service.users()
                .messages()
                .get(userId="me", id=message_id, format="full")
                .execute(http=self._new_http())
            )
        except TRANSPORT_ERRORS as e:
            logger.error("Gmail get message error: %s", e)
            raise self._translate_error("get", e) from e

        try:
            return self._parse_message(result)
        except (KeyError, TypeError, ValueError, AttributeError, binascii.Error) as e:
            raise MessageParseFailure(message_id, str(e)) from e

    def _parse_message(self, data: dict) -> EmailMessage:
        """Parse raw Gmail API response into EmailMessage."""
        payload = data["payload"]
        headers = {h["name"].lower(): h["value"] for h in payload.get("headers", [])}

        body_text, body_html = self._extract_body(payload)

        return EmailMessage(
            id=data["id"],
            thread_id=data.get("threadId", ""),
            subject=headers.get("subject", ""),
            sender=headers.get("from", ""),
            date=self._parse_date(headers.get("date"), data.get("internalDate")),
            body_text=body_text,
            body_html=body_html,
            snippet=data.get("snippet", ""),
            labels=data.get("labelIds", []),
        )

    @staticmethod
    def _parse_date(date_header: Optional[str], internal_date: Optional[str]) -> datetime:
        """Date header first, then Gmail's internalDate (epoch ms), then now."""
        if date_header:
            try:
                date = parsedate_to_datetime(date_header)
                if date.tzinfo is None:
                    date = date.replace(tzinfo=timezone.utc)
                return date
            except (TypeError, ValueError):
                pass
        if internal_date:
            try:
                return datetime.fromtimestamp(int(internal_date) / 1000, tz=timezone.utc)
            except (TypeError, ValueError, OSError):
                pass
        return datetime.now(timezone.utc)

    def _extract_body(self, payload: dict) -> tuple[str, Optional[str]]:
        """Extract text and HTML body from message payload.

        The first text/plain part wins; an HTML part is flattened to text
        only when no plain part decodes.
        """
        body_text = ""
        body_html = None

        def extract_parts(part):
            nonlocal body_text, body_html

            mime_type = part.get("mimeType", "")
            data = (part.get("body") or {}).get("data")

            if data:
                if mime_type == "text/plain" and not body_text:
                    body_text = _decode_body(data)
                elif mime_type == "text/html" and body_html is None:
                    body_html = _decode_body(data)

            for child in part.get("parts") or []:
                extract_parts(child)

        extract_parts(payload)

        if not body_text and body_html:
            body_text = html_to_text(body_html)

        return body_text, body_html

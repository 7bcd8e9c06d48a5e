"""Pytest fixtures for Job Tracker tests."""
import base64
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from jobtrack.gmail.auth import MailboxSession
from jobtrack.gmail.client import EmailMessage
from jobtrack.persistence.models import Base, TrackedJob, User


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="function")
def test_db():
    """Create a fresh in-memory database for each test."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def session_factory(test_db):
    """Context-manager factory handing out the test session."""

    @contextmanager
    def _factory():
        yield test_db

    return _factory


@pytest.fixture
def test_user(test_db):
    """A persisted user owning jobs and a mailbox."""
    user = User(id="user-1", email="candidate@example.com")
    test_db.add(user)
    test_db.commit()
    return user


@pytest.fixture
def job_factory(test_db):
    """
    Factory fixture to persist tracked jobs.

    Usage:
        acme = job_factory("Acme", status="applied")
    """

    def _create_job(company_name, status="applied", owner_id=None, external_id=None, title="Backend Engineer"):
        job = TrackedJob(
            owner_id=owner_id,
            external_id=external_id or f"ext-{company_name.lower().replace(' ', '-')}",
            title=title,
            company_name=company_name,
            apply_link=f"https://jobs.example.com/{company_name.lower()}",
            status=status,
        )
        test_db.add(job)
        test_db.commit()
        return job

    return _create_job


# =============================================================================
# MAILBOX FIXTURES
# =============================================================================


@pytest.fixture
def mailbox_session():
    """A mailbox session for the single-user owner."""
    return MailboxSession(access_token="ya29.test-token", refresh_token="1//test-refresh")


@pytest.fixture
def email_factory():
    """Build parsed EmailMessage objects."""

    def _create_email(message_id, subject, sender="hr@acme.io", body=""):
        return EmailMessage(
            id=message_id,
            thread_id=f"thread-{message_id}",
            subject=subject,
            sender=sender,
            date=datetime(2026, 10, 15, 9, 30, tzinfo=timezone.utc),
            body_text=body,
        )

    return _create_email


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


@pytest.fixture
def gmail_payload():
    """Build raw Gmail API ``messages.get`` responses."""

    def _create_payload(message_id="msg-1", subject="Interview invitation", sender="HR <hr@acme.io>",
                        plain=None, html=None, date="Wed, 15 Oct 2026 09:30:00 +0000"):
        parts = []
        if plain is not None:
            parts.append({"mimeType": "text/plain", "body": {"data": _b64(plain)}})
        if html is not None:
            parts.append({"mimeType": "text/html", "body": {"data": _b64(html)}})

        headers = [{"name": "Subject", "value": subject}, {"name": "From", "value": sender}]
        if date:
            headers.append({"name": "Date", "value": date})

        return {
            "id": message_id,
            "threadId": f"thread-{message_id}",
            "snippet": subject,
            "labelIds": ["INBOX"],
            "internalDate": "1791970200000",
            "payload": {
                "mimeType": "multipart/alternative",
                "headers": headers,
                "body": {"size": 0},
                "parts": parts,
            },
        }

    return _create_payload


class FakeGmailClient:
    """In-memory stand-in for GmailClient."""

    def __init__(self, listing, messages=None):
        self.listing = listing
        self.messages = messages or {}
        self.queries = []
        self.fetched = []

    def list_messages(self, query, max_results=10):
        self.queries.append((query, max_results))
        if isinstance(self.listing, Exception):
            raise self.listing
        return list(self.listing)[:max_results]

    def get_message(self, message_id):
        self.fetched.append(message_id)
        item = self.messages[message_id]
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def fake_gmail():
    """
    Build a fake client plus a factory usable as ``client_factory``.

    Usage:
        client, factory = fake_gmail(["m1"], {"m1": email})
    """

    def _create(listing, messages=None):
        client = FakeGmailClient(listing, messages)
        return client, lambda session: client

    return _create

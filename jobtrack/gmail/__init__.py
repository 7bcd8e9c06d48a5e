"""Gmail integration for application tracking."""
from .auth import GmailAuthorizer, MailboxSession, MailboxSessionStore
from .classifier import Classification, Verdict, classify, extract_company_key
from .client import EmailMessage, GmailClient
from .exceptions import (
    MailboxError,
    MessageParseFailure,
    ProviderFailure,
    SessionExpired,
    Unauthenticated,
)
from .scanner import EmailUpdateRecord, MailboxScanner

__all__ = [
    "GmailAuthorizer",
    "MailboxSession",
    "MailboxSessionStore",
    "GmailClient",
    "EmailMessage",
    "MailboxScanner",
    "EmailUpdateRecord",
    "Classification",
    "Verdict",
    "classify",
    "extract_company_key",
    "MailboxError",
    "Unauthenticated",
    "SessionExpired",
    "ProviderFailure",
    "MessageParseFailure",
]

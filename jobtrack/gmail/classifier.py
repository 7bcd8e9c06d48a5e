"""Keyword classifier for recruiter responses.

Pure functions only: no state and no I/O, so the scanner can call it per
message and tests can exercise it without a mailbox.
"""
from dataclasses import dataclass
from enum import Enum
from email.utils import parseaddr
from typing import Optional


class Verdict(Enum):
    """Outcome of classifying a message."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NONE = "none"


POSITIVE_KEYWORDS = (
    "interview",
    "next step",
    "move forward",
    "schedule",
    "congratulations",
    "offer",
    "phone screen",
)

NEGATIVE_KEYWORDS = (
    "unfortunately",
    "not moving forward",
    "not selected",
    "regret to inform",
    "position has been filled",
    "other candidates",
    "decided not to",
)

# Positive messages containing these suggest an interview stage
INTERVIEW_HINTS = ("interview", "schedule")
OFFER_HINTS = ("offer",)


@dataclass(frozen=True)
class Classification:
    """Verdict for one message plus the company it came from."""

    verdict: Verdict
    company_key: str
    suggested_status: Optional[str] = None

    @property
    def is_job_signal(self) -> bool:
        return self.verdict is not Verdict.NONE


def _contains_any(haystack: str, keywords) -> bool:
    return any(keyword in haystack for keyword in keywords)


def extract_company_key(sender: str) -> str:
    """Derive a company token from a sender header.

    ``"Acme HR <hr@careers.acme.io>"`` gives ``"careers"``; ``hr@acme.io``
    gives ``"acme"``. When no domain can be found the whole header is
    returned lowercased.
    """
    sender = sender or ""
    _, address = parseaddr(sender)
    address = address or sender

    if "@" in address:
        domain = address.rsplit("@", 1)[1].strip().strip(">")
        key = domain.split(".", 1)[0].strip().lower()
        if key:
            return key

    return sender.strip().lower()


def suggest_status(verdict: Verdict, haystack: str) -> Optional[str]:
    """Map a verdict to the job status it implies, if any."""
    if verdict is Verdict.NEGATIVE:
        return "rejected"
    if verdict is Verdict.POSITIVE:
        if _contains_any(haystack, INTERVIEW_HINTS):
            return "interviewing"
        if _contains_any(haystack, OFFER_HINTS):
            return "offered"
    return None


def classify(subject: str, body: str = "", sender: str = "") -> Classification:
    """
    Classify a message as a positive, negative or irrelevant job signal.

    Matching is a case-insensitive substring test over subject and body.
    A negative keyword always wins over a positive one.

    Args:
        subject: Subject header
        body: Plain-text body (may be empty)
        sender: From header

    Returns:
        Classification with verdict, company key and suggested status
    """
    haystack = f"{(subject or '').lower()}\n{(body or '').lower()}"

    if _contains_any(haystack, NEGATIVE_KEYWORDS):
        verdict = Verdict.NEGATIVE
    elif _contains_any(haystack, POSITIVE_KEYWORDS):
        verdict = Verdict.POSITIVE
    else:
        verdict = Verdict.NONE

    return Classification(
        verdict=verdict,
        company_key=extract_company_key(sender),
        suggested_status=suggest_status(verdict, haystack),
    )

"""Mailbox scanning exceptions for Job Tracker."""


class MailboxError(Exception):
    """Base exception for mailbox errors."""

    pass


class Unauthenticated(MailboxError):
    """Raised when a scan is requested but no mailbox is connected."""

    def __init__(self, owner_id: str | None = None):
        self.owner_id = owner_id
        super().__init__("Mailbox not connected")


class SessionExpired(MailboxError):
    """Raised when the mail provider rejects the stored credential."""

    def __init__(self, reason: str = ""):
        self.reason = reason
        message = "Mailbox authorization rejected, reconnect required"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ProviderFailure(MailboxError):
    """Raised when the mail provider call fails for a non-auth reason."""

    def __init__(self, operation: str, reason: str = ""):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Mail provider {operation} failed: {reason}")


class MessageParseFailure(MailboxError):
    """Raised when a single message cannot be decoded."""

    def __init__(self, message_id: str, reason: str = ""):
        self.message_id = message_id
        self.reason = reason
        super().__init__(f"Could not parse message {message_id}: {reason}")

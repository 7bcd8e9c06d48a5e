"""Tracked-job exceptions for Job Tracker."""


class TrackingError(Exception):
    """Base exception for tracked-job errors."""

    pass


class JobValidationError(TrackingError):
    """Raised when a job is saved without its required fields."""

    def __init__(self, missing_fields: list[str]):
        self.missing_fields = missing_fields
        super().__init__(f"Missing required fields: {', '.join(missing_fields)}")


class InvalidStatusError(TrackingError):
    """Raised when a status outside the job state machine is requested."""

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Invalid status: {status}")


class PersistenceFailure(TrackingError):
    """Raised when the record store cannot complete a write."""

    def __init__(self, operation: str, reason: str = ""):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store {operation} failed: {reason}")

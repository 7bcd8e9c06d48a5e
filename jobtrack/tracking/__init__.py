"""Job tracking services."""
from .email_sync import EmailSync, ScanReport
from .exceptions import (
    InvalidStatusError,
    JobValidationError,
    PersistenceFailure,
    TrackingError,
)
from .job_store import JobStore
from .reconciler import ReconcileResult, ReconcileSummary, StatusReconciler

__all__ = [
    "EmailSync",
    "ScanReport",
    "JobStore",
    "StatusReconciler",
    "ReconcileResult",
    "ReconcileSummary",
    "TrackingError",
    "JobValidationError",
    "InvalidStatusError",
    "PersistenceFailure",
]

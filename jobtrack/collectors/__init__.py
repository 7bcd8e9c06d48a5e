"""Job-search providers."""
from .base import BaseCollector, JobPosting, SearchFilters
from .jsearch_collector import JSearchCollector

__all__ = [
    "BaseCollector",
    "JobPosting",
    "SearchFilters",
    "JSearchCollector",
]

"""Base job-search interface."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class SearchFilters:
    """Optional filters passed through to the search provider."""

    employment_type: Optional[str] = None  # FULLTIME, PARTTIME, CONTRACTOR, INTERN
    remote_only: bool = False
    requirements: Optional[str] = None  # e.g. no_experience, under_3_years_experience
    date_posted: Optional[str] = None  # all, today, 3days, week, month


@dataclass
class JobPosting:
    """Standardized job posting returned by a search provider."""

    external_id: str
    title: str
    company: str
    apply_link: Optional[str] = None
    source: str = ""
    location: Optional[str] = None
    description: Optional[str] = None
    employment_type: Optional[str] = None
    remote: bool = False
    posted_date: Optional[datetime] = None

    def __post_init__(self):
        """Normalize fields after initialization."""
        self.title = (self.title or "").strip()
        self.company = (self.company or "").strip()

        if self.location:
            location_lower = self.location.lower()
            if any(term in location_lower for term in ["remote", "anywhere", "worldwide"]):
                self.remote = True


class BaseCollector(ABC):
    """Abstract base class for job-search providers."""

    name: str = "base"

    @abstractmethod
    async def search(
        self,
        query: str,
        location: Optional[str] = None,
        filters: Optional[SearchFilters] = None,
    ) -> list[JobPosting]:
        """
        Search for postings.

        Args:
            query: Free-text search terms
            location: Optional location appended to the query
            filters: Optional provider filters

        Returns:
            List of JobPosting objects.
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"

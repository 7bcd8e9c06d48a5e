"""JSearch (RapidAPI) job search provider."""
import logging
from typing import Optional

import aiohttp

from .base import BaseCollector, JobPosting, SearchFilters
from .utils import http_get_json, parse_date_iso

logger = logging.getLogger(__name__)


class JSearchCollector(BaseCollector):
    """Search postings through the JSearch API via RapidAPI."""

    name = "jsearch"
    BASE_URL = "https://jsearch.p.rapidapi.com/search"

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_host: str = "jsearch.p.rapidapi.com",
        num_pages: int = 1,
    ):
        """
        Initialize JSearch collector.

        Args:
            api_key: RapidAPI key for JSearch
            api_host: RapidAPI host header
            num_pages: Result pages requested per search
        """
        self.api_key = api_key
        self.api_host = api_host
        self.num_pages = num_pages

    async def search(
        self,
        query: str,
        location: Optional[str] = None,
        filters: Optional[SearchFilters] = None,
    ) -> list[JobPosting]:
        """Search JSearch for postings matching the query."""
        if not self.api_key:
            logger.info("JSearch API key not configured, skipping")
            return []

        if not query or not query.strip():
            return []

        async with aiohttp.ClientSession() as session:
            data = await http_get_json(
                session,
                self.BASE_URL,
                headers=self._headers(),
                params=self.build_params(query, location, filters),
            )

        if data is None:
            logger.error("JSearch search failed for query '%s'", query)
            return []

        postings = []
        for item in data.get("data") or []:
            posting = self._parse_job(item)
            if posting:
                postings.append(posting)

        logger.info("JSearch returned %d postings for '%s'", len(postings), query)
        return postings

    def _headers(self) -> dict:
        return {
            "X-RapidAPI-Key": self.api_key,
            "X-RapidAPI-Host": self.api_host,
        }

    def build_params(
        self,
        query: str,
        location: Optional[str] = None,
        filters: Optional[SearchFilters] = None,
    ) -> dict:
        """Query-string parameters for one search request."""
        query = query.strip()
        params = {
            "query": f"{query} in {location.strip()}" if location and location.strip() else query,
            "page": "1",
            "num_pages": str(self.num_pages),
        }

        if filters:
            if filters.employment_type:
                params["employment_types"] = filters.employment_type
            if filters.remote_only:
                params["work_from_home"] = "true"
            if filters.requirements:
                params["job_requirements"] = filters.requirements
            if filters.date_posted:
                params["date_posted"] = filters.date_posted

        return params

    def _parse_job(self, data: dict) -> Optional[JobPosting]:
        """Parse JSearch job data to JobPosting."""
        external_id = data.get("job_id")
        if not external_id:
            return None

        city = data.get("job_city")
        state = data.get("job_state")
        location_parts = [p for p in (city, state) if p]
        location = ", ".join(location_parts) if location_parts else data.get("job_country")

        return JobPosting(
            external_id=external_id,
            title=data.get("job_title") or "",
            company=data.get("employer_name") or "",
            apply_link=data.get("job_apply_link"),
            source=self.name,
            location=location,
            description=data.get("job_description"),
            employment_type=data.get("job_employment_type"),
            remote=bool(data.get("job_is_remote")),
            posted_date=parse_date_iso(data.get("job_posted_at_datetime_utc")),
        )

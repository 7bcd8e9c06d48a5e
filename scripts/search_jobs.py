#!/usr/bin/env python3
"""Search JSearch and optionally save results to the tracked list.

Usage:
    python -m scripts.search_jobs "python developer" --location Berlin --remote
    python -m scripts.search_jobs "data engineer" --save 1 3
"""
import argparse
import asyncio
import logging
import sys

from scripts.bootstrap import configure, get_session, settings
from jobtrack.collectors import JSearchCollector, SearchFilters
from jobtrack.tracking.exceptions import TrackingError
from jobtrack.tracking.job_store import JobStore

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("query", help="Search terms")
    parser.add_argument("--location", default=None)
    parser.add_argument("--employment-type", default=None, help="FULLTIME, PARTTIME, CONTRACTOR, INTERN")
    parser.add_argument("--remote", action="store_true", help="Remote jobs only")
    parser.add_argument("--requirements", default=None, help="e.g. no_experience")
    parser.add_argument("--date-posted", default=None, help="all, today, 3days, week, month")
    parser.add_argument("--save", type=int, nargs="*", default=[], help="Result numbers to save")
    parser.add_argument("--owner", default=None, help="User id owning saved jobs")
    args = parser.parse_args()

    configure(with_db=False)

    collector = JSearchCollector(api_key=settings.jsearch_api_key, api_host=settings.jsearch_api_host)
    filters = SearchFilters(
        employment_type=args.employment_type,
        remote_only=args.remote,
        requirements=args.requirements,
        date_posted=args.date_posted,
    )
    postings = asyncio.run(collector.search(args.query, location=args.location, filters=filters))

    if not postings:
        print("No jobs found.")
        return 0

    for number, posting in enumerate(postings, start=1):
        where = posting.location or ("Remote" if posting.remote else "Anywhere")
        print(f"{number:3}. {posting.title} - {posting.company} ({where})")

    if not args.save:
        return 0

    configure()
    with get_session() as session:
        store = JobStore(session)
        for number in args.save:
            if not 1 <= number <= len(postings):
                logger.warning("No result number %d", number)
                continue
            posting = postings[number - 1]
            try:
                job = store.save_job(
                    external_id=posting.external_id,
                    title=posting.title,
                    company_name=posting.company,
                    apply_link=posting.apply_link,
                    owner_id=args.owner,
                )
            except TrackingError as e:
                logger.error("Failed to save %s: %s", posting.title, e)
                continue
            print(f"Saved: {job.title} - {job.company_name}")

    return 0


if __name__ == "__main__":
    sys.exit(main())

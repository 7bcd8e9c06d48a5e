"""HTTP and parsing helpers shared by job-search providers."""
import asyncio
import logging
import random
from datetime import datetime
from typing import Optional

import aiohttp

logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 30.0


def is_retryable(status: int) -> bool:
    """Rate limiting and server errors are worth another attempt."""
    return status == 429 or status >= 500


def backoff_delay(attempt: int, retry_after: Optional[str] = None) -> float:
    """Seconds to wait before the next attempt.

    A numeric ``Retry-After`` header (RapidAPI sends one with 429s) wins over
    exponential backoff with jitter. Either way the wait is capped.
    """
    if retry_after:
        try:
            return min(max(float(retry_after), 0.0), MAX_BACKOFF_SECONDS)
        except ValueError:
            pass
    return min(2 ** attempt + random.uniform(0, 1), MAX_BACKOFF_SECONDS)


async def http_get_json(
    session: aiohttp.ClientSession,
    url: str,
    *,
    retries: int = 3,
    **kwargs,
) -> dict | list | None:
    """GET ``url`` and parse the JSON body, retrying transient failures.

    Returns None once retries are exhausted or on any other non-200 status.
    """
    for attempt in range(retries):
        last_attempt = attempt == retries - 1
        try:
            async with session.get(url, **kwargs) as resp:
                if resp.status == 200:
                    return await resp.json()
                if not is_retryable(resp.status):
                    logger.debug("HTTP %d from %s", resp.status, url)
                    return None
                if last_attempt:
                    logger.error("HTTP %d from %s after %d attempts", resp.status, url, retries)
                    return None
                wait = backoff_delay(attempt, resp.headers.get("Retry-After"))
                logger.warning(
                    "HTTP %d from %s, retrying in %.1fs (attempt %d/%d)",
                    resp.status, url, wait, attempt + 1, retries,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            if last_attempt:
                logger.error("All %d attempts failed for %s: %s", retries, url, e)
                return None
            wait = backoff_delay(attempt)
            logger.warning(
                "Request to %s failed: %s, retrying in %.1fs (attempt %d/%d)",
                url, e, wait, attempt + 1, retries,
            )
        await asyncio.sleep(wait)
    return None


def parse_date_iso(value) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (trailing ``Z`` allowed); None when unparseable."""
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None

"""
Shared polling and pagination loops for the report clients.

Both loops are deliberately simple: no jitter, no per-request retries. A
request that fails inside a poll or page fetch propagates to the caller.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Tuple, TypeVar

from core.config import Settings
from core.exceptions import ReportTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PollPolicy:
    """Delay schedule: initial_delay, multiplied by backoff per attempt, capped at max_delay"""
    initial_delay: float = 5.0
    backoff: float = 1.5
    max_delay: float = 60.0
    max_attempts: int = 60

    @classmethod
    def from_settings(cls, settings: Settings) -> "PollPolicy":
        return cls(
            initial_delay=settings.POLL_INITIAL_DELAY,
            backoff=settings.POLL_BACKOFF,
            max_delay=settings.POLL_MAX_DELAY,
            max_attempts=settings.POLL_MAX_ATTEMPTS,
        )

    @classmethod
    def fixed(cls, interval: float, max_attempts: int = 60) -> "PollPolicy":
        return cls(initial_delay=interval, backoff=1.0, max_delay=interval, max_attempts=max_attempts)

    def delay(self, attempt: int) -> float:
        """Sleep before the given (1-based) attempt's retry"""
        return min(self.initial_delay * (self.backoff ** (attempt - 1)), self.max_delay)


async def poll_until(
    check: Callable[[], Awaitable[T]],
    is_done: Callable[[T], bool],
    policy: PollPolicy,
    description: str = "external job",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Call ``check`` until ``is_done`` accepts its result.

    Raises:
        ReportTimeoutError: after ``policy.max_attempts`` unsuccessful checks
    """
    for attempt in range(1, policy.max_attempts + 1):
        result = await check()
        if is_done(result):
            logger.info(f"{description} ready after {attempt} attempt(s)")
            return result

        if attempt < policy.max_attempts:
            delay = policy.delay(attempt)
            logger.info(
                f"{description} not ready (attempt {attempt}/{policy.max_attempts}), "
                f"waiting {delay:.1f}s"
            )
            await sleep(delay)

    raise ReportTimeoutError(
        f"Timed out waiting for {description}",
        context={"description": description, "attempts": policy.max_attempts}
    )


async def fetch_all_pages(
    fetch_page: Callable[[Optional[Any]], Awaitable[Tuple[List[T], Optional[Any]]]],
    max_pages: int = 100,
    page_delay: float = 0.1,
    description: str = "report rows",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> List[T]:
    """
    Collect rows from ``fetch_page(cursor) -> (rows, next_cursor)``.

    Stops when the cursor is exhausted. Reaching ``max_pages`` with a cursor
    still pending logs a warning and returns the rows collected so far.
    """
    rows: List[T] = []
    cursor = None

    for page in range(1, max_pages + 1):
        page_rows, cursor = await fetch_page(cursor)
        rows.extend(page_rows)
        logger.debug(f"Fetched page {page} of {description}: {len(page_rows)} rows")

        if not cursor:
            logger.info(f"Fetched {len(rows)} {description} in {page} page(s)")
            return rows
        if page < max_pages:
            await sleep(page_delay)

    logger.warning(
        f"Stopped fetching {description} at the {max_pages}-page limit; "
        f"returning {len(rows)} rows, more are available"
    )
    return rows

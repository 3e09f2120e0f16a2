from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, before_sleep_log, stop_after_attempt, wait_incrementing

log = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    func: Callable[[], Awaitable[T]],
    retries: int,
    backoff_ms: int,
    logger: Optional[logging.Logger] = None,
) -> T:
    """Await ``func`` up to ``retries + 1`` times.

    The delay grows linearly: ``backoff_ms`` after the first failure,
    ``2 * backoff_ms`` after the second, and so on. The last exception is
    re-raised once attempts run out.
    """
    step = max(backoff_ms, 0) / 1000
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(retries, 0) + 1),
        wait=wait_incrementing(start=step, increment=step),
        before_sleep=before_sleep_log(logger or log, logging.WARNING),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            result = await func()
    return result

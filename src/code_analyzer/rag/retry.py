"""Retry with exponential backoff (tenacity) and an injectable async sleep."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 3,
    base_delay: float = 1.0,
    should_retry: Callable[[BaseException], bool] = lambda e: True,
    sleep: Sleep = asyncio.sleep,
    label: str = "operation",
) -> T:
    """Await operation(), retrying up to max_retries times on retryable errors.

    Delays are base_delay, 2*base_delay, 4*base_delay, ... The last error is
    re-raised once retries are exhausted, and immediately when should_retry()
    rejects it. Cancellation is never retried.
    """

    def log_retry(state: RetryCallState) -> None:
        logger.debug(
            "retry: %s failed (%s), retry %d/%d in %.1fs",
            label, state.outcome.exception(), state.attempt_number, max_retries, state.next_action.sleep,
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=base_delay, min=0),
        retry=retry_if_exception(lambda e: isinstance(e, Exception) and should_retry(e)),
        sleep=sleep,
        before_sleep=log_retry,
        reraise=True,
    )
    return await retrying(operation)

"""Retry-with-backoff executor

Thin wrapper over tenacity's ``AsyncRetrying`` for transient failures. The
caller decides which exceptions are worth retrying through ``retry_on``;
anything else is raised on the first attempt.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

OnRetry = Callable[[int, BaseException], Optional[Awaitable[None]]]


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    initial_delay: float = 0.5,
    backoff_multiplier: float = 2.0,
    on_retry: Optional[OnRetry] = None,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run ``operation`` until it succeeds or ``max_attempts`` is reached

    Args:
        operation: Zero-argument coroutine function to execute
        max_attempts: Total number of attempts (>= 1)
        initial_delay: Seconds to wait before the second attempt
        backoff_multiplier: Factor applied to the delay after each wait
            (1.0 gives a fixed delay)
        on_retry: Called with (attempt, error) before waiting; may be async
        retry_on: Exception types that are considered transient
        sleep: Awaitable sleep function (injectable for tests)

    Returns:
        The operation's result

    Raises:
        The last error once every attempt has failed
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    if backoff_multiplier == 1:
        wait = wait_fixed(initial_delay)
    else:
        wait = wait_exponential(multiplier=initial_delay, exp_base=backoff_multiplier)

    async def before_sleep(retry_state: RetryCallState):
        error = retry_state.outcome.exception()
        logger.debug(
            f"Attempt {retry_state.attempt_number}/{max_attempts} failed ({error!r}), "
            f"retrying in {retry_state.next_action.sleep}s"
        )
        if on_retry is not None:
            outcome = on_retry(retry_state.attempt_number, error)
            if asyncio.iscoroutine(outcome):
                await outcome

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait,
        retry=retry_if_exception_type(retry_on),
        before_sleep=before_sleep,
        sleep=sleep,
        reraise=True,
    )

    async for attempt in retrying:
        with attempt:
            return await operation()

"""
Retry and bounded-polling utilities for external calls.
"""

import asyncio
import inspect
import logging
import time
from functools import wraps
from typing import Any, Callable, Optional

from subnetbox.commands.constants import (
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_RETRY_DELAY,
    POLL_BACKOFF,
    POLL_MAX_DELAY,
)
from subnetbox.commands.errors import PollTimeoutError

logger = logging.getLogger(__name__)


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        delay: float = DEFAULT_RETRY_DELAY,
        backoff: float = DEFAULT_RETRY_BACKOFF,
        exceptions: tuple = (Exception,),
    ):
        self.max_attempts = max_attempts
        self.delay = delay
        self.backoff = backoff
        self.exceptions = exceptions


def with_retry(
    config: Optional[RetryConfig] = None,
    exceptions: Optional[tuple] = None,
    max_attempts: Optional[int] = None,
    delay: Optional[float] = None,
    backoff: Optional[float] = None,
):
    """
    Decorator to add retry logic to synchronous functions.

    Args:
        config: RetryConfig instance (takes precedence over individual params)
        exceptions: Tuple of exception types to retry on
        max_attempts: Maximum number of attempts
        delay: Initial delay between retries in seconds
        backoff: Exponential backoff multiplier
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            retry_config = config or RetryConfig(
                max_attempts=max_attempts or DEFAULT_RETRY_ATTEMPTS,
                delay=delay if delay is not None else DEFAULT_RETRY_DELAY,
                backoff=backoff or DEFAULT_RETRY_BACKOFF,
                exceptions=exceptions or (Exception,),
            )

            last_exception = None
            current_delay = retry_config.delay

            for attempt in range(retry_config.max_attempts):
                try:
                    return func(*args, **kwargs)
                except retry_config.exceptions as e:
                    last_exception = e

                    # Don't retry on the last attempt
                    if attempt == retry_config.max_attempts - 1:
                        break

                    logger.debug(
                        "%s failed (attempt %d/%d): %s",
                        func.__name__,
                        attempt + 1,
                        retry_config.max_attempts,
                        e,
                    )
                    time.sleep(current_delay)
                    current_delay *= retry_config.backoff

            raise last_exception

        return wrapper

    return decorator


async def poll_until(
    check: Callable[[], Any],
    *,
    timeout: float,
    delay: float,
    backoff: float = POLL_BACKOFF,
    max_delay: float = POLL_MAX_DELAY,
    description: str = "condition",
) -> Any:
    """
    Call ``check`` until it returns a truthy value, with exponential backoff.

    ``check`` may be a plain callable or return an awaitable. Exceptions raised
    by ``check`` propagate unchanged.

    Args:
        check: Zero-argument callable evaluated once per attempt
        timeout: Total seconds allowed before giving up
        delay: Initial delay between attempts in seconds
        backoff: Multiplier applied to the delay after each attempt
        max_delay: Upper bound for a single delay
        description: Human-readable name used in the timeout message

    Returns:
        The first truthy value returned by ``check``

    Raises:
        PollTimeoutError: If the deadline passes before ``check`` succeeds
    """
    deadline = time.monotonic() + timeout
    current_delay = delay
    attempts = 0

    while True:
        result = check()
        if inspect.isawaitable(result):
            result = await result
        attempts += 1
        if result:
            logger.debug("%s satisfied after %d attempt(s)", description, attempts)
            return result

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise PollTimeoutError(
                f"Timed out after {timeout}s waiting for {description}",
                timeout_seconds=timeout,
                attempts=attempts,
            )

        await asyncio.sleep(min(current_delay, remaining))
        current_delay = min(current_delay * backoff, max_delay)

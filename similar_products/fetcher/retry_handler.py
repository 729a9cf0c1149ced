"""Retry policy with exponential backoff and jitter."""

import asyncio
import random
from typing import Awaitable, Callable, Iterable, Optional


def calculate_backoff_delay(
    attempt: int,
    base_delay: float = 0.1,
    max_delay: float = 1.0,
    jitter_max: float = 0.05
) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Formula: min(max_delay, (base_delay * (2 ** attempt)) + random_jitter)

    Args:
        attempt: Retry attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay cap in seconds
        jitter_max: Maximum jitter to add in seconds

    Returns:
        Delay in seconds
    """
    exponential_delay = base_delay * (2 ** attempt)
    jitter = random.uniform(0, jitter_max)
    return min(max_delay, exponential_delay + jitter)


class RetryHandler:
    """
    Decides whether a failed catalog call is retried and how long to wait.

    Retries on: timeouts, transport errors and the configured status codes
    Never retries: 404 (definitive answer) or other client errors
    Backoff: Exponential with jitter, capped at ``max_delay``
    """

    DEFAULT_RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 0.1,
        max_delay: float = 1.0,
        jitter_max: float = 0.05,
        retryable_status_codes: Optional[Iterable[int]] = None,
        sleeper: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Initialize retry handler.

        Args:
            max_retries: Additional attempts allowed after the first one
            base_delay: Base delay for exponential backoff
            max_delay: Maximum delay cap
            jitter_max: Maximum jitter to add
            retryable_status_codes: HTTP status codes that trigger retries
            sleeper: Async sleep function (default: asyncio.sleep)
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter_max = jitter_max
        self.retryable_status_codes = frozenset(
            retryable_status_codes if retryable_status_codes is not None
            else self.DEFAULT_RETRYABLE_STATUS_CODES
        )
        self._sleep = sleeper

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def is_retryable(
        self,
        status_code: Optional[int] = None,
        is_timeout: bool = False,
        is_transport_error: bool = False
    ) -> bool:
        """
        Check if error is retryable.

        Args:
            status_code: HTTP status code
            is_timeout: Whether the error was a timeout
            is_transport_error: Whether the connection failed before a response

        Returns:
            True if error should be retried
        """
        if is_timeout or is_transport_error:
            return True
        return status_code in self.retryable_status_codes

    def delay_for(self, attempt: int) -> float:
        return calculate_backoff_delay(attempt, self.base_delay, self.max_delay, self.jitter_max)

    async def backoff(self, attempt: int) -> None:
        """Wait before the next attempt (``attempt`` is the 0-indexed failed attempt)."""
        await self._sleep(self.delay_for(attempt))

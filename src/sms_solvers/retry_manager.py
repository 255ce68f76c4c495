"""
Retry Manager for the SMS solvers system.

Re-executes a single async operation with exponential backoff until it
succeeds, raises a non-retryable error, or the retry budget is exhausted.
The last error is always re-raised unchanged, so the caller sees exactly
what the backend reported.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from .config import RetryConfig
from .exceptions import classify_error

T = TypeVar("T")

RetryCallback = Callable[[BaseException, float], None]


def _default_is_retryable(error: BaseException) -> bool:
    return classify_error(error)[0]


class RetryManager:
    """
    Manages retry logic with exponential backoff.

    A RetryManager holds only the immutable policy; attempt counters live in
    each execute() call, so one instance can serve concurrent operations.
    """

    def __init__(self, config: Optional[RetryConfig] = None) -> None:
        """
        Initialize the retry manager.

        Args:
            config: Retry policy (delays, factor, max_retries)
        """
        self._config = config or RetryConfig()

    @property
    def config(self) -> RetryConfig:
        return self._config

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate wait time with exponential backoff.

        delay(n) = min_delay * factor^n, clamped to [min_delay, max_delay].

        Args:
            attempt: The retry number (0-indexed)

        Returns:
            The delay in seconds before the next attempt
        """
        cfg = self._config
        try:
            delay = cfg.min_delay_seconds * (cfg.factor ** attempt)
        except OverflowError:
            return cfg.max_delay_seconds
        return max(cfg.min_delay_seconds, min(delay, cfg.max_delay_seconds))

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        is_retryable: Optional[Callable[[BaseException], bool]] = None,
        on_retry: Optional[RetryCallback] = None,
    ) -> T:
        """
        Execute an operation with retry logic and exponential backoff.

        Args:
            operation: Zero-argument factory returning a fresh awaitable per attempt
            is_retryable: Decides whether an exception is worth another attempt.
                Defaults to the error's own is_retryable() flag.
            on_retry: Called with (error, delay) before each sleep

        Returns:
            The operation's result

        Raises:
            Exception: The last error raised by the operation, unchanged
        """
        check = is_retryable or _default_is_retryable
        max_attempts = self._config.max_attempts
        attempts = 0

        while True:
            try:
                return await operation()
            except Exception as e:
                attempts += 1
                if not check(e) or attempts >= max_attempts:
                    raise

                delay = self.calculate_delay(attempts - 1)
                if on_retry is not None:
                    on_retry(e, delay)
                await asyncio.sleep(delay)

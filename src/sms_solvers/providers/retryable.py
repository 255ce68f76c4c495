"""
Retry decorator for providers.

RetryableProvider wraps any Provider and re-exposes the same contract.
Number acquisition and code polling are retried with exponential backoff
while the raised error reports is_retryable(); finish and cancel pass
through untouched. Errors are never rewrapped, so their identity and
classification reach the caller as the backend raised them.
"""

from typing import Optional

from ..audit_logger import AuditLogger
from ..config import RetryConfig
from ..enums import LogLevel
from ..exceptions import classify_error
from ..models import DialCode, FullNumber, SmsCode, TaskId
from ..retry_manager import RetryCallback, RetryManager
from .base import Provider


class RetryableProvider(Provider):
    """Provider decorator adding retry with exponential backoff."""

    COMPONENT = "retryable_provider"

    def __init__(
        self,
        inner: Provider,
        retry_config: Optional[RetryConfig] = None,
        on_retry: Optional[RetryCallback] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Args:
            inner: The provider to decorate
            retry_config: Backoff policy (defaults to RetryConfig())
            on_retry: Observer called with (error, delay) before each retry
            logger: Optional audit logger for retry events
        """
        self._inner = inner
        self._retry = RetryManager(retry_config)
        self._on_retry = on_retry
        self._logger = logger

    def with_on_retry(self, on_retry: RetryCallback) -> "RetryableProvider":
        """Return a copy of this decorator with a different retry observer."""
        return RetryableProvider(
            self._inner, self._retry.config, on_retry, self._logger
        )

    @property
    def inner(self) -> Provider:
        return self._inner

    @property
    def retry_config(self) -> RetryConfig:
        return self._retry.config

    def _notify(self, operation: str, subject: str):
        def notify(error: BaseException, delay: float) -> None:
            if self._logger:
                retryable, retry_operation = classify_error(error)
                self._logger.log(
                    LogLevel.WARN,
                    self.COMPONENT,
                    f"Retrying {operation} after transient error",
                    {
                        "subject": subject,
                        "delay_seconds": delay,
                        "error": str(error),
                        "error_type": type(error).__name__,
                        "is_retryable": retryable,
                        "should_retry_operation": retry_operation,
                    },
                )
            if self._on_retry is not None:
                self._on_retry(error, delay)

        return notify

    async def get_phone_number(
        self, country: str, service: str
    ) -> tuple[TaskId, FullNumber]:
        return await self._retry.execute(
            lambda: self._inner.get_phone_number(country, service),
            on_retry=self._notify("get_phone_number", f"{country}/{service}"),
        )

    async def get_sms_code(self, task_id: TaskId) -> Optional[SmsCode]:
        return await self._retry.execute(
            lambda: self._inner.get_sms_code(task_id),
            on_retry=self._notify("get_sms_code", str(task_id)),
        )

    async def finish_activation(self, task_id: TaskId) -> None:
        await self._inner.finish_activation(task_id)

    async def cancel_activation(self, task_id: TaskId) -> None:
        await self._inner.cancel_activation(task_id)

    def is_dial_code_supported(self, dial_code: DialCode) -> bool:
        return self._inner.is_dial_code_supported(dial_code)

    def supports_service(self, service: str) -> bool:
        return self._inner.supports_service(service)

    def available_countries(self, service: str) -> list[str]:
        return self._inner.available_countries(service)

    def supported_services(self) -> list[str]:
        return self._inner.supported_services()

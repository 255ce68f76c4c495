"""
SMS Solver Service - orchestration of number acquisition and code polling.

This module composes a Provider (optionally wrapped in RetryableProvider)
with a ServiceConfig and a DialCodeRegistry. It exposes:
- Number acquisition with dial-code resolution and number parsing
- A polling state machine bounded by timeout and cooperative cancellation
- A full verification flow that retries with a fresh number when the
  error says the operation is worth repeating

Every exit from polling other than success makes exactly one best-effort
cancel_activation call. If that call fails, CancelFailedError is raised
instead of the triggering error.
"""

import asyncio
import time
from typing import NoReturn, Optional

from .audit_logger import AuditLogger
from .config import ServiceConfig
from .dial_codes import DialCodeRegistry
from .enums import LogLevel, PollState
from .exceptions import (
    CancelFailedError,
    DialCodeBlacklistedError,
    MalformedNumberError,
    NoAvailableDialCodesError,
    NoDialCodeError,
    ProviderFailureError,
    SmsSolversError,
    SmsTimeoutError,
    ValidationError,
    VerificationCancelledError,
    classify_error,
)
from .models import Number, PollStats, SmsCode, SmsTaskResult, TaskId
from .providers.base import Provider


class CancellationToken:
    """
    Cooperative cancellation signal.

    The caller keeps a reference and calls cancel() from any task on the
    same event loop; the polling loop notices at its next check, and an
    in-progress inter-poll sleep wakes up immediately.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until cancelled or until timeout elapses.

        Returns:
            True if the token was cancelled
        """
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True


class SmsSolverService:
    """
    Main orchestrator for SMS verification.

    Usage:
        service = SmsSolverService(RetryableProvider(adapter))
        task = await service.get_number("UA", "tg")
        code = await service.wait_for_sms_code(task.task_id)
        await service.finish(task.task_id)
    """

    COMPONENT = "sms_solver_service"

    def __init__(
        self,
        provider: Provider,
        config: Optional[ServiceConfig] = None,
        dial_codes: Optional[DialCodeRegistry] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the service.

        Args:
            provider: Backend to use (wrap it in RetryableProvider for retries)
            config: Timeout and poll interval (defaults to the balanced preset)
            dial_codes: Country to dial code lookup (defaults to the built-in table)
            logger: Optional audit logger
        """
        self._provider = provider
        self._config = config or ServiceConfig()
        self._dial_codes = dial_codes or DialCodeRegistry()
        self._logger = logger

    @classmethod
    def with_provider(cls, provider: Provider) -> "SmsSolverService":
        """Create a service with the default configuration."""
        return cls(provider)

    @property
    def provider(self) -> Provider:
        return self._provider

    @property
    def config(self) -> ServiceConfig:
        return self._config

    @property
    def dial_codes(self) -> DialCodeRegistry:
        return self._dial_codes

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------

    async def get_number(self, country: str, service: str) -> SmsTaskResult:
        """
        Rent a phone number for the given country and service.

        The dial code is resolved and checked against the provider's
        blacklist before anything is rented.

        Raises:
            NoDialCodeError: Unknown country
            DialCodeBlacklistedError: Provider refuses the country's dial code
            ProviderFailureError: The backend call failed
            MalformedNumberError: The returned number does not carry the
                expected dial code (the task has been cancelled)
            CancelFailedError: As above, but releasing the task also failed
        """
        country = country.strip().upper()
        dial_code = self._dial_codes.dial_code_for(country)
        if dial_code is None:
            raise NoDialCodeError(country)
        if not self._provider.is_dial_code_supported(dial_code):
            raise DialCodeBlacklistedError(dial_code.value, country)

        try:
            task_id, full_number = await self._provider.get_phone_number(
                country, service
            )
        except Exception as e:
            error = ProviderFailureError(e)
            self._log_error(
                "Failed to acquire number",
                {"country": country, "service": service},
                error,
            )
            raise error from e

        try:
            number = Number.from_full_number(full_number, dial_code)
        except ValidationError as e:
            trigger = MalformedNumberError(full_number.value, dial_code.value, e.message)
            self._log_error(
                "Backend returned a malformed number",
                {"task_id": task_id.value},
                trigger,
            )
            await self._cancel_then_raise(task_id, trigger, cause=e)

        self._log_info(
            "Number acquired",
            {
                "task_id": task_id.value,
                "country": country,
                "service": service,
                "full_number": full_number.with_plus_prefix(),
            },
        )
        return SmsTaskResult(
            task_id=task_id,
            dial_code=dial_code,
            number=number,
            full_number=full_number,
            country=country,
        )

    def select_country(
        self,
        service: str,
        candidates: Optional[list[str]] = None,
    ) -> str:
        """
        Pick the first candidate country whose dial code is known and supported.

        Args:
            service: Service to verify
            candidates: Countries in order of preference; defaults to
                provider.available_countries(service)

        Raises:
            NoAvailableDialCodesError: If no candidate qualifies
        """
        if candidates is None:
            candidates = self._provider.available_countries(service)

        for country in candidates:
            dial_code = self._dial_codes.dial_code_for(country)
            if dial_code is not None and self._provider.is_dial_code_supported(dial_code):
                return country.strip().upper()

        raise NoAvailableDialCodesError(candidates)

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    async def wait_for_sms_code(self, task_id: TaskId) -> SmsCode:
        """
        Poll until a code arrives or the configured timeout expires.

        Raises:
            SmsTimeoutError: Timeout reached (the task has been cancelled)
            ProviderFailureError: Non-retryable backend error (task cancelled)
            CancelFailedError: Releasing the task after a failure also failed
        """
        code, _ = await self._poll(task_id, None)
        return code

    async def wait_for_sms_code_cancellable(
        self,
        task_id: TaskId,
        cancel_token: CancellationToken,
    ) -> SmsCode:
        """
        Like wait_for_sms_code, but stops when cancel_token is cancelled.

        Raises:
            VerificationCancelledError: The token was cancelled (task cancelled)
            SmsTimeoutError, ProviderFailureError, CancelFailedError:
                As for wait_for_sms_code
        """
        code, _ = await self._poll(task_id, cancel_token)
        return code

    async def wait_for_sms_code_with_stats(
        self,
        task_id: TaskId,
        cancel_token: Optional[CancellationToken] = None,
    ) -> tuple[SmsCode, PollStats]:
        """Poll for a code and also report how long it took and how many polls."""
        return await self._poll(task_id, cancel_token)

    async def _poll(
        self,
        task_id: TaskId,
        cancel_token: Optional[CancellationToken],
    ) -> tuple[SmsCode, PollStats]:
        timeout = self._config.timeout_seconds
        interval = self._config.poll_interval_seconds
        start = time.perf_counter()
        poll_count = 0
        state = PollState.POLLING
        trigger: Optional[SmsSolversError] = None
        cause: Optional[BaseException] = None

        try:
            while not state.is_terminal:
                elapsed = time.perf_counter() - start

                if cancel_token is not None and cancel_token.is_cancelled():
                    state = PollState.CANCELLED
                    trigger = VerificationCancelledError(task_id.value, elapsed, poll_count)
                    break

                if elapsed >= timeout:
                    state = PollState.TIMED_OUT
                    trigger = SmsTimeoutError(task_id.value, timeout, elapsed, poll_count)
                    break

                poll_count += 1
                try:
                    code = await self._provider.get_sms_code(task_id)
                except Exception as e:
                    retryable, retry_operation = classify_error(e)
                    if not retryable:
                        state = PollState.PERMANENT_FAILURE
                        trigger = ProviderFailureError(e, is_retryable=False)
                        cause = e
                        break
                    self._log_warn(
                        "Transient error while polling, continuing",
                        {
                            "task_id": task_id.value,
                            "poll_count": poll_count,
                            "error": str(e),
                            "error_type": type(e).__name__,
                            "should_retry_operation": retry_operation,
                        },
                    )
                else:
                    if code is not None:
                        state = PollState.SUCCESS
                        stats = PollStats(time.perf_counter() - start, poll_count)
                        self._log_info(
                            "SMS code received",
                            {
                                "task_id": task_id.value,
                                "state": state.value,
                                "elapsed_seconds": stats.elapsed_seconds,
                                "poll_count": stats.poll_count,
                            },
                        )
                        return code, stats

                if cancel_token is not None:
                    await cancel_token.wait(interval)
                else:
                    await asyncio.sleep(interval)
        except asyncio.CancelledError:
            await self._release_after_abort(task_id)
            raise

        assert trigger is not None
        self._log_error(
            "Polling ended without a code",
            {"task_id": task_id.value, "state": state.value},
            trigger,
        )
        await self._cancel_then_raise(task_id, trigger, cause=cause)

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    async def _cancel_then_raise(
        self,
        task_id: TaskId,
        trigger: SmsSolversError,
        cause: Optional[BaseException] = None,
    ) -> NoReturn:
        """Release the task once, then raise the trigger or CancelFailedError."""
        try:
            await self._provider.cancel_activation(task_id)
        except Exception as cancel_error:
            error = CancelFailedError(task_id.value, trigger, cancel_error)
            self._log_error(
                "Failed to cancel activation",
                {"task_id": task_id.value},
                error,
            )
            raise error from cancel_error

        self._log_info(
            "Activation cancelled",
            {"task_id": task_id.value, "reason": trigger.code},
        )
        if cause is not None:
            raise trigger from cause
        raise trigger

    async def _release_after_abort(self, task_id: TaskId) -> None:
        """Best-effort release when the polling coroutine itself is cancelled."""
        try:
            await self._provider.cancel_activation(task_id)
        except Exception as e:
            self._log_error(
                "Failed to cancel activation after task abort",
                {"task_id": task_id.value},
                e,
            )

    # ------------------------------------------------------------------
    # Task lifecycle pass-throughs
    # ------------------------------------------------------------------

    async def finish(self, task_id: TaskId) -> None:
        """Tell the backend the code was used successfully."""
        try:
            await self._provider.finish_activation(task_id)
        except Exception as e:
            raise ProviderFailureError(e) from e
        self._log_info("Activation finished", {"task_id": task_id.value})

    async def cancel(self, task_id: TaskId) -> None:
        """Release a rented number."""
        try:
            await self._provider.cancel_activation(task_id)
        except Exception as e:
            raise ProviderFailureError(e) from e
        self._log_info("Activation cancelled", {"task_id": task_id.value})

    # ------------------------------------------------------------------
    # Full flow
    # ------------------------------------------------------------------

    async def verify(
        self,
        country: str,
        service: str,
        *,
        max_operation_attempts: int = 1,
        cancel_token: Optional[CancellationToken] = None,
    ) -> tuple[SmsTaskResult, SmsCode]:
        """
        Acquire a number and wait for its code.

        When an attempt fails with an error whose should_retry_operation()
        is true, the flow starts over with a fresh number, up to
        max_operation_attempts in total. The caller still calls finish().

        Returns:
            Tuple of (acquired task, received code)
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                task = await self.get_number(country, service)
                code, _ = await self._poll(task.task_id, cancel_token)
                return task, code
            except SmsSolversError as e:
                cancelled = cancel_token is not None and cancel_token.is_cancelled()
                if (
                    cancelled
                    or not e.should_retry_operation()
                    or attempt >= max_operation_attempts
                ):
                    raise
                self._log_warn(
                    "Verification attempt failed, retrying with a fresh number",
                    {
                        "country": country,
                        "service": service,
                        "attempt": attempt,
                        "max_operation_attempts": max_operation_attempts,
                        "error_code": e.code,
                    },
                )

    def _log_info(self, message: str, data: dict) -> None:
        """Log an info message if logger is available."""
        if self._logger:
            self._logger.log(LogLevel.INFO, self.COMPONENT, message, data)

    def _log_warn(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(LogLevel.WARN, self.COMPONENT, message, data)

    def _log_error(
        self, message: str, data: dict, error: Optional[BaseException] = None
    ) -> None:
        """Log an error message if logger is available."""
        if self._logger:
            self._logger.log_error(self.COMPONENT, message, error, data)

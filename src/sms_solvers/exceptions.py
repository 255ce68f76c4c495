"""
Exception classes for the SMS solvers system.

All exceptions inherit from SmsSolversError and provide structured error
information with codes, messages, and optional details. Every error answers
two independent questions:

- ``is_retryable()``: would re-issuing the same call for the same task
  plausibly succeed?
- ``should_retry_operation()``: would abandoning the task and acquiring a
  fresh number plausibly succeed?

Both answers are explicit constructor arguments on every error kind.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from .enums import NumberErrorCode, ProviderErrorKind, ServiceErrorCode


@runtime_checkable
class RetryableError(Protocol):
    """Capability shared by every error the orchestration inspects."""

    def is_retryable(self) -> bool:
        ...

    def should_retry_operation(self) -> bool:
        ...


def classify_error(error: BaseException) -> tuple[bool, bool]:
    """
    Read both retryability flags from an error.

    Errors outside the taxonomy are conservatively non-retryable on both axes.

    Returns:
        Tuple of (is_retryable, should_retry_operation)
    """
    if isinstance(error, RetryableError):
        return bool(error.is_retryable()), bool(error.should_retry_operation())
    return False, False


class SmsSolversError(Exception):
    """Base exception for all SMS solvers errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
        *,
        retryable: bool,
        retry_operation: bool,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        self.retryable = retryable
        self.retry_operation = retry_operation
        super().__init__(message)

    def is_retryable(self) -> bool:
        return self.retryable

    def should_retry_operation(self) -> bool:
        return self.retry_operation

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "is_retryable": self.retryable,
            "should_retry_operation": self.retry_operation,
        }


# ============================================================================
# Backend errors
# ============================================================================

# kind -> (is_retryable, should_retry_operation)
PROVIDER_ERROR_CLASSIFICATION: dict[ProviderErrorKind, tuple[bool, bool]] = {
    ProviderErrorKind.SERVICE_UNAVAILABLE: (True, True),
    ProviderErrorKind.NETWORK_ERROR: (True, True),
    ProviderErrorKind.TIMEOUT: (True, True),
    ProviderErrorKind.RATE_LIMITED: (True, True),
    ProviderErrorKind.NO_NUMBERS: (True, True),
    ProviderErrorKind.TASK_NOT_FOUND: (False, True),
    ProviderErrorKind.NUMBER_BANNED: (False, True),
    ProviderErrorKind.EARLY_CANCEL_DENIED: (False, False),
    ProviderErrorKind.INVALID_CREDENTIALS: (False, False),
    ProviderErrorKind.ACCOUNT_BANNED: (False, False),
    ProviderErrorKind.INSUFFICIENT_BALANCE: (False, False),
    ProviderErrorKind.INVALID_REQUEST: (False, False),
    ProviderErrorKind.UNKNOWN: (False, False),
}


class ProviderError(SmsSolversError):
    """
    Raised by backend adapters.

    The retryability flags are derived from ``kind`` through
    PROVIDER_ERROR_CLASSIFICATION, so every adapter classifies the same
    failure the same way.
    """

    def __init__(
        self,
        kind: ProviderErrorKind,
        message: str,
        details: Optional[dict] = None,
        raw_response: Optional[str] = None,
    ) -> None:
        retryable, retry_operation = PROVIDER_ERROR_CLASSIFICATION[kind]
        self.kind = kind
        self.raw_response = raw_response
        super().__init__(
            code=kind.value,
            message=message,
            details=details,
            retryable=retryable,
            retry_operation=retry_operation,
        )

    @classmethod
    def unknown(cls, raw_response: str) -> "ProviderError":
        """Build the error for backend output that could not be parsed."""
        return cls(
            ProviderErrorKind.UNKNOWN,
            f"Unrecognized backend response: {raw_response!r}",
            raw_response=raw_response,
        )


# ============================================================================
# Value object and configuration errors
# ============================================================================


class ValidationError(SmsSolversError):
    """Raised when a phone number or dial code fails validation."""

    def __init__(self, code: NumberErrorCode, message: str, value: str = "") -> None:
        self.error_code = code
        super().__init__(
            code=code.value,
            message=message,
            details={"value": value},
            retryable=False,
            retry_operation=False,
        )


class ConfigValidationError(SmsSolversError):
    """Raised when a configuration object violates its invariants."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(
            code=ServiceErrorCode.CONFIG_INVALID.value,
            message=message,
            details={"field": field},
            retryable=False,
            retry_operation=False,
        )


# ============================================================================
# Service-level errors
# ============================================================================


class ProviderFailureError(SmsSolversError):
    """Wraps a backend error, carrying both of its retryability flags."""

    def __init__(
        self,
        source: BaseException,
        is_retryable: Optional[bool] = None,
        should_retry_operation: Optional[bool] = None,
    ) -> None:
        source_retryable, source_retry_operation = classify_error(source)
        self.source = source
        super().__init__(
            code=ServiceErrorCode.PROVIDER_FAILURE.value,
            message=f"SMS provider error: {source}",
            details={
                "source_type": type(source).__name__,
                "source_code": getattr(source, "code", None),
            },
            retryable=source_retryable if is_retryable is None else is_retryable,
            retry_operation=(
                source_retry_operation
                if should_retry_operation is None
                else should_retry_operation
            ),
        )


class NoDialCodeError(SmsSolversError):
    """No dial code is known for the requested country."""

    def __init__(self, country: str) -> None:
        self.country = country
        super().__init__(
            code=ServiceErrorCode.NO_DIAL_CODE.value,
            message=f"No dial code known for country {country}",
            details={"country": country},
            retryable=False,
            retry_operation=False,
        )


class MalformedNumberError(SmsSolversError):
    """The backend returned a number that does not match the expected dial code."""

    def __init__(self, full_number: str, dial_code: str, reason: str) -> None:
        self.full_number = full_number
        self.dial_code = dial_code
        super().__init__(
            code=ServiceErrorCode.MALFORMED_NUMBER.value,
            message=f"Failed to parse phone number '{full_number}': {reason}",
            details={"full_number": full_number, "dial_code": dial_code},
            retryable=False,
            retry_operation=False,
        )


class SmsTimeoutError(SmsSolversError):
    """Polling exceeded the configured timeout."""

    def __init__(
        self,
        task_id: str,
        timeout: float,
        elapsed: float,
        poll_count: int,
    ) -> None:
        self.task_id = task_id
        self.timeout = timeout
        self.elapsed = elapsed
        self.poll_count = poll_count
        super().__init__(
            code=ServiceErrorCode.SMS_TIMEOUT.value,
            message=(
                f"Timeout waiting for SMS code after {elapsed:.1f}s "
                f"({poll_count} polls); Task id: {task_id}"
            ),
            details={
                "task_id": task_id,
                "timeout": timeout,
                "elapsed": elapsed,
                "poll_count": poll_count,
            },
            retryable=False,
            retry_operation=True,
        )


class VerificationCancelledError(SmsSolversError):
    """The caller cancelled the wait for a code."""

    def __init__(self, task_id: str, elapsed: float, poll_count: int) -> None:
        self.task_id = task_id
        self.elapsed = elapsed
        self.poll_count = poll_count
        super().__init__(
            code=ServiceErrorCode.CANCELLED.value,
            message=(
                f"Waiting for SMS code cancelled after {elapsed:.1f}s "
                f"({poll_count} polls); Task id: {task_id}"
            ),
            details={"task_id": task_id, "elapsed": elapsed, "poll_count": poll_count},
            retryable=False,
            retry_operation=False,
        )


class CancelFailedError(SmsSolversError):
    """
    Releasing the rented number failed after a non-success outcome.

    Kept distinct from the triggering condition so that leaked remote
    resources can be detected. ``trigger`` is the error that would have been
    raised had the cancel succeeded.
    """

    def __init__(
        self,
        task_id: str,
        trigger: SmsSolversError,
        cancel_error: BaseException,
    ) -> None:
        self.task_id = task_id
        self.trigger = trigger
        self.cancel_error = cancel_error
        super().__init__(
            code=ServiceErrorCode.CANCEL_FAILED.value,
            message=(
                f"Failed to cancel activation {task_id} after {trigger.code}: "
                f"{cancel_error}"
            ),
            details={
                "task_id": task_id,
                "trigger_code": trigger.code,
                "cancel_error": str(cancel_error),
            },
            retryable=False,
            retry_operation=trigger.should_retry_operation(),
        )


class DialCodeBlacklistedError(SmsSolversError):
    """The provider refuses numbers with this dial code."""

    def __init__(self, dial_code: str, country: str) -> None:
        self.dial_code = dial_code
        self.country = country
        super().__init__(
            code=ServiceErrorCode.DIAL_CODE_BLACKLISTED.value,
            message=f"Dial code +{dial_code} for country {country} is blacklisted",
            details={"dial_code": dial_code, "country": country},
            retryable=False,
            retry_operation=False,
        )


class NoAvailableDialCodesError(SmsSolversError):
    """None of the candidate countries has a usable dial code."""

    def __init__(self, candidates: list[str]) -> None:
        self.candidates = list(candidates)
        super().__init__(
            code=ServiceErrorCode.NO_AVAILABLE_DIAL_CODES.value,
            message=(
                "No available dial codes among "
                f"{len(self.candidates)} candidate countries"
            ),
            details={"candidates": self.candidates},
            retryable=False,
            retry_operation=False,
        )

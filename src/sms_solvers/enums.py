"""
Enumeration types for the SMS solvers system.

These enums provide type-safe constants for error kinds, polling outcomes,
and configuration options throughout the system.
"""

from enum import Enum


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def severity(self) -> int:
        """Numeric severity used for level filtering."""
        return _LEVEL_SEVERITY[self]


_LEVEL_SEVERITY = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}


class ProviderErrorKind(Enum):
    """Failure kinds a backend adapter reports through ProviderError."""

    # Transient - the same call may succeed later
    SERVICE_UNAVAILABLE = "service_unavailable"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    NO_NUMBERS = "no_numbers"

    # Task-specific - a fresh number may succeed
    TASK_NOT_FOUND = "task_not_found"
    NUMBER_BANNED = "number_banned"

    # Account / request problems - nothing helps until fixed
    EARLY_CANCEL_DENIED = "early_cancel_denied"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_BANNED = "account_banned"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INVALID_REQUEST = "invalid_request"
    UNKNOWN = "unknown"


class ServiceErrorCode(Enum):
    """Error codes for service-level failures."""

    PROVIDER_FAILURE = "provider_failure"
    NO_DIAL_CODE = "no_dial_code"
    MALFORMED_NUMBER = "malformed_number"
    SMS_TIMEOUT = "sms_timeout"
    CANCELLED = "cancelled"
    CANCEL_FAILED = "cancel_failed"
    DIAL_CODE_BLACKLISTED = "dial_code_blacklisted"
    NO_AVAILABLE_DIAL_CODES = "no_available_dial_codes"
    CONFIG_INVALID = "config_invalid"


class NumberErrorCode(Enum):
    """Error codes for phone number and dial code validation failures."""

    EMPTY = "empty"
    NON_DIGIT = "non_digit"
    INVALID_LENGTH = "invalid_length"
    LEADING_ZERO = "leading_zero"
    MISSING_DIAL_CODE = "missing_dial_code"


class PollState(Enum):
    """States of the code polling loop."""

    POLLING = "polling"
    SUCCESS = "success"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    PERMANENT_FAILURE = "permanent_failure"

    @property
    def is_terminal(self) -> bool:
        return self is not PollState.POLLING

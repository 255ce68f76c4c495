"""
SMS Solvers - provider-agnostic phone number verification.

This package rents disposable phone numbers from SMS rental backends and polls
for verification codes with retry, timeout and cooperative cancellation,
releasing the rented number on every exit path other than success.
"""

__version__ = "0.1.0"
__author__ = "SMS Solvers Team"

from sms_solvers.exceptions import (
    RetryableError,
    classify_error,
    SmsSolversError,
    ProviderError,
    ValidationError,
    ConfigValidationError,
    ProviderFailureError,
    NoDialCodeError,
    MalformedNumberError,
    SmsTimeoutError,
    VerificationCancelledError,
    CancelFailedError,
    DialCodeBlacklistedError,
    NoAvailableDialCodesError,
)
from sms_solvers.enums import (
    LogLevel,
    ProviderErrorKind,
    ServiceErrorCode,
    NumberErrorCode,
    PollState,
)
from sms_solvers.models import (
    TaskId,
    SmsCode,
    FullNumber,
    DialCode,
    Number,
    SmsTaskResult,
    PollStats,
)
from sms_solvers.config import (
    RetryConfig,
    ServiceConfig,
    ProviderConfig,
    LoggingConfig,
    SystemConfig,
)
from sms_solvers.audit_logger import AuditLogger, LogEntry
from sms_solvers.dial_codes import DialCodeRegistry
from sms_solvers.retry_manager import RetryManager
from sms_solvers.providers import (
    Provider,
    RetryableProvider,
    HttpProviderClient,
    SimulatedProvider,
)
from sms_solvers.orchestrator import CancellationToken, SmsSolverService

__all__ = [
    "__version__",
    # Exceptions
    "RetryableError",
    "classify_error",
    "SmsSolversError",
    "ProviderError",
    "ValidationError",
    "ConfigValidationError",
    "ProviderFailureError",
    "NoDialCodeError",
    "MalformedNumberError",
    "SmsTimeoutError",
    "VerificationCancelledError",
    "CancelFailedError",
    "DialCodeBlacklistedError",
    "NoAvailableDialCodesError",
    # Enums
    "LogLevel",
    "ProviderErrorKind",
    "ServiceErrorCode",
    "NumberErrorCode",
    "PollState",
    # Models
    "TaskId",
    "SmsCode",
    "FullNumber",
    "DialCode",
    "Number",
    "SmsTaskResult",
    "PollStats",
    # Config
    "RetryConfig",
    "ServiceConfig",
    "ProviderConfig",
    "LoggingConfig",
    "SystemConfig",
    # Components
    "AuditLogger",
    "LogEntry",
    "DialCodeRegistry",
    "RetryManager",
    "Provider",
    "RetryableProvider",
    "HttpProviderClient",
    "SimulatedProvider",
    "CancellationToken",
    "SmsSolverService",
]

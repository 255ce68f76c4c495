"""
Property-based tests for the error taxonomy.

Every error carries two explicit retryability flags; these tests pin the
classification table and how service errors carry flags forward.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from sms_solvers.enums import ProviderErrorKind, ServiceErrorCode
from sms_solvers.exceptions import (
    PROVIDER_ERROR_CLASSIFICATION,
    CancelFailedError,
    ConfigValidationError,
    DialCodeBlacklistedError,
    MalformedNumberError,
    NoAvailableDialCodesError,
    NoDialCodeError,
    ProviderError,
    ProviderFailureError,
    RetryableError,
    SmsTimeoutError,
    VerificationCancelledError,
    classify_error,
)

kind_strategy = st.sampled_from(list(ProviderErrorKind))


class TestClassificationTableProperty:
    """ProviderError flags come from one fixed table."""

    def test_every_kind_is_classified(self) -> None:
        assert set(PROVIDER_ERROR_CLASSIFICATION) == set(ProviderErrorKind)

    @pytest.mark.parametrize(
        "kind, retryable, retry_operation",
        [
            (ProviderErrorKind.SERVICE_UNAVAILABLE, True, True),
            (ProviderErrorKind.NO_NUMBERS, True, True),
            (ProviderErrorKind.RATE_LIMITED, True, True),
            (ProviderErrorKind.TASK_NOT_FOUND, False, True),
            (ProviderErrorKind.NUMBER_BANNED, False, True),
            (ProviderErrorKind.INVALID_CREDENTIALS, False, False),
            (ProviderErrorKind.EARLY_CANCEL_DENIED, False, False),
            (ProviderErrorKind.UNKNOWN, False, False),
        ],
    )
    def test_documented_kinds(
        self,
        kind: ProviderErrorKind,
        retryable: bool,
        retry_operation: bool,
    ) -> None:
        error = ProviderError(kind, "x")

        assert error.is_retryable() is retryable
        assert error.should_retry_operation() is retry_operation
        assert error.code == kind.value

    def test_unparsed_response_is_unknown(self) -> None:
        error = ProviderError.unknown("BAD_THING_HAPPENED")

        assert error.kind == ProviderErrorKind.UNKNOWN
        assert error.raw_response == "BAD_THING_HAPPENED"
        assert classify_error(error) == (False, False)

    @given(kind=kind_strategy)
    def test_retryable_implies_retry_operation(self, kind: ProviderErrorKind) -> None:
        error = ProviderError(kind, "x")

        assert isinstance(error, RetryableError)
        if error.is_retryable():
            assert error.should_retry_operation()


class TestClassifyErrorProperty:
    """Errors outside the taxonomy are non-retryable on both axes."""

    @pytest.mark.parametrize("error", [RuntimeError("x"), ValueError(), KeyError("k")])
    def test_foreign_errors(self, error: Exception) -> None:
        assert classify_error(error) == (False, False)


class TestProviderFailureProperty:
    """ProviderFailureError copies flags from its source unless overridden."""

    @given(kind=kind_strategy)
    def test_flags_forwarded(self, kind: ProviderErrorKind) -> None:
        source = ProviderError(kind, "x")
        error = ProviderFailureError(source)

        assert error.source is source
        assert error.is_retryable() == source.is_retryable()
        assert error.should_retry_operation() == source.should_retry_operation()
        assert error.code == ServiceErrorCode.PROVIDER_FAILURE.value
        assert error.details["source_code"] == kind.value

    def test_override_retryable_only(self) -> None:
        source = ProviderError(ProviderErrorKind.NETWORK_ERROR, "x")
        error = ProviderFailureError(source, is_retryable=False)

        assert not error.is_retryable()
        assert error.should_retry_operation()

    def test_to_dict_carries_both_flags(self) -> None:
        error = ProviderFailureError(ProviderError(ProviderErrorKind.NUMBER_BANNED, "x"))

        data = error.to_dict()

        assert data["error_type"] == "ProviderFailureError"
        assert data["is_retryable"] is False
        assert data["should_retry_operation"] is True


class TestServiceErrorFlagsProperty:
    """Service-level errors have fixed flags."""

    def test_timeout_suggests_fresh_number(self) -> None:
        error = SmsTimeoutError("t1", timeout=120.0, elapsed=121.5, poll_count=40)

        assert not error.is_retryable()
        assert error.should_retry_operation()
        assert "121.5s" in error.message
        assert "40 polls" in error.message

    def test_cancelled_is_final(self) -> None:
        error = VerificationCancelledError("t1", elapsed=2.0, poll_count=1)

        assert classify_error(error) == (False, False)

    @pytest.mark.parametrize(
        "error",
        [
            NoDialCodeError("XX"),
            MalformedNumberError("+123", "380", "dial code not found"),
            DialCodeBlacklistedError("7", "RU"),
            NoAvailableDialCodesError(["RU"]),
            ConfigValidationError("timeout_seconds", "too short"),
        ],
    )
    def test_data_and_policy_errors_are_final(self, error) -> None:
        assert classify_error(error) == (False, False)

    @pytest.mark.parametrize(
        "trigger, expected",
        [
            (SmsTimeoutError("t1", 1.0, 1.0, 1), True),
            (VerificationCancelledError("t1", 1.0, 1), False),
        ],
    )
    def test_cancel_failed_inherits_operation_flag(self, trigger, expected: bool) -> None:
        cancel_error = RuntimeError("cancel failed")
        error = CancelFailedError("t1", trigger, cancel_error)

        assert not error.is_retryable()
        assert error.should_retry_operation() is expected
        assert error.trigger is trigger
        assert error.code == ServiceErrorCode.CANCEL_FAILED.value
        assert error.details["trigger_code"] == trigger.code

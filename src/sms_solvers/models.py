"""
Data models for the SMS solvers system.

This module defines the immutable value objects threaded through an
acquisition: task identifiers, dial codes, phone numbers, received codes,
and the aggregate returned by a successful acquisition.

Countries are represented by their ISO 3166-1 alpha-2 code (e.g. "US").
"""

from __future__ import annotations

from dataclasses import dataclass

from .enums import NumberErrorCode
from .exceptions import ValidationError

NUMBER_MIN_DIGITS = 4
NUMBER_MAX_DIGITS = 14


def _is_ascii_digits(value: str) -> bool:
    return value.isascii() and value.isdigit()


@dataclass(frozen=True)
class TaskId:
    """Backend-assigned handle for one rental session."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SmsCode:
    """Verification code extracted from the received SMS or call."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class FullNumber:
    """Phone number including the dial code, stored as returned by the backend."""

    value: str

    def without_plus_prefix(self) -> str:
        return self.value.strip().lstrip("+")

    def with_plus_prefix(self) -> str:
        return f"+{self.without_plus_prefix()}"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DialCode:
    """
    International calling code without the leading '+' (e.g. "380").

    Surrounding whitespace and a leading '+' are stripped on construction.
    """

    value: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", self.value.strip().lstrip("+"))
        if not self.value:
            raise ValidationError(
                NumberErrorCode.EMPTY, "dial code cannot be empty", self.value
            )
        if not _is_ascii_digits(self.value):
            raise ValidationError(
                NumberErrorCode.NON_DIGIT,
                "dial code must contain only digits",
                self.value,
            )

    @classmethod
    def parse(cls, raw: str) -> "DialCode":
        return cls(raw)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Number:
    """
    National part of a phone number, without the dial code.

    Validation rules:
    - Only ASCII digits
    - Between 4 and 14 digits
    - Does not start with 0
    """

    value: str

    def __post_init__(self) -> None:
        if not _is_ascii_digits(self.value):
            raise ValidationError(
                NumberErrorCode.NON_DIGIT, "number must contain only digits", self.value
            )
        if not NUMBER_MIN_DIGITS <= len(self.value) <= NUMBER_MAX_DIGITS:
            raise ValidationError(
                NumberErrorCode.INVALID_LENGTH,
                f"number must be between {NUMBER_MIN_DIGITS} and "
                f"{NUMBER_MAX_DIGITS} digits",
                self.value,
            )
        if self.value.startswith("0"):
            raise ValidationError(
                NumberErrorCode.LEADING_ZERO, "number cannot start with 0", self.value
            )

    @classmethod
    def parse(cls, raw: str) -> "Number":
        return cls(raw.strip())

    @classmethod
    def from_full_number(cls, full: FullNumber, dial_code: DialCode) -> "Number":
        """
        Extract the national number by removing the dial code prefix.

        Raises:
            ValidationError: MISSING_DIAL_CODE if the prefix does not match,
                or any national-number rule violation
        """
        digits = full.without_plus_prefix()
        if not digits.startswith(dial_code.value):
            raise ValidationError(
                NumberErrorCode.MISSING_DIAL_CODE,
                "dial code not found at the beginning of the number",
                full.value,
            )
        return cls(digits[len(dial_code.value):])

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SmsTaskResult:
    """Result of a successful number acquisition."""

    task_id: TaskId
    dial_code: DialCode
    number: Number
    full_number: FullNumber
    country: str


@dataclass(frozen=True)
class PollStats:
    """Progress of one polling run."""

    elapsed_seconds: float
    poll_count: int

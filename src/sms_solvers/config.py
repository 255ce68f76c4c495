"""
Configuration dataclasses for the SMS solvers system.

This module defines all configuration structures used throughout the system:
polling behaviour of the service, retry policy of the provider decorator,
backend connection settings, and logging.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Optional
from urllib.parse import urlparse

from .exceptions import ConfigValidationError, ValidationError
from .models import DialCode

MIN_TIMEOUT_SECONDS = 10.0
MIN_POLL_INTERVAL_SECONDS = 0.1


@dataclass(frozen=True)
class RetryConfig:
    """
    Retry policy for the provider decorator.

    The delay before retry n (0-indexed) is
    min(max_delay, min_delay * factor ** n).
    """

    min_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    factor: float = 2.0
    max_retries: int = 3

    @property
    def max_attempts(self) -> int:
        """Total attempts including the first call."""
        return self.max_retries + 1

    def with_min_delay(self, seconds: float) -> "RetryConfig":
        return replace(self, min_delay_seconds=seconds)

    def with_max_delay(self, seconds: float) -> "RetryConfig":
        return replace(self, max_delay_seconds=seconds)

    def with_factor(self, factor: float) -> "RetryConfig":
        return replace(self, factor=factor)

    def with_max_retries(self, max_retries: int) -> "RetryConfig":
        return replace(self, max_retries=max_retries)

    def validate(self) -> None:
        """
        Check the retry policy invariants.

        Raises:
            ConfigValidationError: If any invariant is violated
        """
        if self.min_delay_seconds <= 0:
            raise ConfigValidationError(
                "min_delay_seconds", "Minimum retry delay must be positive"
            )
        if self.max_delay_seconds < self.min_delay_seconds:
            raise ConfigValidationError(
                "max_delay_seconds",
                "Maximum retry delay must not be below the minimum delay",
            )
        if self.factor < 1.0:
            raise ConfigValidationError(
                "factor", "Backoff factor must be at least 1.0"
            )
        if self.max_retries < 0:
            raise ConfigValidationError(
                "max_retries", "Maximum retries must not be negative"
            )


@dataclass(frozen=True)
class ServiceConfig:
    """
    Polling configuration for waiting on SMS codes.

    Construction does not validate; call validate() or use create() where
    user input is involved.
    """

    timeout_seconds: float = 120.0
    poll_interval_seconds: float = 3.0

    @classmethod
    def create(
        cls,
        timeout_seconds: float = 120.0,
        poll_interval_seconds: float = 3.0,
    ) -> "ServiceConfig":
        """Build a configuration and validate it."""
        config = cls(
            timeout_seconds=timeout_seconds,
            poll_interval_seconds=poll_interval_seconds,
        )
        config.validate()
        return config

    @classmethod
    def fast(cls) -> "ServiceConfig":
        """Short timeout and frequent polling, for development and testing."""
        return cls(timeout_seconds=60.0, poll_interval_seconds=1.0)

    @classmethod
    def balanced(cls) -> "ServiceConfig":
        """Default settings for most production use."""
        return cls(timeout_seconds=120.0, poll_interval_seconds=3.0)

    @classmethod
    def patient(cls) -> "ServiceConfig":
        """Long timeout for slow providers or unreliable networks."""
        return cls(timeout_seconds=300.0, poll_interval_seconds=5.0)

    @classmethod
    def preset(cls, name: str) -> "ServiceConfig":
        """Look up a preset by name ('fast', 'balanced', 'patient')."""
        factory = SERVICE_PRESETS.get(name.lower())
        if factory is None:
            raise ConfigValidationError(
                "preset",
                f"Unknown preset {name!r}; expected one of {sorted(SERVICE_PRESETS)}",
            )
        return factory()

    def with_timeout(self, seconds: float) -> "ServiceConfig":
        return replace(self, timeout_seconds=seconds)

    def with_poll_interval(self, seconds: float) -> "ServiceConfig":
        return replace(self, poll_interval_seconds=seconds)

    def validate(self) -> None:
        """
        Check the polling invariants.

        Raises:
            ConfigValidationError: If timeout is below the minimum, the poll
                interval is below the minimum, or the poll interval is not
                shorter than the timeout
        """
        for name in ("timeout_seconds", "poll_interval_seconds"):
            if not math.isfinite(getattr(self, name)):
                raise ConfigValidationError(name, "Must be a finite number of seconds")
        if self.timeout_seconds < MIN_TIMEOUT_SECONDS:
            raise ConfigValidationError(
                "timeout_seconds",
                f"Timeout must be at least {MIN_TIMEOUT_SECONDS:g}s, "
                f"got {self.timeout_seconds:g}s",
            )
        if self.poll_interval_seconds < MIN_POLL_INTERVAL_SECONDS:
            raise ConfigValidationError(
                "poll_interval_seconds",
                f"Poll interval must be at least {MIN_POLL_INTERVAL_SECONDS:g}s, "
                f"got {self.poll_interval_seconds:g}s",
            )
        if self.poll_interval_seconds >= self.timeout_seconds:
            raise ConfigValidationError(
                "poll_interval_seconds",
                f"Poll interval ({self.poll_interval_seconds:g}s) must be shorter "
                f"than timeout ({self.timeout_seconds:g}s)",
            )


SERVICE_PRESETS = {
    "fast": ServiceConfig.fast,
    "balanced": ServiceConfig.balanced,
    "patient": ServiceConfig.patient,
}


@dataclass(frozen=True)
class ProviderConfig:
    """Connection settings for an HTTP backend adapter."""

    base_url: str
    api_key: str
    timeout_seconds: float = 30.0
    api_key_param: str = "api_key"
    blacklisted_dial_codes: tuple[str, ...] = ()

    def validate(self) -> None:
        """
        Raises:
            ConfigValidationError: If the endpoint is not HTTPS, the API key
                is empty, the request timeout is not positive, or a
                blacklisted dial code is malformed
        """
        parsed = urlparse(self.base_url)
        if parsed.scheme.lower() != "https" or not parsed.netloc:
            raise ConfigValidationError(
                "base_url", f"Provider endpoint must use HTTPS: {self.base_url}"
            )
        if not self.api_key:
            raise ConfigValidationError("api_key", "API key cannot be empty")
        if not math.isfinite(self.timeout_seconds) or self.timeout_seconds <= 0:
            raise ConfigValidationError(
                "timeout_seconds", "Request timeout must be positive"
            )
        for raw in self.blacklisted_dial_codes:
            try:
                DialCode.parse(raw)
            except ValidationError as e:
                raise ConfigValidationError(
                    "blacklisted_dial_codes", f"{e.message}: {raw!r}"
                ) from e


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass(frozen=True)
class SystemConfig:
    """Main configuration combining all sub-configurations."""

    service: ServiceConfig = field(default_factory=ServiceConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    provider: Optional[ProviderConfig] = None
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    simulation_mode: bool = False

    def validate(self) -> None:
        """Validate every sub-configuration."""
        self.service.validate()
        self.retry.validate()
        if self.provider is not None:
            self.provider.validate()
        if self.logging.output_format not in ("json", "text", "both"):
            raise ConfigValidationError(
                "logging.output_format",
                f"Invalid output_format: {self.logging.output_format}",
            )
        if self.logging.level not in ("debug", "info", "warn", "error"):
            raise ConfigValidationError(
                "logging.level", f"Invalid log level: {self.logging.level}"
            )

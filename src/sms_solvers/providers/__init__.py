"""Provider contract, retry decorator, HTTP plumbing and the simulated backend."""

from .base import Provider
from .http import HttpProviderClient, error_kind_for_status
from .retryable import RetryableProvider
from .simulated import SimulatedProvider

__all__ = [
    "Provider",
    "RetryableProvider",
    "HttpProviderClient",
    "error_kind_for_status",
    "SimulatedProvider",
]

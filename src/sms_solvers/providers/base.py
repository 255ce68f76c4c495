"""
Provider contract shared by every SMS rental backend.

Countries are ISO 3166-1 alpha-2 codes and services are opaque identifiers
understood by the backend (e.g. "tg", "wa"). Adapters must raise errors that
implement the RetryableError protocol, normally ProviderError.
"""

from abc import abstractmethod
from typing import Optional, Protocol, runtime_checkable

from ..models import DialCode, FullNumber, SmsCode, TaskId


@runtime_checkable
class Provider(Protocol):
    """
    Protocol defining the capabilities of an SMS rental backend.

    Implementations must be safe to share between concurrent tasks.
    Adapters may subclass Provider explicitly to inherit the permissive
    capability-query defaults.
    """

    @abstractmethod
    async def get_phone_number(
        self, country: str, service: str
    ) -> tuple[TaskId, FullNumber]:
        """Rent a number for the given country and service."""
        ...

    @abstractmethod
    async def get_sms_code(self, task_id: TaskId) -> Optional[SmsCode]:
        """
        Poll for a received code.

        Returns:
            The code, or None if nothing has arrived yet
        """
        ...

    @abstractmethod
    async def finish_activation(self, task_id: TaskId) -> None:
        """Mark the task as successfully used. Idempotent."""
        ...

    @abstractmethod
    async def cancel_activation(self, task_id: TaskId) -> None:
        """Release the rented number. Idempotent and safe after any failure."""
        ...

    def is_dial_code_supported(self, dial_code: DialCode) -> bool:
        return True

    def supports_service(self, service: str) -> bool:
        return True

    def available_countries(self, service: str) -> list[str]:
        return []

    def supported_services(self) -> list[str]:
        return []

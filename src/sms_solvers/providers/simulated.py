"""
Simulated provider - an in-process backend used in simulation mode.

No network requests are made. Numbers are built from the dial-code registry
and every task delivers its code after a fixed number of polls.
"""

from dataclasses import dataclass, field
from itertools import count
from typing import Iterable, Optional

from ..dial_codes import DialCodeRegistry
from ..enums import ProviderErrorKind
from ..exceptions import ProviderError
from ..models import DialCode, FullNumber, SmsCode, TaskId
from .base import Provider


@dataclass
class SimulatedTask:
    """State of one simulated rental."""

    task_id: TaskId
    country: str
    service: str
    full_number: FullNumber
    polls: int = 0
    status: str = "waiting"  # 'waiting', 'finished', 'cancelled'


@dataclass
class CallLog:
    """Calls received by the simulated backend, in order."""

    acquired: list[TaskId] = field(default_factory=list)
    polled: list[TaskId] = field(default_factory=list)
    finished: list[TaskId] = field(default_factory=list)
    cancelled: list[TaskId] = field(default_factory=list)


class SimulatedProvider(Provider):
    """
    Deterministic fake backend.

    Args:
        dial_codes: Registry used to build numbers and list countries
        polls_before_code: Polls answered with None before the code arrives.
            None means the code never arrives.
        code: The code every task eventually receives
        services: Services offered; empty means every service is accepted
        blacklisted_dial_codes: Dial codes this backend refuses
    """

    def __init__(
        self,
        dial_codes: Optional[DialCodeRegistry] = None,
        polls_before_code: Optional[int] = 2,
        code: str = "123456",
        services: Iterable[str] = (),
        blacklisted_dial_codes: Iterable[str] = (),
    ) -> None:
        self._dial_codes = dial_codes or DialCodeRegistry()
        self._polls_before_code = polls_before_code
        self._code = SmsCode(code)
        self._services = sorted(set(services))
        self._blacklist = {DialCode.parse(d) for d in blacklisted_dial_codes}
        self._tasks: dict[str, SimulatedTask] = {}
        self._ids = count(1)
        self.calls = CallLog()

    def task(self, task_id: TaskId) -> Optional[SimulatedTask]:
        return self._tasks.get(task_id.value)

    def _lookup(self, task_id: TaskId) -> SimulatedTask:
        task = self._tasks.get(task_id.value)
        if task is None:
            raise ProviderError(
                ProviderErrorKind.TASK_NOT_FOUND,
                f"Activation {task_id} not found",
                details={"task_id": task_id.value},
            )
        return task

    async def get_phone_number(
        self, country: str, service: str
    ) -> tuple[TaskId, FullNumber]:
        if not self.supports_service(service):
            raise ProviderError(
                ProviderErrorKind.INVALID_REQUEST,
                f"Service {service!r} is not offered",
                details={"service": service},
            )
        dial_code = self._dial_codes.dial_code_for(country)
        if dial_code is None or not self.is_dial_code_supported(dial_code):
            raise ProviderError(
                ProviderErrorKind.NO_NUMBERS,
                f"No numbers available for {country}",
                details={"country": country},
            )

        serial = next(self._ids)
        task_id = TaskId(f"sim-{serial}")
        # National part: 10 digits starting with 5
        full_number = FullNumber(f"+{dial_code.value}5{serial:09d}")
        self._tasks[task_id.value] = SimulatedTask(
            task_id=task_id,
            country=country.upper(),
            service=service,
            full_number=full_number,
        )
        self.calls.acquired.append(task_id)
        return task_id, full_number

    async def get_sms_code(self, task_id: TaskId) -> Optional[SmsCode]:
        task = self._lookup(task_id)
        self.calls.polled.append(task_id)
        if task.status == "cancelled":
            raise ProviderError(
                ProviderErrorKind.TASK_NOT_FOUND,
                f"Activation {task_id} was cancelled",
                details={"task_id": task_id.value},
            )
        task.polls += 1
        if self._polls_before_code is None or task.polls <= self._polls_before_code:
            return None
        return self._code

    async def finish_activation(self, task_id: TaskId) -> None:
        self._lookup(task_id).status = "finished"
        self.calls.finished.append(task_id)

    async def cancel_activation(self, task_id: TaskId) -> None:
        task = self._lookup(task_id)
        if task.status != "finished":
            task.status = "cancelled"
        self.calls.cancelled.append(task_id)

    def is_dial_code_supported(self, dial_code: DialCode) -> bool:
        return dial_code not in self._blacklist

    def supports_service(self, service: str) -> bool:
        return not self._services or service in self._services

    def available_countries(self, service: str) -> list[str]:
        if not self.supports_service(service):
            return []
        return [
            country
            for country in self._dial_codes.countries()
            if self.is_dial_code_supported(self._dial_codes.dial_code_for(country))
        ]

    def supported_services(self) -> list[str]:
        return list(self._services)

"""
Property-based tests for the HTTP provider client.

Requests go through httpx.MockTransport, so no network is used.
"""

import asyncio
from io import StringIO
from typing import Optional

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from sms_solvers.audit_logger import AuditLogger
from sms_solvers.config import ProviderConfig, ServiceConfig
from sms_solvers.enums import ProviderErrorKind
from sms_solvers.exceptions import ConfigValidationError, ProviderError, ProviderFailureError
from sms_solvers.models import FullNumber, SmsCode, TaskId
from sms_solvers.orchestrator import SmsSolverService
from sms_solvers.providers.base import Provider
from sms_solvers.providers.http import HttpProviderClient, error_kind_for_status

CONFIG = ProviderConfig(base_url="https://sms.example.com/stubs/handler_api.php", api_key="k-123")


def client_for(handler, config: ProviderConfig = CONFIG, logger=None) -> HttpProviderClient:
    return HttpProviderClient(config, transport=httpx.MockTransport(handler), logger=logger)


class TestStatusMappingProperty:
    """HTTP status codes map onto provider error kinds."""

    @given(status=st.integers(min_value=100, max_value=399))
    def test_non_error_status(self, status: int) -> None:
        assert error_kind_for_status(status) is None

    @given(status=st.integers(min_value=500, max_value=599))
    def test_server_errors_unavailable(self, status: int) -> None:
        assert error_kind_for_status(status) == ProviderErrorKind.SERVICE_UNAVAILABLE

    @pytest.mark.parametrize(
        "status, kind",
        [
            (429, ProviderErrorKind.RATE_LIMITED),
            (401, ProviderErrorKind.INVALID_CREDENTIALS),
            (403, ProviderErrorKind.INVALID_CREDENTIALS),
            (400, ProviderErrorKind.INVALID_REQUEST),
            (404, ProviderErrorKind.INVALID_REQUEST),
        ],
    )
    def test_client_errors(self, status: int, kind: ProviderErrorKind) -> None:
        assert error_kind_for_status(status) == kind

    @given(status=st.sampled_from([400, 401, 403, 404, 429, 500, 502, 503]))
    @settings(max_examples=20, deadline=None)
    def test_error_status_raises(self, status: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, text="NOPE")

        async def run():
            async with client_for(handler) as http:
                return await http.get_text({"action": "getNumber"})

        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(run())

        error = exc_info.value
        assert error.kind == error_kind_for_status(status)
        assert error.raw_response == "NOPE"
        assert error.details["status_code"] == status


class TestRequestProperty:
    """Requests carry the API key and parameters."""

    def test_api_key_and_params_sent(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="  ACCESS_NUMBER:1:79991234567\n")

        async def run():
            async with client_for(handler) as http:
                return await http.get_text({"action": "getNumber", "country": "0"})

        body = asyncio.run(run())

        assert body == "ACCESS_NUMBER:1:79991234567"
        request = seen[0]
        assert request.url.scheme == "https"
        assert request.url.params["api_key"] == "k-123"
        assert request.url.params["action"] == "getNumber"
        assert request.url.params["country"] == "0"

    def test_custom_key_param_and_path(self) -> None:
        seen = []
        config = ProviderConfig(
            base_url="https://api.example.com/v1/",
            api_key="secret",
            api_key_param="token",
        )

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"status": "ok", "balance": 1.5})

        async def run():
            async with client_for(handler, config) as http:
                return await http.get_json(path="/balance")

        payload = asyncio.run(run())

        assert payload == {"status": "ok", "balance": 1.5}
        assert seen[0].url.path == "/v1/balance"
        assert seen[0].url.params["token"] == "secret"

    def test_invalid_json_is_unknown(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="BAD_KEY")

        async def run():
            async with client_for(handler) as http:
                return await http.get_json({"action": "getStatus"})

        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(run())

        assert exc_info.value.kind == ProviderErrorKind.UNKNOWN
        assert exc_info.value.raw_response == "BAD_KEY"


class TestTransportFailureProperty:
    """Transport failures become retryable provider errors."""

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        async def run():
            async with client_for(handler) as http:
                return await http.get_text({"action": "getStatus"})

        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(run())

        assert exc_info.value.kind == ProviderErrorKind.TIMEOUT
        assert exc_info.value.is_retryable()

    def test_connect_error_is_logged_without_key(self) -> None:
        stream = StringIO()
        logger = AuditLogger(output_format="json", output_stream=stream)

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async def run():
            async with client_for(handler, logger=logger) as http:
                return await http.get_text({"action": "getStatus"})

        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(run())

        assert exc_info.value.kind == ProviderErrorKind.NETWORK_ERROR
        assert exc_info.value.should_retry_operation()
        assert len(logger.entries) == 1
        assert "k-123" not in stream.getvalue()


class TestClientConfigurationProperty:
    """The client refuses insecure endpoints and cleans up after itself."""

    def test_http_endpoint_rejected(self) -> None:
        with pytest.raises(ConfigValidationError):
            HttpProviderClient(ProviderConfig(base_url="http://sms.example.com", api_key="k"))

    def test_close_is_idempotent(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="OK")

        async def run():
            http = client_for(handler)
            body = await http.get_text()
            await http.close()
            await http.close()
            return body

        assert asyncio.run(run()) == "OK"


class TextApiAdapter(Provider):
    """Minimal text-protocol adapter built on HttpProviderClient."""

    def __init__(self, http: HttpProviderClient) -> None:
        self._http = http

    async def get_phone_number(self, country: str, service: str):
        body = await self._http.get_text(
            {"action": "getNumber", "country": country, "service": service}
        )
        if not body.startswith("ACCESS_NUMBER:"):
            raise ProviderError.unknown(body)
        _, task_id, number = body.split(":", 2)
        return TaskId(task_id), FullNumber(number)

    async def get_sms_code(self, task_id: TaskId) -> Optional[SmsCode]:
        body = await self._http.get_text({"action": "getStatus", "id": task_id.value})
        if body.startswith("STATUS_OK:"):
            return SmsCode(body.split(":", 1)[1])
        return None

    async def finish_activation(self, task_id: TaskId) -> None:
        await self._http.get_text({"action": "setStatus", "id": task_id.value, "status": "6"})

    async def cancel_activation(self, task_id: TaskId) -> None:
        await self._http.get_text({"action": "setStatus", "id": task_id.value, "status": "8"})


class TestAdapterOnClientProperty:
    """An adapter built on the client drives a full verification."""

    def test_full_flow_through_service(self) -> None:
        answers = {
            "getNumber": ["ACCESS_NUMBER:42:380501234567"],
            "getStatus": ["STATUS_WAIT_CODE", "STATUS_OK:5521"],
            "setStatus": ["ACCESS_ACTIVATION"],
        }
        actions = []

        def handler(request: httpx.Request) -> httpx.Response:
            action = request.url.params["action"]
            actions.append(action)
            return httpx.Response(200, text=answers[action].pop(0))

        async def run():
            async with client_for(handler) as http:
                service = SmsSolverService(
                    TextApiAdapter(http),
                    ServiceConfig(timeout_seconds=5.0, poll_interval_seconds=0.001),
                )
                task, code = await service.verify("UA", "tg")
                await service.finish(task.task_id)
                return task, code

        task, code = asyncio.run(run())

        assert task.task_id == TaskId("42")
        assert task.number.value == "501234567"
        assert code.value == "5521"
        assert actions == ["getNumber", "getStatus", "getStatus", "setStatus"]

    def test_unexpected_body_is_provider_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="NO_NUMBERS")

        async def run():
            async with client_for(handler) as http:
                return await SmsSolverService(TextApiAdapter(http)).get_number("UA", "tg")

        with pytest.raises(ProviderFailureError) as exc_info:
            asyncio.run(run())

        assert exc_info.value.source.kind == ProviderErrorKind.UNKNOWN

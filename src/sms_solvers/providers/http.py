"""
HTTP plumbing shared by backend adapters.

HttpProviderClient owns one httpx.AsyncClient (and therefore one connection
pool) that concurrent tasks may share. It enforces HTTPS, attaches the API
key, and maps transport failures and HTTP status codes onto
ProviderErrorKind so adapters only deal with their backend's payloads.

Usage in an adapter:
    class ExampleAdapter(Provider):
        def __init__(self, http: HttpProviderClient) -> None:
            self._http = http

        async def get_phone_number(self, country, service):
            body = await self._http.get_text(
                {"action": "getNumber", "country": country, "service": service}
            )
            if not body.startswith("ACCESS_NUMBER:"):
                raise ProviderError.unknown(body)
            _, task_id, number = body.split(":", 2)
            return TaskId(task_id), FullNumber(number)
"""

import json
import time
from typing import Any, Optional

import httpx

from ..audit_logger import AuditLogger
from ..config import ProviderConfig
from ..enums import LogLevel, ProviderErrorKind
from ..exceptions import ProviderError

# Truncation limit for response bodies attached to errors
MAX_RAW_RESPONSE_CHARS = 500


def error_kind_for_status(status_code: int) -> Optional[ProviderErrorKind]:
    """
    Map an HTTP status code to a ProviderErrorKind.

    Returns:
        None for non-error statuses
    """
    if status_code < 400:
        return None
    if status_code == 429:
        return ProviderErrorKind.RATE_LIMITED
    if status_code >= 500:
        return ProviderErrorKind.SERVICE_UNAVAILABLE
    if status_code in (401, 403):
        return ProviderErrorKind.INVALID_CREDENTIALS
    return ProviderErrorKind.INVALID_REQUEST


class HttpProviderClient:
    """
    Async HTTP client for SMS rental backends.

    Usage:
        async with HttpProviderClient(config) as http:
            body = await http.get_text({"action": "getBalance"})
    """

    COMPONENT = "http_client"

    def __init__(
        self,
        config: ProviderConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the HTTP client.

        Args:
            config: Endpoint, credentials and request timeout
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests)
            logger: Optional audit logger for request failures

        Raises:
            ConfigValidationError: If the endpoint is not HTTPS or the key is empty
        """
        config.validate()
        self._config = config
        self._transport = transport
        self._logger = logger
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def config(self) -> ProviderConfig:
        return self._config

    async def __aenter__(self) -> "HttpProviderClient":
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=True,
                timeout=httpx.Timeout(self._config.timeout_seconds),
                follow_redirects=False,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _log_failure(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(LogLevel.WARN, self.COMPONENT, message, data)

    async def request(
        self,
        params: Optional[dict] = None,
        path: str = "",
        method: str = "GET",
    ) -> httpx.Response:
        """
        Send a request to the backend with the API key attached.

        Args:
            params: Query parameters (the API key is added automatically)
            path: Path appended to the configured base URL
            method: HTTP method

        Returns:
            The response, guaranteed to have a non-error status

        Raises:
            ProviderError: TIMEOUT, NETWORK_ERROR, or the kind mapped from
                the HTTP status code
        """
        client = self._ensure_client()
        query = dict(params or {})
        query[self._config.api_key_param] = self._config.api_key
        url = self._config.base_url.rstrip("/")
        if path:
            url = f"{url}/{path.lstrip('/')}"

        start_time = time.perf_counter()
        action = query.get("action", path or "/")

        try:
            response = await client.request(method, url, params=query)
        except httpx.TimeoutException as e:
            self._log_failure("Backend request timed out", {"action": action})
            raise ProviderError(
                ProviderErrorKind.TIMEOUT,
                f"Request timed out after {self._config.timeout_seconds}s",
                details={"action": action},
            ) from e
        except httpx.TransportError as e:
            self._log_failure(
                "Backend request failed", {"action": action, "error": str(e)}
            )
            raise ProviderError(
                ProviderErrorKind.NETWORK_ERROR,
                f"Connection error: {e}",
                details={"action": action},
            ) from e

        kind = error_kind_for_status(response.status_code)
        if kind is not None:
            raw = response.text[:MAX_RAW_RESPONSE_CHARS]
            self._log_failure(
                "Backend returned error status",
                {
                    "action": action,
                    "status_code": response.status_code,
                    "kind": kind.value,
                    "response_time_ms": (time.perf_counter() - start_time) * 1000,
                },
            )
            raise ProviderError(
                kind,
                f"Unexpected HTTP status: {response.status_code}",
                details={"action": action, "status_code": response.status_code},
                raw_response=raw,
            )

        return response

    async def get_text(self, params: Optional[dict] = None, path: str = "") -> str:
        """GET and return the stripped response body."""
        response = await self.request(params, path)
        return response.text.strip()

    async def get_json(self, params: Optional[dict] = None, path: str = "") -> Any:
        """
        GET and decode a JSON response body.

        Raises:
            ProviderError: UNKNOWN if the body is not valid JSON
        """
        response = await self.request(params, path)
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProviderError.unknown(
                response.text[:MAX_RAW_RESPONSE_CHARS]
            ) from e

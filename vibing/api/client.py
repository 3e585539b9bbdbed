"""
Storefront API Client.

Single entry point for every HTTP call: attaches the bearer token, encodes
JSON (or multipart for uploads), decodes the response and turns non-2xx
answers into typed exceptions.

A 401 on an authenticated request ends the session: stored credentials are
cleared, the session-expired event fires, and SessionExpiredError is raised.
"""

from typing import Any

import httpx
from structlog import get_logger

from vibing.config import settings
from vibing.exceptions import ApiError, SessionExpiredError
from vibing.observability.metrics import metrics, track_api_request
from vibing.observability.tracing import instrument_httpx
from vibing.services.events import AuthEventEmitter, auth_events
from vibing.services.token_store import TokenStore, token_preview

logger = get_logger(__name__)

DEFAULT_ERROR_MESSAGE = "Request failed"
NETWORK_ERROR_MESSAGE = "Network error"


class ApiClient:
    """
    Async client for the storefront REST API.

    Usage:
        async with ApiClient(FileTokenStore(settings.storage_path)) as api:
            products = await ProductsApi(api).search(ProductQuery())
    """

    def __init__(
        self,
        token_store: TokenStore,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        events: AuthEventEmitter | None = None,
        timeout: float | None = None,
    ) -> None:
        self.token_store = token_store
        self.base_url = (base_url or settings.base_url).rstrip("/")
        self.events = events or auth_events
        self.timeout = timeout or settings.request_timeout
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get HTTP client, created on first use."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
            instrument_httpx(self._http_client)
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    def has_token(self) -> bool:
        return bool(self.token_store.get_token())

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        authenticated: bool = True,
    ) -> Any:
        """
        Issue one API call and return the decoded JSON body.

        Args:
            method: HTTP verb
            endpoint: Path below the API root, e.g. "/products"
            json: JSON body (ignored when files is given)
            params: Query-string parameters
            files: Multipart files; switches the body to multipart/form-data
            data: Extra multipart form fields
            authenticated: Attach the stored bearer token

        Returns:
            Decoded JSON, or None for an empty body

        Raises:
            SessionExpiredError: 401 on a request that carried a token
            ApiError: Any other non-2xx status, or a transport failure
        """
        token = self.token_store.get_token() if authenticated else None
        headers: dict[str, str] = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        logger.debug(
            "api_request",
            method=method,
            endpoint=endpoint,
            has_token=bool(token),
            token=token_preview(token),
        )

        with track_api_request(_metric_endpoint(endpoint), method) as tracker:
            try:
                if files is not None:
                    response = await self.http_client.request(
                        method,
                        self._url(endpoint),
                        params=params,
                        files=files,
                        data=data,
                        headers=headers,
                    )
                else:
                    response = await self.http_client.request(
                        method,
                        self._url(endpoint),
                        params=params,
                        json=json,
                        headers=headers,
                    )
            except httpx.TransportError as exc:
                metrics.record_error("transport")
                logger.error(
                    "api_transport_failed",
                    method=method,
                    endpoint=endpoint,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                raise ApiError(0, NETWORK_ERROR_MESSAGE) from exc
            tracker.set_status_code(response.status_code)

        if response.is_success:
            return _decode_body(response)

        message, code = _parse_error(response)

        if response.status_code == 401 and token:
            self._expire_session()
            raise SessionExpiredError(message)

        logger.warning(
            "api_request_failed",
            method=method,
            endpoint=endpoint,
            status=response.status_code,
            error=message,
            code=code,
        )
        raise ApiError(response.status_code, message, code)

    def _expire_session(self) -> None:
        logger.info("session_expired")
        metrics.session_expirations_total.inc()
        self.token_store.clear()
        self.events.emit()

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", endpoint, params=params)

    async def post(
        self, endpoint: str, data: Any = None, params: dict[str, Any] | None = None
    ) -> Any:
        return await self.request("POST", endpoint, json=data, params=params)

    async def put(self, endpoint: str, data: Any = None) -> Any:
        return await self.request("PUT", endpoint, json=data)

    async def delete(self, endpoint: str) -> Any:
        return await self.request("DELETE", endpoint)


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        logger.warning("api_response_not_json", status=response.status_code)
        return None


def _parse_error(response: httpx.Response) -> tuple[str, str | None]:
    """Extract message and code from an {"error": {"message", "code"}} body."""
    try:
        body = response.json()
    except ValueError:
        return NETWORK_ERROR_MESSAGE, None

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or DEFAULT_ERROR_MESSAGE, error.get("code")
    if isinstance(error, str) and error:
        return error, None
    return DEFAULT_ERROR_MESSAGE, None


def _metric_endpoint(endpoint: str) -> str:
    """Collapse a path to its resource root to bound label cardinality."""
    path = endpoint.split("?", 1)[0].strip("/")
    parts = path.split("/")
    if len(parts) >= 2 and parts[0] in {"auth", "upload", "admin", "seller", "chat"}:
        return f"/{parts[0]}/{parts[1]}"
    return f"/{parts[0]}" if parts[0] else "/"

"""
HTTP Client for CLI.

Provides async HTTP client for communicating with the backend API.
All requests include X-Frontend-ID: cli header for log routing.
Error envelopes are turned back into the backend's exception classes
so callers handle the same errors on both sides of the wire.
"""

from typing import Any

import httpx

from modules.backend.core.config import get_server_base_url
from modules.backend.core.exceptions import (
    ApplicationError,
    AttemptsExhaustedError,
    AuthenticationError,
    ConflictError,
    ExpiredError,
    ForbiddenError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from modules.backend.core.logging import get_logger, log_with_source

logger = get_logger(__name__)

ERROR_CODE_MAP: dict[str, type[ApplicationError]] = {
    "VAL_VALIDATION_ERROR": ValidationError,
    "VAL_REQUEST_INVALID": ValidationError,
    "AUTH_UNAUTHORIZED": AuthenticationError,
    "AUTHZ_FORBIDDEN": ForbiddenError,
    "RES_NOT_FOUND": NotFoundError,
    "RES_CONFLICT": ConflictError,
    "RES_EXPIRED": ExpiredError,
    "RES_ATTEMPTS_EXHAUSTED": AttemptsExhaustedError,
    "SYS_STORAGE_ERROR": StorageError,
}

# Gateway failures in front of the API carry no envelope but are transient.
RETRYABLE_STATUS = {502, 503, 504}


def raise_for_error(response: httpx.Response) -> None:
    """
    Raise the application exception matching an error response.

    Raises:
        ApplicationError: Subclass chosen by the envelope error code
    """
    if response.is_success:
        return

    error: dict[str, Any] = {}
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        error = body["error"]

    code = error.get("code")
    message = error.get("message") or f"Request failed with status {response.status_code}"

    exc_cls = ERROR_CODE_MAP.get(code or "")
    if exc_cls is ValidationError:
        raise ValidationError(message, details=error.get("details"))
    if exc_cls is not None:
        raise exc_cls(message)
    if response.status_code in RETRYABLE_STATUS:
        raise StorageError(message)
    raise ApplicationError(message, code=code or "SYS_INTERNAL_ERROR")


class APIClient:
    """
    HTTP client for backend API communication.

    Features:
    - Automatic base URL from settings
    - X-Frontend-ID header for log routing
    - Optional bearer token for owner-only operations
    - Structured logging of requests/responses (method and path only)

    Usage:
        client = APIClient(token=token)
        response = await client.get("/health")
        response = await client.post("/api/v1/notes", json=payload)
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the API client.

        Args:
            base_url: Backend API base URL. If None, reads from config/settings/application.yaml.
            timeout: Request timeout in seconds. If None, reads from config/settings/application.yaml.
            token: Bearer token sent as the Authorization header
            transport: Custom httpx transport (tests use ASGITransport)
        """
        if base_url is None or timeout is None:
            try:
                config_base_url, config_timeout = get_server_base_url()
            except Exception as e:
                if base_url is None:
                    raise RuntimeError(
                        "Could not determine server URL from config/settings/application.yaml"
                    ) from e
                config_base_url, config_timeout = base_url, 30.0
        else:
            config_base_url, config_timeout = base_url, timeout

        self.base_url = (base_url or config_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config_timeout
        self._token = token
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {"X-Frontend-ID": "cli"}
            if self._token:
                headers["Authorization"] = f"Bearer {self._token}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Make an HTTP request to the backend.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: API path (e.g., /health, /api/v1/notes)
            **kwargs: Additional arguments for httpx

        Returns:
            httpx.Response

        Raises:
            httpx.HTTPError: On transport failure
        """
        client = await self._get_client()

        log_with_source(logger, "cli", "debug", "API request", method=method, path=path)

        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log_with_source(
                logger,
                "cli",
                "error",
                "API request failed",
                method=method,
                path=path,
                error_type=type(e).__name__,
            )
            raise

        log_with_source(
            logger,
            "cli",
            "debug",
            "API response",
            method=method,
            path=path,
            status_code=response.status_code,
        )
        return response

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        """Make a GET request."""
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        """Make a POST request."""
        return await self.request("POST", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        """Make a DELETE request."""
        return await self.request("DELETE", path, **kwargs)


# Module-level client instance
_client: APIClient | None = None


def get_api_client() -> APIClient:
    """Get or create the API client singleton."""
    global _client
    if _client is None:
        _client = APIClient()
    return _client


async def close_api_client() -> None:
    """Close the API client."""
    global _client
    if _client:
        await _client.close()
        _client = None

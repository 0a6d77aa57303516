"""HTTP client for the video platform REST API.

Provides retry logic, bearer-token authentication, and response envelope unwrapping.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from vidctl.core.exceptions import (
    APIError,
    AuthenticationError,
    NetworkError,
    PermissionDeniedError,
    ResourceNotFoundError,
    RetryExhaustedError,
    ServerUnreachableError,
)
from vidctl.core.validation import validate_server_url

# =============================================================================
# Constants
# =============================================================================

DEFAULT_TIMEOUT = 60
DEFAULT_MAX_RETRIES = 3
RETRY_BACKOFF_BASE = 2
RETRYABLE_STATUS_CODES = {502, 503, 504}
API_PREFIX = "/api/v1/videos"


# =============================================================================
# VideoAPIClient
# =============================================================================


@dataclass
class VideoAPIClient:
    """HTTP client for the video platform API with retry and envelope handling."""

    base_url: str
    token: str | None = None
    timeout: int = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    verify_ssl: bool = True
    api_prefix: str = API_PREFIX
    _client: httpx.Client | None = field(init=False, default=None, repr=False)

    def __post_init__(self) -> None:
        """Validate and normalize URL."""
        self.base_url = validate_server_url(self.base_url)

    # =========================================================================
    # Client Management
    # =========================================================================

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                verify=self.verify_ssl,
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> VideoAPIClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    @property
    def is_authenticated(self) -> bool:
        """Check if client carries a bearer token."""
        return bool(self.token)

    def _get_headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if extra:
            headers.update(extra)
        return headers

    def _api_path(self, path: str) -> str:
        return f"{self.api_prefix.rstrip('/')}/{path.lstrip('/')}"

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any | None = None,
        headers: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> httpx.Response:
        """Execute HTTP request with retry logic.

        Args:
            method: HTTP method.
            path: API path relative to the API prefix.
            params: Query parameters.
            json: JSON body.
            headers: Additional headers.
            timeout: Request timeout override.

        Returns:
            HTTP response.

        Raises:
            AuthenticationError: On HTTP 401.
            PermissionDeniedError: On HTTP 403.
            ResourceNotFoundError: On HTTP 404.
            APIError: On any other non-success status.
            RetryExhaustedError: If all retries fail.
        """
        client = self._get_client()
        full_path = self._api_path(path)
        request_timeout = timeout or self.timeout
        last_error: Exception | None = None

        for attempt in range(self.max_retries + 1):
            try:
                resp = client.request(
                    method,
                    full_path,
                    params=params,
                    json=json,
                    headers=self._get_headers(headers),
                    timeout=request_timeout,
                )
            except httpx.ConnectError:
                last_error = ServerUnreachableError(self.base_url)
            except httpx.TimeoutException:
                last_error = NetworkError(self.base_url, f"Timeout after {request_timeout}s")
            else:
                if resp.status_code == 401:
                    raise AuthenticationError(self.base_url, "Token missing or expired")
                if resp.status_code == 403:
                    raise PermissionDeniedError(full_path, method.lower())
                if resp.status_code == 404:
                    raise ResourceNotFoundError("resource", full_path)

                if resp.status_code in RETRYABLE_STATUS_CODES:
                    last_error = NetworkError(self.base_url, f"HTTP {resp.status_code}")
                elif resp.is_success:
                    return resp
                else:
                    raise APIError(method, full_path, resp.status_code, resp.text)

            # Retry with backoff
            if attempt < self.max_retries:
                time.sleep(RETRY_BACKOFF_BASE ** (attempt + 1))

        raise RetryExhaustedError(f"{method} {full_path}", self.max_retries + 1, last_error)

    def get(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> httpx.Response:
        """GET request."""
        return self._request("GET", path, params=params, headers=headers, timeout=timeout)

    def post(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any | None = None,
        headers: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> httpx.Response:
        """POST request."""
        return self._request(
            "POST",
            path,
            params=params,
            json=json,
            headers=headers,
            timeout=timeout,
        )

    # =========================================================================
    # Convenience Methods
    # =========================================================================

    def _decode(self, resp: httpx.Response, method: str, path: str) -> Any:
        """Decode a JSON body, treating an undecodable one as an API error."""
        try:
            return resp.json()
        except ValueError as e:
            raise APIError(
                method,
                self._api_path(path),
                resp.status_code,
                f"Malformed JSON response: {e}",
            ) from e

    def get_json(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        """GET request returning the decoded JSON body."""
        return self._decode(self.get(path, params=params), "GET", path)

    def post_json(self, path: str, *, json: Any | None = None) -> Any:
        """POST request returning the decoded JSON body, or None for an empty body."""
        resp = self.post(path, json=json)
        if not resp.content:
            return None
        if resp.headers.get("content-type", "").startswith("application/json"):
            return self._decode(resp, "POST", path)
        return None

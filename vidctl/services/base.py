"""Base service with common methods for all API services."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from vidctl.core.client import VideoAPIClient


class BaseService:
    """Base service class with common functionality."""

    def __init__(self, client: "VideoAPIClient") -> None:
        """Initialize service with API client.

        Args:
            client: VideoAPIClient instance
        """
        self.client = client

    def _get(self, path: str, **kwargs: Any) -> Any:
        """Execute GET request and return JSON data.

        Args:
            path: API endpoint path
            **kwargs: Additional request parameters

        Returns:
            Parsed JSON response data
        """
        return self.client.get_json(path, **kwargs)

    def _post(self, path: str, **kwargs: Any) -> Any:
        """Execute POST request and return JSON data (None for empty bodies).

        Args:
            path: API endpoint path
            **kwargs: Additional request parameters

        Returns:
            Parsed JSON response or None
        """
        return self.client.post_json(path, **kwargs)

    def _extract_data(self, payload: Any, key: str = "data") -> Any:
        """Unwrap the ``{"success": ..., "data": ...}`` response envelope.

        Args:
            payload: Raw API response data
            key: Envelope key holding the result

        Returns:
            The enveloped value, or the payload itself when it is not enveloped
        """
        if isinstance(payload, dict) and key in payload:
            return payload[key]
        return payload

    def _build_path(self, *parts: str | int) -> str:
        """Build API path from parts.

        Args:
            *parts: Path segments

        Returns:
            Joined path string
        """
        return "/" + "/".join(str(p).strip("/") for p in parts if p != "")

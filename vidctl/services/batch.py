"""Batch upload endpoints of the video platform API."""

from __future__ import annotations

import builtins
import time
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from vidctl.core.exceptions import UploadError
from vidctl.models.upload import (
    FileMetadata,
    PartVerification,
    RemoteProgress,
    RetryPart,
    UploadSession,
    strip_etag,
)

from .base import BaseService


class BatchUploadService(BaseService):
    """Service for the ``/batch`` endpoints that back chunked uploads."""

    def _parse_list(self, payload: Any, model: type, what: str) -> builtins.list[Any]:
        data = self._extract_data(payload)
        if not isinstance(data, list):
            raise UploadError(f"Malformed {what} response: expected a list")
        try:
            return [model.model_validate(item) for item in data]
        except PydanticValidationError as e:
            raise UploadError(f"Malformed {what} response: {e}") from e

    def init_batch(
        self,
        channel_id: str,
        files: Sequence[FileMetadata],
    ) -> builtins.list[UploadSession]:
        """Request one upload session per file.

        Args:
            channel_id: Channel receiving the videos.
            files: File metadata, in the order sessions must be returned.

        Returns:
            Sessions in the same order as ``files``.
        """
        payload = self._post(
            "/batch/init",
            json={"channelId": channel_id, "files": [f.to_wire() for f in files]},
        )
        return self._parse_list(payload, UploadSession, "batch init")

    def complete_upload(self, upload_id: str) -> None:
        """Finalize an upload session."""
        self._post(self._build_path("batch", "complete", upload_id))

    def get_progress(self, upload_id: str) -> RemoteProgress:
        """Fetch the backend's progress record for an upload."""
        payload = self._get(self._build_path("batch", "progress", upload_id))
        data = self._extract_data(payload)
        try:
            return RemoteProgress.model_validate(data or {})
        except PydanticValidationError as e:
            raise UploadError(f"Malformed progress response: {e}") from e

    def retry_parts(self, upload_id: str) -> builtins.list[RetryPart]:
        """Ask the backend which parts are still outstanding, with fresh URLs."""
        payload = self._post(self._build_path("batch", "retry", upload_id))
        return self._parse_list(payload, RetryPart, "retry")

    def retry_part(self, upload_id: str, part_number: int) -> str:
        """Re-issue the pre-signed URL of one part.

        Args:
            upload_id: Upload identifier.
            part_number: 1-indexed part number.

        Returns:
            Fresh pre-signed URL.
        """
        payload = self._get(self._build_path("batch", "retry", upload_id, part_number))
        url = None
        if isinstance(payload, dict):
            url = payload.get("presignedUrl")
            data = payload.get("data")
            if url is None and isinstance(data, dict):
                url = data.get("presignedUrl")
        if not url:
            raise UploadError(
                f"No presigned URL returned for part {part_number}",
                details={"upload_id": upload_id},
            )
        return url

    def record_part_completion(
        self,
        upload_id: str,
        part_number: int,
        etag: str,
        size: int,
    ) -> None:
        """Tell the backend that a part finished uploading.

        Args:
            upload_id: Upload identifier.
            part_number: 1-indexed part number.
            etag: Digest returned by storage (quotes are stripped here).
            size: Byte size of the part.
        """
        self._post(
            self._build_path("batch", "chunk", upload_id),
            json={
                "partNumber": part_number,
                "eTag": strip_etag(etag),
                "size": size,
                "timestamp": int(time.time() * 1000),
            },
        )

    def verify_parts(self, upload_id: str) -> builtins.list[PartVerification]:
        """Fetch the backend's per-part records for an upload."""
        payload = self._get(self._build_path("batch", "verify", upload_id))
        return self._parse_list(payload, PartVerification, "verify")

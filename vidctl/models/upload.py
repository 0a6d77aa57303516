"""Wire models for the batch upload endpoints."""

from __future__ import annotations

import mimetypes
from enum import Enum
from pathlib import Path

from pydantic import Field

from .base import BaseModel

DEFAULT_MIME_TYPE = "application/octet-stream"


def strip_etag(etag: str) -> str:
    """Remove the quotes storage services wrap around ETag values."""
    return etag.replace('"', "")


class UploadStatus(str, Enum):
    """Lifecycle of a server-issued upload session."""

    INITIALIZED = "initialized"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    ERROR = "error"


class FileMetadata(BaseModel):
    """Describes a file before any session exists."""

    filename: str = Field(..., min_length=1, description="File name")
    size: int = Field(..., ge=0, description="Size in bytes")
    mime_type: str = Field(DEFAULT_MIME_TYPE, alias="type", description="MIME type")

    @classmethod
    def from_path(cls, path: Path) -> FileMetadata:
        """Build metadata for a local file."""
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            size=path.stat().st_size,
            mime_type=mime_type or DEFAULT_MIME_TYPE,
        )


class UploadSession(BaseModel):
    """Server-issued record describing how one file will be uploaded.

    Everything except ``status`` is fixed by the server; ``status`` is a local
    mirror updated by the orchestrator.
    """

    upload_id: str = Field(..., alias="uploadId", min_length=1)
    is_chunked: bool = Field(False, alias="isChunked")
    part_urls: list[str] = Field(default_factory=list, alias="presignedUrls")
    total_parts: int = Field(0, alias="totalChunks", ge=0)
    status: UploadStatus = UploadStatus.INITIALIZED


class RemoteProgress(BaseModel):
    """Backend view of an upload's progress."""

    progress: float = 0
    completed_count: int = Field(0, alias="completedCount")
    total_parts: int = Field(0, alias="totalChunks")
    status: str = ""
    error: str | None = None

    def is_complete(self, total_parts: int) -> bool:
        """Check whether the backend reports every part durably recorded."""
        return self.completed_count == total_parts and self.status == UploadStatus.COMPLETED.value


class RetryPart(BaseModel):
    """Outstanding part with a freshly issued pre-signed URL."""

    part_index: int = Field(..., alias="chunkIndex", ge=0)
    url: str

    @property
    def part_number(self) -> int:
        return self.part_index + 1


class PartVerification(BaseModel):
    """Backend record of one part."""

    part_number: int = Field(..., alias="partNumber", ge=1)
    etag: str | None = Field(None, alias="eTag")
    size: int = 0
    is_complete: bool = Field(False, alias="isComplete")

"""Data models for vidctl.

Provides Pydantic models for backend payloads and dataclasses for upload progress.
"""

from __future__ import annotations

from .base import BaseModel
from .progress import (
    FileUploadResult,
    OperationResult,
    PartState,
    PartStatus,
    ProgressState,
    UploadProgress,
    UploadSummary,
)
from .upload import (
    FileMetadata,
    PartVerification,
    RemoteProgress,
    RetryPart,
    UploadSession,
    UploadStatus,
)

__all__ = [
    # Base
    "BaseModel",
    # Wire
    "FileMetadata",
    "UploadSession",
    "UploadStatus",
    "RemoteProgress",
    "RetryPart",
    "PartVerification",
    # Progress
    "PartState",
    "PartStatus",
    "ProgressState",
    "UploadProgress",
    "FileUploadResult",
    "OperationResult",
    "UploadSummary",
]

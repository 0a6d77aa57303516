"""Progress models for tracking upload status.

Provides dataclasses for per-part and per-upload progress and batch summaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .upload import UploadSession


class PartState(Enum):
    """Lifecycle of one part upload."""

    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    ERROR = "error"


class ProgressState(Enum):
    """State of an upload as shown to the user."""

    UPLOADING = "uploading"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class PartStatus:
    """Attempt history of one part.

    Transitions: pending -> uploading -> completed | error, then
    error -> uploading for another attempt, or error -> completed when the
    backend turns out to hold the part already.
    """

    part_number: int
    byte_size: int
    digest: Optional[str] = None
    attempts: int = 0
    last_attempt_at: Optional[datetime] = None
    state: PartState = PartState.PENDING

    def start_attempt(self) -> None:
        """Mark the part as being uploaded."""
        if self.state not in (PartState.PENDING, PartState.ERROR):
            raise ValueError(f"Part {self.part_number} cannot start an attempt from {self.state.value}")
        self.state = PartState.UPLOADING
        self.attempts += 1
        self.last_attempt_at = datetime.now()

    def mark_completed(self, digest: Optional[str] = None) -> None:
        """Mark the part as durably uploaded."""
        if self.state != PartState.UPLOADING:
            raise ValueError(f"Part {self.part_number} cannot complete from {self.state.value}")
        self.state = PartState.COMPLETED
        if digest is not None:
            self.digest = digest

    def mark_error(self) -> None:
        """Mark the current attempt as failed."""
        if self.state != PartState.UPLOADING:
            raise ValueError(f"Part {self.part_number} cannot fail from {self.state.value}")
        self.state = PartState.ERROR

    def confirm_remote(self) -> None:
        """Accept a failed attempt that the backend reports as recorded."""
        if self.state != PartState.ERROR:
            raise ValueError(f"Part {self.part_number} cannot be confirmed from {self.state.value}")
        self.state = PartState.COMPLETED

    @property
    def is_complete(self) -> bool:
        return self.state == PartState.COMPLETED


@dataclass
class UploadProgress:
    """Progress of one upload, keyed by upload id in the tracker."""

    total_parts: int
    completed_part_count: int = 0
    percent_complete: int = 0
    state: ProgressState = ProgressState.UPLOADING
    error_message: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.state == ProgressState.COMPLETED

    @property
    def has_error(self) -> bool:
        return self.state == ProgressState.ERROR

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for output."""
        data: Dict[str, Any] = {
            "percent_complete": self.percent_complete,
            "completed_part_count": self.completed_part_count,
            "total_parts": self.total_parts,
            "state": self.state.value,
        }
        if self.error_message:
            data["error_message"] = self.error_message
        return data


@dataclass
class FileUploadResult:
    """Outcome of uploading one file of a batch."""

    path: Path
    session: UploadSession
    success: bool
    duration: float = 0.0
    error: str = ""
    parts: Dict[int, PartStatus] = field(default_factory=dict)

    @property
    def upload_id(self) -> str:
        return self.session.upload_id

    @property
    def display_name(self) -> str:
        return self.path.name

    @property
    def size(self) -> int:
        try:
            return self.path.stat().st_size
        except OSError:
            return 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for output."""
        return {
            "file": self.display_name,
            "upload_id": self.upload_id,
            "chunked": self.session.is_chunked,
            "parts": self.session.total_parts if self.session.is_chunked else 1,
            "status": self.session.status.value,
            "duration": round(self.duration, 2),
            "error": self.error,
        }


@dataclass
class OperationResult:
    """Generic operation result."""

    success: bool
    total: int
    succeeded: int
    failed: int
    duration: float
    errors: List[str] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        """Calculate success rate percentage."""
        if self.total == 0:
            return 100.0
        return (self.succeeded / self.total) * 100


@dataclass
class UploadSummary(OperationResult):
    """Batch upload summary."""

    channel_id: str = ""
    total_size_mb: float = 0.0
    cancelled: bool = False
    results: List[FileUploadResult] = field(default_factory=list)

    @property
    def throughput_mbps(self) -> float:
        """Calculate upload throughput in MB/s."""
        if self.duration == 0:
            return 0.0
        return self.total_size_mb / self.duration

    @classmethod
    def from_results(
        cls,
        channel_id: str,
        results: List[FileUploadResult],
        duration: float,
        cancelled: bool = False,
    ) -> UploadSummary:
        """Summarize per-file results."""
        succeeded = sum(1 for r in results if r.success)
        return cls(
            success=succeeded == len(results) and not cancelled,
            total=len(results),
            succeeded=succeeded,
            failed=len(results) - succeeded,
            duration=duration,
            errors=[f"{r.display_name}: {r.error}" for r in results if not r.success],
            channel_id=channel_id,
            total_size_mb=sum(r.size for r in results) / (1024 * 1024),
            cancelled=cancelled,
            results=results,
        )

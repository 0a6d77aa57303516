"""Input validation helpers for vidctl.

Each validator returns the normalized value or raises a ValidationError subclass.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from pathlib import Path
from urllib.parse import urlparse

from vidctl.core.exceptions import InvalidURLError, PathValidationError, ValidationError

# Upload ids are opaque, but they are interpolated into URL paths.
UPLOAD_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:~-]{1,256}$")
CHANNEL_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

# Callers cap a batch; the upload engine itself accepts any non-empty list.
MAX_BATCH_FILES = 5


def validate_server_url(url: str) -> str:
    """Validate and normalize a server URL.

    Args:
        url: Server URL.

    Returns:
        URL without trailing slash.

    Raises:
        InvalidURLError: If the URL is not an absolute http(s) URL.
    """
    if not url or not url.strip():
        raise InvalidURLError(url or "", "URL is empty")

    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise InvalidURLError(url, "scheme must be http or https")
    if not parsed.netloc:
        raise InvalidURLError(url, "missing host")

    return url.rstrip("/")


def validate_channel_id(channel_id: str | int) -> str:
    """Validate a channel identifier."""
    value = str(channel_id).strip()
    if not CHANNEL_ID_PATTERN.match(value):
        raise ValidationError(f"Invalid channel ID: {channel_id}", field="channel", value=channel_id)
    return value


def validate_upload_id(upload_id: str) -> str:
    """Validate a server-issued upload identifier."""
    value = (upload_id or "").strip()
    if not UPLOAD_ID_PATTERN.match(value):
        raise ValidationError(f"Invalid upload ID: {upload_id}", field="upload_id", value=upload_id)
    return value


def validate_upload_file(path: str | Path) -> Path:
    """Validate that a path points to a readable regular file.

    Args:
        path: File path.

    Returns:
        Resolved path.

    Raises:
        PathValidationError: If the path is missing or not a file.
    """
    p = Path(path).expanduser()
    if not p.exists():
        raise PathValidationError(str(path), "does not exist")
    if not p.is_file():
        raise PathValidationError(str(path), "is not a file")
    return p.resolve()


def validate_batch(paths: Sequence[str | Path], max_files: int = MAX_BATCH_FILES) -> list[Path]:
    """Validate a batch of upload files.

    Args:
        paths: Files to upload.
        max_files: Maximum files per batch.

    Returns:
        Resolved paths in input order.

    Raises:
        ValidationError: If the batch is empty, too large, or has duplicates.
    """
    if not paths:
        raise ValidationError("No files to upload", field="files")
    if len(paths) > max_files:
        raise ValidationError(
            f"Too many files: {len(paths)} (max {max_files} per batch)",
            field="files",
            value=len(paths),
        )

    resolved = [validate_upload_file(p) for p in paths]
    if len(set(resolved)) != len(resolved):
        raise ValidationError("Duplicate files in batch", field="files")
    return resolved


def validate_workers(workers: int, max_workers: int = 32) -> int:
    """Validate a worker/concurrency count."""
    if workers < 1 or workers > max_workers:
        raise ValidationError(
            f"Invalid worker count: {workers} (must be 1-{max_workers})",
            field="workers",
            value=workers,
        )
    return workers


def validate_timeout(timeout: int) -> int:
    """Validate a timeout in seconds."""
    if timeout < 1:
        raise ValidationError(f"Invalid timeout: {timeout}", field="timeout", value=timeout)
    return timeout

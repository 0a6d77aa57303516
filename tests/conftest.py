"""Pytest configuration and fixtures for vidctl tests."""

from __future__ import annotations

import itertools
import math
import threading
import time
from collections import Counter
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import httpx
import pytest

from vidctl.models.upload import (
    FileMetadata,
    PartVerification,
    RemoteProgress,
    RetryPart,
    UploadSession,
)
from vidctl.uploaders.common import RetryPolicy
from vidctl.uploaders.constants import CHUNKING_THRESHOLD, PART_SIZE

STORAGE_HOST = "https://storage.test"

# Zero-delay policies so retry paths run instantly
FAST_PART_POLICY = RetryPolicy.fixed(3, 0.0)
FAST_VERIFY_POLICY = RetryPolicy.exponential(3, 0.0)


def part_of(url: str) -> tuple[str, int]:
    """Return (upload_id, part index) encoded in a fake storage URL."""
    _, upload_id, index = httpx.URL(url).path.split("/")
    return upload_id, int(index)


class FakeBackend:
    """In-memory implementation of the batch endpoints.

    Sessions follow the server's chunking policy (size above the threshold
    means chunked) and the recorded parts drive progress, retry and verify.
    """

    def __init__(
        self,
        *,
        part_size: int = PART_SIZE,
        threshold: int = CHUNKING_THRESHOLD,
        converge: bool = True,
    ) -> None:
        self.part_size = part_size
        self.threshold = threshold
        self.converge = converge
        self.uploads: dict[str, dict[str, Any]] = {}
        self.completed: list[str] = []
        self.calls: list[tuple[str, str]] = []
        self.record_counts: Counter[tuple[str, int]] = Counter()
        self.session_hook: Callable[[list[UploadSession]], list[UploadSession]] | None = None
        self.init_error: Exception | None = None
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def _call(self, name: str, upload_id: str = "") -> None:
        with self._lock:
            self.calls.append((name, upload_id))

    def init_batch(self, channel_id: str, files: Sequence[FileMetadata]) -> list[UploadSession]:
        self._call("init_batch")
        if self.init_error is not None:
            raise self.init_error

        sessions = []
        for meta in files:
            upload_id = f"up{next(self._ids)}"
            chunked = meta.size > self.threshold
            total = math.ceil(meta.size / self.part_size) if chunked else 1
            self.uploads[upload_id] = {"total": total, "chunked": chunked, "parts": {}}
            sessions.append(
                UploadSession(
                    upload_id=upload_id,
                    is_chunked=chunked,
                    part_urls=[f"{STORAGE_HOST}/{upload_id}/{i}" for i in range(total)],
                    total_parts=total,
                )
            )
        if self.session_hook is not None:
            sessions = self.session_hook(sessions)
        return sessions

    def complete_upload(self, upload_id: str) -> None:
        self._call("complete_upload", upload_id)
        with self._lock:
            self.completed.append(upload_id)

    def get_progress(self, upload_id: str) -> RemoteProgress:
        self._call("get_progress", upload_id)
        upload = self.uploads[upload_id]
        done = len(upload["parts"])
        complete = self.converge and done == upload["total"]
        return RemoteProgress(
            progress=round(done / upload["total"] * 100),
            completed_count=done,
            total_parts=upload["total"],
            status="completed" if complete else "uploading",
        )

    def retry_parts(self, upload_id: str) -> list[RetryPart]:
        self._call("retry_parts", upload_id)
        upload = self.uploads[upload_id]
        return [
            RetryPart(part_index=i, url=f"{STORAGE_HOST}/{upload_id}/{i}")
            for i in range(upload["total"])
            if i + 1 not in upload["parts"]
        ]

    def retry_part(self, upload_id: str, part_number: int) -> str:
        self._call("retry_part", upload_id)
        return f"{STORAGE_HOST}/{upload_id}/{part_number - 1}"

    def record_part_completion(self, upload_id: str, part_number: int, etag: str, size: int) -> None:
        self._call("record_part_completion", upload_id)
        with self._lock:
            self.uploads[upload_id]["parts"][part_number] = etag.replace('"', "")
            self.record_counts[(upload_id, part_number)] += 1

    def verify_parts(self, upload_id: str) -> list[PartVerification]:
        self._call("verify_parts", upload_id)
        return [
            PartVerification(part_number=n, etag=etag, size=self.part_size, is_complete=True)
            for n, etag in sorted(self.uploads[upload_id]["parts"].items())
        ]


class FakeStorage:
    """Stands in for PartUploader: accepts PUTs and can fail chosen parts.

    ``fail_times`` maps a 1-indexed part number to how many of its next PUTs
    fail with a connection error.
    """

    def __init__(self, delay: float = 0.002) -> None:
        self.delay = delay
        self.fail_times: dict[int, int] = {}
        self.puts: list[tuple[str, int, int, str]] = []
        self.on_put: Callable[[str, int], None] | None = None
        self.max_in_flight: Counter[str] = Counter()
        self._in_flight: Counter[str] = Counter()
        self._lock = threading.Lock()

    def attempts(self, upload_id: str, part_number: int) -> int:
        return sum(1 for uid, idx, _, _ in self.puts if uid == upload_id and idx == part_number - 1)

    def put(self, url: str, data: Any, content_type: str = "application/octet-stream") -> str:
        upload_id, index = part_of(url)
        body = data if isinstance(data, bytes) else data.read()
        with self._lock:
            self.puts.append((upload_id, index, len(body), content_type))
            self._in_flight[upload_id] += 1
            self.max_in_flight[upload_id] = max(
                self.max_in_flight[upload_id], self._in_flight[upload_id]
            )
            remaining = self.fail_times.get(index + 1, 0)
            if remaining:
                self.fail_times[index + 1] = remaining - 1
        try:
            if self.on_put is not None:
                self.on_put(upload_id, index + 1)
            time.sleep(self.delay)
            if remaining:
                raise httpx.ConnectError(f"connection reset on part {index + 1}")
            return f'"etag-{upload_id}-{index + 1}"'
        finally:
            with self._lock:
                self._in_flight[upload_id] -= 1

    def close(self) -> None:
        pass


@pytest.fixture
def backend() -> FakeBackend:
    """Fake backend with the production part size."""
    return FakeBackend()


@pytest.fixture
def storage() -> FakeStorage:
    """Fake pre-signed URL storage."""
    return FakeStorage()


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[[str, int], Path]:
    """Create a sparse file of a given size."""

    def _make(name: str, size: int) -> Path:
        path = tmp_path / name
        with open(path, "wb") as f:
            f.truncate(size)
        return path

    return _make


@pytest.fixture
def sample_config_yaml() -> str:
    """Sample config YAML content."""
    return """
default_profile: test
output_format: table

profiles:
  test:
    url: https://videos-test.example.com
    verify_ssl: false
    timeout: 30
    default_channel: "42"

  production:
    url: https://videos.example.com
    verify_ssl: true
    timeout: 60

upload:
  max_concurrent_parts: 2
  verify_rounds: 5
"""

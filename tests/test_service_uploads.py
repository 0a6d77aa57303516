"""Tests for UploadService."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from tests.conftest import FakeBackend, FakeStorage
from vidctl.core.config import UploadSettings
from vidctl.core.exceptions import BatchInitError, ValidationError
from vidctl.models.upload import UploadStatus
from vidctl.services import uploads as uploads_module
from vidctl.services.uploads import UploadService
from vidctl.uploaders.constants import PART_SIZE

MiB = 1024 * 1024

FAST_SETTINGS = UploadSettings(retry_delay=0.0, verify_base_delay=0.0, convergence_delay=0.0)


@pytest.fixture
def service(backend: FakeBackend, storage: FakeStorage, monkeypatch) -> UploadService:
    """UploadService wired to the fake backend and storage."""
    uploader_cls = MagicMock()
    uploader_cls.return_value.__enter__.return_value = storage
    monkeypatch.setattr(uploads_module, "PartUploader", uploader_cls)

    svc = UploadService(MagicMock(verify_ssl=True), FAST_SETTINGS)
    svc.batch = backend
    return svc


class TestUploadFiles:
    """Tests for UploadService.upload_files."""

    def test_summary_of_successful_batch(self, service, backend, make_file):
        files = [make_file("a.mp4", 10), make_file("b.mp4", 20)]

        summary = service.upload_files("42", files)

        assert summary.success
        assert summary.total == 2
        assert summary.succeeded == 2
        assert summary.channel_id == "42"
        assert not summary.cancelled
        assert sorted(backend.completed) == ["up1", "up2"]
        assert [r.session.status for r in summary.results] == [UploadStatus.COMPLETED] * 2

    def test_failed_file_is_reported_not_raised(self, service, backend, storage, make_file):
        storage.fail_times = {1: 1}
        files = [make_file("a.mp4", 10)]

        summary = service.upload_files("42", files)

        assert not summary.success
        assert summary.failed == 1
        assert summary.errors[0].startswith("a.mp4: ")
        assert backend.completed == []

    def test_batch_init_error_propagates(self, service, backend, make_file):
        backend.init_error = BatchInitError("HTTP 503")

        with pytest.raises(BatchInitError):
            service.upload_files("42", [make_file("a.mp4", 10)])

    def test_progress_callback(self, backend, storage, make_file, monkeypatch):
        uploader_cls = MagicMock()
        uploader_cls.return_value.__enter__.return_value = storage
        monkeypatch.setattr(uploads_module, "PartUploader", uploader_cls)
        seen = []
        svc = UploadService(
            MagicMock(verify_ssl=True),
            FAST_SETTINGS,
            progress_callback=lambda uid, p: seen.append((uid, p.percent_complete)),
        )
        svc.batch = backend

        svc.upload_files("42", [make_file("a.mp4", 10)])

        assert seen[0] == ("up1", 0)
        assert seen[-1] == ("up1", 100)


class TestCancel:
    """Tests for UploadService.cancel."""

    def test_cancel_without_batch(self, service):
        assert service.cancel() is False

    def test_cancel_running_batch(self, service, backend, storage, make_file):
        service.settings = UploadSettings(
            max_concurrent_parts=1,
            max_concurrent_files=1,
            retry_delay=0.0,
            verify_base_delay=0.0,
            convergence_delay=0.0,
        )
        first_put = threading.Event()

        def on_put(upload_id, part_number):
            if not first_put.is_set():
                first_put.set()
                service.cancel()

        storage.on_put = on_put

        summary = service.upload_files("42", [make_file("big.mp4", 151 * MiB)])

        assert summary.cancelled
        assert not summary.success
        assert summary.results[0].error == "Upload cancelled"
        assert backend.completed == []


class TestRetryUpload:
    """Tests for UploadService.retry_upload."""

    def test_retries_outstanding_parts(self, service, backend, storage, make_file):
        path = make_file("big.mp4", 151 * MiB)
        total = 31
        backend.uploads["up9"] = {
            "total": total,
            "chunked": True,
            "parts": {n: f"etag-{n}" for n in range(1, total + 1) if n != 5},
        }

        result = service.retry_upload("up9", path)

        assert result.success
        assert [(uid, idx) for uid, idx, _, _ in storage.puts] == [("up9", 4)]
        assert storage.puts[0][2] == PART_SIZE
        assert backend.completed == ["up9"]
        assert service.tracker.get("up9").is_complete

    def test_missing_file(self, service, tmp_path):
        with pytest.raises(ValidationError):
            service.retry_upload("up9", tmp_path / "gone.mp4")


def test_backend_lookups(service, backend):
    backend.uploads["up9"] = {"total": 2, "chunked": True, "parts": {1: "e1"}}

    assert service.get_progress("up9").completed_count == 1
    assert [r.part_number for r in service.verify_parts("up9")] == [1]

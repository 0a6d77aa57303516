"""Tests for vidctl models."""

from __future__ import annotations

from pathlib import Path

import pytest

from vidctl.models.progress import FileUploadResult, PartState, PartStatus, UploadSummary
from vidctl.models.upload import FileMetadata, RetryPart, UploadSession, strip_etag


class TestPartStatus:
    """Tests for part state transitions."""

    def test_success_path(self):
        status = PartStatus(part_number=1, byte_size=5)

        status.start_attempt()
        status.mark_completed("abc")

        assert status.state == PartState.COMPLETED
        assert status.attempts == 1
        assert status.digest == "abc"
        assert status.last_attempt_at is not None

    def test_error_then_retry(self):
        status = PartStatus(part_number=2, byte_size=5)
        status.start_attempt()
        status.mark_error()

        status.start_attempt()
        status.mark_completed()

        assert status.attempts == 2
        assert status.is_complete

    def test_confirm_remote_after_error(self):
        status = PartStatus(part_number=3, byte_size=5)
        status.start_attempt()
        status.mark_error()

        status.confirm_remote()

        assert status.is_complete
        assert status.attempts == 1

    def test_invalid_transitions(self):
        status = PartStatus(part_number=4, byte_size=5)
        with pytest.raises(ValueError):
            status.mark_completed()
        with pytest.raises(ValueError):
            status.confirm_remote()

        status.start_attempt()
        with pytest.raises(ValueError):
            status.start_attempt()

        status.mark_completed()
        with pytest.raises(ValueError):
            status.mark_error()


class TestWireModels:
    """Tests for backend wire models."""

    def test_file_metadata_from_path(self, tmp_path: Path):
        path = tmp_path / "talk.mp4"
        path.write_bytes(b"x" * 12)

        meta = FileMetadata.from_path(path)

        assert meta.to_wire() == {"filename": "talk.mp4", "size": 12, "type": "video/mp4"}

    def test_unknown_extension_falls_back(self, tmp_path: Path):
        path = tmp_path / "clip.unknownext"
        path.write_bytes(b"x")

        assert FileMetadata.from_path(path).mime_type == "application/octet-stream"

    def test_session_from_wire(self):
        session = UploadSession.model_validate(
            {"uploadId": "u1", "isChunked": True, "presignedUrls": ["a", "b"], "totalChunks": 2}
        )

        assert session.upload_id == "u1"
        assert session.part_urls == ["a", "b"]

    def test_retry_part_number_is_one_indexed(self):
        assert RetryPart.model_validate({"chunkIndex": 0, "url": "u"}).part_number == 1

    def test_strip_etag(self):
        assert strip_etag('"abc"') == "abc"
        assert strip_etag("abc") == "abc"


class TestUploadSummary:
    """Tests for UploadSummary."""

    def test_from_results(self, make_file):
        a = make_file("a.mp4", 1024 * 1024)
        b = make_file("b.mp4", 1024 * 1024)
        results = [
            FileUploadResult(path=a, session=UploadSession(upload_id="u1"), success=True),
            FileUploadResult(
                path=b, session=UploadSession(upload_id="u2"), success=False, error="boom"
            ),
        ]

        summary = UploadSummary.from_results("42", results, 2.0)

        assert not summary.success
        assert summary.succeeded == 1
        assert summary.failed == 1
        assert summary.errors == ["b.mp4: boom"]
        assert summary.total_size_mb == pytest.approx(2.0)
        assert summary.throughput_mbps == pytest.approx(1.0)
        assert summary.success_rate == 50.0

    def test_cancelled_batch_is_not_successful(self, make_file):
        a = make_file("a.mp4", 1)
        results = [FileUploadResult(path=a, session=UploadSession(upload_id="u1"), success=True)]

        summary = UploadSummary.from_results("42", results, 1.0, cancelled=True)

        assert not summary.success
        assert summary.cancelled

"""Unit tests for BatchUploadService."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from vidctl.core.exceptions import UploadError
from vidctl.models.upload import FileMetadata, UploadStatus
from vidctl.services.batch import BatchUploadService


@pytest.fixture
def mock_client() -> MagicMock:
    """Create a mock VideoAPIClient."""
    client = MagicMock()
    client.base_url = "https://videos.example.com"
    return client


@pytest.fixture
def service(mock_client: MagicMock) -> BatchUploadService:
    """Create BatchUploadService with mock client."""
    return BatchUploadService(mock_client)


SAMPLE_SESSIONS = {
    "success": True,
    "data": [
        {"uploadId": "u1", "isChunked": False, "presignedUrls": ["https://s3/u1"], "totalChunks": 1},
        {
            "uploadId": "u2",
            "isChunked": True,
            "presignedUrls": [f"https://s3/u2/{i}" for i in range(40)],
            "totalChunks": 40,
        },
    ],
}


class TestInitBatch:
    """Tests for BatchUploadService.init_batch."""

    def test_sends_channel_and_wire_metadata(
        self, service: BatchUploadService, mock_client: MagicMock
    ) -> None:
        mock_client.post_json.return_value = SAMPLE_SESSIONS
        files = [
            FileMetadata(filename="a.mp4", size=10, mime_type="video/mp4"),
            FileMetadata(filename="b.mov", size=200, mime_type="video/quicktime"),
        ]

        sessions = service.init_batch("42", files)

        mock_client.post_json.assert_called_once_with(
            "/batch/init",
            json={
                "channelId": "42",
                "files": [
                    {"filename": "a.mp4", "size": 10, "type": "video/mp4"},
                    {"filename": "b.mov", "size": 200, "type": "video/quicktime"},
                ],
            },
        )
        assert [s.upload_id for s in sessions] == ["u1", "u2"]
        assert sessions[1].is_chunked
        assert sessions[1].total_parts == 40
        assert len(sessions[1].part_urls) == 40
        assert sessions[0].status == UploadStatus.INITIALIZED

    def test_malformed_response(self, service: BatchUploadService, mock_client: MagicMock) -> None:
        mock_client.post_json.return_value = {"success": True, "data": {"uploadId": "u1"}}

        with pytest.raises(UploadError, match="Malformed batch init response"):
            service.init_batch("42", [FileMetadata(filename="a.mp4", size=1)])

    def test_missing_upload_id(self, service: BatchUploadService, mock_client: MagicMock) -> None:
        mock_client.post_json.return_value = {"data": [{"isChunked": False}]}

        with pytest.raises(UploadError):
            service.init_batch("42", [FileMetadata(filename="a.mp4", size=1)])


class TestProgressEndpoints:
    """Tests for progress, retry and verify endpoints."""

    def test_get_progress(self, service: BatchUploadService, mock_client: MagicMock) -> None:
        mock_client.get_json.return_value = {
            "data": {"progress": 100, "completedCount": 40, "totalChunks": 40, "status": "completed"}
        }

        progress = service.get_progress("u2")

        mock_client.get_json.assert_called_once_with("/batch/progress/u2")
        assert progress.completed_count == 40
        assert progress.is_complete(40)
        assert not progress.is_complete(41)

    def test_retry_parts(self, service: BatchUploadService, mock_client: MagicMock) -> None:
        mock_client.post_json.return_value = {
            "data": [{"chunkIndex": 2, "url": "https://s3/u2/2"}, {"chunkIndex": 18, "url": "https://s3/u2/18"}]
        }

        parts = service.retry_parts("u2")

        mock_client.post_json.assert_called_once_with("/batch/retry/u2")
        assert [p.part_number for p in parts] == [3, 19]

    @pytest.mark.parametrize(
        "payload",
        [
            {"presignedUrl": "https://s3/u2/6?fresh"},
            {"success": True, "data": {"presignedUrl": "https://s3/u2/6?fresh"}},
        ],
    )
    def test_retry_part(self, service: BatchUploadService, mock_client: MagicMock, payload) -> None:
        mock_client.get_json.return_value = payload

        url = service.retry_part("u2", 7)

        mock_client.get_json.assert_called_once_with("/batch/retry/u2/7")
        assert url == "https://s3/u2/6?fresh"

    def test_retry_part_without_url(self, service: BatchUploadService, mock_client: MagicMock) -> None:
        mock_client.get_json.return_value = {"success": False}

        with pytest.raises(UploadError, match="No presigned URL"):
            service.retry_part("u2", 7)

    def test_record_part_completion_strips_etag(
        self, service: BatchUploadService, mock_client: MagicMock
    ) -> None:
        service.record_part_completion("u2", 7, '"abc123"', 5242880)

        path = mock_client.post_json.call_args.args[0]
        body = mock_client.post_json.call_args.kwargs["json"]
        assert path == "/batch/chunk/u2"
        assert body["partNumber"] == 7
        assert body["eTag"] == "abc123"
        assert body["size"] == 5242880
        assert isinstance(body["timestamp"], int)
        assert body["timestamp"] > 1_600_000_000_000

    def test_verify_parts(self, service: BatchUploadService, mock_client: MagicMock) -> None:
        mock_client.get_json.return_value = {
            "data": [
                {"partNumber": 1, "eTag": "e1", "size": 5, "isComplete": True},
                {"partNumber": 2, "eTag": None, "size": 0, "isComplete": False},
            ]
        }

        records = service.verify_parts("u2")

        mock_client.get_json.assert_called_once_with("/batch/verify/u2")
        assert [r.is_complete for r in records] == [True, False]

    def test_complete_upload(self, service: BatchUploadService, mock_client: MagicMock) -> None:
        service.complete_upload("u1")

        mock_client.post_json.assert_called_once_with("/batch/complete/u1")

"""Upload service for video batch uploads.

Provides UploadService, the public entry point for:
- Batch upload of local files to a channel
- Backend progress and per-part verification lookups
- Manual retry of a failed chunked upload
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

from vidctl.core.cancellation import CANCELLED_MESSAGE
from vidctl.core.config import UploadSettings
from vidctl.core.exceptions import ValidationError
from vidctl.models.progress import FileUploadResult, UploadProgress, UploadSummary
from vidctl.models.upload import PartVerification, RemoteProgress, UploadSession, UploadStatus
from vidctl.uploaders.common import expected_part_count
from vidctl.uploaders.orchestrator import BatchUploader
from vidctl.uploaders.parts import PartUploader
from vidctl.uploaders.tracker import ProgressTracker

from .base import BaseService
from .batch import BatchUploadService

if TYPE_CHECKING:
    from vidctl.core.client import VideoAPIClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UploadService(BaseService):
    """Service for video upload operations.

    One instance runs one batch at a time; ``cancel`` may be called from
    another thread (or a signal handler) while it runs.
    """

    def __init__(
        self,
        client: VideoAPIClient,
        settings: UploadSettings | None = None,
        progress_callback: Callable[[str, UploadProgress], None] | None = None,
    ) -> None:
        super().__init__(client)
        self.settings = settings or UploadSettings()
        self.batch = BatchUploadService(client)
        self.tracker = ProgressTracker(callback=progress_callback)
        self._lock = threading.Lock()
        self._active: BatchUploader | None = None

    def _run(self, fn: Callable[[BatchUploader], T]) -> T:
        with PartUploader(verify_ssl=self.client.verify_ssl) as storage:
            uploader = BatchUploader.from_settings(
                self.batch, self.settings, uploader=storage, tracker=self.tracker
            )
            with self._lock:
                self._active = uploader
            try:
                return fn(uploader)
            finally:
                with self._lock:
                    self._active = None

    def cancel(self) -> bool:
        """Cancel the running batch, if any."""
        with self._lock:
            active = self._active
        return active.cancel() if active else False

    def upload_files(self, channel_id: str, files: Sequence[Path | str]) -> UploadSummary:
        """Upload files to a channel.

        Args:
            channel_id: Channel receiving the videos.
            files: Local video files.

        Returns:
            UploadSummary with one result per file. File failures are
            reported in the summary, not raised.

        Raises:
            ValidationError: If no files are given.
            BatchInitError: If the backend cannot allocate upload sessions.
        """
        start_time = time.time()
        results = self._run(lambda u: u.run_batch(channel_id, files))
        cancelled = any(r.error == CANCELLED_MESSAGE for r in results)
        summary = UploadSummary.from_results(
            channel_id,
            results,
            time.time() - start_time,
            cancelled=cancelled,
        )
        logger.info(
            "Batch to channel %s: %d/%d files uploaded", channel_id, summary.succeeded, summary.total
        )
        return summary

    def get_progress(self, upload_id: str) -> RemoteProgress:
        """Fetch the backend's progress record of an upload."""
        return self.batch.get_progress(upload_id)

    def verify_parts(self, upload_id: str) -> list[PartVerification]:
        """Fetch the backend's per-part records of an upload."""
        return self.batch.verify_parts(upload_id)

    def retry_upload(self, upload_id: str, source: Path | str) -> FileUploadResult:
        """Retry the outstanding parts of a chunked upload, then finalize it.

        The session is rebuilt from the local file; no new batch is created.

        Args:
            upload_id: Upload identifier from the original batch.
            source: The same local file that was originally uploaded.

        Returns:
            Result of the retry.
        """
        path = Path(source)
        if not path.is_file():
            raise ValidationError(f"File not found: {path}", field="file", value=str(path))

        session = UploadSession(
            upload_id=upload_id,
            is_chunked=True,
            total_parts=expected_part_count(path.stat().st_size),
            status=UploadStatus.ERROR,
        )
        return self._run(lambda u: u.retry_upload(path, session))

"""Process-local progress of in-flight uploads, keyed by upload id."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import replace

from vidctl.models.progress import ProgressState, UploadProgress

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, UploadProgress], None]


class ProgressTracker:
    """Owns the ``upload_id -> UploadProgress`` mapping.

    All writes go through ``update_progress`` (directly or via the helpers)
    under one lock. Readers get copies, never the live objects. Completed part
    numbers are remembered per upload, so recording the same part twice does
    not inflate the count.
    """

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self._lock = threading.Lock()
        self._progress: dict[str, UploadProgress] = {}
        self._completed_parts: dict[str, set[int]] = {}
        self._frozen: set[str] = set()
        self._callback = callback

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, upload_id: str) -> UploadProgress | None:
        """Return a copy of one upload's progress."""
        with self._lock:
            progress = self._progress.get(upload_id)
            return replace(progress) if progress else None

    def snapshot(self) -> dict[str, UploadProgress]:
        """Return copies of every upload's progress."""
        with self._lock:
            return {uid: replace(p) for uid, p in self._progress.items()}

    def __contains__(self, upload_id: object) -> bool:
        with self._lock:
            return upload_id in self._progress

    # =========================================================================
    # Writes
    # =========================================================================

    def _notify(self, upload_id: str, progress: UploadProgress | None) -> None:
        if self._callback and progress is not None:
            self._callback(upload_id, progress)

    def register(self, upload_id: str, total_parts: int) -> None:
        """Start tracking an upload at 0%.

        Re-registering resets the upload, which is how a manual retry of a
        failed or cancelled upload starts over.
        """
        with self._lock:
            self._frozen.discard(upload_id)
            self._completed_parts[upload_id] = set()
            progress = UploadProgress(total_parts=max(total_parts, 1))
            self._progress[upload_id] = progress
            snapshot = replace(progress)
        self._notify(upload_id, snapshot)

    def update_progress(self, upload_id: str, completed_count: int, total: int) -> UploadProgress | None:
        """Set the completed part count of an upload.

        Recomputes the percentage and state. The count never decreases and is
        clamped to ``total``. Updates to cancelled uploads are dropped.

        Returns:
            Copy of the new progress, or None when the update was dropped.
        """
        with self._lock:
            snapshot = self._apply(upload_id, completed_count, total)
        self._notify(upload_id, snapshot)
        return snapshot

    def _apply(self, upload_id: str, completed_count: int, total: int) -> UploadProgress | None:
        if upload_id in self._frozen:
            return None
        total = max(total, 1)
        progress = self._progress.get(upload_id)
        if progress is None:
            progress = UploadProgress(total_parts=total)
            self._progress[upload_id] = progress

        count = min(max(completed_count, progress.completed_part_count), total)
        progress.total_parts = total
        progress.completed_part_count = count
        progress.percent_complete = max(progress.percent_complete, round(count / total * 100))
        progress.state = ProgressState.COMPLETED if count == total else ProgressState.UPLOADING
        progress.error_message = None
        return replace(progress)

    def mark_part_complete(self, upload_id: str, part_number: int, total: int) -> UploadProgress | None:
        """Count one part as complete (idempotent per part number)."""
        with self._lock:
            if upload_id in self._frozen:
                return None
            parts = self._completed_parts.setdefault(upload_id, set())
            parts.add(part_number)
            snapshot = self._apply(upload_id, len(parts), total)
        self._notify(upload_id, snapshot)
        return snapshot

    def mark_completed(self, upload_id: str) -> UploadProgress | None:
        """Set an upload to 100% / completed."""
        with self._lock:
            progress = self._progress.get(upload_id)
            total = progress.total_parts if progress else 1
            snapshot = self._apply(upload_id, total, total)
        self._notify(upload_id, snapshot)
        return snapshot

    def mark_error(self, upload_id: str, message: str) -> UploadProgress | None:
        """Put an upload into the error state with a message."""
        with self._lock:
            if upload_id in self._frozen:
                return None
            snapshot = self._set_error(upload_id, message)
        self._notify(upload_id, snapshot)
        return snapshot

    def _set_error(self, upload_id: str, message: str) -> UploadProgress:
        progress = self._progress.get(upload_id)
        if progress is None:
            progress = UploadProgress(total_parts=1)
            self._progress[upload_id] = progress
        progress.state = ProgressState.ERROR
        progress.error_message = message
        return replace(progress)

    def cancel(
        self, upload_ids: Iterable[str], message: str, *, force: bool = False
    ) -> list[str]:
        """Fail every not-yet-completed upload and ignore their later updates.

        Args:
            upload_ids: Uploads to cancel.
            message: Error message to record.
            force: Also fail uploads whose parts are all counted. The caller
                then decides completion, e.g. from the session status, since
                a fully counted upload may not be verified or finalized yet.

        Returns:
            Upload ids that were moved to the error state.
        """
        cancelled: list[tuple[str, UploadProgress]] = []
        with self._lock:
            for upload_id in upload_ids:
                progress = self._progress.get(upload_id)
                if (
                    not force
                    and progress is not None
                    and progress.state == ProgressState.COMPLETED
                ):
                    continue
                cancelled.append((upload_id, self._set_error(upload_id, message)))
                self._frozen.add(upload_id)
        for upload_id, snapshot in cancelled:
            self._notify(upload_id, snapshot)
        if cancelled:
            logger.info("Cancelled %d upload(s)", len(cancelled))
        return [uid for uid, _ in cancelled]

    def clear(self) -> None:
        """Forget every upload (end of batch)."""
        with self._lock:
            self._progress.clear()
            self._completed_parts.clear()
            self._frozen.clear()

"""Batch upload orchestrator.

Drives every file of a batch through its server-issued session: single-shot
files get one PUT, chunked files are uploaded in bounded waves of parts with
per-part retry, a backend-driven bulk retry of failed parts, and verification
before the upload is finalized.

This is an internal implementation detail. Use `UploadService` from
`vidctl.services.uploads` as the public API.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any

import httpx

from vidctl.core.cancellation import CANCELLED_MESSAGE, CancellationToken
from vidctl.core.exceptions import (
    BatchInitError,
    ChunkCountMismatch,
    PartUploadError,
    UploadCancelledError,
    UploadError,
    UploadFailed,
    UploadVerificationFailed,
    ValidationError,
    VidCtlError,
)
from vidctl.core.logging import AuditLogger, LogContext, get_audit_logger
from vidctl.models.progress import FileUploadResult, PartStatus
from vidctl.models.upload import FileMetadata, UploadSession, UploadStatus
from vidctl.uploaders.common import (
    DEFAULT_PART_RETRY_POLICY,
    DEFAULT_VERIFY_POLICY,
    PartRange,
    RetryPolicy,
    iter_waves,
    part_range,
    read_part,
    should_chunk,
    split_into_parts,
)
from vidctl.uploaders.constants import CONVERGENCE_DELAY, MAX_CONCURRENT_UPLOADS, PART_SIZE
from vidctl.uploaders.parts import TRANSIENT_ERRORS, BatchAPI, PartRetryController, PartUploader
from vidctl.uploaders.tracker import ProgressTracker
from vidctl.uploaders.verifier import CompletionVerifier

logger = logging.getLogger(__name__)

# Errors that end one file's upload without affecting the rest of the batch.
# ValueError covers undecodable backend bodies from any BatchAPI implementation.
FILE_ERRORS = (VidCtlError, httpx.HTTPError, OSError, ValueError)


class BatchUploader:
    """Uploads a batch of files through server-issued upload sessions."""

    def __init__(
        self,
        api: BatchAPI,
        *,
        uploader: PartUploader | None = None,
        tracker: ProgressTracker | None = None,
        part_size: int = PART_SIZE,
        max_concurrent_parts: int = MAX_CONCURRENT_UPLOADS,
        max_concurrent_files: int | None = None,
        part_retry_policy: RetryPolicy = DEFAULT_PART_RETRY_POLICY,
        verify_policy: RetryPolicy = DEFAULT_VERIFY_POLICY,
        convergence_delay: float = CONVERGENCE_DELAY,
        audit: AuditLogger | None = None,
    ) -> None:
        """Initialize the uploader.

        Args:
            api: Backend batch endpoints.
            uploader: Storage transfer client (default: a new PartUploader).
            tracker: Shared progress tracker (default: a new one).
            part_size: Bytes per part; must match what the backend pre-signed.
            max_concurrent_parts: Parts in flight per file.
            max_concurrent_files: Files in flight per batch (default: all).
            part_retry_policy: Retry budget and delay of a single part.
            verify_policy: Rounds and backoff of completion verification.
            convergence_delay: Wait before verification, seconds.
            audit: Audit logger for finalized uploads.
        """
        if max_concurrent_parts < 1:
            raise ValueError("max_concurrent_parts must be >= 1")
        if max_concurrent_files is not None and max_concurrent_files < 1:
            raise ValueError("max_concurrent_files must be >= 1")

        self.api = api
        self._owns_uploader = uploader is None
        self.uploader = uploader or PartUploader()
        self.tracker = tracker or ProgressTracker()
        self.part_size = part_size
        self.max_concurrent_parts = max_concurrent_parts
        self.max_concurrent_files = max_concurrent_files
        self.convergence_delay = convergence_delay
        self.controller = PartRetryController(
            api, self.uploader, self.tracker, policy=part_retry_policy
        )
        self.verifier = CompletionVerifier(api, policy=verify_policy)
        self.audit = audit or get_audit_logger()

        self._lock = threading.RLock()
        self._token: CancellationToken | None = None
        self._sessions: list[UploadSession] = []

    @classmethod
    def from_settings(cls, api: BatchAPI, settings: Any, **kwargs: Any) -> BatchUploader:
        """Build an uploader from the ``upload`` section of the config."""
        return cls(
            api,
            max_concurrent_parts=settings.max_concurrent_parts,
            max_concurrent_files=settings.max_concurrent_files,
            part_retry_policy=RetryPolicy.fixed(settings.max_part_retries, settings.retry_delay),
            verify_policy=RetryPolicy.exponential(
                settings.verify_rounds, settings.verify_base_delay
            ),
            convergence_delay=settings.convergence_delay,
            **kwargs,
        )

    def close(self) -> None:
        """Release the storage client if this uploader created it."""
        if self._owns_uploader:
            self.uploader.close()

    def __enter__(self) -> BatchUploader:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # =========================================================================
    # Cancellation
    # =========================================================================

    def _start(self, sessions: list[UploadSession]) -> CancellationToken:
        token = CancellationToken()
        with self._lock:
            self._token = token
            self._sessions = sessions
        return token

    def cancel(self) -> bool:
        """Cancel the running batch.

        Stops new network calls and fails every upload that has not completed
        with "Upload cancelled". Calling it again is a no-op.

        Returns:
            True if this call cancelled a running batch.
        """
        with self._lock:
            token = self._token
            sessions = list(self._sessions)
        if token is None or not token.cancel():
            return False
        logger.warning("Cancelling upload batch")
        self._mark_cancelled(sessions)
        return True

    def _mark_cancelled(self, sessions: Sequence[UploadSession]) -> None:
        # Session status decides completion; a fully counted upload may still
        # be waiting for verification.
        with self._lock:
            pending = [s for s in sessions if s.status != UploadStatus.COMPLETED]
            self.tracker.cancel(
                [s.upload_id for s in pending], CANCELLED_MESSAGE, force=True
            )
            for session in pending:
                session.status = UploadStatus.ERROR

    def _mark_finalized(self, session: UploadSession) -> None:
        with self._lock:
            session.status = UploadStatus.COMPLETED
            self.tracker.mark_completed(session.upload_id)

    # =========================================================================
    # Batch
    # =========================================================================

    def upload_files(
        self,
        channel_id: str,
        files: Sequence[Path | str],
    ) -> list[UploadSession]:
        """Upload a batch of files.

        Args:
            channel_id: Channel receiving the videos.
            files: Local files, in the order sessions are requested.

        Returns:
            Sessions with their final status, in input order.

        Raises:
            ValidationError: If ``files`` is empty.
            BatchInitError: If the backend cannot allocate sessions.
            UploadCancelledError: If the batch was cancelled.
            UploadFailed: If any file could not be uploaded.
        """
        results = self.run_batch(channel_id, files)
        if any(r.error == CANCELLED_MESSAGE for r in results):
            raise UploadCancelledError()
        if any(not r.success for r in results):
            raise UploadFailed(results)
        return [r.session for r in results]

    def run_batch(
        self,
        channel_id: str,
        files: Sequence[Path | str],
    ) -> list[FileUploadResult]:
        """Upload a batch of files and report per-file outcomes.

        File-level failures are returned, not raised. Every file runs to
        completion regardless of the others.

        Raises:
            ValidationError: If ``files`` is empty.
            BatchInitError: If the backend cannot allocate sessions.
        """
        paths = [Path(f) for f in files]
        if not paths:
            raise ValidationError("No files to upload", field="files")

        try:
            metadata = [FileMetadata.from_path(p) for p in paths]
        except OSError as e:
            raise ValidationError(f"Cannot read file: {e}", field="files") from e

        token = self._start([])
        with LogContext("batch upload", logger, channel=channel_id, files=len(paths)):
            sessions = self._init_sessions(channel_id, metadata)
            with self._lock:
                self._sessions = sessions

            if token.is_cancelled:
                self._mark_cancelled(sessions)
                return [
                    FileUploadResult(path=p, session=s, success=False, error=CANCELLED_MESSAGE)
                    for p, s in zip(paths, sessions, strict=True)
                ]

            workers = min(self.max_concurrent_files or len(paths), len(paths))
            results: list[FileUploadResult | None] = [None] * len(paths)

            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures: dict[Future[FileUploadResult], int] = {}
                for i, (path, session) in enumerate(zip(paths, sessions, strict=True)):
                    future = executor.submit(self.upload_file, path, session, token=token)
                    futures[future] = i

                try:
                    for future in as_completed(futures):
                        results[futures[future]] = future.result()
                except KeyboardInterrupt:
                    self.cancel()
                    raise

        done = [r for r in results if r is not None]
        failed = sum(1 for r in done if not r.success)
        if failed:
            logger.warning("Upload batch finished with %d failed file(s)", failed)
        return done

    def _init_sessions(
        self,
        channel_id: str,
        metadata: list[FileMetadata],
    ) -> list[UploadSession]:
        """Request one session per file, in file order."""
        try:
            sessions = self.api.init_batch(channel_id, metadata)
        except TRANSIENT_ERRORS as e:
            raise BatchInitError(str(e), channel_id) from e

        if len(sessions) != len(metadata):
            raise BatchInitError(
                f"expected {len(metadata)} sessions, got {len(sessions)}", channel_id
            )
        return sessions

    # =========================================================================
    # Single File
    # =========================================================================

    def upload_file(
        self,
        path: Path,
        session: UploadSession,
        *,
        token: CancellationToken | None = None,
    ) -> FileUploadResult:
        """Upload one file through its session; never raises for upload failures."""
        token = token or CancellationToken()
        return self._guarded(path, session, token, self._upload_session)

    def retry_upload(self, path: Path | str, session: UploadSession) -> FileUploadResult:
        """Re-run the bulk retry path for a failed upload, then verify and finalize.

        Uses the existing session; no new batch is initialized.
        """
        path = Path(path)
        token = self._start([session])
        self.tracker.register(session.upload_id, session.total_parts)

        def _retry(parts: dict[int, PartStatus]) -> None:
            self.retry_failed_parts(path, session, token=token, part_states=parts)
            self._finalize(session, token)

        return self._guarded(path, session, token, lambda p, s, t, parts: _retry(parts))

    def _guarded(
        self,
        path: Path,
        session: UploadSession,
        token: CancellationToken,
        action: Callable[[Path, UploadSession, CancellationToken, dict[int, PartStatus]], None],
    ) -> FileUploadResult:
        start_time = time.time()
        parts: dict[int, PartStatus] = {}
        session.status = UploadStatus.UPLOADING

        try:
            token.raise_if_cancelled()
            action(path, session, token, parts)
        except UploadCancelledError as e:
            self._mark_cancelled([session])
            return FileUploadResult(
                path=path,
                session=session,
                success=False,
                duration=time.time() - start_time,
                error=str(e),
                parts=parts,
            )
        except FILE_ERRORS as e:
            session.status = UploadStatus.ERROR
            self.tracker.mark_error(session.upload_id, str(e))
            logger.error("Upload %s (%s) failed: %s", session.upload_id, path.name, e)
            self.audit.log_operation(
                "upload",
                upload_id=session.upload_id,
                filename=path.name,
                success=False,
                details={"error": str(e)},
            )
            return FileUploadResult(
                path=path,
                session=session,
                success=False,
                duration=time.time() - start_time,
                error=str(e),
                parts=parts,
            )

        session.status = UploadStatus.COMPLETED
        self.audit.log_operation("upload", upload_id=session.upload_id, filename=path.name)
        return FileUploadResult(
            path=path,
            session=session,
            success=True,
            duration=time.time() - start_time,
            parts=parts,
        )

    def _upload_session(
        self,
        path: Path,
        session: UploadSession,
        token: CancellationToken,
        parts: dict[int, PartStatus],
    ) -> None:
        size = path.stat().st_size
        expected_chunked = should_chunk(size)
        if expected_chunked != session.is_chunked:
            # The server owns the chunking policy; the client only reports disagreement.
            logger.warning(
                "Chunking strategy mismatch for %s: client expected %s but server returned %s upload session",
                path.name,
                "chunked" if expected_chunked else "single",
                "chunked" if session.is_chunked else "single",
            )

        if session.is_chunked:
            self._upload_chunked(path, session, token, parts)
        else:
            self._upload_whole(path, session, token)

    def _upload_whole(self, path: Path, session: UploadSession, token: CancellationToken) -> None:
        """Single-shot upload: one PUT of the whole file."""
        upload_id = session.upload_id
        if not session.part_urls:
            raise UploadError("Session has no upload URL", details={"upload_id": upload_id})

        self.tracker.register(upload_id, 1)
        token.raise_if_cancelled()
        mime_type = FileMetadata.from_path(path).mime_type
        with path.open("rb") as f:
            self.uploader.put(session.part_urls[0], f, content_type=mime_type)

        token.raise_if_cancelled()
        self.api.complete_upload(upload_id)
        token.raise_if_cancelled()
        self._mark_finalized(session)
        logger.info("Uploaded %s in a single request (%s)", path.name, upload_id)

    def _upload_chunked(
        self,
        path: Path,
        session: UploadSession,
        token: CancellationToken,
        part_states: dict[int, PartStatus],
    ) -> None:
        upload_id = session.upload_id
        parts = split_into_parts(path.stat().st_size, self.part_size)
        if len(parts) != session.total_parts:
            raise ChunkCountMismatch(upload_id, session.total_parts, len(parts), str(path))
        if len(session.part_urls) != len(parts):
            raise ChunkCountMismatch(upload_id, len(session.part_urls), len(parts), str(path))

        self.tracker.register(upload_id, len(parts))
        logger.info("Uploading %s in %d parts (%s)", path.name, len(parts), upload_id)

        with ThreadPoolExecutor(max_workers=self.max_concurrent_parts) as executor:
            for wave in iter_waves(parts, self.max_concurrent_parts):
                token.raise_if_cancelled()
                failed = self._run_wave(executor, path, session, wave, token, part_states)
                if failed:
                    logger.warning(
                        "Parts %s of %s exhausted their retries, requesting outstanding parts",
                        [e.part_number for e in failed],
                        upload_id,
                    )
                    self.retry_failed_parts(
                        path,
                        session,
                        token=token,
                        attempted_below=wave[-1].index + 1,
                        part_states=part_states,
                    )

        self._finalize(session, token)

    def _run_wave(
        self,
        executor: ThreadPoolExecutor,
        path: Path,
        session: UploadSession,
        wave: list[PartRange],
        token: CancellationToken,
        part_states: dict[int, PartStatus],
    ) -> list[PartUploadError]:
        """Upload one wave of parts in parallel.

        Returns:
            Errors of the parts that exhausted their retry budget.
        """
        futures: dict[Future[PartStatus], PartRange] = {}
        for part in wave:
            status = self._status_for(part_states, part)
            future = executor.submit(
                self._upload_range,
                path,
                part,
                session.part_urls[part.index],
                session,
                token,
                status,
            )
            futures[future] = part

        failed: list[PartUploadError] = []
        cancelled: UploadCancelledError | None = None
        for future in as_completed(futures):
            try:
                future.result()
            except PartUploadError as e:
                failed.append(e)
            except UploadCancelledError as e:
                cancelled = e

        if cancelled is not None:
            raise cancelled
        return failed

    def _status_for(self, part_states: dict[int, PartStatus], part: PartRange) -> PartStatus:
        status = part_states.get(part.part_number)
        if status is None or status.is_complete:
            status = PartStatus(part_number=part.part_number, byte_size=part.length)
            part_states[part.part_number] = status
        return status

    def _upload_range(
        self,
        path: Path,
        part: PartRange,
        url: str,
        session: UploadSession,
        token: CancellationToken,
        status: PartStatus,
    ) -> PartStatus:
        token.raise_if_cancelled()
        data = read_part(path, part)
        return self.controller.upload_part(
            data,
            url,
            session.upload_id,
            part.index,
            session.total_parts,
            token=token,
            status=status,
        )

    # =========================================================================
    # Bulk Retry
    # =========================================================================

    def retry_failed_parts(
        self,
        path: Path,
        session: UploadSession,
        *,
        token: CancellationToken | None = None,
        attempted_below: int | None = None,
        part_states: dict[int, PartStatus] | None = None,
    ) -> list[int]:
        """Re-upload the parts the backend still reports as outstanding.

        Each part gets the full single-part retry budget but no further bulk
        fallback: any failure here is fatal for the file.

        Args:
            path: Local file.
            session: Upload session.
            token: Cancellation token.
            attempted_below: Only retry parts with an index below this value.
            part_states: Attempt history to continue.

        Returns:
            Part numbers that were re-uploaded.

        Raises:
            UploadError: If the outstanding list cannot be fetched or a part fails again.
        """
        token = token or CancellationToken()
        part_states = part_states if part_states is not None else {}
        upload_id = session.upload_id

        token.raise_if_cancelled()
        try:
            outstanding = self.api.retry_parts(upload_id)
        except TRANSIENT_ERRORS as e:
            raise UploadError(
                f"Could not fetch outstanding parts for upload {upload_id}: {e}",
                file_path=str(path),
            ) from e

        if attempted_below is not None:
            outstanding = [p for p in outstanding if p.part_index < attempted_below]
        if not outstanding:
            logger.info("Backend reports no outstanding parts for %s", upload_id)
            return []

        size = path.stat().st_size
        total_parts = session.total_parts
        logger.info(
            "Retrying parts %s of %s", [p.part_number for p in outstanding], upload_id
        )

        failures: list[PartUploadError] = []
        workers = min(self.max_concurrent_parts, len(outstanding))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures: dict[Future[PartStatus], int] = {}
            for retry in outstanding:
                try:
                    part = part_range(retry.part_index, size, self.part_size)
                except ValueError as e:
                    raise UploadError(str(e), file_path=str(path)) from e
                status = self._status_for(part_states, part)
                future = executor.submit(
                    self._upload_retry, path, part, retry.url, upload_id, total_parts, token, status
                )
                futures[future] = retry.part_number

            for future in as_completed(futures):
                try:
                    future.result()
                except PartUploadError as e:
                    failures.append(e)

        if failures:
            raise UploadError(
                f"Parts {sorted(e.part_number for e in failures)} of upload {upload_id} "
                "failed after bulk retry",
                file_path=str(path),
            )
        return [p.part_number for p in outstanding]

    def _upload_retry(
        self,
        path: Path,
        part: PartRange,
        url: str,
        upload_id: str,
        total_parts: int,
        token: CancellationToken,
        status: PartStatus,
    ) -> PartStatus:
        token.raise_if_cancelled()
        data = read_part(path, part)
        return self.controller.upload_part(
            data, url, upload_id, part.index, total_parts, token=token, status=status
        )

    # =========================================================================
    # Finalize
    # =========================================================================

    def _finalize(self, session: UploadSession, token: CancellationToken) -> None:
        """Verify backend completion, then mark the upload complete."""
        upload_id = session.upload_id
        token.sleep(self.convergence_delay)

        if not self.verifier.verify(upload_id, session.total_parts, token=token):
            raise UploadVerificationFailed(upload_id, self.verifier.policy.max_attempts)

        token.raise_if_cancelled()
        self.api.complete_upload(upload_id)
        token.raise_if_cancelled()
        self._mark_finalized(session)
        logger.info("Upload %s verified and completed", upload_id)

"""Part transfer to pre-signed storage URLs, with per-part retry."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Protocol

import httpx

from vidctl.core.cancellation import CancellationToken
from vidctl.core.exceptions import (
    PartUploadError,
    UploadCancelledError,
    UploadError,
    VidCtlError,
)
from vidctl.models.progress import PartStatus
from vidctl.models.upload import (
    PartVerification,
    RemoteProgress,
    RetryPart,
    UploadSession,
    strip_etag,
)
from vidctl.uploaders.common import DEFAULT_PART_RETRY_POLICY, RetryPolicy
from vidctl.uploaders.constants import PART_CONTENT_TYPE, PUT_TIMEOUT, UNKNOWN_ETAG
from vidctl.uploaders.tracker import ProgressTracker

logger = logging.getLogger(__name__)

# Failures that count against a part's retry budget
TRANSIENT_ERRORS = (httpx.HTTPError, VidCtlError)


class BatchAPI(Protocol):
    """Backend calls the upload engine depends on."""

    def init_batch(self, channel_id: str, files: Any) -> list[UploadSession]: ...

    def complete_upload(self, upload_id: str) -> None: ...

    def get_progress(self, upload_id: str) -> RemoteProgress: ...

    def retry_parts(self, upload_id: str) -> list[RetryPart]: ...

    def retry_part(self, upload_id: str, part_number: int) -> str: ...

    def record_part_completion(
        self, upload_id: str, part_number: int, etag: str, size: int
    ) -> None: ...

    def verify_parts(self, upload_id: str) -> list[PartVerification]: ...


# =============================================================================
# Part Uploader
# =============================================================================


@dataclass
class PartUploader:
    """Writes raw bytes to pre-signed storage URLs.

    Pre-signed URLs carry their own credentials, so no auth header is sent.
    """

    timeout: int = PUT_TIMEOUT
    verify_ssl: bool = True
    _client: httpx.Client | None = field(init=False, default=None, repr=False)
    _lock: threading.Lock = field(init=False, default_factory=threading.Lock, repr=False)

    def _get_client(self) -> httpx.Client:
        with self._lock:
            if self._client is None:
                self._client = httpx.Client(timeout=self.timeout, verify=self.verify_ssl)
            return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    def __enter__(self) -> PartUploader:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def put(self, url: str, data: bytes | BinaryIO, content_type: str = PART_CONTENT_TYPE) -> str:
        """Upload ``data`` (bytes or an open binary file) to ``url``.

        Returns:
            The ETag header as returned by storage (still quoted).

        Raises:
            UploadError: If storage answers with a non-success status.
            httpx.HTTPError: On transport failures.
        """
        resp = self._get_client().put(url, content=data, headers={"Content-Type": content_type})
        if not resp.is_success:
            raise UploadError(
                f"Storage rejected upload with HTTP {resp.status_code}",
                details={"body": resp.text[:200]} if resp.text else None,
            )
        return resp.headers.get("etag") or UNKNOWN_ETAG


# =============================================================================
# Retry / Backoff Controller
# =============================================================================


class PartRetryController:
    """Uploads one part with bounded retry and fresh-URL re-issuance."""

    def __init__(
        self,
        api: BatchAPI,
        uploader: PartUploader,
        tracker: ProgressTracker,
        *,
        policy: RetryPolicy = DEFAULT_PART_RETRY_POLICY,
    ) -> None:
        self.api = api
        self.uploader = uploader
        self.tracker = tracker
        self.policy = policy

    def _already_recorded(self, upload_id: str, part_number: int) -> bool:
        """Check whether the backend already holds this part."""
        return any(
            p.part_number == part_number and p.is_complete
            for p in self.api.verify_parts(upload_id)
        )

    def upload_part(
        self,
        data: bytes,
        url: str,
        upload_id: str,
        part_index: int,
        total_parts: int,
        *,
        token: CancellationToken,
        retries_left: int | None = None,
        status: PartStatus | None = None,
    ) -> PartStatus:
        """Upload one part, retrying transient failures.

        Args:
            data: Part bytes.
            url: Pre-signed URL for the first attempt.
            upload_id: Upload identifier.
            part_index: 0-based part index.
            total_parts: Number of parts of the upload.
            token: Batch cancellation token.
            retries_left: Retry budget (default: the policy's).
            status: Existing attempt history to continue.

        Returns:
            Completed part status.

        Raises:
            PartUploadError: When the retry budget is exhausted.
            UploadCancelledError: When the batch is cancelled.
        """
        part_number = part_index + 1
        if retries_left is None:
            retries_left = self.policy.max_retries
        if status is None:
            status = PartStatus(part_number=part_number, byte_size=len(data))
        failures = 0

        while True:
            token.raise_if_cancelled()
            status.start_attempt()
            try:
                etag = self.uploader.put(url, data)
                # A transfer that finishes after cancellation is not recorded.
                token.raise_if_cancelled()
                self.api.record_part_completion(upload_id, part_number, etag, len(data))
            except UploadCancelledError:
                status.mark_error()
                raise
            except TRANSIENT_ERRORS as e:
                status.mark_error()
                if retries_left <= 0:
                    raise PartUploadError(upload_id, part_number, status.attempts, e) from e

                logger.warning(
                    "Part %d/%d of %s failed on attempt %d (%s), %d retries left",
                    part_number,
                    total_parts,
                    upload_id,
                    status.attempts,
                    e,
                    retries_left,
                )
                retries_left -= 1
                if self._recover(upload_id, part_number, status, token):
                    break
                url = self._reissue_url(upload_id, part_number, status, token)
                token.sleep(self.policy.delay(failures))
                failures += 1
                continue

            status.mark_completed(strip_etag(etag))
            break

        token.raise_if_cancelled()
        self.tracker.mark_part_complete(upload_id, part_number, total_parts)
        return status

    def _recover(
        self,
        upload_id: str,
        part_number: int,
        status: PartStatus,
        token: CancellationToken,
    ) -> bool:
        """Accept a failed attempt whose write the backend recorded anyway."""
        token.raise_if_cancelled()
        try:
            recorded = self._already_recorded(upload_id, part_number)
        except TRANSIENT_ERRORS as e:
            raise PartUploadError(upload_id, part_number, status.attempts, e) from e
        if recorded:
            logger.info("Part %d of %s already recorded by backend", part_number, upload_id)
            status.confirm_remote()
        return recorded

    def _reissue_url(
        self,
        upload_id: str,
        part_number: int,
        status: PartStatus,
        token: CancellationToken,
    ) -> str:
        """Fetch a fresh pre-signed URL, since the old one may have expired."""
        token.raise_if_cancelled()
        try:
            return self.api.retry_part(upload_id, part_number)
        except TRANSIENT_ERRORS as e:
            raise PartUploadError(upload_id, part_number, status.attempts, e) from e

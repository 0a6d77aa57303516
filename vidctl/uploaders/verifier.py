"""Post-upload verification against the backend's progress record."""

from __future__ import annotations

import logging

from vidctl.core.cancellation import CancellationToken
from vidctl.uploaders.common import DEFAULT_VERIFY_POLICY, RetryPolicy
from vidctl.uploaders.parts import TRANSIENT_ERRORS, BatchAPI

logger = logging.getLogger(__name__)

# A failed or undecodable poll counts as an unconfirmed round
POLL_ERRORS = (*TRANSIENT_ERRORS, ValueError)


class CompletionVerifier:
    """Polls the progress endpoint until the backend has reconciled every part.

    Individual part acknowledgements can run ahead of the backend's
    multipart-completion processing, so the upload is only finalized once the
    backend itself reports the whole object complete.
    """

    def __init__(self, api: BatchAPI, *, policy: RetryPolicy = DEFAULT_VERIFY_POLICY) -> None:
        self.api = api
        self.policy = policy

    def verify(
        self,
        upload_id: str,
        total_parts: int,
        max_rounds: int | None = None,
        *,
        token: CancellationToken | None = None,
    ) -> bool:
        """Poll until the backend reports all parts complete.

        The wait runs only between rounds, so three rounds sleep 2s then 4s;
        nothing follows the last poll, which has no later round to wait for.

        Args:
            upload_id: Upload identifier.
            total_parts: Number of parts the backend must report.
            max_rounds: Poll rounds (default: the policy's attempts).
            token: Cancellation token checked before every poll and wait.

        Returns:
            True once confirmed, False when the rounds are exhausted.

        Raises:
            UploadCancelledError: When the batch is cancelled.
        """
        token = token or CancellationToken()
        rounds = max_rounds if max_rounds is not None else self.policy.max_attempts

        for round_no in range(rounds):
            token.raise_if_cancelled()
            try:
                progress = self.api.get_progress(upload_id)
            except POLL_ERRORS as e:
                logger.warning("Verification poll %d/%d for %s failed: %s", round_no + 1, rounds, upload_id, e)
            else:
                if progress.is_complete(total_parts):
                    logger.debug("Upload %s verified after %d round(s)", upload_id, round_no + 1)
                    return True
                logger.info(
                    "Upload %s not yet reconciled (%d/%d parts, status=%s), round %d/%d",
                    upload_id,
                    progress.completed_count,
                    total_parts,
                    progress.status or "-",
                    round_no + 1,
                    rounds,
                )

            if round_no < rounds - 1:
                token.sleep(self.policy.delay(round_no))

        return False

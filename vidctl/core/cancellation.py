"""Cooperative cancellation for upload batches."""

from __future__ import annotations

import threading

from vidctl.core.exceptions import UploadCancelledError

CANCELLED_MESSAGE = "Upload cancelled"


class CancellationToken:
    """Cancellation flag shared by every network operation of one batch.

    Operations call ``raise_if_cancelled`` before each network call and use
    ``sleep`` for every delay so a cancel interrupts waits immediately.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> bool:
        """Cancel the token.

        Returns:
            True on the first call, False if already cancelled.
        """
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            return True

    def raise_if_cancelled(self) -> None:
        """Raise UploadCancelledError if the token was cancelled."""
        if self._event.is_set():
            raise UploadCancelledError(CANCELLED_MESSAGE)

    def sleep(self, seconds: float) -> None:
        """Wait up to ``seconds``, raising as soon as the token is cancelled."""
        if seconds > 0:
            self._event.wait(seconds)
        self.raise_if_cancelled()

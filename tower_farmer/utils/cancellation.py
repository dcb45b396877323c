"""
Cooperative cancellation for supervisor threads
"""

import threading
from typing import Optional

from .exceptions import OperationCancelledError


class CancellationToken:
    """
    One-shot cancellation flag shared between a supervisor and everything it runs.

    Every suspending call (frame waits, ADB commands, poll delays) receives the
    token and checks it before and after it blocks.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Fire the token. Calling it again has no further effect."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError("Operation was cancelled")

    def wait(self, timeout: Optional[float] = None) -> None:
        """
        Sleep for up to timeout seconds, waking early on cancellation

        Raises:
            OperationCancelledError: if the token fires before or during the sleep
        """
        if self._event.wait(timeout):
            raise OperationCancelledError("Operation was cancelled")

"""
Frame Broadcaster - single-slot publish/subscribe of screen captures
"""

import threading
from typing import Optional

import numpy as np

from ..utils.cancellation import CancellationToken
from ..utils.exceptions import ChannelCompletedError, OperationCancelledError


class _Delivery:
    """The publish that the waiters registered since the previous publish will receive"""

    __slots__ = ('frame', 'delivered')

    def __init__(self):
        self.frame: Optional[np.ndarray] = None
        self.delivered = False


class FrameBroadcaster:
    """
    Delivers each published frame to every thread waiting at the time of the publish.

    Nothing is buffered: a consumer that is not waiting when a frame is
    published never sees it and receives the next publish instead. Once
    completed the broadcaster is closed for good, and every unfinished or
    future wait raises ChannelCompletedError, even if a frame was published
    just before completion.
    """

    def __init__(self, poll_interval: float = 0.05):
        """
        Args:
            poll_interval: How often a blocked waiter re-checks its cancellation token
        """
        self._condition = threading.Condition()
        self._pending = _Delivery()
        self._completed = False
        self._waiters = 0
        self._poll_interval = poll_interval

    @property
    def completed(self) -> bool:
        with self._condition:
            return self._completed

    @property
    def waiter_count(self) -> int:
        """Number of threads currently blocked in wait()"""
        with self._condition:
            return self._waiters

    def publish(self, frame: np.ndarray) -> None:
        """
        Hand the frame to all current waiters and open a new slot for later ones

        Raises:
            ChannelCompletedError: if the broadcaster has been completed
        """
        with self._condition:
            if self._completed:
                raise ChannelCompletedError("Channel is completed")

            delivery = self._pending
            self._pending = _Delivery()
            delivery.frame = frame
            delivery.delivered = True
            self._condition.notify_all()

    def wait(self, token: CancellationToken) -> np.ndarray:
        """
        Block until the next publish

        Raises:
            ChannelCompletedError: if the broadcaster is or becomes completed
            OperationCancelledError: if the token fires first
        """
        with self._condition:
            delivery = self._pending
            self._waiters += 1
            try:
                while True:
                    if self._completed:
                        raise ChannelCompletedError("Channel is completed")
                    if delivery.delivered:
                        return delivery.frame
                    if token.is_cancelled:
                        raise OperationCancelledError("Wait for frame was cancelled")
                    self._condition.wait(self._poll_interval)
            finally:
                self._waiters -= 1

    def complete(self) -> None:
        """Close the broadcaster permanently. Idempotent."""
        with self._condition:
            if self._completed:
                return
            self._completed = True
            self._condition.notify_all()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.complete()
        return False

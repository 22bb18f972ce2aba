"""
Sequential, paced writes against the table store.

Writes are issued one at a time, in order. After every ``pause_every``
writes the writer sleeps ``pause_seconds`` before issuing the next one.
"""

import logging
import time
from collections.abc import Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RateLimitedWriter:
    """
    Concurrency-1 write queue with a fixed inter-batch pause

    Args:
        pause_every: Writes per batch; 0 disables pausing
        pause_seconds: Pause between batches in seconds
        sleep: Sleep function (injectable for tests)
    """

    def __init__(
        self,
        pause_every: int = 10,
        pause_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if pause_every < 0 or pause_seconds < 0:
            raise ValueError("pause_every and pause_seconds must be >= 0")
        self.pause_every = pause_every
        self.pause_seconds = pause_seconds
        self._sleep = sleep
        self.writes_issued = 0
        self.pauses = 0

    def submit(self, write: Callable[[], T]) -> T:
        """
        Issue one write, pausing first if a batch boundary was reached

        Exceptions from ``write`` propagate; a failed write still counts
        towards the batch.
        """
        if (
            self.pause_every
            and self.pause_seconds > 0
            and self.writes_issued > 0
            and self.writes_issued % self.pause_every == 0
        ):
            logger.debug(f"Pausing {self.pause_seconds}s after {self.writes_issued} writes")
            self._sleep(self.pause_seconds)
            self.pauses += 1

        self.writes_issued += 1
        return write()

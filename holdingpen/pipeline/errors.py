"""Error signalling between workers, stages and the supervising loop."""

import queue
from threading import Lock
from typing import Optional

from holdingpen.core.logger import setup_logger

logger = setup_logger(__name__)


class StageError(RuntimeError):
    """A record could not be processed by a stage.

    ``context`` names the object involved (bucket/key or file) so that the
    supervisor can report it.
    """

    def __init__(self, message: str, context: Optional[str] = None):
        super().__init__(message)
        self.context = context

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} [{self.context}]" if self.context else base


class ErrorChannel:
    """Single-slot error signal for one stage.

    ``report`` never blocks: the first error wins the slot, anything reported
    while the slot is occupied is logged and dropped. ``first_error`` keeps the
    authoritative error even after the slot has been polled.
    """

    def __init__(self, name: str):
        self.name = name
        self._slot: "queue.Queue[BaseException]" = queue.Queue(maxsize=1)
        self.first_error: Optional[BaseException] = None
        self.dropped = 0
        self._lock = Lock()

    def report(self, error: BaseException) -> bool:
        """Signal an error; returns False if it was dropped."""
        with self._lock:
            try:
                self._slot.put_nowait(error)
            except queue.Full:
                self.dropped += 1
                logger.warning(f"{self.name}: error slot occupied, dropping: {error}")
                return False
            if self.first_error is None:
                self.first_error = error
        return True

    def poll(self) -> Optional[BaseException]:
        """Take the pending error, if any, without blocking."""
        try:
            return self._slot.get_nowait()
        except queue.Empty:
            return None

    def wait(self, timeout: Optional[float] = None) -> Optional[BaseException]:
        try:
            return self._slot.get(timeout=timeout)
        except queue.Empty:
            return None

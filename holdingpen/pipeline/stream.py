"""Bounded streams connecting pipeline stages.

A stream carries records followed by end-of-stream sentinels. Producers block
when the stream is full, which is the only backpressure mechanism in the
pipeline.
"""

import queue
from threading import Lock
from typing import Any, Optional, Tuple

from holdingpen.config import env


class _EndOfStream:
    """Marker type; only one instance exists."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "END_OF_STREAM"

    def __reduce__(self):
        return (_EndOfStream, ())


END_OF_STREAM = _EndOfStream()


def is_end(item: Any) -> bool:
    return item is END_OF_STREAM


class StreamClosedError(RuntimeError):
    """A record was sent after the stream's end-of-stream marker."""


class StreamTimeout(TimeoutError):
    """A send or receive did not complete within its timeout."""


class BoundedStream:
    """FIFO of records with a fixed capacity."""

    def __init__(self, name: str = "stream", capacity: Optional[int] = None):
        self.name = name
        self.capacity = max(1, int(capacity if capacity is not None else env.STREAM_CAPACITY))
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=self.capacity)
        self._ended = False
        self._end_lock = Lock()

    def __repr__(self) -> str:
        return f"BoundedStream({self.name!r}, capacity={self.capacity})"

    @property
    def ended(self) -> bool:
        """True once end-of-stream has been sent."""
        return self._ended

    def send(self, record: Any, timeout: Optional[float] = None) -> None:
        """Enqueue a record, blocking while the stream is full."""
        if is_end(record):
            raise ValueError("use send_end() to terminate a stream")
        if self._ended:
            raise StreamClosedError(f"{self.name}: record sent after end of stream")
        self._put(record, timeout)

    def send_end(self, count: int = 1, timeout: Optional[float] = None) -> None:
        """Enqueue ``count`` end-of-stream markers (one per consumer)."""
        with self._end_lock:
            self._ended = True
        for _ in range(count):
            self._put(END_OF_STREAM, timeout)

    def offer_end(self, timeout: float) -> bool:
        """Try to enqueue one end-of-stream marker; False if the stream stayed full."""
        with self._end_lock:
            self._ended = True
        try:
            self._queue.put(END_OF_STREAM, timeout=timeout)
        except queue.Full:
            return False
        return True

    def offer(self, record: Any, timeout: float) -> bool:
        """Try to enqueue a record; False if the stream stayed full for ``timeout``."""
        try:
            self.send(record, timeout=timeout)
        except StreamTimeout:
            return False
        return True

    def receive(self, timeout: Optional[float] = None) -> Any:
        """Dequeue the next item (a record or END_OF_STREAM)."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            raise StreamTimeout(f"{self.name}: nothing received within {timeout}s") from None

    def drain_pending(self) -> Tuple[int, int]:
        """Discard everything currently queued; returns (records, end markers) removed."""
        records = ends = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return records, ends
            if is_end(item):
                ends += 1
            else:
                records += 1

    def qsize(self) -> int:
        return self._queue.qsize()

    def _put(self, item: Any, timeout: Optional[float]) -> None:
        try:
            self._queue.put(item, timeout=timeout)
        except queue.Full:
            raise StreamTimeout(f"{self.name}: still full after {timeout}s") from None

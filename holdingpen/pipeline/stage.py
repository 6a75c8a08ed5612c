"""Pipeline building blocks: sources and worker-pool stages.

A ``Source`` is a single producer thread. A ``Stage`` pairs an interceptor
thread with a pool of worker threads:

    upstream -> interceptor -> inbox -> workers (xN) -> output

The upstream producer sends exactly one end-of-stream marker. The interceptor
turns it into one marker per worker, waits for every worker to exit and only
then sends the single marker on the stage output. Workers never forward the
marker themselves.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, List, Optional

from holdingpen.config import env
from holdingpen.core.logger import CustomLogger, setup_logger
from holdingpen.pipeline.errors import ErrorChannel
from holdingpen.pipeline.stream import BoundedStream, StreamTimeout, is_end

logger = setup_logger(__name__)

Transform = Callable[[Any], Optional[Iterable[Any]]]
Predicate = Callable[[Any], bool]


class StageState(str, Enum):
    """Lifecycle of a source or stage."""
    CREATED = "created"
    RUNNING = "running"
    DRAINING = "draining"      # end-of-stream broadcast, waiting for workers
    ABORTING = "aborting"      # a worker failed; shutting the pool down
    TERMINATED = "terminated"  # output end-of-stream sent


@dataclass
class StageStats:
    received: int = 0
    emitted: int = 0
    failed: int = 0

    def __add__(self, other: "StageStats") -> "StageStats":
        return StageStats(
            received=self.received + other.received,
            emitted=self.emitted + other.emitted,
            failed=self.failed + other.failed,
        )


class Source(ABC):
    """Producer thread feeding the first stream of a pipeline.

    Subclasses implement ``produce`` as a generator. A failure is reported on
    ``errors`` and ends production early; the end-of-stream marker is sent
    either way.
    """

    fatal_errors = True

    def __init__(
        self,
        name: str,
        capacity: Optional[int] = None,
        logger: Optional[CustomLogger] = None,
    ):
        self.name = name
        self.logger = logger or setup_logger(f"holdingpen.pipeline.{name}")
        self.output = BoundedStream(f"{name}.out", capacity)
        self.errors = ErrorChannel(name)
        self.stats = StageStats()
        self.state = StageState.CREATED
        self._thread: Optional[threading.Thread] = None
        self._done = threading.Event()

    @abstractmethod
    def produce(self) -> Iterator[Any]:
        """Yield the records of this source."""

    def start(self) -> BoundedStream:
        if self._thread is not None:
            raise RuntimeError(f"{self.name} already started")
        self.state = StageState.RUNNING
        self._thread = threading.Thread(target=self._run, daemon=True, name=self.name)
        self._thread.start()
        return self.output

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the source to terminate; True if it did."""
        return self._done.wait(timeout)

    def _run(self) -> None:
        try:
            for record in self.produce():
                self.output.send(record)
                self.stats.emitted += 1
        except Exception as e:
            self.state = StageState.ABORTING
            self.stats.failed += 1
            self.logger.error(f"{self.name} stopped early: {e}")
            self.errors.report(e)
        finally:
            self.output.send_end()
            self.state = StageState.TERMINATED
            self._done.set()
            self.logger.debug(f"{self.name} sent end of stream after {self.stats.emitted} records")


class Stage:
    """Runs ``transform`` over a stream with a fixed pool of worker threads.

    ``transform`` receives one record and returns an iterable of output records
    (or None for no output). With ``fatal_errors`` a raised exception stops the
    worker and shuts the stage down; otherwise it is reported and the worker
    carries on. ``accepts`` filters records in the interceptor before they reach
    the pool.
    """

    def __init__(
        self,
        name: str,
        transform: Transform,
        workers: Optional[int] = None,
        capacity: Optional[int] = None,
        accepts: Optional[Predicate] = None,
        fatal_errors: bool = True,
        logger: Optional[CustomLogger] = None,
        poll_interval: Optional[float] = None,
    ):
        self.name = name
        self.workers = max(1, int(workers if workers is not None else env.DEFAULT_WORKERS))
        self.fatal_errors = fatal_errors
        self.logger = logger or setup_logger(f"holdingpen.pipeline.{name}")
        self.poll_interval = poll_interval if poll_interval is not None else env.POLL_INTERVAL
        self.errors = ErrorChannel(name)
        self.output = BoundedStream(f"{name}.out", capacity)
        self.state = StageState.CREATED
        self.sentinels_broadcast = 0

        self._transform = transform
        self._accepts = accepts
        # The inbox must hold one marker per worker once pending records are discarded
        self._inbox = BoundedStream(f"{name}.inbox", max(self.output.capacity, self.workers))
        self._failed = threading.Event()
        self._done = threading.Event()
        self._worker_threads: List[threading.Thread] = []
        self._worker_stats: List[StageStats] = []
        self._interceptor: Optional[threading.Thread] = None
        self.stats = StageStats()

    def start(self, upstream: BoundedStream) -> BoundedStream:
        """Start the pool reading from ``upstream``; returns the output stream."""
        if self._interceptor is not None:
            raise RuntimeError(f"{self.name} already started")
        self.state = StageState.RUNNING

        for index in range(self.workers):
            self._worker_stats.append(StageStats())
            thread = threading.Thread(
                target=self._work,
                args=(index,),
                daemon=True,
                name=f"{self.name}-{index}",
            )
            self._worker_threads.append(thread)
            thread.start()

        self._interceptor = threading.Thread(
            target=self._intercept,
            args=(upstream,),
            daemon=True,
            name=f"{self.name}-interceptor",
        )
        self._interceptor.start()
        self.logger.debug(f"Started {self.name} with {self.workers} worker(s)")
        return self.output

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the stage to terminate; True if it did."""
        return self._done.wait(timeout)

    @property
    def failed(self) -> bool:
        return self._failed.is_set()

    # -------------------------------------------------------------------------
    # Interceptor
    # -------------------------------------------------------------------------

    def _intercept(self, upstream: BoundedStream) -> None:
        upstream_ended = False
        while not self._failed.is_set():
            try:
                item = upstream.receive(timeout=self.poll_interval)
            except StreamTimeout:
                continue
            if is_end(item):
                upstream_ended = True
                break
            if self._accepts is not None and not self._accepts(item):
                self.logger.debug(f"{self.name} ignoring {item!r}")
                continue
            if not self._forward(item):
                break

        if self._failed.is_set():
            self.state = StageState.ABORTING
            self.logger.warning(f"{self.name} received an error, terminating all workers")
        else:
            self.state = StageState.DRAINING
            self.logger.debug(f"{self.name} reached end of stream, signalling {self.workers} worker(s)")

        self._stop_workers()
        for thread in self._worker_threads:
            thread.join()

        total = StageStats()
        for stats in self._worker_stats:
            total = total + stats
        self.stats = total

        self.logger.debug(f"{self.name} workers have exited, sending end of stream")
        self.output.send_end()
        self.state = StageState.TERMINATED
        self._done.set()

        if not upstream_ended:
            self._discard_upstream(upstream)

    def _forward(self, item: Any) -> bool:
        """Hand a record to the pool; False if the stage failed while waiting."""
        while True:
            if self._inbox.offer(item, timeout=self.poll_interval):
                return True
            if self._failed.is_set():
                return False

    def _stop_workers(self) -> None:
        """Put one end marker per worker in the inbox.

        When a worker has failed, pending records are discarded once so the
        markers cannot be stuck behind input no live worker will take.
        """
        remaining = self.workers
        discarded = False
        while remaining:
            if self._failed.is_set() and not discarded:
                self.state = StageState.ABORTING
                records, ends = self._inbox.drain_pending()
                # markers already queued were discarded too and must be re-sent
                remaining += ends
                discarded = True
                if records:
                    self.logger.warning(f"{self.name} discarded {records} pending record(s) after a worker failed")
            if self._inbox.offer_end(timeout=self.poll_interval):
                remaining -= 1
                self.sentinels_broadcast += 1

    def _discard_upstream(self, upstream: BoundedStream) -> None:
        """Keep reading upstream after an abort so its producer never blocks forever."""
        discarded = 0
        while True:
            item = upstream.receive()
            if is_end(item):
                break
            discarded += 1
        if discarded:
            self.logger.warning(f"{self.name} discarded {discarded} record(s) after aborting")

    # -------------------------------------------------------------------------
    # Workers
    # -------------------------------------------------------------------------

    def _work(self, index: int) -> None:
        stats = self._worker_stats[index]
        while True:
            item = self._inbox.receive()
            if is_end(item):
                self.logger.debug(f"{self.name} worker {index} reached end of stream")
                return

            stats.received += 1
            try:
                outputs = self._transform(item)
                if outputs is not None:
                    for record in outputs:
                        self.output.send(record)
                        stats.emitted += 1
            except Exception as e:
                stats.failed += 1
                self.errors.report(e)
                if self.fatal_errors:
                    self.logger.error(f"{self.name} worker {index} stopping: {e}")
                    self._failed.set()
                    return
                self.logger.warning(f"{self.name} worker {index} skipped a record: {e}")

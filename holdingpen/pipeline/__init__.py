"""Concurrent streaming pipeline engine.

- `stream`: bounded streams and the end-of-stream marker
- `errors`: per-stage error channel and StageError
- `stage`: sources and worker-pool stages
- `runner`: the supervising loop
"""

from .errors import ErrorChannel, StageError
from .runner import Pipeline, PipelineOutcome
from .stage import Source, Stage, StageState, StageStats
from .stream import (
    END_OF_STREAM,
    BoundedStream,
    StreamClosedError,
    StreamTimeout,
    is_end,
)

__all__ = [
    "END_OF_STREAM",
    "BoundedStream",
    "ErrorChannel",
    "Pipeline",
    "PipelineOutcome",
    "Source",
    "Stage",
    "StageError",
    "StageState",
    "StageStats",
    "StreamClosedError",
    "StreamTimeout",
    "is_end",
]

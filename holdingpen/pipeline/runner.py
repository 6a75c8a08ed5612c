"""Supervising loop that wires a source and stages together and drains the result."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from holdingpen.config import env
from holdingpen.core.logger import CustomLogger, setup_logger
from holdingpen.pipeline.stage import Source, Stage, StageStats
from holdingpen.pipeline.stream import StreamTimeout, is_end

Sink = Callable[[Any], None]
Component = Union[Source, Stage]


@dataclass
class PipelineOutcome:
    """What happened during one pipeline run."""
    name: str
    completed: bool = False
    records: int = 0
    error: Optional[BaseException] = None
    failed_stage: Optional[str] = None
    warnings: List[BaseException] = field(default_factory=list)
    stats: Dict[str, StageStats] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.completed and self.error is None


class Pipeline:
    """A source followed by zero or more stages.

    ``run`` consumes the last stream on the calling thread. The first error
    from a fatal component ends the run straight away; components that are
    still working are not stopped, they wind down on their own.
    """

    def __init__(
        self,
        name: str,
        source: Source,
        logger: Optional[CustomLogger] = None,
        poll_interval: Optional[float] = None,
    ):
        self.name = name
        self.logger = logger or setup_logger(f"holdingpen.pipeline.{name}")
        self.poll_interval = poll_interval if poll_interval is not None else env.POLL_INTERVAL
        self._source = source
        self._stages: List[Stage] = []
        self._started = False

    def then(self, stage: Stage) -> "Pipeline":
        """Append a stage fed by the previous component's output."""
        if self._started:
            raise RuntimeError(f"{self.name} is already running")
        self._stages.append(stage)
        return self

    @property
    def components(self) -> List[Component]:
        return [self._source, *self._stages]

    def run(self, sink: Optional[Sink] = None) -> PipelineOutcome:
        """Start every component and feed the final records to ``sink``."""
        if self._started:
            raise RuntimeError(f"{self.name} is already running")
        self._started = True
        outcome = PipelineOutcome(name=self.name)

        stream = self._source.start()
        for stage in self._stages:
            stream = stage.start(stream)
        self.logger.info(f"Started {self.name}: {' -> '.join(component.name for component in self.components)}")

        while True:
            if self._check_errors(outcome):
                self._snapshot(outcome)
                return outcome
            try:
                item = stream.receive(timeout=self.poll_interval)
            except StreamTimeout:
                continue
            if is_end(item):
                break

            outcome.records += 1
            if sink is None:
                continue
            try:
                sink(item)
            except Exception as e:
                self.logger.error_trace(f"{self.name}: output handler failed: {e}")
                outcome.error = e
                outcome.failed_stage = "sink"
                self._snapshot(outcome)
                return outcome

        # Errors reported just before the final marker still count
        self._check_errors(outcome)
        self._snapshot(outcome)
        outcome.completed = True
        self.logger.info(f"{self.name}: all done, {outcome.records} record(s) reached the end")
        return outcome

    def _check_errors(self, outcome: PipelineOutcome) -> bool:
        """Collect pending errors; True once a fatal one has been seen."""
        for component in self.components:
            error = component.errors.poll()
            while error is not None:
                if component.fatal_errors:
                    if outcome.error is None:
                        self.logger.error(f"{self.name}: got error from {component.name}: {error}")
                        outcome.error = error
                        outcome.failed_stage = component.name
                    else:
                        self.logger.error(f"{self.name}: further error from {component.name}: {error}")
                else:
                    self.logger.warning(f"{self.name}: got error from {component.name}: {error}")
                    outcome.warnings.append(error)
                error = component.errors.poll()
        return outcome.error is not None

    def _snapshot(self, outcome: PipelineOutcome) -> None:
        outcome.stats = {component.name: component.stats for component in self.components}

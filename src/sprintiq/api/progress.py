"""In-process registry of training runs and their progress streams."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sprintiq.domain.ingest_pipeline import IngestProgress, ProgressListener

log = getLogger(__name__)

DEFAULT_MAX_RUNS = 100


@dataclass(slots=True)
class TrainingRun:
    training_id: str
    events: list[IngestProgress] = field(default_factory=list)
    subscribers: list[asyncio.Queue[IngestProgress | None]] = field(default_factory=list)
    finished: bool = False


class TrainingRunRegistry:
    """Keeps the progress events of recent runs and fans them out to subscribers.

    Subscribers first receive every event already published, then live events
    until the run finishes. Only finished runs are evicted once more than
    ``max_runs`` are tracked.
    """

    def __init__(self, *, max_runs: int = DEFAULT_MAX_RUNS) -> None:
        self._runs: dict[str, TrainingRun] = {}
        self._max_runs = max_runs

    def __contains__(self, training_id: object) -> bool:
        return training_id in self._runs

    def start(self, training_id: str) -> TrainingRun:
        previous = self._runs.pop(training_id, None)
        if previous is not None:
            self._close(previous)
        run = TrainingRun(training_id=training_id)
        self._runs[training_id] = run
        self._evict()
        return run

    def listener(self, training_id: str) -> ProgressListener:
        """Publisher bound to the run currently registered under ``training_id``.

        Events of a run replaced by a later ``start`` with the same id are dropped.
        """

        run = self._runs.get(training_id)

        def publish(progress: IngestProgress) -> None:
            if run is not None:
                self._publish(run, progress)

        return publish

    def publish(self, training_id: str, progress: IngestProgress) -> None:
        run = self._runs.get(training_id)
        if run is not None:
            self._publish(run, progress)

    def _publish(self, run: TrainingRun, progress: IngestProgress) -> None:
        if run.finished:
            return
        run.events.append(progress)
        for queue in run.subscribers:
            queue.put_nowait(progress)
        if progress.finished:
            self._close(run)

    def fail(self, training_id: str) -> None:
        """End the stream of a run that raised before reaching a terminal stage."""

        run = self._runs.get(training_id)
        if run is not None and not run.finished:
            log.warning(f"Training run {training_id} ended without completing")
            self._close(run)

    async def stream(self, training_id: str) -> AsyncIterator[IngestProgress]:
        run = self._runs.get(training_id)
        if run is None:
            return
        history = list(run.events)
        if run.finished:
            for progress in history:
                yield progress
            return

        queue: asyncio.Queue[IngestProgress | None] = asyncio.Queue()
        run.subscribers.append(queue)
        try:
            for progress in history:
                yield progress
            while (progress := await queue.get()) is not None:
                yield progress
        finally:
            if queue in run.subscribers:
                run.subscribers.remove(queue)

    def _close(self, run: TrainingRun) -> None:
        run.finished = True
        for queue in run.subscribers:
            queue.put_nowait(None)

    def _evict(self) -> None:
        overflow = len(self._runs) - self._max_runs
        if overflow <= 0:
            return
        for training_id in [key for key, run in self._runs.items() if run.finished][:overflow]:
            del self._runs[training_id]

"""Phase-based orchestrator for the synchronous part of the ingest pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from sprintiq.domain.ingest_pipeline.context import IngestBatch, PipelineContext

if TYPE_CHECKING:
    from collections.abc import Sequence


class PipelinePhase(Protocol):
    """Contract implemented by each ingestion phase."""

    name: str

    def run(self, batch: IngestBatch, *, context: PipelineContext) -> None: ...


@dataclass(slots=True)
class IngestionPipeline:
    """Compose and execute the ordered pipeline phases.

    Phases are pure with respect to I/O: they only reshape the batch and update
    counters. Store lookups and embedding calls happen in the ingest controller.
    """

    phases: Sequence[PipelinePhase] = field(default_factory=tuple)

    def with_phase(self, phase: PipelinePhase) -> IngestionPipeline:
        """Return a new pipeline appending ``phase`` at the end."""

        return IngestionPipeline(phases=(*self.phases, phase))

    def run(self, batch: IngestBatch, *, context: PipelineContext | None = None) -> IngestBatch:
        """Execute the configured phases in-order against ``batch``."""

        active_context = context or PipelineContext()
        for phase in self.phases:
            phase.run(batch, context=active_context)
        return batch

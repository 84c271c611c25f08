"""Shared context structures for the ingest pipeline (batch + counters + progress)."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

from sprintiq.domain.model import NormalizedIssue, RawIssue


class IngestStage(StrEnum):
    RECEIVED = "received"
    DEDUPLICATED = "deduplicated"
    CROSS_CHECKED = "cross_checked"
    SHORT_CIRCUITED = "short_circuited"
    BATCH_COMPLETED = "batch_completed"
    COMPLETED = "completed"


TERMINAL_STAGES = frozenset({IngestStage.SHORT_CIRCUITED, IngestStage.COMPLETED})


@dataclass(frozen=True, slots=True)
class IngestReport:
    """Outcome of one ingest call."""

    total_processed: int
    total_success: int
    total_failed: int
    duplicate_in_file: int
    duplicate_in_db: int
    existing_count: int
    new_count: int


@dataclass(slots=True)
class IngestCounters:
    total_processed: int = 0
    total_success: int = 0
    total_failed: int = 0
    duplicate_in_file: int = 0
    duplicate_in_db: int = 0
    existing_count: int = 0
    new_count: int = 0

    def to_report(self) -> IngestReport:
        return IngestReport(
            total_processed=self.total_processed,
            total_success=self.total_success,
            total_failed=self.total_failed,
            duplicate_in_file=self.duplicate_in_file,
            duplicate_in_db=self.duplicate_in_db,
            existing_count=self.existing_count,
            new_count=self.new_count,
        )


@dataclass(frozen=True, slots=True)
class IngestProgress:
    """Snapshot published whenever an ingest run changes state."""

    stage: IngestStage
    total_processed: int
    new_count: int
    total_success: int
    total_failed: int
    batch_index: int = 0
    batch_count: int = 0

    @property
    def finished(self) -> bool:
        return self.stage in TERMINAL_STAGES

    @property
    def percent(self) -> int:
        if self.finished:
            return 100
        if self.stage is IngestStage.BATCH_COMPLETED and self.batch_count:
            return 10 + (90 * self.batch_index) // self.batch_count
        if self.stage is IngestStage.CROSS_CHECKED:
            return 10
        if self.stage is IngestStage.DEDUPLICATED:
            return 5
        return 0

    def describe(self) -> str:
        match self.stage:
            case IngestStage.RECEIVED:
                return f"Received {self.total_processed} issues"
            case IngestStage.DEDUPLICATED:
                return "Removed duplicate issue keys within the batch"
            case IngestStage.CROSS_CHECKED:
                return f"{self.new_count} new stories to embed"
            case IngestStage.SHORT_CIRCUITED:
                return "No new stories to process"
            case IngestStage.BATCH_COMPLETED:
                return f"Processed batch {self.batch_index}/{self.batch_count}"
            case IngestStage.COMPLETED:
                return (
                    f"Training completed: {self.total_success} stored, "
                    f"{self.total_failed} failed"
                )


ProgressListener = Callable[[IngestProgress], None]


@dataclass(slots=True)
class IngestBatch:
    """Issues of one ingest call as they move through the pipeline phases."""

    issues: list[RawIssue] = field(default_factory=list[RawIssue])
    normalized: list[NormalizedIssue] = field(default_factory=list[NormalizedIssue])


@dataclass(slots=True)
class PipelineContext:
    """Mutable context shared across pipeline phases."""

    counters: IngestCounters = field(default_factory=IngestCounters)
    duplicate_keys_in_file: list[str] = field(default_factory=list[str])
    normalized_count: int = 0

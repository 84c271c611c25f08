"""Training ingestion pipeline for issue-derived user stories.

The synchronous phases (deduplication, normalization) reshape an ``IngestBatch``
and update a shared ``PipelineContext``. The ``IngestController`` wraps them with
the I/O steps: the store cross-check, batched embedding and persistence.
"""

from __future__ import annotations

from .context import (
    IngestBatch,
    IngestCounters,
    IngestProgress,
    IngestReport,
    IngestStage,
    PipelineContext,
    ProgressListener,
)
from .controller import IngestController, StoreOutcome
from .deduplication import DeduplicationPhase
from .normalization import NormalizationPhase, normalize_issue, story_embedding_text
from .orchestrator import IngestionPipeline, PipelinePhase

__all__ = [
    "DeduplicationPhase",
    "IngestBatch",
    "IngestController",
    "IngestCounters",
    "IngestProgress",
    "IngestReport",
    "IngestStage",
    "IngestionPipeline",
    "NormalizationPhase",
    "PipelineContext",
    "PipelinePhase",
    "StoreOutcome",
    "ProgressListener",
    "normalize_issue",
    "story_embedding_text",
]

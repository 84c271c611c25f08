from __future__ import annotations

import pytest

from sprintiq.domain.ingest_pipeline import (
    DeduplicationPhase,
    IngestBatch,
    IngestionPipeline,
    NormalizationPhase,
    PipelineContext,
)
from sprintiq.domain.ingest_pipeline.normalization import normalize_issue
from tests.helpers.issues import make_issue


def test_first_occurrence_wins_and_repeats_are_counted() -> None:
    first = make_issue("A-1", title="first")
    batch = IngestBatch(
        issues=[
            first,
            make_issue("A-2"),
            make_issue("A-1", title="second"),
            make_issue("A-3"),
            make_issue("A-2"),
        ]
    )
    context = PipelineContext()

    DeduplicationPhase().run(batch, context=context)

    assert [issue.issue_key for issue in batch.issues] == ["A-1", "A-2", "A-3"]
    assert batch.issues[0] is first
    assert context.duplicate_keys_in_file == ["A-1", "A-2"]
    assert context.counters.duplicate_in_file == 2


def test_deduplication_refuses_to_run_after_normalization() -> None:
    issue = make_issue("A-1")
    batch = IngestBatch(issues=[issue], normalized=[normalize_issue(issue)])

    with pytest.raises(RuntimeError, match="before normalization"):
        DeduplicationPhase().run(batch, context=PipelineContext())


def test_pipeline_runs_phases_in_order() -> None:
    pipeline = IngestionPipeline().with_phase(DeduplicationPhase()).with_phase(NormalizationPhase())
    batch = IngestBatch(issues=[make_issue("A-1"), make_issue("A-1")])
    context = PipelineContext()

    pipeline.run(batch, context=context)

    assert [item.story.issue_key for item in batch.normalized] == ["A-1"]
    assert context.counters.duplicate_in_file == 1
    assert context.normalized_count == 1

"""Intra-batch deduplication phase."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sprintiq.domain.ingest_pipeline.orchestrator import PipelinePhase

if TYPE_CHECKING:
    from sprintiq.domain.ingest_pipeline.context import IngestBatch, PipelineContext
    from sprintiq.domain.model import RawIssue


class DeduplicationPhase(PipelinePhase):
    """Keeps the first issue per issue key and records every later repeat."""

    name: str = "deduplication"

    def run(self, batch: IngestBatch, *, context: PipelineContext) -> None:
        if batch.normalized:
            raise RuntimeError("Deduplication must run before normalization")

        key_index: dict[str, RawIssue] = {}
        for issue in batch.issues:
            if issue.issue_key in key_index:
                context.duplicate_keys_in_file.append(issue.issue_key)
                continue
            key_index[issue.issue_key] = issue

        batch.issues[:] = key_index.values()
        context.counters.duplicate_in_file = len(context.duplicate_keys_in_file)

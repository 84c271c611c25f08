"""Deduplicating ingest controller: dedup, cross-check, embed, persist, report."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from sprintiq.config.ingest import DEFAULT_BATCH_DELAY_SECONDS, DEFAULT_EMBEDDING_BATCH_SIZE
from sprintiq.domain.ingest_pipeline.context import (
    IngestBatch,
    IngestCounters,
    IngestProgress,
    IngestReport,
    IngestStage,
    PipelineContext,
    ProgressListener,
)
from sprintiq.domain.ingest_pipeline.deduplication import DeduplicationPhase
from sprintiq.domain.ingest_pipeline.normalization import NormalizationPhase, story_embedding_text
from sprintiq.domain.ingest_pipeline.orchestrator import IngestionPipeline
from sprintiq.domain.ports.persistence import DuplicateStoryError, StoryStoreError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable, Sequence

    from sprintiq.domain.model import CanonicalStory, NormalizedIssue, RawIssue
    from sprintiq.domain.ports.embedding import EmbeddingProvider
    from sprintiq.domain.ports.persistence import StoryStore

log = getLogger(__name__)


def _default_pipeline() -> IngestionPipeline:
    return IngestionPipeline(phases=(DeduplicationPhase(), NormalizationPhase()))


class StoreOutcome(StrEnum):
    STORED = "stored"
    DUPLICATE = "duplicate"
    EMBEDDING_FAILED = "embedding_failed"


def chunked[T](items: Sequence[T], size: int) -> list[Sequence[T]]:
    if size < 1:
        raise ValueError("Batch size must be at least 1")
    return [items[start : start + size] for start in range(0, len(items), size)]


@dataclass(slots=True)
class IngestController:
    """Persist one story per unseen issue key, with embeddings, and report counts.

    Re-submitting an already ingested batch is a no-op reporting zero new stories.
    Embedding and write failures become failure counts; only a failing
    existing-key lookup propagates.
    """

    store: StoryStore
    embedder: EmbeddingProvider
    batch_size: int = DEFAULT_EMBEDDING_BATCH_SIZE
    batch_delay_seconds: float = DEFAULT_BATCH_DELAY_SECONDS
    pipeline: IngestionPipeline = field(default_factory=_default_pipeline)
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def ingest(
        self,
        issues: Iterable[RawIssue],
        *,
        listener: ProgressListener | None = None,
    ) -> IngestReport:
        batch = IngestBatch(issues=list(issues))
        context = PipelineContext()
        counters = context.counters
        counters.total_processed = len(batch.issues)
        log.info(f"Starting story training for {counters.total_processed} issues")
        _notify(listener, IngestStage.RECEIVED, counters)

        self.pipeline.run(batch, context=context)
        log.info(
            f"Removed {counters.duplicate_in_file} duplicates from batch, "
            f"{len(batch.normalized)} unique issues remaining"
        )
        _notify(listener, IngestStage.DEDUPLICATED, counters)

        fresh = await self._drop_existing(batch.normalized, counters)
        counters.new_count = len(fresh)
        log.info(
            f"Found {counters.existing_count} existing stories in store, "
            f"{counters.new_count} new stories to process"
        )
        _notify(listener, IngestStage.CROSS_CHECKED, counters)

        if not fresh:
            log.info("No new stories to process")
            _notify(listener, IngestStage.SHORT_CIRCUITED, counters)
            return counters.to_report()

        batches = chunked(fresh, self.batch_size)
        for index, chunk in enumerate(batches, start=1):
            await self._process_batch(chunk, index=index, counters=counters)
            _notify(
                listener,
                IngestStage.BATCH_COMPLETED,
                counters,
                batch_index=index,
                batch_count=len(batches),
            )
            if index < len(batches):
                await self.sleep(self.batch_delay_seconds)

        log.info(
            f"Training completed: {counters.total_success} new stories stored, "
            f"{counters.existing_count} already existed, {counters.total_failed} failed"
        )
        _notify(listener, IngestStage.COMPLETED, counters, batch_count=len(batches))
        return counters.to_report()

    async def store_story(self, story: CanonicalStory) -> StoreOutcome:
        """Embed and persist one finished story unless its issue key is already stored.

        Uses the same embedding text as batch ingest. Store failures other than a
        key collision propagate.
        """

        key = story.issue_key
        if key in await self.store.existing_issue_keys([key]):
            log.info(f"Story {key} already stored")
            return StoreOutcome.DUPLICATE

        vector = await self.embedder.embed(story_embedding_text(story.metadata))
        if not vector:
            log.warning(f"Story {key} not stored: no embedding")
            return StoreOutcome.EMBEDDING_FAILED

        try:
            await self.store.add_all([story.with_embedding(vector)])
        except DuplicateStoryError:
            log.warning(f"Story {key} was stored concurrently")
            return StoreOutcome.DUPLICATE
        log.info(f"Stored story {key}")
        return StoreOutcome.STORED

    async def _drop_existing(
        self,
        normalized: list[NormalizedIssue],
        counters: IngestCounters,
    ) -> list[NormalizedIssue]:
        if not normalized:
            return []
        keys = [item.story.issue_key for item in normalized]
        existing = await self.store.existing_issue_keys(keys)
        fresh: list[NormalizedIssue] = []
        for item in normalized:
            if item.story.issue_key in existing:
                counters.duplicate_in_db += 1
            else:
                fresh.append(item)
        counters.existing_count = len(existing)
        return fresh

    async def _process_batch(
        self,
        chunk: Sequence[NormalizedIssue],
        *,
        index: int,
        counters: IngestCounters,
    ) -> None:
        vectors = await asyncio.gather(
            *(self.embedder.embed(item.embedding_text) for item in chunk),
            return_exceptions=True,
        )

        valid: list[CanonicalStory] = []
        for item, vector in zip(chunk, vectors, strict=True):
            if isinstance(vector, BaseException):
                log.error(
                    f"Embedding provider raised for {item.story.issue_key}",
                    exc_info=vector,
                )
                continue
            if vector:
                valid.append(item.story.with_embedding(vector))

        embedding_failures = len(chunk) - len(valid)
        counters.total_failed += embedding_failures
        if embedding_failures:
            log.warning(f"Batch {index}: {embedding_failures} stories without embedding")

        if not valid:
            return

        try:
            await self.store.add_all(valid)
        except StoryStoreError:
            log.exception(f"Error storing batch {index}")
            counters.total_failed += len(valid)
            return

        counters.total_success += len(valid)
        log.info(f"Batch {index}: stored {len(valid)} stories")


def _notify(
    listener: ProgressListener | None,
    stage: IngestStage,
    counters: IngestCounters,
    *,
    batch_index: int = 0,
    batch_count: int = 0,
) -> None:
    if listener is None:
        return
    listener(
        IngestProgress(
            stage=stage,
            total_processed=counters.total_processed,
            new_count=counters.new_count,
            total_success=counters.total_success,
            total_failed=counters.total_failed,
            batch_index=batch_index,
            batch_count=batch_count,
        )
    )

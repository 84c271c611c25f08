"""Application wiring shared by the CLI and the HTTP API."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from sprintiq.adapters.embeddings import OpenAIEmbeddingClient
from sprintiq.adapters.sqlalchemy.store import SqlAlchemyStoryStore
from sprintiq.adapters.sqlalchemy.unit_of_work import is_started, startup
from sprintiq.config import (
    IngestConfig,
    SearchConfig,
    get_embedding_config,
    get_ingest_config,
    get_search_config,
)
from sprintiq.domain.ingest_pipeline import IngestController
from sprintiq.domain.search import StorySearch

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sprintiq.domain.ingest_pipeline import IngestReport, ProgressListener, StoreOutcome
    from sprintiq.domain.model import CanonicalStory, RawIssue, StoryMatch
    from sprintiq.domain.ports import EmbeddingProvider, StoryStore
    from sprintiq.domain.search import AntiPatternAnalysis, SuccessPatterns

log = getLogger(__name__)


def build_story_store() -> SqlAlchemyStoryStore:
    """Return the SQL store, migrating the configured database on first use."""

    if not is_started():
        startup()
    return SqlAlchemyStoryStore()


@dataclass(slots=True)
class Services:
    store: StoryStore
    ingest_embedder: EmbeddingProvider
    query_embedder: EmbeddingProvider
    ingest: IngestConfig = field(default_factory=IngestConfig)
    search: SearchConfig = field(default_factory=SearchConfig)

    def controller(self) -> IngestController:
        return IngestController(
            store=self.store,
            embedder=self.ingest_embedder,
            batch_size=self.ingest.batch_size,
            batch_delay_seconds=self.ingest.batch_delay_seconds,
        )

    def story_search(self) -> StorySearch:
        return StorySearch(
            store=self.store,
            embedder=self.query_embedder,
            match_threshold=self.search.match_threshold,
            default_top_k=self.search.top_k,
        )

    async def aclose(self) -> None:
        for embedder in (self.ingest_embedder, self.query_embedder):
            if isinstance(embedder, OpenAIEmbeddingClient):
                await embedder.aclose()


def build_services(
    *,
    store: StoryStore | None = None,
    ingest_embedder: EmbeddingProvider | None = None,
    query_embedder: EmbeddingProvider | None = None,
    ingest: IngestConfig | None = None,
    search: SearchConfig | None = None,
) -> Services:
    """Fill every collaborator not given explicitly from the environment."""

    if ingest_embedder is None or query_embedder is None:
        embedding_config = get_embedding_config()
        if ingest_embedder is None:
            ingest_embedder = OpenAIEmbeddingClient(config=embedding_config)
        if query_embedder is None:
            query_embedder = OpenAIEmbeddingClient(
                config=embedding_config,
                resilience=embedding_config.query_resilience(),
            )
    return Services(
        store=store or build_story_store(),
        ingest_embedder=ingest_embedder,
        query_embedder=query_embedder,
        ingest=ingest or get_ingest_config(),
        search=search or get_search_config(),
    )


async def train_stories(
    issues: Iterable[RawIssue],
    *,
    services: Services,
    listener: ProgressListener | None = None,
) -> IngestReport:
    """Run one training ingest with the configured store and embedding provider."""

    report = await services.controller().ingest(issues, listener=listener)
    log.info(
        f"Finished story training: processed={report.total_processed}, "
        f"stored={report.total_success}, failed={report.total_failed}, "
        f"duplicate_in_file={report.duplicate_in_file}, duplicate_in_db={report.duplicate_in_db}"
    )
    return report


async def search_stories(
    query: str,
    *,
    services: Services,
    top_k: int | None = None,
) -> list[StoryMatch]:
    return await services.story_search().search_similar_stories(query, top_k)


async def find_success_patterns(
    feature: str, complexity: str, *, services: Services
) -> SuccessPatterns:
    return await services.story_search().find_success_patterns(feature, complexity)


async def find_story_templates(
    feature: str, complexity: str, *, services: Services, count: int = 3
) -> list[StoryMatch]:
    return await services.story_search().find_story_templates(feature, complexity, count)


async def analyze_story(
    title: str,
    description: str,
    acceptance_criteria: Sequence[str],
    *,
    services: Services,
) -> AntiPatternAnalysis:
    return await services.story_search().analyze_story_for_anti_patterns(
        title, description, acceptance_criteria
    )


async def store_story(story: CanonicalStory, *, services: Services) -> StoreOutcome:
    """Embed and store one finished story, keyed like ingested ones."""

    outcome = await services.controller().store_story(story)
    log.info(f"Store of story {story.issue_key}: {outcome}")
    return outcome


async def count_stories(*, services: Services) -> int:
    return await services.store.count()

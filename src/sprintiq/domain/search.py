"""Similar-story search over embedded training stories."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from sprintiq.config.ingest import DEFAULT_MATCH_THRESHOLD, DEFAULT_TOP_K
from sprintiq.domain.model import StoryMatch

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sprintiq.domain.model import CanonicalStory
    from sprintiq.domain.ports.embedding import EmbeddingProvider
    from sprintiq.domain.ports.persistence import StoryStore

log = getLogger(__name__)

TEXT_MATCH_SIMILARITY: Final[float] = 0.5
SUCCESS_COMPLETION_RATE: Final[float] = 0.8
TEMPLATE_COMPLETION_RATE: Final[float] = 0.7
TEMPLATE_MIN_CRITERIA: Final[int] = 3
SUCCESS_PATTERN_TOP_K: Final[int] = 10
ANALYSIS_TOP_K: Final[int] = 5
FAILED_STORY_SIMILARITY: Final[float] = 0.7
FAILED_STORY_COMPLETION_RATE: Final[float] = 0.6
SCOPE_OVERLOAD_INDICATORS: Final[int] = 2

VAGUE_WORDS: Final[tuple[str, ...]] = (
    "maybe",
    "possibly",
    "might",
    "could",
    "should",
    "nice to have",
    "if possible",
)
SCOPE_WORDS: Final[tuple[str, ...]] = ("and", "also", "additionally", "furthermore", "moreover")

VAGUE_RISK: Final[float] = 0.3
SCOPE_RISK: Final[float] = 0.4
FAILED_STORIES_RISK: Final[float] = 0.3
ANTI_PATTERN_RISK: Final[float] = 0.2


class EmbeddingUnavailableError(RuntimeError):
    """Raised when a search query could not be embedded."""


@dataclass(frozen=True, slots=True)
class SuccessPatterns:
    patterns: list[StoryMatch] = field(default_factory=list[StoryMatch])
    anti_patterns: list[str] = field(default_factory=list[str])


@dataclass(frozen=True, slots=True)
class AntiPatternAnalysis:
    warnings: list[str] = field(default_factory=list[str])
    risk_score: float = 0.0


def cosine_similarity(left: Sequence[float], right: Sequence[float]) -> float:
    if len(left) != len(right):
        raise ValueError("Vectors must have the same dimension")
    dot = sum(a * b for a, b in zip(left, right, strict=True))
    norm = math.sqrt(sum(a * a for a in left)) * math.sqrt(sum(b * b for b in right))
    if norm == 0:
        return 0.0
    return dot / norm


def rank_by_similarity(
    query_vector: Sequence[float],
    stories: Iterable[CanonicalStory],
    *,
    threshold: float,
    top_k: int,
) -> list[StoryMatch]:
    """Stories at or above ``threshold``, most similar first; other dimensions are skipped."""

    matches = [
        StoryMatch(story=story, similarity=cosine_similarity(query_vector, story.embedding))
        for story in stories
        if len(story.embedding) == len(query_vector)
    ]
    matches = [match for match in matches if match.similarity >= threshold]
    matches.sort(key=lambda match: match.similarity, reverse=True)
    return matches[:top_k]


def text_matches(query: str, stories: Iterable[CanonicalStory], *, top_k: int) -> list[StoryMatch]:
    needle = query.strip().lower()
    if not needle:
        return []
    found = [
        StoryMatch(story=story, similarity=TEXT_MATCH_SIMILARITY)
        for story in stories
        if needle in story.metadata.title.lower() or needle in story.metadata.description.lower()
    ]
    return found[:top_k]


def _is_template_quality(match: StoryMatch) -> bool:
    metadata = match.story.metadata
    return (
        metadata.completion_rate >= TEMPLATE_COMPLETION_RATE
        and bool(metadata.title)
        and bool(metadata.role)
        and bool(metadata.want)
        and bool(metadata.benefit)
        and len(metadata.acceptance_criteria) >= TEMPLATE_MIN_CRITERIA
    )


@dataclass(slots=True)
class StorySearch:
    """Query service over the story store using the embedding provider for queries."""

    store: StoryStore
    embedder: EmbeddingProvider
    match_threshold: float = DEFAULT_MATCH_THRESHOLD
    default_top_k: int = DEFAULT_TOP_K

    async def search_similar_stories(
        self,
        query: str,
        top_k: int | None = None,
    ) -> list[StoryMatch]:
        limit = self.default_top_k if top_k is None else top_k
        if limit < 1:
            return []

        vector = await self.embedder.embed(query)
        if not vector:
            raise EmbeddingUnavailableError(f"Could not embed search query {query!r}")

        stories = await self.store.embedded_stories()
        comparable = [story for story in stories if len(story.embedding) == len(vector)]
        if stories and not comparable:
            log.warning(
                f"No stored story shares the query embedding dimension {len(vector)}; "
                "falling back to text search"
            )
            return text_matches(query, stories, top_k=limit)

        return rank_by_similarity(
            vector, comparable, threshold=self.match_threshold, top_k=limit
        )

    async def find_success_patterns(self, feature: str, complexity: str) -> SuccessPatterns:
        results = await self.search_similar_stories(
            f"{feature} {complexity} complexity", SUCCESS_PATTERN_TOP_K
        )
        successful = [
            match
            for match in results
            if match.story.metadata.completion_rate >= SUCCESS_COMPLETION_RATE
        ]
        anti: dict[str, None] = {}
        for match in results:
            for pattern in match.story.metadata.anti_patterns:
                anti.setdefault(pattern, None)
        return SuccessPatterns(patterns=successful, anti_patterns=list(anti))

    async def find_story_templates(
        self,
        feature: str,
        complexity: str,
        count: int = 3,
    ) -> list[StoryMatch]:
        if count < 1:
            return []
        results = await self.search_similar_stories(
            f"{feature} {complexity} story template", count * 2
        )
        templates = [match for match in results if _is_template_quality(match)]
        templates.sort(key=lambda match: match.similarity, reverse=True)
        return templates[:count]

    async def analyze_story_for_anti_patterns(
        self,
        title: str,
        description: str,
        acceptance_criteria: Sequence[str],
    ) -> AntiPatternAnalysis:
        """Flag vague wording, overloaded scope and resemblance to stories that went badly.

        Keyword checks are substring matches on the lowercased story text. Stored
        stories count as failed when they are more similar than 0.7 and completed
        below 0.6. The risk score is capped at 1.0.
        """

        story_text = f"{title} {description} {' '.join(acceptance_criteria)}"
        similar = await self.search_similar_stories(story_text, ANALYSIS_TOP_K)

        text = story_text.lower()
        warnings: list[str] = []
        risk = 0.0

        if any(word in text for word in VAGUE_WORDS):
            warnings.append("Vague requirements detected - use specific, measurable criteria")
            risk += VAGUE_RISK

        if sum(word in text for word in SCOPE_WORDS) > SCOPE_OVERLOAD_INDICATORS:
            warnings.append("Scope overload detected - story may contain too many features")
            risk += SCOPE_RISK

        failed = [
            match
            for match in similar
            if match.similarity > FAILED_STORY_SIMILARITY
            and match.story.metadata.completion_rate < FAILED_STORY_COMPLETION_RATE
        ]
        if failed:
            rate = failed[0].story.metadata.completion_rate * 100
            warnings.append(
                f"{len(failed)} similar stories had low completion rates ({rate:.0f}%)"
            )
            risk += FAILED_STORIES_RISK

        inherited: dict[str, None] = {}
        for match in failed:
            for pattern in match.story.metadata.anti_patterns:
                inherited.setdefault(pattern, None)
        for pattern in inherited:
            warnings.append(f"Anti-pattern seen in similar stories: {pattern}")
            risk += ANTI_PATTERN_RISK

        return AntiPatternAnalysis(warnings=warnings, risk_score=min(risk, 1.0))

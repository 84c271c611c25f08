"""Domain types for issue-to-story training data (pure, dependency-light)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID


class Complexity(StrEnum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"


@dataclass(frozen=True, slots=True)
class RawIssue:
    """One tracked work item as exported from the source issue tracker.

    Only ``issue_key`` is mandatory. Every other field has the neutral default the
    normalizer expects, so partially filled exports still convert.
    """

    issue_key: str
    title: str = ""
    description: str = ""
    description_text: str = ""
    description_code: str = ""
    issue_type: str = ""
    priority: str = ""
    status: str = ""
    resolution: str | None = None
    story_points: float = 0
    timespent: float | None = None
    in_progress_minutes: float = 0
    total_effort_minutes: float = 0
    resolution_time_minutes: float = 0
    created_at: datetime | None = None
    estimated_at: datetime | None = None
    resolved_at: datetime | None = None
    last_updated_at: datetime | None = None
    title_changed_after_estimation: bool = False
    description_changed_after_estimation: bool = False
    story_points_changed_after_estimation: bool = False
    id: int | None = None
    jira_id: int | None = None
    url: str | None = None
    pull_request_url: str | None = None
    creator_id: int | None = None
    reporter_id: int | None = None
    assignee_id: int | None = None
    project_id: int | None = None
    sprint_id: int | None = None

    @property
    def plain_description(self) -> str:
        """Plain-text description, falling back to the raw (HTML) description."""

        return self.description_text or self.description


@dataclass(frozen=True, slots=True)
class StoryMetadata:
    title: str
    description: str
    role: str
    want: str
    benefit: str
    acceptance_criteria: tuple[str, ...]
    story_points: float
    business_value: int
    priority: str
    tags: tuple[str, ...]
    estimated_time: int
    completion_rate: float
    success_pattern: str
    anti_patterns: tuple[str, ...]
    original_issue_key: str
    original_type: str
    original_status: str
    resolution_time: float
    total_effort: float
    complexity: Complexity


@dataclass(frozen=True, slots=True)
class CanonicalStory:
    """Normalized user story derived from one ``RawIssue``.

    ``id`` is a storage identifier; ``metadata.original_issue_key`` is the business
    key used for deduplication.
    """

    id: UUID
    metadata: StoryMetadata
    created_at: datetime
    updated_at: datetime
    embedding: tuple[float, ...] = field(default_factory=tuple)

    @property
    def issue_key(self) -> str:
        return self.metadata.original_issue_key

    @property
    def complexity(self) -> Complexity:
        return self.metadata.complexity

    @property
    def has_embedding(self) -> bool:
        return len(self.embedding) > 0

    def with_embedding(self, vector: Sequence[float]) -> CanonicalStory:
        return replace(self, embedding=tuple(float(value) for value in vector))


@dataclass(frozen=True, slots=True)
class NormalizedIssue:
    """Normalizer output: the story plus the text sent to the embedding provider."""

    story: CanonicalStory
    embedding_text: str


@dataclass(frozen=True, slots=True)
class StoryMatch:
    """A stored story returned by similarity search."""

    story: CanonicalStory
    similarity: float

"""Request and response bodies of the HTTP API (camelCase on the wire)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sprintiq.adapters.sqlalchemy.mappings import metadata_document
from sprintiq.domain.ingest_pipeline.normalization import classify_complexity
from sprintiq.domain.model import CanonicalStory, Complexity, StoryMetadata

if TYPE_CHECKING:
    from datetime import datetime

    from sprintiq.domain.ingest_pipeline import IngestProgress, IngestReport
    from sprintiq.domain.model import StoryMatch
    from sprintiq.domain.search import AntiPatternAnalysis, SuccessPatterns


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TrainResponse(ApiModel):
    success: bool = True
    total_processed: int
    total_success: int
    total_failed: int
    duplicate_in_file: int
    duplicate_in_db: int = Field(alias="duplicateInDB")
    existing_count: int
    new_count: int
    training_id: str

    @classmethod
    def from_report(cls, report: IngestReport, *, training_id: str) -> TrainResponse:
        return cls(
            total_processed=report.total_processed,
            total_success=report.total_success,
            total_failed=report.total_failed,
            duplicate_in_file=report.duplicate_in_file,
            duplicate_in_db=report.duplicate_in_db,
            existing_count=report.existing_count,
            new_count=report.new_count,
            training_id=training_id,
        )


class ProgressEvent(ApiModel):
    training_id: str
    stage: str
    progress: int
    current_step: str
    total_processed: int
    total_success: int
    failed: int

    @classmethod
    def from_progress(cls, progress: IngestProgress, *, training_id: str) -> ProgressEvent:
        return cls(
            training_id=training_id,
            stage=progress.stage.value,
            progress=progress.percent,
            current_step=progress.describe(),
            total_processed=progress.total_processed,
            total_success=progress.total_success,
            failed=progress.total_failed,
        )

    def to_sse(self) -> str:
        return f"data: {self.model_dump_json(by_alias=True)}\n\n"


class StoryMatchOut(ApiModel):
    id: UUID
    similarity: float
    metadata: dict[str, Any]

    @classmethod
    def from_match(cls, match: StoryMatch) -> StoryMatchOut:
        return cls(
            id=match.story.id,
            similarity=match.similarity,
            metadata=metadata_document(match.story.metadata),
        )


class SearchResponse(ApiModel):
    query: str
    results: list[StoryMatchOut]


class StoryIn(ApiModel):
    """A finished story submitted for storage; metadata keys as in the stored document."""

    id: UUID | None = None
    original_issue_key: str = Field(min_length=1)
    title: str
    description: str = ""
    role: str = ""
    want: str = ""
    benefit: str = ""
    acceptance_criteria: list[str] = Field(default_factory=list)
    story_points: float = 0
    business_value: int = 0
    priority: str = ""
    tags: list[str] = Field(default_factory=list)
    estimated_time: int = 0
    completion_rate: float = Field(default=0.0, ge=0, le=1)
    success_pattern: str = ""
    anti_patterns: list[str] = Field(default_factory=list)
    original_type: str = ""
    original_status: str = ""
    resolution_time: float = 0
    total_effort: float = 0
    complexity: Complexity | None = None

    def to_story(self, *, now: datetime) -> CanonicalStory:
        complexity = self.complexity or classify_complexity(self.story_points, self.total_effort)
        metadata = StoryMetadata(
            title=self.title,
            description=self.description,
            role=self.role,
            want=self.want,
            benefit=self.benefit,
            acceptance_criteria=tuple(self.acceptance_criteria),
            story_points=self.story_points,
            business_value=self.business_value,
            priority=self.priority,
            tags=tuple(self.tags),
            estimated_time=self.estimated_time,
            completion_rate=self.completion_rate,
            success_pattern=self.success_pattern,
            anti_patterns=tuple(self.anti_patterns),
            original_issue_key=self.original_issue_key,
            original_type=self.original_type,
            original_status=self.original_status,
            resolution_time=self.resolution_time,
            total_effort=self.total_effort,
            complexity=complexity,
        )
        return CanonicalStory(
            id=self.id or uuid4(), metadata=metadata, created_at=now, updated_at=now
        )


class StoreResponse(ApiModel):
    success: bool = True
    id: UUID


class AnalyzeRequest(ApiModel):
    title: str = Field(min_length=1)
    description: str = ""
    acceptance_criteria: list[str] = Field(default_factory=list)


class AnalyzeResponse(ApiModel):
    warnings: list[str]
    risk_score: float

    @classmethod
    def from_analysis(cls, analysis: AntiPatternAnalysis) -> AnalyzeResponse:
        return cls(warnings=analysis.warnings, risk_score=analysis.risk_score)


class PatternsResponse(ApiModel):
    patterns: list[StoryMatchOut]
    anti_patterns: list[str]

    @classmethod
    def from_patterns(cls, found: SuccessPatterns) -> PatternsResponse:
        return cls(
            patterns=[StoryMatchOut.from_match(match) for match in found.patterns],
            anti_patterns=found.anti_patterns,
        )


class TemplatesResponse(ApiModel):
    templates: list[StoryMatchOut]


class StatsResponse(ApiModel):
    total_stories: int

"""SQLAlchemy table metadata and row conversion for training stories."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Enum,
    MetaData,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
)

from sprintiq.domain.model import CanonicalStory, Complexity, StoryMetadata

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import Engine, RowMapping

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


metadata = MetaData()

user_story_table = Table(
    "user_story",
    metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("original_issue_key", String(255), nullable=False),
    Column(
        "complexity",
        Enum(
            Complexity,
            name="story_complexity",
            native_enum=False,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
    ),
    Column("embedding", JSON, nullable=False),
    Column("metadata", JSON, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint("original_issue_key", name="uq_user_story_original_issue_key"),
)


def metadata_document(value: StoryMetadata) -> dict[str, Any]:
    """Serialise story metadata with the camelCase keys consumers of the table expect."""

    return {
        "title": value.title,
        "description": value.description,
        "role": value.role,
        "want": value.want,
        "benefit": value.benefit,
        "acceptanceCriteria": list(value.acceptance_criteria),
        "storyPoints": value.story_points,
        "businessValue": value.business_value,
        "priority": value.priority,
        "tags": list(value.tags),
        "estimatedTime": value.estimated_time,
        "completionRate": value.completion_rate,
        "successPattern": value.success_pattern,
        "antiPatterns": list(value.anti_patterns),
        "originalIssueKey": value.original_issue_key,
        "originalType": value.original_type,
        "originalStatus": value.original_status,
        "resolutionTime": value.resolution_time,
        "totalEffort": value.total_effort,
        "complexity": value.complexity.value,
    }


def metadata_from_document(document: Mapping[str, Any]) -> StoryMetadata:
    return StoryMetadata(
        title=str(document.get("title", "")),
        description=str(document.get("description", "")),
        role=str(document.get("role", "")),
        want=str(document.get("want", "")),
        benefit=str(document.get("benefit", "")),
        acceptance_criteria=tuple(document.get("acceptanceCriteria") or ()),
        story_points=float(document.get("storyPoints") or 0),
        business_value=int(document.get("businessValue") or 0),
        priority=str(document.get("priority", "")),
        tags=tuple(document.get("tags") or ()),
        estimated_time=int(document.get("estimatedTime") or 0),
        completion_rate=float(document.get("completionRate") or 0),
        success_pattern=str(document.get("successPattern", "")),
        anti_patterns=tuple(document.get("antiPatterns") or ()),
        original_issue_key=str(document["originalIssueKey"]),
        original_type=str(document.get("originalType", "")),
        original_status=str(document.get("originalStatus", "")),
        resolution_time=float(document.get("resolutionTime") or 0),
        total_effort=float(document.get("totalEffort") or 0),
        complexity=Complexity(document["complexity"]),
    )


def story_to_row(story: CanonicalStory) -> dict[str, Any]:
    return {
        "id": story.id,
        "original_issue_key": story.issue_key,
        "complexity": story.complexity,
        "embedding": list(story.embedding),
        "metadata": metadata_document(story.metadata),
        "created_at": story.created_at,
        "updated_at": story.updated_at,
    }


def row_to_story(row: RowMapping) -> CanonicalStory:
    embedding = cast("list[float]", row["embedding"] or [])
    return CanonicalStory(
        id=row["id"],
        metadata=metadata_from_document(row["metadata"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        embedding=tuple(float(value) for value in embedding),
    )


def create_all_tables(engine: Engine) -> None:
    """Create database tables without running migrations."""

    log.info("Creating all tables")
    metadata.create_all(engine)

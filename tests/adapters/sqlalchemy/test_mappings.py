from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect

from sprintiq.adapters.sqlalchemy import create_all_tables
from sprintiq.adapters.sqlalchemy.mappings import (
    metadata_document,
    metadata_from_document,
    story_to_row,
)
from sprintiq.domain.model import Complexity
from tests.helpers.issues import make_story

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def test_migrations_create_user_story_table_with_unique_issue_key(sqlite_engine: Engine) -> None:
    inspector = inspect(sqlite_engine)

    assert "user_story" in set(inspector.get_table_names())
    columns = {column["name"] for column in inspector.get_columns("user_story")}
    assert columns == {
        "id",
        "original_issue_key",
        "complexity",
        "embedding",
        "metadata",
        "created_at",
        "updated_at",
    }
    constraints = inspector.get_unique_constraints("user_story")
    assert [constraint["column_names"] for constraint in constraints] == [["original_issue_key"]]


def test_create_all_tables_matches_the_migrated_schema() -> None:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

    create_all_tables(engine)

    assert inspect(engine).get_table_names() == ["user_story"]


def test_metadata_document_uses_camel_case_keys() -> None:
    story = make_story("M-1", story_points=13, total_effort_minutes=2000)

    document = metadata_document(story.metadata)

    assert document["originalIssueKey"] == "M-1"
    assert document["storyPoints"] == 13
    assert document["totalEffort"] == 2000
    assert document["complexity"] == "complex"
    assert isinstance(document["acceptanceCriteria"], list)
    assert isinstance(document["tags"], list)


def test_metadata_document_round_trip() -> None:
    story = make_story("M-2")

    assert metadata_from_document(metadata_document(story.metadata)) == story.metadata


def test_metadata_from_document_requires_the_business_key() -> None:
    document = metadata_document(make_story("M-3").metadata)
    del document["originalIssueKey"]

    with pytest.raises(KeyError):
        metadata_from_document(document)


def test_story_to_row_carries_key_and_complexity_columns() -> None:
    story = make_story("M-4", embedding=(0.5, 0.5))

    row = story_to_row(story)

    assert row["original_issue_key"] == "M-4"
    assert row["complexity"] is Complexity.SIMPLE
    assert row["embedding"] == [0.5, 0.5]
    assert row["id"] == story.id

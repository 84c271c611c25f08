from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from sprintiq.adapters.sqlalchemy.migrations import upgrade_head
from sprintiq.adapters.sqlalchemy.store import SqlAlchemyStoryStore
from sprintiq.adapters.sqlalchemy.unit_of_work import shutdown, startup
from tests.helpers.fakes import FakeEmbedder, FakeStoryStore, RecordingSleep

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    # File-backed so worker threads share one database.
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'stories.db'}", future=True)
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sql_story_store(sqlite_engine: Engine) -> Iterator[SqlAlchemyStoryStore]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyStoryStore()
    finally:
        shutdown()


@pytest.fixture
def fake_store() -> FakeStoryStore:
    return FakeStoryStore()


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()

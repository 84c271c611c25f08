"""SQLAlchemy adapter package for SprintiQ."""

from __future__ import annotations

from .mappings import create_all_tables, metadata, user_story_table
from .repositories import SqlAlchemyStoryRepository
from .store import SqlAlchemyStoryStore
from .unit_of_work import SqlAlchemyStoryUnitOfWork, StartupError, shutdown, startup

__all__ = [
    "SqlAlchemyStoryRepository",
    "SqlAlchemyStoryStore",
    "SqlAlchemyStoryUnitOfWork",
    "StartupError",
    "create_all_tables",
    "metadata",
    "shutdown",
    "startup",
    "user_story_table",
]

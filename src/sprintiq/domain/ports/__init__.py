"""Domain port definitions for adapters."""

from __future__ import annotations

from .embedding import EmbeddingProvider
from .persistence import DuplicateStoryError, StoryRepository, StoryStore, StoryStoreError
from .unit_of_work import RepositoryCollection, StoryRepositories, StoryUnitOfWork, UnitOfWork

__all__ = [
    "DuplicateStoryError",
    "EmbeddingProvider",
    "RepositoryCollection",
    "StoryRepositories",
    "StoryRepository",
    "StoryStore",
    "StoryStoreError",
    "StoryUnitOfWork",
    "UnitOfWork",
]

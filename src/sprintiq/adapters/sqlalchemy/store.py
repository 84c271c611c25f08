"""Async ``StoryStore`` on top of the SQLAlchemy unit of work."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from sprintiq.adapters.sqlalchemy.unit_of_work import SqlAlchemyStoryUnitOfWork
from sprintiq.domain.ports.persistence import DuplicateStoryError, StoryStore, StoryStoreError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sprintiq.domain.model import CanonicalStory
    from sprintiq.domain.ports.unit_of_work import StoryUnitOfWork

log = getLogger(__name__)


@dataclass(slots=True)
class SqlAlchemyStoryStore:
    """Runs each operation in its own unit of work on a worker thread."""

    uow_factory: Callable[[], StoryUnitOfWork] = field(default=SqlAlchemyStoryUnitOfWork)

    async def existing_issue_keys(self, keys: Iterable[str]) -> set[str]:
        key_list = list(keys)
        if not key_list:
            return set()
        return await asyncio.to_thread(self._existing_issue_keys, key_list)

    async def add_all(self, stories: Sequence[CanonicalStory]) -> None:
        if not stories:
            return
        await asyncio.to_thread(self._add_all, list(stories))

    async def embedded_stories(self) -> list[CanonicalStory]:
        return await asyncio.to_thread(self._embedded_stories)

    async def count(self) -> int:
        return await asyncio.to_thread(self._count)

    def _existing_issue_keys(self, keys: list[str]) -> set[str]:
        try:
            with self.uow_factory() as uow:
                return uow.repositories.stories.existing_issue_keys(keys)
        except SQLAlchemyError as exc:
            raise StoryStoreError("Failed to look up existing issue keys") from exc

    def _add_all(self, stories: list[CanonicalStory]) -> None:
        try:
            with self.uow_factory() as uow:
                uow.repositories.stories.add_all(stories)
                uow.commit()
        except IntegrityError as exc:
            log.warning(f"Rejected batch of {len(stories)} stories: issue key already stored")
            raise DuplicateStoryError("A story with this original issue key already exists") from exc
        except SQLAlchemyError as exc:
            raise StoryStoreError(f"Failed to store {len(stories)} stories") from exc

    def _embedded_stories(self) -> list[CanonicalStory]:
        try:
            with self.uow_factory() as uow:
                return list(uow.repositories.stories.iter_embedded())
        except SQLAlchemyError as exc:
            raise StoryStoreError("Failed to load stored stories") from exc

    def _count(self) -> int:
        try:
            with self.uow_factory() as uow:
                return uow.repositories.stories.count()
        except SQLAlchemyError as exc:
            raise StoryStoreError("Failed to count stored stories") from exc


if TYPE_CHECKING:
    _store_check: StoryStore = SqlAlchemyStoryStore()

"""Ports for persisting canonical stories."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    from sprintiq.domain.model import CanonicalStory


class StoryStoreError(RuntimeError):
    """Raised by store adapters when a read or write fails."""


class DuplicateStoryError(StoryStoreError):
    """Raised when a write collides with an already persisted ``originalIssueKey``."""


@runtime_checkable
class StoryStore(Protocol):
    """Persistence contract for canonical stories, keyed by original issue key."""

    async def existing_issue_keys(self, keys: Iterable[str]) -> set[str]: ...

    async def add_all(self, stories: Sequence[CanonicalStory]) -> None: ...

    async def embedded_stories(self) -> list[CanonicalStory]: ...

    async def count(self) -> int: ...


@runtime_checkable
class StoryRepository(Protocol):
    """Session-bound repository used inside a unit of work."""

    def existing_issue_keys(self, keys: Iterable[str]) -> set[str]: ...

    def add_all(self, stories: Sequence[CanonicalStory]) -> None: ...

    def iter_embedded(self) -> Iterator[CanonicalStory]: ...

    def count(self) -> int: ...

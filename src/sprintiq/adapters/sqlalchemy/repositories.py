"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from sqlalchemy import func, insert, select

from sprintiq.adapters.sqlalchemy.mappings import row_to_story, story_to_row, user_story_table
from sprintiq.domain.ports.persistence import StoryRepository

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    from sqlalchemy.orm import Session

    from sprintiq.domain.model import CanonicalStory

# Keeps IN clauses under SQLite's bound parameter limit.
_KEY_CHUNK_SIZE: Final[int] = 500


class SqlAlchemyStoryRepository(StoryRepository):
    def __init__(self, session: Session) -> None:
        self.session = session

    def existing_issue_keys(self, keys: Iterable[str]) -> set[str]:
        unique_keys = list(dict.fromkeys(keys))
        found: set[str] = set()
        column = user_story_table.c.original_issue_key
        for start in range(0, len(unique_keys), _KEY_CHUNK_SIZE):
            chunk = unique_keys[start : start + _KEY_CHUNK_SIZE]
            stmt = select(column).where(column.in_(chunk))
            found.update(self.session.execute(stmt).scalars())
        return found

    def add_all(self, stories: Sequence[CanonicalStory]) -> None:
        if not stories:
            return
        self.session.execute(insert(user_story_table), [story_to_row(story) for story in stories])

    def iter_embedded(self) -> Iterator[CanonicalStory]:
        stmt = select(user_story_table).order_by(user_story_table.c.created_at)
        for row in self.session.execute(stmt).mappings():
            story = row_to_story(row)
            if story.has_embedding:
                yield story

    def count(self) -> int:
        stmt = select(func.count()).select_from(user_story_table)
        return int(self.session.execute(stmt).scalar_one())

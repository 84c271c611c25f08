"""Turn decoded TAWOS exports into domain issues."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .schema import IssuePayload

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from sprintiq.domain.model import RawIssue


class InvalidIssuePayloadError(ValueError):
    """Raised when one entry of an issue list cannot be read as an issue."""

    def __init__(self, message: str, *, index: int) -> None:
        super().__init__(message)
        self.index = index


class IssueFileError(RuntimeError):
    """Raised when an ingest file cannot be read or does not hold a list of issues."""


def parse_issue_payloads(items: Sequence[object]) -> list[RawIssue]:
    issues: list[RawIssue] = []
    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            raise InvalidIssuePayloadError("Issue entry must be an object", index=index)
        try:
            payload = IssuePayload.model_validate(item)
        except ValidationError as exc:
            raise InvalidIssuePayloadError(f"Invalid issue entry: {exc}", index=index) from exc
        issues.append(payload.to_domain())
    return issues


def load_issue_file(path: Path) -> list[RawIssue]:
    """Read a JSON array of TAWOS issues from ``path``."""

    try:
        with path.open(encoding="utf-8") as handle:
            document = json.load(handle)
    except OSError as exc:
        raise IssueFileError(f"Cannot read {path}: {exc.strerror or exc}") from exc
    except json.JSONDecodeError as exc:
        raise IssueFileError(f"{path} is not valid JSON: {exc.msg}") from exc

    if not isinstance(document, list):
        raise IssueFileError(f"{path} must contain a JSON array of issues")
    try:
        return parse_issue_payloads(document)
    except InvalidIssuePayloadError as exc:
        raise IssueFileError(f"{path}: entry {exc.index} is not a valid issue") from exc

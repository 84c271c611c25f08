"""Public interface for the TAWOS export adapter."""

from __future__ import annotations

from .loader import InvalidIssuePayloadError, IssueFileError, load_issue_file, parse_issue_payloads
from .schema import IssuePayload

__all__ = [
    "InvalidIssuePayloadError",
    "IssueFileError",
    "IssuePayload",
    "load_issue_file",
    "parse_issue_payloads",
]

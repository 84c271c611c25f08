from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING

import pytest

from sprintiq.adapters.tawos import (
    InvalidIssuePayloadError,
    IssueFileError,
    load_issue_file,
    parse_issue_payloads,
)
from sprintiq.adapters.tawos.schema import IssuePayload
from tests.helpers.issues import issue_payload

if TYPE_CHECKING:
    from pathlib import Path


def test_full_export_row_maps_to_raw_issue() -> None:
    issue = IssuePayload.model_validate(issue_payload("MESOS-42")).to_domain()

    assert issue.issue_key == "MESOS-42"
    assert issue.title == "Implement MESOS-42"
    assert issue.plain_description == "Add the login form to the frontend"
    assert issue.issue_type == "Story"
    assert issue.resolution == "Fixed"
    assert issue.story_points == 3.0
    assert issue.total_effort_minutes == 240.0
    assert issue.resolution_time_minutes == 12000.0
    assert issue.created_at == datetime(2019, 5, 2, 10, 15)
    assert issue.description_changed_after_estimation is True
    assert issue.title_changed_after_estimation is False
    assert issue.timespent is None
    assert issue.assignee_id is None
    assert issue.project_id == 3
    assert issue.pull_request_url is None


def test_missing_optional_fields_take_neutral_defaults() -> None:
    issue = IssuePayload.model_validate({"Issue_Key": "X-1"}).to_domain()

    assert issue.title == ""
    assert issue.status == ""
    assert issue.resolution is None
    assert issue.story_points == 0
    assert issue.created_at is None


@pytest.mark.parametrize(
    ("field", "value", "attribute", "expected"),
    [
        ("Title", None, "title", ""),
        ("Priority", 3, "priority", "3"),
        ("Resolution", "  ", "resolution", None),
        ("Story_Point", "5", "story_points", 5.0),
        ("Story_Point", "n/a", "story_points", 0.0),
        ("Story_Point", None, "story_points", 0.0),
        ("Total_Effort_Minutes", float("nan"), "total_effort_minutes", 0.0),
        ("Timespent", "", "timespent", None),
        ("Timespent", 3600, "timespent", 3600.0),
        ("Sprint_ID", "12", "sprint_id", 12),
        ("Sprint_ID", "sprint", "sprint_id", None),
        ("Creation_Date", "not a date", "created_at", None),
        ("Title_Changed_After_Estimation", "true", "title_changed_after_estimation", True),
    ],
)
def test_lenient_field_coercion(field: str, value: object, attribute: str, expected: object) -> None:
    issue = IssuePayload.model_validate(issue_payload("L-1", **{field: value})).to_domain()

    assert getattr(issue, attribute) == expected


def test_unknown_columns_are_ignored() -> None:
    issue = IssuePayload.model_validate({"Issue_Key": "U-1", "Extra_Column": "x"}).to_domain()

    assert issue.issue_key == "U-1"


@pytest.mark.parametrize("key", [None, "", "   ", ["A-1"], True])
def test_issue_key_is_mandatory(key: object) -> None:
    payload = issue_payload("K-1")
    payload["Issue_Key"] = key

    with pytest.raises(InvalidIssuePayloadError) as exc_info:
        parse_issue_payloads([issue_payload("K-0"), payload])

    assert exc_info.value.index == 1


def test_parse_rejects_non_object_entries_with_their_index() -> None:
    with pytest.raises(InvalidIssuePayloadError) as exc_info:
        parse_issue_payloads([issue_payload("A-1"), issue_payload("A-2"), "A-3"])

    assert exc_info.value.index == 2


def test_parse_keeps_input_order() -> None:
    issues = parse_issue_payloads([issue_payload("B-2"), issue_payload("B-1")])

    assert [issue.issue_key for issue in issues] == ["B-2", "B-1"]


def test_load_issue_file_reads_a_json_array(tmp_path: Path) -> None:
    path = tmp_path / "issues.json"
    path.write_text(json.dumps([issue_payload("F-1"), issue_payload("F-2")]), encoding="utf-8")

    issues = load_issue_file(path)

    assert [issue.issue_key for issue in issues] == ["F-1", "F-2"]


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        json.dumps({"issues": []}),
        json.dumps([{"Title": "missing key"}]),
    ],
)
def test_load_issue_file_rejects_bad_documents(tmp_path: Path, content: str) -> None:
    path = tmp_path / "issues.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(IssueFileError):
        load_issue_file(path)


def test_load_issue_file_reports_missing_file(tmp_path: Path) -> None:
    with pytest.raises(IssueFileError, match="Cannot read"):
        load_issue_file(tmp_path / "missing.json")

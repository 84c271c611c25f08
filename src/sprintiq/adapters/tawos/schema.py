"""Pydantic models describing TAWOS issue exports."""

from __future__ import annotations

import math
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sprintiq.domain.model import RawIssue


def _text_or_empty(value: object) -> object:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _number_or_zero(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        return float(value) if math.isfinite(value) else 0.0
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return 0.0
        return parsed if math.isfinite(parsed) else 0.0
    return 0.0


def _optional_number(value: object) -> float | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return _number_or_zero(value)


def _optional_int(value: object) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _lenient_timestamp(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def _flag(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value)


class TawosBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class IssuePayload(TawosBaseModel):
    """One row of a TAWOS export; only ``Issue_Key`` is mandatory."""

    issue_key: str = Field(alias="Issue_Key")
    id: int | None = Field(default=None, alias="ID")
    jira_id: int | None = Field(default=None, alias="Jira_ID")
    url: str | None = Field(default=None, alias="URL")
    title: str = Field(default="", alias="Title")
    description: str = Field(default="", alias="Description")
    description_text: str = Field(default="", alias="Description_Text")
    description_code: str = Field(default="", alias="Description_Code")
    issue_type: str = Field(default="", alias="Type")
    priority: str = Field(default="", alias="Priority")
    status: str = Field(default="", alias="Status")
    resolution: str | None = Field(default=None, alias="Resolution")
    created_at: datetime | None = Field(default=None, alias="Creation_Date")
    estimated_at: datetime | None = Field(default=None, alias="Estimation_Date")
    resolved_at: datetime | None = Field(default=None, alias="Resolution_Date")
    last_updated_at: datetime | None = Field(default=None, alias="Last_Updated")
    story_points: float = Field(default=0, alias="Story_Point")
    timespent: float | None = Field(default=None, alias="Timespent")
    in_progress_minutes: float = Field(default=0, alias="In_Progress_Minutes")
    total_effort_minutes: float = Field(default=0, alias="Total_Effort_Minutes")
    resolution_time_minutes: float = Field(default=0, alias="Resolution_Time_Minutes")
    title_changed_after_estimation: bool = Field(
        default=False, alias="Title_Changed_After_Estimation"
    )
    description_changed_after_estimation: bool = Field(
        default=False, alias="Description_Changed_After_Estimation"
    )
    story_points_changed_after_estimation: bool = Field(
        default=False, alias="Story_Point_Changed_After_Estimation"
    )
    pull_request_url: str | None = Field(default=None, alias="Pull_Request_URL")
    creator_id: int | None = Field(default=None, alias="Creator_ID")
    reporter_id: int | None = Field(default=None, alias="Reporter_ID")
    assignee_id: int | None = Field(default=None, alias="Assignee_ID")
    project_id: int | None = Field(default=None, alias="Project_ID")
    sprint_id: int | None = Field(default=None, alias="Sprint_ID")

    @field_validator("issue_key", mode="before")
    @classmethod
    def _require_issue_key(cls, value: object) -> str:
        if isinstance(value, bool) or not isinstance(value, str | int):
            raise ValueError("Issue_Key must be a string")
        key = str(value).strip()
        if not key:
            raise ValueError("Issue_Key must not be blank")
        return key

    _normalize_text = field_validator(
        "title",
        "description",
        "description_text",
        "description_code",
        "issue_type",
        "priority",
        "status",
        mode="before",
    )(_text_or_empty)
    _normalize_optional_text = field_validator(
        "resolution", "url", "pull_request_url", mode="before"
    )(_blank_to_none)
    _normalize_numbers = field_validator(
        "story_points",
        "in_progress_minutes",
        "total_effort_minutes",
        "resolution_time_minutes",
        mode="before",
    )(_number_or_zero)
    _normalize_timespent = field_validator("timespent", mode="before")(_optional_number)
    _normalize_ids = field_validator(
        "id",
        "jira_id",
        "creator_id",
        "reporter_id",
        "assignee_id",
        "project_id",
        "sprint_id",
        mode="before",
    )(_optional_int)
    _normalize_timestamps = field_validator(
        "created_at", "estimated_at", "resolved_at", "last_updated_at", mode="before"
    )(_lenient_timestamp)
    _normalize_flags = field_validator(
        "title_changed_after_estimation",
        "description_changed_after_estimation",
        "story_points_changed_after_estimation",
        mode="before",
    )(_flag)

    def to_domain(self) -> RawIssue:
        return RawIssue(
            issue_key=self.issue_key,
            title=self.title,
            description=self.description,
            description_text=self.description_text,
            description_code=self.description_code,
            issue_type=self.issue_type,
            priority=self.priority,
            status=self.status,
            resolution=self.resolution,
            story_points=self.story_points,
            timespent=self.timespent,
            in_progress_minutes=self.in_progress_minutes,
            total_effort_minutes=self.total_effort_minutes,
            resolution_time_minutes=self.resolution_time_minutes,
            created_at=self.created_at,
            estimated_at=self.estimated_at,
            resolved_at=self.resolved_at,
            last_updated_at=self.last_updated_at,
            title_changed_after_estimation=self.title_changed_after_estimation,
            description_changed_after_estimation=self.description_changed_after_estimation,
            story_points_changed_after_estimation=self.story_points_changed_after_estimation,
            id=self.id,
            jira_id=self.jira_id,
            url=self.url,
            pull_request_url=self.pull_request_url,
            creator_id=self.creator_id,
            reporter_id=self.reporter_id,
            assignee_id=self.assignee_id,
            project_id=self.project_id,
            sprint_id=self.sprint_id,
        )

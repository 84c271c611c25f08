"""Issue normalization: derive a canonical user story from one raw issue.

Every rule here is a pure function of the issue. Keyword checks are plain
case-insensitive substring tests, so ``"ui"`` also matches inside ``"build"``.
"""

from __future__ import annotations

import math
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from sprintiq.domain.ingest_pipeline.orchestrator import PipelinePhase
from sprintiq.domain.model import (
    CanonicalStory,
    Complexity,
    NormalizedIssue,
    RawIssue,
    StoryMetadata,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from sprintiq.domain.ingest_pipeline.context import IngestBatch, PipelineContext

DEFAULT_ROLE: Final[str] = "User"
DEFAULT_WANT: Final[str] = "to complete this feature"
DEFAULT_BENEFIT: Final[str] = "to achieve the desired outcome"
DEFAULT_SUCCESS_PATTERN: Final[str] = "Standard development process"

_WANT_RULES: Final[tuple[tuple[tuple[str, ...], str], ...]] = (
    (("implement", "add", "create"), "to have this functionality implemented"),
    (("fix", "resolve", "correct"), "to have this issue fixed"),
    (("improve", "enhance", "optimize"), "to have this improved"),
)

_BENEFIT_RULES: Final[tuple[tuple[tuple[str, ...], str], ...]] = (
    (("user experience", "ux"), "to improve user experience"),
    (("performance", "speed"), "to improve performance"),
    (("security", "secure"), "to improve security"),
    (("reliability", "stability"), "to improve reliability"),
)

_BASE_CRITERIA: Final[dict[str, tuple[str, str, str]]] = {
    "bug": (
        "The bug is fixed and no longer occurs",
        "The fix does not introduce new bugs",
        "The fix is tested and verified",
    ),
    "feature": (
        "The feature is implemented according to requirements",
        "The feature is tested and working correctly",
        "The feature is documented",
    ),
    "enhancement": (
        "The enhancement improves the existing functionality",
        "The enhancement is backward compatible",
        "The enhancement is tested and verified",
    ),
}
_DEFAULT_CRITERIA: Final[tuple[str, str, str]] = (
    "The task is completed according to requirements",
    "The task is tested and verified",
    "The task meets quality standards",
)

_EXTRA_CRITERIA: Final[tuple[tuple[tuple[str, ...], tuple[str, str]], ...]] = (
    (
        ("ui", "design"),
        (
            "The UI is responsive and works on all devices",
            "The design follows the established design system",
        ),
    ),
    (
        ("api", "backend"),
        (
            "The API endpoints are properly documented",
            "The API includes proper error handling",
        ),
    ),
    (
        ("security",),
        (
            "Security requirements are met",
            "The implementation follows security best practices",
        ),
    ),
)

_PRIORITY_VALUES: Final[dict[str, int]] = {"critical": 5, "high": 4, "medium": 3, "low": 2}
_DEFAULT_BUSINESS_VALUE: Final[int] = 3

_TAG_RULES: Final[tuple[tuple[tuple[str, ...], tuple[str, str]], ...]] = (
    (("react", "frontend", "ui"), ("frontend", "react")),
    (("api", "backend", "database"), ("backend", "api")),
    (("auth", "authentication", "login"), ("authentication", "security")),
    (("test", "testing"), ("testing", "qa")),
    (("design", "ui/ux"), ("design", "ui-ux")),
    (("performance", "optimization"), ("performance", "optimization")),
    (("mobile", "responsive"), ("mobile", "responsive")),
)

_SUCCESS_PATTERNS: Final[dict[str, str]] = {
    "bug": "Thorough testing and validation approach",
    "feature": "Incremental development with regular feedback",
    "enhancement": "Careful analysis of existing functionality",
}
_DEFAULT_FIXED_PATTERN: Final[str] = "Clear requirements and systematic implementation"


def _lower(value: str | None) -> str:
    return value.lower() if isinstance(value, str) else ""


def _number(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return float(value)


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def _is_done_and_fixed(status: str | None, resolution: str | None) -> bool:
    return _lower(status) == "done" and _lower(resolution) == "fixed"


def infer_role(issue_type: str | None, description: str | None) -> str:
    kind = _lower(issue_type)
    text = _lower(description)
    if kind == "bug":
        return "QA Engineer"
    if kind == "feature":
        if _contains_any(text, ("ui", "design", "frontend")):
            return "UI/UX Designer"
        if _contains_any(text, ("api", "backend", "database")):
            return "Backend Developer"
        return "Product Manager"
    if kind == "enhancement":
        return "Full Stack Developer"
    if kind == "task":
        return "Developer"
    return DEFAULT_ROLE


def infer_want_and_benefit(title: str | None, description: str | None) -> tuple[str, str]:
    """Return ``(want, benefit)``; the first matching keyword family wins for each."""

    text = f"{title or ''} {description or ''}".lower()
    want = next(
        (phrase for keywords, phrase in _WANT_RULES if _contains_any(text, keywords)),
        DEFAULT_WANT,
    )
    benefit = next(
        (phrase for keywords, phrase in _BENEFIT_RULES if _contains_any(text, keywords)),
        DEFAULT_BENEFIT,
    )
    return want, benefit


def build_acceptance_criteria(issue_type: str | None, description: str | None) -> list[str]:
    text = _lower(description)
    criteria = list(_BASE_CRITERIA.get(_lower(issue_type), _DEFAULT_CRITERIA))
    for keywords, extra in _EXTRA_CRITERIA:
        if _contains_any(text, keywords):
            criteria.extend(extra)
    return criteria


def score_business_value(priority: str | None, issue_type: str | None) -> int:
    value = _PRIORITY_VALUES.get(_lower(priority), _DEFAULT_BUSINESS_VALUE)
    kind = _lower(issue_type)
    if kind == "bug":
        value = max(value - 1, 1)
    elif kind == "feature":
        value = min(value + 1, 5)
    return value


def derive_tags(issue_type: str | None, title: str | None, description: str | None) -> list[str]:
    text = f"{title or ''} {description or ''}".lower()
    tags = [_lower(issue_type)]
    for keywords, pair in _TAG_RULES:
        if _contains_any(text, keywords):
            tags.extend(pair)
    return list(dict.fromkeys(tags))


def completion_rate(status: str | None, resolution: str | None) -> float:
    state = _lower(status)
    if _is_done_and_fixed(status, resolution):
        return 1.0
    if state == "done":
        return 0.9
    if state == "in progress":
        return 0.5
    if state == "to do":
        return 0.0
    return 0.7


def success_pattern(issue_type: str | None, status: str | None, resolution: str | None) -> str:
    if not _is_done_and_fixed(status, resolution):
        return DEFAULT_SUCCESS_PATTERN
    return _SUCCESS_PATTERNS.get(_lower(issue_type), _DEFAULT_FIXED_PATTERN)


def anti_patterns(issue_type: str | None, status: str | None, resolution: str | None) -> list[str]:
    kind = _lower(issue_type)
    done = _lower(status) == "done"
    patterns: list[str] = []
    if not done:
        patterns.append("Incomplete implementation")
    if kind == "bug" and done and _lower(resolution) != "fixed":
        patterns.append("Insufficient testing")
    if kind == "feature":
        patterns.extend(("Scope creep", "Lack of user feedback"))
    return patterns


def classify_complexity(story_points: float, total_effort_minutes: float) -> Complexity:
    points = _number(story_points)
    effort_hours = _number(total_effort_minutes) / 60
    if points <= 3 and effort_hours <= 8:
        return Complexity.SIMPLE
    if points <= 8 and effort_hours <= 24:
        return Complexity.MODERATE
    return Complexity.COMPLEX


def estimated_hours(total_effort_minutes: float) -> int:
    """Whole hours of effort, rounding halves up."""

    return math.floor(_number(total_effort_minutes) / 60 + 0.5)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def story_embedding_text(metadata: StoryMetadata) -> str:
    """Text sent to the embedding provider for a story, shared by ingest and single stores."""

    return " ".join(
        (
            metadata.title,
            metadata.description,
            metadata.role,
            metadata.want,
            metadata.benefit,
            " ".join(metadata.tags),
        )
    )


def normalize_issue(
    issue: RawIssue,
    *,
    id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    clock: Callable[[], datetime] = _utcnow,
) -> NormalizedIssue:
    """Convert ``issue`` into a story with an empty embedding plus its embedding text.

    Never raises for missing or malformed fields; they fall back to the neutral
    defaults of each rule.
    """

    description_text = issue.description_text or ""
    description = issue.plain_description or ""

    role = infer_role(issue.issue_type, description_text)
    want, benefit = infer_want_and_benefit(issue.title, description_text)
    tags = derive_tags(issue.issue_type, issue.title, description_text)

    metadata = StoryMetadata(
        title=issue.title or "",
        description=description,
        role=role,
        want=want,
        benefit=benefit,
        acceptance_criteria=tuple(build_acceptance_criteria(issue.issue_type, description_text)),
        story_points=_number(issue.story_points),
        business_value=score_business_value(issue.priority, issue.issue_type),
        priority=issue.priority or "",
        tags=tuple(tags),
        estimated_time=estimated_hours(issue.total_effort_minutes),
        completion_rate=completion_rate(issue.status, issue.resolution),
        success_pattern=success_pattern(issue.issue_type, issue.status, issue.resolution),
        anti_patterns=tuple(anti_patterns(issue.issue_type, issue.status, issue.resolution)),
        original_issue_key=issue.issue_key,
        original_type=issue.issue_type or "",
        original_status=issue.status or "",
        resolution_time=_number(issue.resolution_time_minutes),
        total_effort=_number(issue.total_effort_minutes),
        complexity=classify_complexity(issue.story_points, issue.total_effort_minutes),
    )
    now = clock()
    story = CanonicalStory(id=id_factory(), metadata=metadata, created_at=now, updated_at=now)
    return NormalizedIssue(story=story, embedding_text=story_embedding_text(metadata))


class NormalizationPhase(PipelinePhase):
    """Normalizes every surviving issue of the batch into a story candidate."""

    name: str = "normalization"

    def __init__(
        self,
        *,
        id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._id_factory = id_factory
        self._clock = clock

    def run(self, batch: IngestBatch, *, context: PipelineContext) -> None:
        batch.normalized = [
            normalize_issue(issue, id_factory=self._id_factory, clock=self._clock)
            for issue in batch.issues
        ]
        context.normalized_count += len(batch.normalized)

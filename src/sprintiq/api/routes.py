"""Workspace routes: training ingest and its progress stream, story search and storage."""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Annotated, Any
from uuid import uuid4

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse

from sprintiq.adapters.tawos import InvalidIssuePayloadError, parse_issue_payloads
from sprintiq.api.auth import require_token
from sprintiq.api.errors import ApiError
from sprintiq.api.schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    PatternsResponse,
    ProgressEvent,
    SearchResponse,
    StatsResponse,
    StoreResponse,
    StoryIn,
    StoryMatchOut,
    TemplatesResponse,
    TrainResponse,
)
from sprintiq.app import (
    analyze_story,
    count_stories,
    find_story_templates,
    find_success_patterns,
    search_stories,
    store_story,
    train_stories,
)
from sprintiq.domain.ingest_pipeline import StoreOutcome
from sprintiq.domain.model import Complexity
from sprintiq.domain.search import EmbeddingUnavailableError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sprintiq.api.progress import TrainingRunRegistry
    from sprintiq.app import Services
    from sprintiq.domain.model import RawIssue

log = getLogger(__name__)

NO_VALID_ISSUES = "No valid issues provided"

router = APIRouter(
    prefix="/api/workspace/{workspace_id}",
    dependencies=[Depends(require_token)],
)


def _services(request: Request) -> Services:
    return request.app.state.services


def _registry(request: Request) -> TrainingRunRegistry:
    return request.app.state.training_runs


async def _read_issues(request: Request) -> list[RawIssue]:
    try:
        body: Any = await request.json()
    except ValueError as exc:
        raise ApiError(400, NO_VALID_ISSUES) from exc

    items = body.get("issues") if isinstance(body, dict) else None
    if not isinstance(items, list) or not items:
        raise ApiError(400, NO_VALID_ISSUES)
    try:
        return parse_issue_payloads(items)
    except InvalidIssuePayloadError as exc:
        raise ApiError(400, "Invalid issue payload", index=exc.index) from exc


@router.post("/train-tawos")
async def train_tawos(
    workspace_id: str,
    request: Request,
    training_id: Annotated[str | None, Query(alias="trainingId")] = None,
) -> JSONResponse:
    """Ingest a batch of TAWOS issues as training stories."""

    issues = await _read_issues(request)
    run_id = training_id or uuid4().hex
    registry = _registry(request)
    registry.start(run_id)
    log.info(f"Workspace {workspace_id}: training run {run_id} with {len(issues)} issues")

    try:
        report = await train_stories(
            issues,
            services=_services(request),
            listener=registry.listener(run_id),
        )
    except Exception:
        registry.fail(run_id)
        log.exception(f"Training run {run_id} failed")
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    body = TrainResponse.from_report(report, training_id=run_id)
    return JSONResponse(body.model_dump(by_alias=True))


@router.get("/train-tawos")
async def training_progress(
    request: Request,
    training_id: Annotated[str | None, Query(alias="trainingId")] = None,
) -> StreamingResponse:
    """Stream the progress of a training run as server-sent events."""

    if not training_id:
        raise ApiError(400, "Training ID required")
    registry = _registry(request)
    if training_id not in registry:
        raise ApiError(404, "Unknown training run")

    async def events() -> AsyncIterator[str]:
        async for progress in registry.stream(training_id):
            yield ProgressEvent.from_progress(progress, training_id=training_id).to_sse()

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/stories/search")
async def search(
    request: Request,
    q: str | None = None,
    top_k: Annotated[int | None, Query(alias="topK", ge=1, le=50)] = None,
) -> JSONResponse:
    """Return stored stories similar to ``q``."""

    if q is None or not q.strip():
        raise ApiError(400, "Query required")
    try:
        matches = await search_stories(q, services=_services(request), top_k=top_k)
    except EmbeddingUnavailableError:
        log.warning("Search query could not be embedded")
        raise ApiError(503, "Embedding provider unavailable") from None

    body = SearchResponse(query=q, results=[StoryMatchOut.from_match(m) for m in matches])
    return JSONResponse(body.model_dump(by_alias=True, mode="json"))


@router.get("/stories/stats")
async def story_stats(request: Request) -> JSONResponse:
    """Return the number of stored training stories."""

    total = await count_stories(services=_services(request))
    return JSONResponse(StatsResponse(total_stories=total).model_dump(by_alias=True))


@router.get("/stories/patterns")
async def success_patterns(
    request: Request,
    feature: Annotated[str, Query(min_length=1)],
    complexity: Complexity,
) -> JSONResponse:
    """Return well-completed similar stories and the anti-patterns seen among matches."""

    try:
        found = await find_success_patterns(feature, complexity, services=_services(request))
    except EmbeddingUnavailableError:
        raise _embedding_unavailable() from None
    body = PatternsResponse.from_patterns(found)
    return JSONResponse(body.model_dump(by_alias=True, mode="json"))


@router.get("/stories/templates")
async def story_templates(
    request: Request,
    feature: Annotated[str, Query(min_length=1)],
    complexity: Complexity,
    count: Annotated[int, Query(ge=1, le=20)] = 3,
) -> JSONResponse:
    """Return complete, well-completed stories usable as templates."""

    try:
        templates = await find_story_templates(
            feature, complexity, services=_services(request), count=count
        )
    except EmbeddingUnavailableError:
        raise _embedding_unavailable() from None
    body = TemplatesResponse(templates=[StoryMatchOut.from_match(m) for m in templates])
    return JSONResponse(body.model_dump(by_alias=True, mode="json"))


@router.post("/stories/analyze")
async def analyze(request: Request, draft: AnalyzeRequest) -> JSONResponse:
    """Score a draft story for vague wording, overloaded scope and failed look-alikes."""

    try:
        analysis = await analyze_story(
            draft.title,
            draft.description,
            draft.acceptance_criteria,
            services=_services(request),
        )
    except EmbeddingUnavailableError:
        raise _embedding_unavailable() from None
    return JSONResponse(AnalyzeResponse.from_analysis(analysis).model_dump(by_alias=True))


@router.post("/stories")
async def create_story(request: Request, story_in: StoryIn) -> JSONResponse:
    """Store one finished story unless its issue key is already stored."""

    story = story_in.to_story(now=datetime.now(UTC))
    outcome = await store_story(story, services=_services(request))
    if outcome is StoreOutcome.DUPLICATE:
        raise ApiError(409, "Story already stored", originalIssueKey=story.issue_key)
    if outcome is StoreOutcome.EMBEDDING_FAILED:
        raise ApiError(503, "Failed to generate embedding")
    body = StoreResponse(id=story.id)
    return JSONResponse(body.model_dump(by_alias=True, mode="json"), status_code=201)


def _embedding_unavailable() -> ApiError:
    log.warning("Story text could not be embedded")
    return ApiError(503, "Embedding provider unavailable")

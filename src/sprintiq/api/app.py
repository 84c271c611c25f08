"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from sprintiq.api.errors import (
    ApiError,
    handle_api_error,
    handle_unexpected_error,
    handle_validation_error,
)
from sprintiq.api.progress import TrainingRunRegistry
from sprintiq.api.routes import router
from sprintiq.app import build_services
from sprintiq.config import get_api_config

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sprintiq.app import Services
    from sprintiq.config import ApiConfig

log = getLogger(__name__)


def create_app(
    *,
    api_config: ApiConfig | None = None,
    services: Services | None = None,
    training_runs: TrainingRunRegistry | None = None,
) -> FastAPI:
    """Build the API; collaborators not passed in are built from the environment."""

    resolved_services = services or build_services()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        await resolved_services.aclose()

    app = FastAPI(
        title="SprintiQ Story Training API",
        description="Ingest TAWOS issues as embedded user stories and search them",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.api_config = api_config or get_api_config()
    app.state.services = resolved_services
    app.state.training_runs = training_runs or TrainingRunRegistry()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ApiError, handle_api_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.include_router(router)

    @app.get("/ping")
    async def ping() -> dict[str, str]:
        """Health check endpoint."""
        return {"message": "pong"}

    return app

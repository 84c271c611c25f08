"""Errors rendered as ``{"error": ...}`` JSON bodies."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

from fastapi.responses import JSONResponse

if TYPE_CHECKING:
    from fastapi import Request
    from fastapi.exceptions import RequestValidationError

log = getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.extra = extra

    def to_body(self) -> dict[str, Any]:
        return {"error": self.message, **self.extra}


async def handle_api_error(_request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(exc.to_body(), status_code=exc.status_code)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    log.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


async def handle_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(part) for part in error["loc"]) for error in exc.errors()]
    return JSONResponse({"error": "Invalid request", "fields": fields}, status_code=400)

"""Bearer-token check for workspace routes."""

from __future__ import annotations

import secrets

from fastapi import Request  # noqa: TC002

from sprintiq.api.errors import ApiError


def require_token(request: Request) -> None:
    tokens: frozenset[str] = request.app.state.api_config.tokens
    header = request.headers.get("Authorization")
    if not header or not header.startswith("Bearer "):
        raise ApiError(401, "Unauthorized")
    token = header.split(" ", 1)[1].strip()
    if not any(secrets.compare_digest(token, known) for known in tokens):
        raise ApiError(401, "Unauthorized")

"""HTTP API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars
from .errors import MissingConfigurationError

DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 8000


@dataclass(frozen=True, slots=True)
class ApiConfig:
    """Bearer tokens accepted by the API plus bind address for ``serve``."""

    tokens: frozenset[str]
    host: str = DEFAULT_API_HOST
    port: int = DEFAULT_API_PORT


def parse_tokens(raw: str) -> frozenset[str]:
    return frozenset(token.strip() for token in raw.split(",") if token.strip())


def get_api_config() -> ApiConfig:
    values = require_env_vars(("SPRINTIQ_API_TOKENS",))
    tokens = parse_tokens(values["SPRINTIQ_API_TOKENS"])
    if not tokens:
        raise MissingConfigurationError("Missing configuration for: SPRINTIQ_API_TOKENS")
    return ApiConfig(tokens=tokens)

"""Embedding provider configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, optional_env_var
from .http_resilience import NO_RETRY, RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_EMBEDDING_BASE_URL = "https://api.openai.com/v1"
DEFAULT_EMBEDDING_MODEL = "text-embedding-ada-002"
DEFAULT_EMBEDDING_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True, slots=True)
class EmbeddingConfig:
    """Holds embedding provider settings.

    ``api_key`` may be absent: the client reports missing credentials in its logs
    and answers every request with ``None`` instead of failing at construction.
    """

    api_key: str | None
    model: str = DEFAULT_EMBEDDING_MODEL
    base_url: str = DEFAULT_EMBEDDING_BASE_URL
    timeout_seconds: float = DEFAULT_EMBEDDING_TIMEOUT_SECONDS

    def auth_headers(self) -> dict[str, str] | None:
        if not self.api_key:
            return None
        return {"Authorization": f"Bearer {self.api_key}"}

    def ingest_resilience(self) -> ResilienceConfig:
        """Resilience settings for training ingestion: no retries, caller decides."""

        return ResilienceConfig(
            name="embeddings-ingest",
            base_url=self.base_url,
            timeout_seconds=self.timeout_seconds,
            retry=NO_RETRY,
            default_headers=self.auth_headers(),
        )

    def query_resilience(self) -> ResilienceConfig:
        """Resilience settings for search queries: one request per second, one 429 retry."""

        return ResilienceConfig(
            name="embeddings-query",
            base_url=self.base_url,
            timeout_seconds=self.timeout_seconds,
            retry=RetryPolicy(
                total=1,
                backoff_factor=2.0,
                status_forcelist=frozenset({429}),
                retry_on_exceptions=(),
            ),
            ratelimit=RateLimit(max_calls=1, per_seconds=1.0),
            default_headers=self.auth_headers(),
        )


def get_embedding_config() -> EmbeddingConfig:
    return EmbeddingConfig(
        api_key=optional_env_var("OPENAI_API_KEY"),
        model=optional_env_var("SPRINTIQ_EMBEDDING_MODEL") or DEFAULT_EMBEDDING_MODEL,
        base_url=optional_env_var("SPRINTIQ_EMBEDDING_BASE_URL") or DEFAULT_EMBEDDING_BASE_URL,
        timeout_seconds=env_float(
            "SPRINTIQ_EMBEDDING_TIMEOUT_SECONDS", DEFAULT_EMBEDDING_TIMEOUT_SECONDS
        ),
    )

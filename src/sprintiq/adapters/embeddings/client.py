"""HTTP client for an OpenAI-compatible embeddings API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from sprintiq.adapters.http_resilience import ResilienceConfig, ResilientClient
from sprintiq.config.embedding import EmbeddingConfig, get_embedding_config
from sprintiq.domain.ports.embedding import EmbeddingProvider

from .schema import EmbeddingResponse

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

log = getLogger(__name__)

EMBEDDINGS_PATH = "embeddings"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class OpenAIEmbeddingClient:
    """Turns one text into one embedding vector, or ``None`` on any failure.

    Each call is bounded by ``config.timeout_seconds`` as a whole. The default
    resilience settings never retry; search wires in the query settings instead.
    """

    config: EmbeddingConfig = field(default_factory=get_embedding_config)
    resilience: ResilienceConfig | None = None
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    async def __aenter__(self) -> OpenAIEmbeddingClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _http(self) -> ResilientClient:
        if self._client is None:
            resilience = self.resilience or self.config.ingest_resilience()
            self._client = self.client_factory(resilience)
        return self._client

    async def embed(self, text: str) -> list[float] | None:
        if not self.config.api_key:
            log.error("Embedding provider credentials missing; set OPENAI_API_KEY")
            return None

        try:
            async with asyncio.timeout(self.config.timeout_seconds):
                response = await self._http().post(
                    EMBEDDINGS_PATH,
                    json={"input": text, "model": self.config.model},
                )
                response.raise_for_status()
                payload = EmbeddingResponse.model_validate(response.json())
        except TimeoutError:
            log.warning(f"Embedding request timed out after {self.config.timeout_seconds}s")
            return None
        except httpx.HTTPStatusError as exc:
            log.error(f"Embedding provider returned HTTP {exc.response.status_code}")
            return None
        except httpx.HTTPError as exc:
            log.error(f"Embedding request failed: {exc!r}")
            return None
        except ValidationError as exc:
            log.error(f"Unexpected embedding payload: {exc.error_count()} validation errors")
            return None
        except ValueError:
            log.error("Embedding provider returned a non-JSON body")
            return None

        vector = payload.first_vector()
        if vector is None:
            log.error("Embedding provider returned no vectors")
        return vector


if TYPE_CHECKING:
    _provider_check: EmbeddingProvider = OpenAIEmbeddingClient()

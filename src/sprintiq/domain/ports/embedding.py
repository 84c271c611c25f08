"""Port for turning text into embedding vectors."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Callable port for an external embedding provider.

    Implementations return ``None`` for every ordinary failure (timeout, HTTP
    error, malformed payload) instead of raising, and never retry on their own.
    """

    async def embed(self, text: str) -> list[float] | None: ...


__all__ = ["EmbeddingProvider"]

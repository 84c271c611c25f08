"""Public interface for the embedding provider adapter."""

from __future__ import annotations

from .client import OpenAIEmbeddingClient
from .schema import EmbeddingItem, EmbeddingResponse

__all__ = [
    "EmbeddingItem",
    "EmbeddingResponse",
    "OpenAIEmbeddingClient",
]

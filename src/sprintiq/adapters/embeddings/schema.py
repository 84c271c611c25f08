"""Pydantic models describing the embeddings API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class EmbeddingsBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class EmbeddingItem(EmbeddingsBaseModel):
    embedding: list[float]
    index: int = 0


class EmbeddingResponse(EmbeddingsBaseModel):
    data: list[EmbeddingItem]
    model: str | None = None

    def first_vector(self) -> list[float] | None:
        if not self.data or not self.data[0].embedding:
            return None
        return self.data[0].embedding

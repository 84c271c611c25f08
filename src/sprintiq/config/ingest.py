"""Defaults for training ingestion and similar-story search."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, env_int

DEFAULT_EMBEDDING_BATCH_SIZE = 10
DEFAULT_BATCH_DELAY_SECONDS = 1.0
DEFAULT_MATCH_THRESHOLD = 0.7
DEFAULT_TOP_K = 5


@dataclass(frozen=True, slots=True)
class IngestConfig:
    batch_size: int = DEFAULT_EMBEDDING_BATCH_SIZE
    batch_delay_seconds: float = DEFAULT_BATCH_DELAY_SECONDS


@dataclass(frozen=True, slots=True)
class SearchConfig:
    match_threshold: float = DEFAULT_MATCH_THRESHOLD
    top_k: int = DEFAULT_TOP_K


def get_ingest_config() -> IngestConfig:
    return IngestConfig(
        batch_size=env_int("SPRINTIQ_INGEST_BATCH_SIZE", DEFAULT_EMBEDDING_BATCH_SIZE),
        batch_delay_seconds=env_float(
            "SPRINTIQ_INGEST_BATCH_DELAY_SECONDS", DEFAULT_BATCH_DELAY_SECONDS
        ),
    )


def get_search_config() -> SearchConfig:
    return SearchConfig(
        match_threshold=env_float("SPRINTIQ_SEARCH_MATCH_THRESHOLD", DEFAULT_MATCH_THRESHOLD),
        top_k=env_int("SPRINTIQ_SEARCH_TOP_K", DEFAULT_TOP_K),
    )

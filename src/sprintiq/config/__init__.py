"""Application configuration helpers."""

from __future__ import annotations

from .api import ApiConfig, get_api_config
from .embedding import EmbeddingConfig, get_embedding_config
from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import NO_RETRY, RateLimit, ResilienceConfig, RetryPolicy
from .ingest import IngestConfig, SearchConfig, get_ingest_config, get_search_config
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "NO_RETRY",
    "ApiConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "EmbeddingConfig",
    "IngestConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SearchConfig",
    "StorageConfig",
    "configure_logging",
    "get_api_config",
    "get_database_config",
    "get_embedding_config",
    "get_ingest_config",
    "get_search_config",
    "get_storage_config",
    "require_env_var",
    "require_env_vars",
]

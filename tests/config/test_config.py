from __future__ import annotations

import os

import pytest

from sprintiq.config import (
    ConfigurationError,
    MissingConfigurationError,
    get_api_config,
    get_embedding_config,
    get_ingest_config,
    get_search_config,
    require_env_var,
    require_env_vars,
)
from sprintiq.config.api import parse_tokens
from sprintiq.config.embedding import DEFAULT_EMBEDDING_BASE_URL, DEFAULT_EMBEDDING_MODEL


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_raises_when_any_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_VAR"])

    assert "MISSING_VAR" in str(exc.value)


def test_require_env_var_handles_blank_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "   ")

    with pytest.raises(MissingConfigurationError):
        require_env_var("EXAMPLE_VAR")


def test_require_env_vars_restores_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEMP_VAR", "123")

    assert os.getenv("TEMP_VAR") == "123"
    result = require_env_var("TEMP_VAR")
    assert result == "123"


def test_embedding_config_defaults_without_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "OPENAI_API_KEY",
        "SPRINTIQ_EMBEDDING_MODEL",
        "SPRINTIQ_EMBEDDING_BASE_URL",
        "SPRINTIQ_EMBEDDING_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)

    config = get_embedding_config()

    assert config.api_key is None
    assert config.model == DEFAULT_EMBEDDING_MODEL
    assert config.base_url == DEFAULT_EMBEDDING_BASE_URL
    assert config.timeout_seconds == 30.0


def test_embedding_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", " sk-abc ")
    monkeypatch.setenv("SPRINTIQ_EMBEDDING_MODEL", "text-embedding-3-small")
    monkeypatch.setenv("SPRINTIQ_EMBEDDING_TIMEOUT_SECONDS", "2.5")

    config = get_embedding_config()

    assert config.api_key == "sk-abc"
    assert config.model == "text-embedding-3-small"
    assert config.timeout_seconds == 2.5


def test_ingest_and_search_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "SPRINTIQ_INGEST_BATCH_SIZE",
        "SPRINTIQ_INGEST_BATCH_DELAY_SECONDS",
        "SPRINTIQ_SEARCH_MATCH_THRESHOLD",
        "SPRINTIQ_SEARCH_TOP_K",
    ):
        monkeypatch.delenv(name, raising=False)

    ingest = get_ingest_config()
    search = get_search_config()

    assert (ingest.batch_size, ingest.batch_delay_seconds) == (10, 1.0)
    assert (search.match_threshold, search.top_k) == (0.7, 5)


def test_numeric_settings_must_parse(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPRINTIQ_INGEST_BATCH_SIZE", "ten")

    with pytest.raises(ConfigurationError, match="SPRINTIQ_INGEST_BATCH_SIZE"):
        get_ingest_config()


def test_api_tokens_are_comma_separated(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPRINTIQ_API_TOKENS", "alpha, beta,,")

    assert get_api_config().tokens == frozenset({"alpha", "beta"})
    assert parse_tokens(" , ") == frozenset()


@pytest.mark.parametrize("raw", [None, "  ", ",,"])
def test_api_tokens_are_required(monkeypatch: pytest.MonkeyPatch, raw: str | None) -> None:
    if raw is None:
        monkeypatch.delenv("SPRINTIQ_API_TOKENS", raising=False)
    else:
        monkeypatch.setenv("SPRINTIQ_API_TOKENS", raw)

    with pytest.raises(MissingConfigurationError, match="SPRINTIQ_API_TOKENS"):
        get_api_config()

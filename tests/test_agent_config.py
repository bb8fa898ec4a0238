"""Tests for keksregal.agents.config — LLM configuration validation."""

from __future__ import annotations

from unittest import mock

from keksregal.agents.config import (
    AGENT_COOKIE_INSIGHTS,
    AzureOpenAIConfig,
    OpenAIConfig,
    validate_llm_config,
)

AZURE_ENV = {
    "AZURE_OPENAI_ENDPOINT": "https://test.openai.azure.com",
    "AZURE_OPENAI_API_KEY": "key123",
    "AZURE_OPENAI_DEPLOYMENT": "gpt-4o-mini",
}


class TestAgentNames:
    def test_defined(self) -> None:
        assert isinstance(AGENT_COOKIE_INSIGHTS, str) and AGENT_COOKIE_INSIGHTS


class TestAzureOpenAIConfig:
    def test_defaults_are_empty(self) -> None:
        with mock.patch.dict("os.environ", {}, clear=True):
            cfg = AzureOpenAIConfig()
        assert cfg.validate_config() is False

    def test_valid_when_all_set(self) -> None:
        with mock.patch.dict("os.environ", AZURE_ENV, clear=True):
            cfg = AzureOpenAIConfig()
        assert cfg.validate_config() is True
        assert cfg.api_version == "2024-12-01-preview"

    def test_invalid_without_deployment(self) -> None:
        env = {k: v for k, v in AZURE_ENV.items() if k != "AZURE_OPENAI_DEPLOYMENT"}
        with mock.patch.dict("os.environ", env, clear=True):
            cfg = AzureOpenAIConfig()
        assert cfg.validate_config() is False


class TestOpenAIConfig:
    def test_defaults(self) -> None:
        with mock.patch.dict("os.environ", {}, clear=True):
            cfg = OpenAIConfig()
        assert cfg.validate_config() is False
        assert cfg.model == "gpt-4o-mini"

    def test_valid_with_sk_key(self) -> None:
        with mock.patch.dict("os.environ", {"OPENAI_API_KEY": "sk-test-key"}, clear=True):
            cfg = OpenAIConfig()
        assert cfg.validate_config() is True

    def test_rejects_key_without_prefix(self) -> None:
        with mock.patch.dict("os.environ", {"OPENAI_API_KEY": "not-a-key"}, clear=True):
            cfg = OpenAIConfig()
        assert cfg.validate_config() is False


class TestValidateLlmConfig:
    def test_returns_error_when_nothing_set(self) -> None:
        with mock.patch.dict("os.environ", {}, clear=True):
            result = validate_llm_config()
        assert result is not None
        assert "not configured" in result.lower()

    def test_returns_none_when_azure_configured(self) -> None:
        with mock.patch.dict("os.environ", AZURE_ENV, clear=True):
            assert validate_llm_config() is None

    def test_returns_none_when_openai_configured(self) -> None:
        with mock.patch.dict("os.environ", {"OPENAI_API_KEY": "sk-test"}, clear=True):
            assert validate_llm_config() is None

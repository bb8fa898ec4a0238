"""
LLM credentials for the optional cookie insights.

Two backends are recognised: Azure OpenAI (endpoint, key and
deployment all set) and the public OpenAI API (an ``sk-`` key).
Both read the usual OpenAI environment variables through
``pydantic_settings``, so a ``.env`` file loaded by the server
is picked up as well.
"""

from __future__ import annotations

import pydantic
import pydantic_settings

from keksregal.utils import logger

log = logger.create_logger("Agent-Config")

AGENT_COOKIE_INSIGHTS = "CookieInsightsAgent"

OPENAI_KEY_PREFIX = "sk-"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_AZURE_API_VERSION = "2024-12-01-preview"


class AzureOpenAIConfig(pydantic_settings.BaseSettings):
    """Azure OpenAI deployment used for insights."""

    endpoint: str = pydantic.Field(default="", validation_alias="AZURE_OPENAI_ENDPOINT")
    api_key: str = pydantic.Field(default="", validation_alias="AZURE_OPENAI_API_KEY")
    api_version: str = pydantic.Field(default=DEFAULT_AZURE_API_VERSION, validation_alias="OPENAI_API_VERSION")
    deployment: str = pydantic.Field(default="", validation_alias="AZURE_OPENAI_DEPLOYMENT")

    def validate_config(self) -> bool:
        """Whether endpoint, key and deployment are all set."""
        return all((self.endpoint, self.api_key, self.deployment))


class OpenAIConfig(pydantic_settings.BaseSettings):
    """Public OpenAI API used when no Azure deployment is set.

    Attributes:
        api_key: Secret key; must start with ``sk-``.
        model: Chat model for the insights request.
        base_url: Alternative endpoint for compatible servers.
    """

    api_key: str = pydantic.Field(default="", validation_alias="OPENAI_API_KEY")
    model: str = pydantic.Field(default=DEFAULT_OPENAI_MODEL, validation_alias="OPENAI_MODEL")
    base_url: str | None = pydantic.Field(default=None, validation_alias="OPENAI_BASE_URL")

    def validate_config(self) -> bool:
        """Whether a well-formed key is present.

        A key without the ``sk-`` prefix is rejected with a
        warning rather than sent to the API.
        """
        if not self.api_key:
            return False
        if not self.api_key.startswith(OPENAI_KEY_PREFIX):
            log.warn(f'Invalid API key format. OpenAI keys start with "{OPENAI_KEY_PREFIX}"')
            return False
        return True


def validate_llm_config() -> str | None:
    """Describe what is missing for cookie insights, or ``None``."""
    if AzureOpenAIConfig().validate_config() or OpenAIConfig().validate_config():
        return None
    return (
        "Cookie insights are disabled: LLM is not configured. Set either\n"
        "  AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_API_KEY and AZURE_OPENAI_DEPLOYMENT, or\n"
        "  OPENAI_API_KEY (optionally OPENAI_MODEL and OPENAI_BASE_URL)"
    )

"""
Chat client factory for Microsoft Agent Framework.

Supports both Azure OpenAI and standard OpenAI backends,
preferring Azure when fully configured.
"""

from __future__ import annotations

from agent_framework import ChatClientProtocol, azure, openai

from keksregal.agents import config
from keksregal.utils import logger

log = logger.create_logger("LLM-Client")


def get_chat_client(
    agent_name: str | None = None,
) -> ChatClientProtocol | None:
    """Create and return a chat client for the configured LLM backend.

    Args:
        agent_name: Optional name of the agent for logging context.

    Returns:
        A ``ChatClientProtocol`` instance, or ``None`` if
        configuration is missing.
    """
    azure_cfg = config.AzureOpenAIConfig()
    if azure_cfg.validate_config():
        log.info("Using Azure OpenAI", {"agent": agent_name or "default"})
        return azure.AzureOpenAIChatClient(
            api_key=azure_cfg.api_key,
            api_version=azure_cfg.api_version,
            endpoint=azure_cfg.endpoint,
            deployment_name=azure_cfg.deployment,
        )

    openai_cfg = config.OpenAIConfig()
    if openai_cfg.validate_config():
        log.info("Using standard OpenAI", {"agent": agent_name or "default", "model": openai_cfg.model})
        return openai.OpenAIChatClient(
            api_key=openai_cfg.api_key,
            model_id=openai_cfg.model or None,
            base_url=openai_cfg.base_url,
        )

    log.warn("LLM not configured. Cookie insights are unavailable.")
    return None

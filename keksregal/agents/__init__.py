"""Agents package, LLM helpers built on Microsoft Agent Framework.

Each agent owns its system prompt, response schema and
parsing logic.  Shared infrastructure (chat client, retry,
timing) lives in ``base.py`` and ``middleware.py``.

Singleton access is provided via ``get_<agent>()`` helpers
using ``functools.lru_cache`` so each agent is created once
and reused.
"""

from __future__ import annotations

import functools
from typing import TypeVar

from keksregal.agents import base, cookie_insights_agent
from keksregal.utils import logger

log = logger.create_logger("Agents")

T = TypeVar("T", bound=base.BaseAgent)


def _init_agent(agent_cls: type[T]) -> T:
    """Instantiate and initialise an agent, logging on failure."""
    agent = agent_cls()
    if not agent.initialise():
        log.warn(f"{agent_cls.__name__} created but LLM not configured. Insights will be skipped.")
    return agent


@functools.lru_cache(maxsize=1)
def get_cookie_insights_agent() -> cookie_insights_agent.CookieInsightsAgent:
    """Get the singleton ``CookieInsightsAgent``."""
    return _init_agent(cookie_insights_agent.CookieInsightsAgent)


__all__ = ["get_cookie_insights_agent"]

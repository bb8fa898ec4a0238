"""Chat middleware for the insights agent.

Timing and retry around every LLM call, following the
Microsoft Agent Framework ``ChatMiddleware`` pattern.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Awaitable, Callable

import agent_framework

from keksregal.utils import logger

log = logger.create_logger("Agent-Middleware")


class TimingChatMiddleware(agent_framework.ChatMiddleware):
    """Logs how long each LLM round trip takes.

    The elapsed time is also stored on ``context.metadata``
    under ``timing``.

    Attributes:
        agent_name: Name of the agent using this middleware.
    """

    def __init__(self, agent_name: str | None = None) -> None:
        self.agent_name = agent_name or "Unknown"
        super().__init__()

    async def process(
        self,
        context: agent_framework.ChatContext,
        next: Callable[[agent_framework.ChatContext], Awaitable[None]],
    ) -> None:
        log.debug(f"Agent '{self.agent_name}' sending {len(context.messages)} message(s) to LLM")

        start_time = time.perf_counter()
        await next(context)
        duration = time.perf_counter() - start_time

        log.info(f"Agent '{self.agent_name}' completed in {duration:.2f}s")
        context.metadata["timing"] = {
            "duration_seconds": round(duration, 3),
            "agent_name": self.agent_name,
        }


# ── Retry constants ────────────────────────────────────────────────

_DEFAULT_MAX_RETRIES = 3
_DEFAULT_INITIAL_DELAY_MS = 1000
_DEFAULT_MAX_DELAY_MS = 15_000
_BACKOFF_MULTIPLIER = 2.0
_TRANSIENT_ERROR_CLASSES = ("ConnectionError", "TimeoutError", "ConnectionResetError")


def _is_retryable(error: BaseException) -> bool:
    """Check if an error is transient and worth retrying.

    Rate limits (429), server errors (5xx) and connection-level
    failures are retried; anything else is not.
    """
    text = str(error).lower()
    if "429" in text or "rate limit" in text:
        return True
    for attr in ("status", "status_code"):
        code = getattr(error, attr, None)
        if isinstance(code, int) and (code == 429 or 500 <= code < 600):
            return True
    return type(error).__name__ in _TRANSIENT_ERROR_CLASSES


def _retry_after_ms(error: BaseException) -> int | None:
    """``Retry-After`` header of *error* in milliseconds, if any."""
    headers = getattr(error, "headers", None)
    if not isinstance(headers, dict):
        return None
    raw = headers.get("retry-after") or headers.get("Retry-After")
    if not raw:
        return None
    try:
        return int(raw) * 1000
    except (TypeError, ValueError):
        return None


class RetryChatMiddleware(agent_framework.ChatMiddleware):
    """Retries LLM calls on transient failures.

    Exponential backoff with up to 10% jitter, capped at
    ``max_delay_ms``.  A ``Retry-After`` header on the error
    replaces the computed delay.

    Attributes:
        max_retries: Maximum number of retry attempts.
        initial_delay_ms: Delay before the first retry.
        max_delay_ms: Cap on any single delay.
        agent_name: Agent name for log context.
    """

    def __init__(
        self,
        agent_name: str | None = None,
        *,
        max_retries: int = _DEFAULT_MAX_RETRIES,
        initial_delay_ms: int = _DEFAULT_INITIAL_DELAY_MS,
        max_delay_ms: int = _DEFAULT_MAX_DELAY_MS,
    ) -> None:
        self.agent_name = agent_name or "Unknown"
        self.max_retries = max_retries
        self.initial_delay_ms = initial_delay_ms
        self.max_delay_ms = max_delay_ms
        super().__init__()

    def _delay_seconds(self, error: BaseException, delay_ms: int) -> float:
        wait_ms = _retry_after_ms(error) or delay_ms
        jitter = random.uniform(0, wait_ms * 0.1)
        return min(wait_ms + jitter, self.max_delay_ms) / 1000

    async def process(
        self,
        context: agent_framework.ChatContext,
        next: Callable[[agent_framework.ChatContext], Awaitable[None]],
    ) -> None:
        """Invoke the LLM, retrying transient failures.

        Raises:
            Exception: The last error once retries are exhausted,
                or the first non-transient error.
        """
        delay_ms = self.initial_delay_ms
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            try:
                await next(context)
                return
            except Exception as exc:
                if attempt + 1 >= attempts:
                    log.error(f"Agent '{self.agent_name}' exhausted all {attempts} attempts: {exc}")
                    raise
                if not _is_retryable(exc):
                    raise

                wait = self._delay_seconds(exc, delay_ms)
                log.warn(f"Agent '{self.agent_name}' attempt {attempt + 1}/{attempts} failed, retrying in {wait:.1f}s: {exc}")
                await asyncio.sleep(wait)
                delay_ms = int(delay_ms * _BACKOFF_MULTIPLIER)

"""Common LLM plumbing for the engine's agents.

A subclass names itself, supplies instructions and, for JSON
answers, a pydantic ``response_model``.  ``_complete`` sends one
user prompt through a short-lived ``ChatAgent`` wrapped in the
retry and timing middleware; ``_parse_response`` turns the reply
into the response model when the backend honoured the schema.
"""

from __future__ import annotations

import copy
from typing import Any, TypeVar

import agent_framework
import pydantic

from keksregal.agents import llm_client
from keksregal.agents import middleware as middleware_mod
from keksregal.utils import logger

log = logger.create_logger("BaseAgent")

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


class BaseAgent:
    """One LLM task with an optional structured answer.

    Attributes:
        agent_name: Used in logs and by the middleware.
        instructions: System prompt.
        max_tokens: Response token limit.
        max_retries: Retries for rate limits and server errors.
        response_model: Schema requested via ``response_format``.
    """

    agent_name: str = "BaseAgent"
    instructions: str = ""
    max_tokens: int = 1500
    max_retries: int = 3
    response_model: type[pydantic.BaseModel] | None = None

    def __init__(self) -> None:
        self._chat_client: agent_framework.ChatClientProtocol | None = None
        self._middleware = [
            middleware_mod.RetryChatMiddleware(self.agent_name, max_retries=self.max_retries),
            middleware_mod.TimingChatMiddleware(self.agent_name),
        ]

    def initialise(self) -> bool:
        """Connect to the configured backend; ``False`` when there is none."""
        self._chat_client = llm_client.get_chat_client(agent_name=self.agent_name)
        return self._chat_client is not None

    @property
    def is_configured(self) -> bool:
        return self._chat_client is not None

    # ── Structured output ───────────────────────────────────────

    @staticmethod
    def _prepare_strict_schema(schema: dict[str, Any]) -> dict[str, Any]:
        """Copy of *schema* that strict JSON-schema mode accepts.

        Strict mode wants every object closed
        (``additionalProperties: false``) with all properties
        required.  Objects are closed wherever they appear: as
        properties, array items, ``anyOf``/``oneOf`` variants or
        entries of ``$defs``.
        """
        strict = copy.deepcopy(schema)
        pending: list[dict[str, Any]] = [strict, *strict.get("$defs", {}).values()]

        while pending:
            node = pending.pop()
            match node.get("type"):
                case "object":
                    properties = node.get("properties", {})
                    node["additionalProperties"] = False
                    node["required"] = list(properties)
                    pending.extend(properties.values())
                case "array":
                    pending.append(node.get("items", {}))
            for key in ("anyOf", "oneOf"):
                pending.extend(node.get(key, []))
        return strict

    def _response_format(self) -> dict[str, Any] | None:
        if self.response_model is None:
            return None
        return {
            "type": "json_schema",
            "json_schema": {
                "name": self.response_model.__name__,
                "strict": True,
                "schema": self._prepare_strict_schema(self.response_model.model_json_schema()),
            },
        }

    def _build_agent(self, instructions: str | None = None, max_tokens: int | None = None) -> agent_framework.ChatAgent:
        """A fresh ``ChatAgent`` bound to this agent's client.

        Raises:
            ValueError: ``initialise()`` found no backend.
        """
        if self._chat_client is None:
            raise ValueError(f"{self.agent_name}: no chat client, call initialise() first")

        return agent_framework.ChatAgent(
            chat_client=self._chat_client,
            instructions=instructions or self.instructions,
            name=self.agent_name,
            tools=[],
            default_options=agent_framework.ChatOptions(
                max_tokens=max_tokens or self.max_tokens,
                response_format=self._response_format(),
            ),
            middleware=self._middleware,
        )

    # ── Requests ────────────────────────────────────────────────

    async def _complete(
        self,
        user_prompt: str,
        *,
        instructions: str | None = None,
        max_tokens: int | None = None,
    ) -> agent_framework.AgentResponse:
        """Send *user_prompt* and return the raw reply."""
        log.debug(f"{self.agent_name}: sending prompt", {"promptChars": len(user_prompt)})
        message = agent_framework.ChatMessage(role=agent_framework.Role.USER, text=user_prompt)
        async with self._build_agent(instructions, max_tokens) as agent:
            response = await agent.run(message)
        log.debug(f"{self.agent_name}: reply received", {"responseChars": len(response.text or "")})
        return response

    def _parse_response(self, response: agent_framework.AgentResponse, model: type[ModelT]) -> ModelT | None:
        """The reply as *model*, or ``None`` when it does not fit."""
        try:
            return response.try_parse_value(model)
        except Exception as exc:
            log.warn(
                f"{self.agent_name}: structured output unusable: {exc}",
                {"responsePreview": (response.text or "")[:200]},
            )
            return None

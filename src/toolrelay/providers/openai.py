"""OpenAI gateway adapter (Chat Completions API).

Also serves any OpenAI-compatible endpoint via ``base_url``. Tool results go
back as one ``tool``-role message per call, keyed by ``tool_call_id``, after
the assistant message that carried the ``tool_calls``.
"""

from __future__ import annotations

import contextlib
import json
import logging
from typing import TYPE_CHECKING, Any

import openai

from toolrelay.core.errors import (
    InvalidInputError,
    ModelNotFoundError,
    ProviderAuthError,
    ProviderError,
    ProviderOverloadedError,
    ProviderRateLimitError,
    ProviderTimeoutError,
)
from toolrelay.providers.base import (
    FinalAnswer,
    ModelTurn,
    TokenUsage,
    ToolRequest,
    result_text,
    to_jsonable,
)
from toolrelay.tools.base import ToolCallRequest

if TYPE_CHECKING:
    from toolrelay.tools.base import ToolCallResult, ToolDescriptor

logger = logging.getLogger(__name__)

PROVIDER_ID = "openai"
DEFAULT_MODEL = "gpt-4o"


def _map_error(e: openai.APIError) -> Exception:
    """Map OpenAI SDK errors to the toolrelay error hierarchy."""
    if isinstance(e, openai.AuthenticationError):
        return ProviderAuthError(PROVIDER_ID, str(e))
    if isinstance(e, openai.RateLimitError):
        retry_after = None
        if hasattr(e, "response") and e.response is not None:
            raw = e.response.headers.get("retry-after")
            if raw is not None:
                with contextlib.suppress(ValueError):
                    retry_after = float(raw)
        return ProviderRateLimitError(PROVIDER_ID, str(e), retry_after=retry_after)
    if isinstance(e, openai.APITimeoutError):
        return ProviderTimeoutError(PROVIDER_ID, str(e))
    if isinstance(e, openai.InternalServerError):
        return ProviderOverloadedError(PROVIDER_ID, str(e))
    if isinstance(e, openai.BadRequestError):
        return ProviderError(PROVIDER_ID, str(e))
    if isinstance(e, openai.NotFoundError):
        return ModelNotFoundError(PROVIDER_ID, str(e))
    # Fallback for unknown API errors
    return ProviderOverloadedError(PROVIDER_ID, str(e))


def _parse_arguments(raw: str | None) -> Any:
    """Decode a tool call's JSON arguments; keep the raw text if it is not JSON."""
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Model produced non-JSON tool arguments: %.200s", raw)
        return raw


class OpenAIGateway:
    """Gateway adapter for OpenAI's Chat Completions API."""

    message_fields: frozenset[str] = frozenset(
        {"role", "content", "tool_calls", "tool_call_id", "name"}
    )
    message_roles: frozenset[str] = frozenset({"system", "user", "assistant", "tool"})

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model_id: str = DEFAULT_MODEL,
        max_tokens: int = 4096,
        temperature: float | None = None,
        base_url: str | None = None,
        client: openai.AsyncOpenAI | None = None,
    ) -> None:
        if client is not None:
            self._client = client
        else:
            kwargs: dict[str, Any] = {}
            if api_key is not None:
                kwargs["api_key"] = api_key
            if base_url is not None:
                kwargs["base_url"] = base_url
            self._client = openai.AsyncOpenAI(**kwargs)
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature

    @property
    def provider_id(self) -> str:
        return PROVIDER_ID

    def to_provider_tools(
        self, descriptors: list[ToolDescriptor]
    ) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": d.name,
                    "description": d.description,
                    "parameters": d.input_schema,
                },
            }
            for d in descriptors
        ]

    async def converse(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolDescriptor],
    ) -> ModelTurn:
        kwargs: dict[str, Any] = {
            "model": self.model_id,
            "max_completion_tokens": self.max_tokens,
            "messages": messages,
        }
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if tools:
            kwargs["tools"] = self.to_provider_tools(tools)

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.APIError as e:
            raise _map_error(e) from e

        if response.usage:
            usage = TokenUsage(
                input_tokens=response.usage.prompt_tokens,
                output_tokens=response.usage.completion_tokens,
            )
        else:
            usage = TokenUsage(input_tokens=0, output_tokens=0)

        payload = to_jsonable(response)
        if not response.choices:
            return FinalAnswer(content=None, response=payload, usage=usage)

        choice = response.choices[0]
        finish_reason = choice.finish_reason or "stop"
        logger.info("Response: %s", finish_reason)

        message = payload["choices"][0].get("message", {})
        if choice.message.tool_calls:
            calls = [
                ToolCallRequest(
                    id=tc.id,
                    name=tc.function.name,
                    arguments=_parse_arguments(tc.function.arguments),
                )
                for tc in choice.message.tool_calls
            ]
            return ToolRequest(
                calls=calls,
                content=message,
                response=payload,
                usage=usage,
                stop_reason=finish_reason,
            )
        return FinalAnswer(
            content=choice.message.content,
            response=payload,
            usage=usage,
            stop_reason=finish_reason,
        )

    def assistant_message(self, response: dict[str, Any]) -> dict[str, Any]:
        choices = response.get("choices")
        message = choices[0].get("message") if isinstance(choices, list) and choices else None
        if not isinstance(message, dict) or not message.get("tool_calls"):
            msg = "assistantResponse must contain a message with tool_calls"
            raise InvalidInputError(msg)
        return {
            "role": "assistant",
            "content": message.get("content"),
            "tool_calls": message["tool_calls"],
        }

    def call_ids(self, response: dict[str, Any]) -> list[str]:
        choices = response.get("choices")
        if not isinstance(choices, list) or not choices:
            return []
        message = choices[0].get("message") or {}
        return [
            str(tc.get("id"))
            for tc in message.get("tool_calls") or []
            if isinstance(tc, dict)
        ]

    def tool_result_messages(
        self, results: list[ToolCallResult]
    ) -> list[dict[str, Any]]:
        return [
            {"role": "tool", "tool_call_id": r.call_id, "content": result_text(r)}
            for r in results
        ]

    async def health_check(self) -> bool:
        try:
            await self._client.chat.completions.create(
                model=self.model_id,
                max_completion_tokens=1,
                messages=[{"role": "user", "content": "ping"}],
            )
        except Exception:
            return False
        return True

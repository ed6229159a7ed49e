"""Anthropic (Claude) gateway adapter.

Tool results go back to Claude as a ``user`` message made of
``tool_result`` blocks, each pointing at the ``tool_use`` block id from the
preceding assistant message.
"""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING, Any

import anthropic

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

PROVIDER_ID = "anthropic"
DEFAULT_MODEL = "claude-sonnet-4-5-20250929"


def _map_error(e: anthropic.APIError) -> Exception:
    """Map Anthropic SDK errors to the toolrelay error hierarchy."""
    if isinstance(e, anthropic.AuthenticationError):
        return ProviderAuthError(PROVIDER_ID, str(e))
    if isinstance(e, anthropic.RateLimitError):
        retry_after = None
        if hasattr(e, "response") and e.response is not None:
            raw = e.response.headers.get("retry-after")
            if raw is not None:
                with contextlib.suppress(ValueError):
                    retry_after = float(raw)
        return ProviderRateLimitError(PROVIDER_ID, str(e), retry_after=retry_after)
    if isinstance(e, anthropic.APITimeoutError):
        return ProviderTimeoutError(PROVIDER_ID, str(e))
    if isinstance(e, anthropic.InternalServerError):
        return ProviderOverloadedError(PROVIDER_ID, str(e))
    if isinstance(e, anthropic.BadRequestError):
        return ProviderError(PROVIDER_ID, str(e))
    if isinstance(e, anthropic.NotFoundError):
        return ModelNotFoundError(PROVIDER_ID, str(e))
    # Fallback for unknown API errors
    return ProviderOverloadedError(PROVIDER_ID, str(e))


def _build_messages(
    messages: list[dict[str, Any]],
) -> tuple[str | anthropic.NotGiven, list[dict[str, Any]]]:
    """Split messages into Anthropic's system + messages format."""
    system: str | anthropic.NotGiven = anthropic.NOT_GIVEN
    api_messages: list[dict[str, Any]] = []

    for msg in messages:
        if msg["role"] == "system":
            system = msg["content"]
        else:
            api_messages.append({"role": msg["role"], "content": msg["content"]})

    return system, api_messages


class AnthropicGateway:
    """Gateway adapter for Anthropic's Messages API."""

    message_fields: frozenset[str] = frozenset({"role", "content"})
    message_roles: frozenset[str] = frozenset({"system", "user", "assistant"})

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model_id: str = DEFAULT_MODEL,
        max_tokens: int = 4096,
        temperature: float | None = None,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key)
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
                "name": d.name,
                "description": d.description,
                "input_schema": d.input_schema,
            }
            for d in descriptors
        ]

    async def converse(
        self,
        messages: list[dict[str, Any]],
        tools: list[ToolDescriptor],
    ) -> ModelTurn:
        system, api_messages = _build_messages(messages)

        kwargs: dict[str, Any] = {
            "model": self.model_id,
            "max_tokens": self.max_tokens,
            "system": system,
            "messages": api_messages,
        }
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if tools:
            kwargs["tools"] = self.to_provider_tools(tools)

        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APIError as e:
            raise _map_error(e) from e

        logger.info("Response: %s", response.stop_reason)

        usage = TokenUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        payload = to_jsonable(response)
        content = payload.get("content", [])

        calls = [
            ToolCallRequest(id=block.id, name=block.name, arguments=block.input)
            for block in response.content
            if getattr(block, "type", None) == "tool_use"
        ]
        if response.stop_reason == "tool_use" and calls:
            return ToolRequest(
                calls=calls,
                content=content,
                response=payload,
                usage=usage,
                stop_reason=response.stop_reason,
            )
        return FinalAnswer(
            content=content,
            response=payload,
            usage=usage,
            stop_reason=response.stop_reason or "end_turn",
        )

    def assistant_message(self, response: dict[str, Any]) -> dict[str, Any]:
        content = response.get("content")
        if not isinstance(content, list) or not content:
            msg = "assistantResponse.content must be a non-empty list of blocks"
            raise InvalidInputError(msg)
        return {"role": "assistant", "content": content}

    def call_ids(self, response: dict[str, Any]) -> list[str]:
        content = response.get("content")
        if not isinstance(content, list):
            return []
        return [
            str(block.get("id"))
            for block in content
            if isinstance(block, dict) and block.get("type") == "tool_use"
        ]

    def tool_result_messages(
        self, results: list[ToolCallResult]
    ) -> list[dict[str, Any]]:
        blocks: list[dict[str, Any]] = []
        for r in results:
            block: dict[str, Any] = {
                "type": "tool_result",
                "tool_use_id": r.call_id,
                "content": result_text(r),
            }
            if r.is_error:
                block["is_error"] = True
            blocks.append(block)
        # Tool results must be in a user message
        return [{"role": "user", "content": blocks}]

    async def health_check(self) -> bool:
        try:
            # A lightweight call to verify credentials
            await self._client.messages.create(
                model=self.model_id,
                max_tokens=1,
                messages=[{"role": "user", "content": "ping"}],
            )
        except Exception:
            return False
        return True

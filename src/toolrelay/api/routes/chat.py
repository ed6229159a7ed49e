"""POST /api/chat, POST /api/chat/continue and GET /api/tools."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from toolrelay.api.auth import get_current_user
from toolrelay.memory.models import User
from toolrelay.relay.conversation import ConversationRelay

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


# Shapes are checked by the relay so every malformed body gets the same
# InvalidInputError message regardless of which field is wrong.
class ChatRequest(BaseModel):
    messages: Any = None


class ContinueRequest(BaseModel):
    messages: Any = None
    toolResults: Any = None  # noqa: N815
    assistantResponse: Any = None  # noqa: N815


def get_relay(request: Request) -> ConversationRelay:
    """Build a relay over the app's shared gateway and tool client."""
    state = request.app.state
    return ConversationRelay(
        state.gateway,
        state.tool_client,
        validate_arguments=state.config.tool_server.validate_arguments,
    )


@router.get("/tools")
async def list_tools(request: Request) -> dict[str, Any]:
    """Tools advertised by the tool server (empty while disconnected)."""
    tool_client = request.app.state.tool_client
    return {"tools": [t.to_dict() for t in tool_client.list_tools()]}


@router.post("/chat")
async def chat(
    body: ChatRequest,
    relay: ConversationRelay = Depends(get_relay),  # noqa: B008
    user: User = Depends(get_current_user),  # noqa: B008
) -> dict[str, Any]:
    """Run one model turn; executes any tools the model asks for."""
    logger.info("Processing chat request for user %s", user.id)
    result = await relay.chat(body.messages)
    return result.to_dict()


@router.post("/chat/continue")
async def chat_continue(
    body: ContinueRequest,
    relay: ConversationRelay = Depends(get_relay),  # noqa: B008
    user: User = Depends(get_current_user),  # noqa: B008
) -> dict[str, Any]:
    """Feed tool results back to the model and run the next turn."""
    logger.info("Continuing chat for user %s", user.id)
    result = await relay.continue_chat(
        body.messages,
        body.assistantResponse,
        body.toolResults,
    )
    return result.to_dict()

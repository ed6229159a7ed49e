"""Saved chats: /api/chats and /api/chats/{chat_id}[/messages].

Every route is scoped to the signed-in user; another user's chat is
reported as not found.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from toolrelay.api.auth import get_current_user
from toolrelay.memory.models import User

if TYPE_CHECKING:
    from toolrelay.memory.models import Chat, ChatMessage

router = APIRouter(prefix="/api", tags=["chats"])


class CreateChatRequest(BaseModel):
    title: str = Field(default="New chat", min_length=1, max_length=255)


class UpdateChatRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)


class AddMessageRequest(BaseModel):
    role: str
    content: Any


class ChatResponse(BaseModel):
    id: str
    title: str
    created_at: str
    updated_at: str


class MessageResponse(BaseModel):
    id: str
    role: str
    content: Any
    created_at: str


class ChatDetailResponse(ChatResponse):
    messages: list[MessageResponse] = Field(default_factory=list)


class ChatListResponse(BaseModel):
    chats: list[ChatResponse]
    total: int


class MessageListResponse(BaseModel):
    messages: list[MessageResponse]


def _chat_response(chat: Chat) -> ChatResponse:
    return ChatResponse(
        id=chat.id,
        title=chat.title,
        created_at=chat.created_at.isoformat(),
        updated_at=chat.updated_at.isoformat(),
    )


def _message_response(message: ChatMessage) -> MessageResponse:
    return MessageResponse(
        id=message.id,
        role=message.role,
        content=message.content,
        created_at=message.created_at.isoformat(),
    )


@router.get("/chats", response_model=ChatListResponse)
async def list_chats(
    request: Request,
    limit: int = 50,
    offset: int = 0,
    user: User = Depends(get_current_user),  # noqa: B008
) -> ChatListResponse:
    """List the user's chats, newest first."""
    from toolrelay.memory.repository import ChatRepository

    async with request.app.state.db_factory() as session:
        repo = ChatRepository(session)
        chats = await repo.list_chats(user.id, limit=limit, offset=offset)
        total = await repo.count_chats(user.id)
        results = [_chat_response(c) for c in chats]
    return ChatListResponse(chats=results, total=total)


@router.post("/chats", response_model=ChatResponse, status_code=201)
async def create_chat(
    body: CreateChatRequest,
    request: Request,
    user: User = Depends(get_current_user),  # noqa: B008
) -> ChatResponse:
    from toolrelay.memory.repository import ChatRepository

    async with request.app.state.db_factory() as session:
        chat = await ChatRepository(session).create_chat(user.id, body.title)
        await session.commit()
        return _chat_response(chat)


@router.get("/chats/{chat_id}", response_model=ChatDetailResponse)
async def get_chat(
    chat_id: str,
    request: Request,
    user: User = Depends(get_current_user),  # noqa: B008
) -> ChatDetailResponse:
    """A chat with its messages, oldest first."""
    from toolrelay.memory.repository import ChatRepository

    async with request.app.state.db_factory() as session:
        chat = await ChatRepository(session).get_chat(chat_id, user.id)
        return ChatDetailResponse(
            **_chat_response(chat).model_dump(),
            messages=[_message_response(m) for m in chat.messages],
        )


@router.patch("/chats/{chat_id}", response_model=ChatResponse)
async def rename_chat(
    chat_id: str,
    body: UpdateChatRequest,
    request: Request,
    user: User = Depends(get_current_user),  # noqa: B008
) -> ChatResponse:
    from toolrelay.memory.repository import ChatRepository

    async with request.app.state.db_factory() as session:
        chat = await ChatRepository(session).update_chat_title(
            chat_id, user.id, body.title
        )
        await session.commit()
        return _chat_response(chat)


@router.delete("/chats/{chat_id}")
async def delete_chat(
    chat_id: str,
    request: Request,
    user: User = Depends(get_current_user),  # noqa: B008
) -> dict[str, bool]:
    """Delete a chat and all of its messages."""
    from toolrelay.memory.repository import ChatRepository

    async with request.app.state.db_factory() as session:
        await ChatRepository(session).delete_chat(chat_id, user.id)
        await session.commit()
    return {"success": True}


@router.get("/chats/{chat_id}/messages", response_model=MessageListResponse)
async def list_messages(
    chat_id: str,
    request: Request,
    user: User = Depends(get_current_user),  # noqa: B008
) -> MessageListResponse:
    from toolrelay.memory.repository import ChatRepository

    async with request.app.state.db_factory() as session:
        messages = await ChatRepository(session).list_messages(chat_id, user.id)
        return MessageListResponse(messages=[_message_response(m) for m in messages])


@router.post(
    "/chats/{chat_id}/messages", response_model=MessageResponse, status_code=201
)
async def add_message(
    chat_id: str,
    body: AddMessageRequest,
    request: Request,
    user: User = Depends(get_current_user),  # noqa: B008
) -> MessageResponse:
    """Append a message (role: user, assistant or tool)."""
    from toolrelay.memory.repository import ChatRepository

    async with request.app.state.db_factory() as session:
        message = await ChatRepository(session).add_message(
            chat_id, user.id, body.role, body.content
        )
        await session.commit()
        return _message_response(message)

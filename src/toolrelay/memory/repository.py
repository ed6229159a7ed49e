"""Chat repository: users, chats, messages and revoked tokens.

All mutating methods add objects to the session and flush, but do NOT
commit.  The caller controls transaction boundaries via
``session.commit()``.

Every chat operation is scoped by ``(chat_id, user_id)``: a chat owned by
another user is indistinguishable from a missing one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from toolrelay.core.errors import (
    ChatNotFoundError,
    ConflictError,
    InvalidInputError,
    StorageError,
)
from toolrelay.memory.models import Chat, ChatMessage, RevokedToken, User, _utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

MESSAGE_ROLES = frozenset({"user", "assistant", "tool"})


class ChatRepository:
    """Async repository for chat history and accounts."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ── User ─────────────────────────────────────────────────────

    async def create_user(
        self, email: str, password_hash: str, display_name: str
    ) -> User:
        """Create a user.

        Raises StorageError if the email is already registered.
        """
        if await self.get_user_by_email(email) is not None:
            msg = f"Email already registered: {email}"
            raise StorageError(msg)
        user = User(
            email=email,
            password_hash=password_hash,
            display_name=display_name,
        )
        self._session.add(user)
        await self._session.flush()
        return user

    async def get_user(self, user_id: str) -> User | None:
        return await self._session.get(User, user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == email)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    # ── Revoked tokens ───────────────────────────────────────────

    async def revoke_token(
        self, jti: str, user_id: str, expires_at: datetime
    ) -> RevokedToken:
        """Record a token id as revoked (idempotent)."""
        existing = await self._session.get(RevokedToken, jti)
        if existing is not None:
            return existing
        revoked = RevokedToken(jti=jti, user_id=user_id, expires_at=expires_at)
        self._session.add(revoked)
        await self._session.flush()
        return revoked

    async def is_token_revoked(self, jti: str) -> bool:
        return await self._session.get(RevokedToken, jti) is not None

    # ── Chat ─────────────────────────────────────────────────────

    async def create_chat(self, user_id: str, title: str) -> Chat:
        """Create a chat owned by ``user_id``."""
        chat = Chat(user_id=user_id, title=title)
        self._session.add(chat)
        await self._session.flush()
        return chat

    async def list_chats(
        self,
        user_id: str,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Chat]:
        """List a user's chats, most recent first."""
        stmt = (
            select(Chat)
            .where(Chat.user_id == user_id)
            .order_by(Chat.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count_chats(self, user_id: str) -> int:
        """Total number of a user's chats, ignoring paging."""
        count = await self._session.scalar(
            select(func.count()).select_from(Chat).where(Chat.user_id == user_id)
        )
        return count or 0

    async def get_chat(self, chat_id: str, user_id: str) -> Chat:
        """Load a chat with its messages, oldest first.

        Raises ChatNotFoundError if it is missing or owned by someone else.
        """
        stmt = (
            select(Chat)
            .where(Chat.id == chat_id, Chat.user_id == user_id)
            .options(selectinload(Chat.messages))
        )
        result = await self._session.execute(stmt)
        chat = result.scalar_one_or_none()
        if chat is None:
            raise ChatNotFoundError(chat_id)
        return chat

    async def update_chat_title(self, chat_id: str, user_id: str, title: str) -> Chat:
        chat = await self._owned_chat(chat_id, user_id)
        chat.title = title
        chat.updated_at = _utcnow()
        await self._session.flush()
        return chat

    async def delete_chat(self, chat_id: str, user_id: str) -> None:
        """Delete a chat and its messages (via cascade)."""
        chat = await self.get_chat(chat_id, user_id)
        await self._session.delete(chat)
        await self._session.flush()

    # ── Message ──────────────────────────────────────────────────

    async def add_message(
        self,
        chat_id: str,
        user_id: str,
        role: str,
        content: Any,
    ) -> ChatMessage:
        """Append a message to a chat.

        Raises:
            InvalidInputError: If ``role`` is not user/assistant/tool.
            ChatNotFoundError: If the chat is missing or not the user's.
            ConflictError: If another writer took the same position first.
        """
        if role not in MESSAGE_ROLES:
            msg = f"Invalid message role: {role!r}"
            raise InvalidInputError(msg)
        chat = await self._owned_chat(chat_id, user_id)

        message = ChatMessage(
            chat_id=chat.id,
            position=await self._next_position(chat.id),
            role=role,
            content=content,
        )
        self._session.add(message)
        chat.updated_at = _utcnow()
        try:
            await self._session.flush()
        except IntegrityError as e:
            msg = "Chat was modified concurrently; retry"
            raise ConflictError(msg) from e
        return message

    async def list_messages(self, chat_id: str, user_id: str) -> list[ChatMessage]:
        """Messages of a chat in conversation order."""
        chat = await self._owned_chat(chat_id, user_id)
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.chat_id == chat.id)
            .order_by(ChatMessage.position)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    # ── Internals ────────────────────────────────────────────────

    async def _next_position(self, chat_id: str) -> int:
        last = await self._session.scalar(
            select(func.max(ChatMessage.position)).where(ChatMessage.chat_id == chat_id)
        )
        return 0 if last is None else last + 1

    async def _owned_chat(self, chat_id: str, user_id: str) -> Chat:
        stmt = select(Chat).where(Chat.id == chat_id, Chat.user_id == user_id)
        result = await self._session.execute(stmt)
        chat = result.scalar_one_or_none()
        if chat is None:
            raise ChatNotFoundError(chat_id)
        return chat

"""Persistence: users, chats and their messages."""

from toolrelay.memory.models import Base, Chat, ChatMessage, RevokedToken, User
from toolrelay.memory.repository import ChatRepository

__all__ = [
    "Base",
    "Chat",
    "ChatMessage",
    "ChatRepository",
    "RevokedToken",
    "User",
]

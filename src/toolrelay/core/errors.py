"""Exception hierarchy for toolrelay.

Every module imports from here. The hierarchy is:

    RelayError
    ├── InvalidInputError
    ├── AuthError
    ├── ToolServerError
    │   ├── NotConnectedError
    │   ├── ServiceUnavailableError
    │   └── ToolExecutionError(tool_name)
    ├── ProviderError(provider_id)
    │   ├── ProviderAuthError
    │   ├── ProviderRateLimitError(retry_after)
    │   ├── ProviderTimeoutError
    │   ├── ProviderOverloadedError
    │   └── ModelNotFoundError
    ├── ConfigError
    └── StorageError
        ├── ChatNotFoundError(chat_id)
        └── ConflictError
"""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for all toolrelay errors."""


class InvalidInputError(RelayError):
    """Malformed or missing conversation data."""


class AuthError(RelayError):
    """Missing, invalid, expired or revoked session token."""


# ─── Tool Server Errors ───────────────────────────────────────


class ToolServerError(RelayError):
    """Base for tool endpoint errors."""


class NotConnectedError(ToolServerError):
    """A tool call was attempted before a successful connect."""

    def __init__(self, message: str = "MCP client not connected") -> None:
        super().__init__(message)


class ServiceUnavailableError(ToolServerError):
    """Tool endpoint unreachable even after a reconnect attempt."""


class ToolExecutionError(ToolServerError):
    """A single tool call failed (remote error, transport failure, bad args)."""

    def __init__(self, tool_name: str, message: str) -> None:
        self.tool_name = tool_name
        super().__init__(message)


# ─── Provider Errors ──────────────────────────────────────────


class ProviderError(RelayError):
    """Base for provider-related errors.

    The message is the provider's own text; ``provider_id`` says where it
    came from.
    """

    def __init__(self, provider_id: str, message: str) -> None:
        self.provider_id = provider_id
        super().__init__(message)


class ProviderAuthError(ProviderError):
    """Invalid or missing API key."""


class ProviderRateLimitError(ProviderError):
    """Rate limit exceeded. Includes retry_after if available."""

    def __init__(
        self,
        provider_id: str,
        message: str = "Rate limited",
        *,
        retry_after: float | None = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(provider_id, message)


class ProviderTimeoutError(ProviderError):
    """Model call timed out."""


class ProviderOverloadedError(ProviderError):
    """Provider is overloaded or returned an unclassified API error."""


class ModelNotFoundError(ProviderError):
    """Requested model not available from this provider."""


# ─── Configuration Errors ─────────────────────────────────────


class ConfigError(RelayError):
    """Invalid configuration."""


# ─── Storage Errors ───────────────────────────────────────────


class StorageError(RelayError):
    """Database layer error."""


class ChatNotFoundError(StorageError):
    """Chat does not exist or belongs to another user."""

    def __init__(self, chat_id: str) -> None:
        self.chat_id = chat_id
        super().__init__("Chat not found")


class ConflictError(StorageError):
    """A concurrent write collided with this one; the caller may retry."""

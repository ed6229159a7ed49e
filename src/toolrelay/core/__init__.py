"""Core errors and shared utilities."""

from toolrelay.core.errors import (
    AuthError,
    ChatNotFoundError,
    ConfigError,
    InvalidInputError,
    ModelNotFoundError,
    NotConnectedError,
    ProviderAuthError,
    ProviderError,
    ProviderOverloadedError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    RelayError,
    ServiceUnavailableError,
    StorageError,
    ToolExecutionError,
    ToolServerError,
)
from toolrelay.core.log import setup_logging

__all__ = [
    "AuthError",
    "ChatNotFoundError",
    "ConfigError",
    "InvalidInputError",
    "ModelNotFoundError",
    "NotConnectedError",
    "ProviderAuthError",
    "ProviderError",
    "ProviderOverloadedError",
    "ProviderRateLimitError",
    "ProviderTimeoutError",
    "RelayError",
    "ServiceUnavailableError",
    "StorageError",
    "ToolExecutionError",
    "ToolServerError",
    "setup_logging",
]

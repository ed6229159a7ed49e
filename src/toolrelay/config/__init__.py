"""Configuration loading and validation."""

from toolrelay.config.loader import load_config
from toolrelay.config.schema import (
    APIConfig,
    AuthConfig,
    DatabaseConfig,
    LoggingConfig,
    ModelConfig,
    ProviderConfig,
    RelayConfig,
    ToolServerConfig,
)

__all__ = [
    "APIConfig",
    "AuthConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "ModelConfig",
    "ProviderConfig",
    "RelayConfig",
    "ToolServerConfig",
    "load_config",
]

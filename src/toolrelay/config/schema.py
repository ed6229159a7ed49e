"""Pydantic models for toolrelay configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ProviderConfig(BaseModel):
    """Credentials and endpoint for a single LLM provider."""

    enabled: bool = True
    api_key: str | None = None
    api_key_env: str | None = None
    base_url: str | None = None


class ModelConfig(BaseModel):
    """Which provider and model the relay talks to."""

    provider: str = "anthropic"
    model_id: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 4096
    temperature: float | None = None


class ToolServerConfig(BaseModel):
    """Remote MCP tool server reached over streamable HTTP."""

    url: str = "http://localhost:8000/mcp"
    client_name: str = "toolrelay"
    client_version: str = "0.1.0"
    validate_arguments: bool = True


class APIConfig(BaseModel):
    """HTTP server settings."""

    host: str = "127.0.0.1"
    port: int = 3001
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    rate_limit: int = 60
    rate_limit_window: int = 60


class AuthConfig(BaseModel):
    """Session token settings."""

    jwt_secret: str = ""
    token_expiry_hours: int = 24
    registration_enabled: bool = True


class DatabaseConfig(BaseModel):
    """Database connection settings."""

    url: str = "sqlite+aiosqlite:///~/.local/share/toolrelay/toolrelay.db"
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 3600


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file: str = ""
    structured: bool = False


class RelayConfig(BaseModel):
    """Top-level configuration for toolrelay."""

    api: APIConfig = Field(default_factory=APIConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)
    providers: dict[str, ProviderConfig] = Field(
        default_factory=lambda: {
            "anthropic": ProviderConfig(api_key_env="ANTHROPIC_API_KEY"),
            "openai": ProviderConfig(api_key_env="OPENAI_API_KEY"),
        }
    )
    tool_server: ToolServerConfig = Field(default_factory=ToolServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

"""Tests for configuration loading and validation."""

from __future__ import annotations

import pytest

from toolrelay.config.loader import _deep_merge, load_config
from toolrelay.config.schema import (
    APIConfig,
    AuthConfig,
    LoggingConfig,
    ModelConfig,
    ProviderConfig,
    RelayConfig,
    ToolServerConfig,
)
from toolrelay.core.errors import ConfigError

_ENV_VARS = (
    "TOOLRELAY_CONFIG",
    "MCP_SERVER_URL",
    "PORT",
    "DATABASE_URL",
    "TOOLRELAY_JWT_SECRET",
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
)


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    """No user/project config files and no deployment env vars."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ─── Schema Defaults ──────────────────────────────────────────


class TestSchemaDefaults:
    def test_relay_config_all_defaults(self):
        cfg = RelayConfig()
        assert cfg.model.provider == "anthropic"
        assert cfg.tool_server.url == "http://localhost:8000/mcp"
        assert cfg.api.port == 3001
        assert cfg.providers["anthropic"].api_key_env == "ANTHROPIC_API_KEY"
        assert cfg.providers["openai"].api_key_env == "OPENAI_API_KEY"
        assert cfg.logging.level == "INFO"

    def test_model_config_defaults(self):
        cfg = ModelConfig()
        assert cfg.model_id == "claude-sonnet-4-5-20250929"
        assert cfg.max_tokens == 4096
        assert cfg.temperature is None

    def test_tool_server_validates_arguments_by_default(self):
        assert ToolServerConfig().validate_arguments is True

    def test_api_and_auth_defaults(self):
        assert APIConfig().cors_origins == ["*"]
        assert AuthConfig().jwt_secret == ""
        assert AuthConfig().registration_enabled is True

    def test_logging_config_defaults(self):
        cfg = LoggingConfig()
        assert cfg.file == ""
        assert cfg.structured is False

    def test_provider_config_defaults(self):
        cfg = ProviderConfig()
        assert cfg.enabled is True
        assert cfg.api_key is None
        assert cfg.base_url is None


# ─── Merge ────────────────────────────────────────────────────


class TestDeepMerge:
    def test_nested_override(self):
        base = {"api": {"host": "a", "port": 1}}
        merged = _deep_merge(base, {"api": {"port": 2}})
        assert merged == {"api": {"host": "a", "port": 2}}

    def test_base_not_mutated(self):
        base = {"api": {"port": 1}}
        _deep_merge(base, {"api": {"port": 2}})
        assert base == {"api": {"port": 1}}

    def test_non_dict_replaces(self):
        assert _deep_merge({"a": {"b": 1}}, {"a": 3}) == {"a": 3}


# ─── Loading ──────────────────────────────────────────────────


class TestLoadConfig:
    def test_defaults_when_no_files(self):
        cfg = load_config()
        assert cfg == RelayConfig()

    def test_load_from_explicit_path(self, tmp_path):
        toml_file = tmp_path / "test.toml"
        toml_file.write_text('[tool_server]\nurl = "http://tools:9000/mcp"\n')
        cfg = load_config(path=toml_file)
        assert cfg.tool_server.url == "http://tools:9000/mcp"

    def test_explicit_path_not_found_raises(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(path=tmp_path / "missing.toml")

    def test_invalid_toml_raises(self, tmp_path):
        toml_file = tmp_path / "bad.toml"
        toml_file.write_text("[api\nport = ")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path=toml_file)

    def test_validation_failure_raises(self, tmp_path):
        toml_file = tmp_path / "bad.toml"
        toml_file.write_text('[api]\nport = "not-a-number"\n')
        with pytest.raises(ConfigError, match="validation failed"):
            load_config(path=toml_file)

    def test_project_file_overrides_user_file(self, tmp_path):
        user_dir = tmp_path / "xdg" / "toolrelay"
        user_dir.mkdir(parents=True)
        (user_dir / "config.toml").write_text(
            '[model]\nprovider = "openai"\nmodel_id = "gpt-4o"\n'
        )
        (tmp_path / "toolrelay.toml").write_text('[model]\nmodel_id = "gpt-4o-mini"\n')
        cfg = load_config()
        assert cfg.model.provider == "openai"
        assert cfg.model.model_id == "gpt-4o-mini"

    def test_env_config_path(self, tmp_path, monkeypatch):
        toml_file = tmp_path / "env.toml"
        toml_file.write_text("[api]\nport = 4000\n")
        monkeypatch.setenv("TOOLRELAY_CONFIG", str(toml_file))
        assert load_config().api.port == 4000

    def test_env_config_path_missing_raises(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TOOLRELAY_CONFIG", str(tmp_path / "nope.toml"))
        with pytest.raises(ConfigError, match="TOOLRELAY_CONFIG"):
            load_config()

    def test_explicit_path_outranks_env_config_path(self, tmp_path, monkeypatch):
        env_file = tmp_path / "env.toml"
        env_file.write_text("[api]\nport = 4000\nhost = \"0.0.0.0\"\n")
        explicit = tmp_path / "explicit.toml"
        explicit.write_text("[api]\nport = 4500\n")
        monkeypatch.setenv("TOOLRELAY_CONFIG", str(env_file))
        cfg = load_config(path=explicit)
        assert cfg.api.port == 4500
        assert cfg.api.host == "0.0.0.0"

    def test_overrides_win_over_files(self, tmp_path):
        toml_file = tmp_path / "test.toml"
        toml_file.write_text("[api]\nport = 4000\n")
        cfg = load_config(path=toml_file, overrides={"api": {"port": 5000}})
        assert cfg.api.port == 5000


class TestEnvironment:
    def test_api_key_resolved_from_env(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        cfg = load_config()
        assert cfg.providers["anthropic"].api_key == "sk-ant-test"
        assert cfg.providers["openai"].api_key is None

    def test_explicit_api_key_not_replaced(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "from-env")
        cfg = load_config(overrides={"providers": {"openai": {"api_key": "inline"}}})
        assert cfg.providers["openai"].api_key == "inline"

    def test_deployment_overrides(self, monkeypatch):
        monkeypatch.setenv("MCP_SERVER_URL", "http://mcp.internal/mcp")
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///tmp/x.db")
        monkeypatch.setenv("TOOLRELAY_JWT_SECRET", "s3cret")
        cfg = load_config()
        assert cfg.tool_server.url == "http://mcp.internal/mcp"
        assert cfg.api.port == 8080
        assert cfg.database.url == "sqlite+aiosqlite:///tmp/x.db"
        assert cfg.auth.jwt_secret == "s3cret"

    def test_env_beats_file(self, tmp_path, monkeypatch):
        toml_file = tmp_path / "test.toml"
        toml_file.write_text("[api]\nport = 4000\n")
        monkeypatch.setenv("PORT", "9000")
        assert load_config(path=toml_file).api.port == 9000

    def test_bad_port_raises(self, monkeypatch):
        monkeypatch.setenv("PORT", "eighty")
        with pytest.raises(ConfigError, match="PORT"):
            load_config()

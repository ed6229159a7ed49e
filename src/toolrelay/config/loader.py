"""Build a RelayConfig from layered TOML sources and the environment.

Sources, lowest priority first:
    1. Field defaults on the schema models
    2. ``toolrelay/config.toml`` under ``$XDG_CONFIG_HOME`` (or ``~/.config``)
    3. ``toolrelay.toml`` in the working directory
    4. The file named by ``$TOOLRELAY_CONFIG``
    5. The ``path`` given to ``load_config``
    6. The ``overrides`` mapping given to ``load_config``

After validation, provider API keys are resolved from each provider's
``api_key_env`` and a handful of deployment env vars are applied on top
(see ``_ENV_OVERRIDES``), so ``MCP_SERVER_URL=... PORT=...`` works without
any config file.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from toolrelay.core.errors import ConfigError

from .schema import RelayConfig

# env var -> (section, field, type)
_ENV_OVERRIDES: dict[str, tuple[str, str, type]] = {
    "MCP_SERVER_URL": ("tool_server", "url", str),
    "PORT": ("api", "port", int),
    "DATABASE_URL": ("database", "url", str),
    "TOOLRELAY_JWT_SECRET": ("auth", "jwt_secret", str),
}


def _user_config_path() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "toolrelay" / "config.toml"


def _project_config_path() -> Path:
    return Path.cwd() / "toolrelay.toml"


def _discover_config_files() -> list[Path]:
    """Existing config files, lowest priority first.

    Raises ConfigError when ``$TOOLRELAY_CONFIG`` names a missing file.
    """
    paths: list[Path] = []

    user = _user_config_path()
    if user.is_file():
        paths.append(user)

    project = _project_config_path()
    if project.is_file():
        paths.append(project)

    env_path = os.environ.get("TOOLRELAY_CONFIG")
    if env_path:
        p = Path(env_path)
        if not p.is_file():
            msg = f"TOOLRELAY_CONFIG points to non-existent file: {env_path}"
            raise ConfigError(msg)
        paths.append(p)

    return paths


def _read_toml(path: Path) -> dict[str, Any]:
    """Parse one config file, turning read and syntax failures into ConfigError."""
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {path}: {e}"
        raise ConfigError(msg) from e
    except OSError as e:
        msg = f"Cannot read config file {path}: {e}"
        raise ConfigError(msg) from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge nested tables key by key; scalars and lists in ``override`` replace."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _resolve_api_keys(config: RelayConfig) -> None:
    """Fill each provider's missing ``api_key`` from its ``api_key_env`` variable."""
    for provider in config.providers.values():
        if provider.api_key is None and provider.api_key_env:
            provider.api_key = os.environ.get(provider.api_key_env)


def _apply_env_overrides(config: RelayConfig) -> None:
    """Let ``MCP_SERVER_URL``, ``PORT`` and friends win over file settings."""
    for env_name, (section, field, cast) in _ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if not raw:
            continue
        try:
            value = cast(raw)
        except ValueError as e:
            msg = f"Invalid value for {env_name}: {raw!r}"
            raise ConfigError(msg) from e
        setattr(getattr(config, section), field, value)


def load_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> RelayConfig:
    """Merge every config source and validate the result.

    Args:
        path: A config file that outranks the discovered ones.
        overrides: Nested settings applied after all files.

    Raises:
        ConfigError: If a named file is missing, a file is not valid TOML,
            an env override has the wrong type, or the merged settings
            fail validation.
    """
    merged: dict[str, Any] = {}

    files = _discover_config_files()

    if path is not None:
        p = Path(path)
        if not p.is_file():
            msg = f"Config file not found: {path}"
            raise ConfigError(msg)
        files.append(p)

    for config_file in files:
        data = _read_toml(config_file)
        merged = _deep_merge(merged, data)

    if overrides:
        merged = _deep_merge(merged, overrides)

    try:
        config = RelayConfig.model_validate(merged)
    except Exception as e:
        msg = f"Configuration validation failed: {e}"
        raise ConfigError(msg) from e

    _resolve_api_keys(config)
    _apply_env_overrides(config)

    return config

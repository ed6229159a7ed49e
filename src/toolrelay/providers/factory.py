"""Build the configured model gateway."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from toolrelay.core.errors import ConfigError

if TYPE_CHECKING:
    from toolrelay.config.schema import RelayConfig
    from toolrelay.providers.base import ModelGateway

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("anthropic", "openai")


def create_gateway(config: RelayConfig) -> ModelGateway:
    """Instantiate the gateway named by ``config.model.provider``.

    Raises:
        ConfigError: If the provider is unknown or disabled.
    """
    name = config.model.provider
    if name not in SUPPORTED_PROVIDERS:
        msg = (
            f"Unknown model provider: {name!r} "
            f"(expected one of {', '.join(SUPPORTED_PROVIDERS)})"
        )
        raise ConfigError(msg)

    prov_config = config.providers.get(name)
    if prov_config is not None and not prov_config.enabled:
        msg = f"Model provider {name!r} is disabled in config"
        raise ConfigError(msg)

    api_key = prov_config.api_key if prov_config is not None else None
    if api_key is None:
        logger.warning("No API key configured for provider %s", name)

    if name == "anthropic":
        from toolrelay.providers.anthropic import AnthropicGateway

        return AnthropicGateway(
            api_key=api_key,
            model_id=config.model.model_id,
            max_tokens=config.model.max_tokens,
            temperature=config.model.temperature,
        )

    from toolrelay.providers.openai import OpenAIGateway

    return OpenAIGateway(
        api_key=api_key,
        model_id=config.model.model_id,
        max_tokens=config.model.max_tokens,
        temperature=config.model.temperature,
        base_url=prov_config.base_url if prov_config is not None else None,
    )

# Copyright (c) Meta Platforms, Inc. and affiliates.
# Modifications copyright (c) 2025 Logan Martel.
# Adapted from https://github.com/meta-pytorch/KernelAgent (Apache-2.0).

"""LLM provider registry."""

from __future__ import annotations

import logging

from typing import Any, Dict, Mapping, Optional, Type

from chatrelay.configuration import ProviderSettings
from chatrelay.constants import PROVIDER_GROQ, PROVIDER_OPENROUTER
from chatrelay.llm.providers.base import ChatAdapter, ProviderAdapter
from chatrelay.llm.providers.groq_provider import GroqAdapter
from chatrelay.llm.providers.openai_base import OpenAICompatibleAdapter
from chatrelay.llm.providers.openrouter_provider import OpenRouterAdapter
from chatrelay.llm.providers.router import ProviderRouter

PROVIDER_ALIASES: Dict[str, Type[OpenAICompatibleAdapter]] = {
    PROVIDER_OPENROUTER: OpenRouterAdapter,
    PROVIDER_GROQ: GroqAdapter,
}


_LOGGER = logging.getLogger(__name__)


def load_provider(
    settings: ProviderSettings, *, client: Optional[Any] = None
) -> OpenAICompatibleAdapter:
    """Build the adapter for one configured provider."""

    provider_cls = PROVIDER_ALIASES.get(settings.name)
    if provider_cls is None:
        raise ValueError(
            f"Unknown provider '{settings.name}'. "
            f"Available: {sorted(PROVIDER_ALIASES)}"
        )
    adapter = provider_cls(
        api_key_env=settings.api_key_env,
        base_url=settings.base_url,
        timeout_ms=settings.timeout_ms,
        extra_headers=settings.extra_headers,
        client=client,
    )
    if not adapter.healthcheck():
        _LOGGER.warning(
            "Provider '%s' has no API key (%s); calls will fail until it "
            "is set.",
            settings.name,
            settings.api_key_env,
        )
    else:
        _LOGGER.info(
            "Using provider '%s' at %s", settings.name, settings.base_url
        )
    return adapter


def load_router(
    providers: Mapping[str, ProviderSettings],
    *,
    clients: Optional[Mapping[str, Any]] = None,
) -> ProviderRouter:
    """Build a router holding one adapter per configured provider."""

    clients = clients or {}
    adapters = {
        name: load_provider(settings, client=clients.get(name))
        for name, settings in providers.items()
    }
    return ProviderRouter(adapters)


__all__ = [
    "ChatAdapter",
    "GroqAdapter",
    "OpenAICompatibleAdapter",
    "OpenRouterAdapter",
    "PROVIDER_ALIASES",
    "ProviderAdapter",
    "ProviderRouter",
    "load_provider",
    "load_router",
]

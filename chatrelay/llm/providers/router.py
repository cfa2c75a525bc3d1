"""Lookup from provider identifier to adapter."""

from __future__ import annotations

from typing import Dict, Mapping, Tuple

from chatrelay.exceptions import UnknownProviderError
from chatrelay.llm.providers.base import ChatAdapter


class ProviderRouter:
    """Fixed mapping of provider ids to adapters, built once at start-up."""

    def __init__(self, adapters: Mapping[str, ChatAdapter]) -> None:
        if not adapters:
            raise ValueError("ProviderRouter needs at least one adapter")
        self._adapters: Dict[str, ChatAdapter] = dict(adapters)

    def get(self, provider: str) -> ChatAdapter:
        try:
            return self._adapters[provider]
        except KeyError:
            available = sorted(self._adapters)
            raise UnknownProviderError(
                f"Unknown provider '{provider}'. Available: {available}"
            ) from None

    def providers(self) -> Tuple[str, ...]:
        return tuple(self._adapters)

    def __contains__(self, provider: object) -> bool:
        return provider in self._adapters

"""OpenRouter provider (OpenAI-compatible endpoint)."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from chatrelay.constants import DEFAULT_TIMEOUT_MS, PROVIDER_OPENROUTER
from chatrelay.llm.providers.openai_base import OpenAICompatibleAdapter

OPENROUTER_HEADERS = {
    "HTTP-Referer": "https://telegram.org",
    "X-Title": "Multi AI Telegram Bot",
}


class OpenRouterAdapter(OpenAICompatibleAdapter):
    def __init__(
        self,
        *,
        api_key_env: str = "OPENROUTER_API_KEY",
        base_url: str = "https://openrouter.ai/api/v1",
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        extra_headers: Optional[Mapping[str, str]] = None,
        client: Optional[Any] = None,
    ) -> None:
        headers = dict(OPENROUTER_HEADERS)
        if extra_headers is not None:
            headers = dict(extra_headers)
        super().__init__(
            PROVIDER_OPENROUTER,
            base_url=base_url,
            api_key_env=api_key_env,
            timeout_ms=timeout_ms,
            extra_headers=headers,
            client=client,
        )

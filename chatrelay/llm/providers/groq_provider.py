"""Groq provider (OpenAI-compatible endpoint)."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from chatrelay.constants import DEFAULT_TIMEOUT_MS, PROVIDER_GROQ
from chatrelay.llm.providers.openai_base import OpenAICompatibleAdapter


class GroqAdapter(OpenAICompatibleAdapter):
    def __init__(
        self,
        *,
        api_key_env: str = "GROQ_API_KEY",
        base_url: str = "https://api.groq.com/openai/v1",
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        extra_headers: Optional[Mapping[str, str]] = None,
        client: Optional[Any] = None,
    ) -> None:
        super().__init__(
            PROVIDER_GROQ,
            base_url=base_url,
            api_key_env=api_key_env,
            timeout_ms=timeout_ms,
            extra_headers=extra_headers,
            client=client,
        )

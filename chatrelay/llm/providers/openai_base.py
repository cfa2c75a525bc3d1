# Copyright (c) Meta Platforms, Inc. and affiliates.
# Modifications copyright (c) 2025 Logan Martel.
# Adapted from https://github.com/meta-pytorch/KernelAgent (Apache-2.0).
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""OpenAI-compatible provider adapter."""

from __future__ import annotations

import logging
import time

from typing import Any, Dict, Mapping, Optional

from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI

from chatrelay.constants import DEFAULT_TIMEOUT_MS
from chatrelay.exceptions import (
    ProviderConnectionError,
    ProviderEmptyResponse,
    ProviderHttpError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from chatrelay.llm.providers.base import ProviderAdapter
from chatrelay.llm.utils import (
    configure_proxy_environment,
    elapsed_ms,
    extract_completion_text,
    parse_usage,
)
from chatrelay.logging import redact
from chatrelay.types import ChatCompletionRequest, ChatCompletionResponse

_LOGGER = logging.getLogger(__name__)


class OpenAICompatibleAdapter(ProviderAdapter):
    """Adapter for backends exposing ``POST {base_url}/chat/completions``."""

    def __init__(
        self,
        provider: str,
        *,
        base_url: str,
        api_key_env: str,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        extra_headers: Optional[Mapping[str, str]] = None,
        client: Optional[Any] = None,
    ) -> None:
        self._provider = provider
        self.base_url = base_url.rstrip("/")
        self.api_key_env = api_key_env
        self.timeout_ms = timeout_ms
        self.extra_headers: Dict[str, str] = dict(extra_headers or {})
        self._original_proxy_env: Optional[Dict[str, Optional[str]]] = None
        self.client: Any | None = client
        if self.client is None:
            self._initialize_client()

    def _initialize_client(self) -> None:
        api_key = self._get_api_key(self.api_key_env)
        if not api_key:
            return
        self._original_proxy_env = configure_proxy_environment()
        self.client = OpenAI(
            api_key=api_key,
            base_url=self.base_url,
            default_headers=self.extra_headers or None,
            timeout=self.timeout_ms / 1000,
            max_retries=0,
        )

    @property
    def name(self) -> str:
        return self._provider

    def healthcheck(self) -> bool:
        return self.client is not None

    def chat(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        client = self.client
        if client is None:
            raise ProviderUnavailableError(self.name, self.api_key_env)
        params = self._build_api_params(request)
        _LOGGER.debug(
            "POST %s/chat/completions model=%s messages=%d",
            self.base_url,
            request.model,
            len(request.messages),
        )
        started = time.monotonic()
        try:
            response = client.chat.completions.create(
                **params, timeout=self.timeout_ms / 1000
            )
        except APITimeoutError as exc:
            _LOGGER.warning(
                "Provider %s timed out after %d ms", self.name, self.timeout_ms
            )
            raise ProviderTimeoutError(self.name, self.timeout_ms) from exc
        except APIStatusError as exc:
            raw_body = exc.response.text if exc.response is not None else ""
            body = redact(raw_body)
            _LOGGER.warning(
                "Provider %s returned HTTP %s", self.name, exc.status_code
            )
            raise ProviderHttpError(self.name, exc.status_code, body) from exc
        except APIConnectionError as exc:
            raise ProviderConnectionError(self.name, str(exc)) from exc

        content = extract_completion_text(response)
        if not content:
            raise ProviderEmptyResponse(self.name)
        return ChatCompletionResponse(
            content=content,
            model=request.model,
            provider=self.name,
            latency_ms=elapsed_ms(started),
            usage=parse_usage(getattr(response, "usage", None)),
        )

    def _build_api_params(
        self, request: ChatCompletionRequest
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "model": request.model,
            "messages": [message.to_dict() for message in request.messages],
        }
        if request.temperature is not None:
            params["temperature"] = request.temperature
        if request.max_tokens is not None:
            params["max_tokens"] = request.max_tokens
        return params

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

"""Provider adapter interface."""

from __future__ import annotations

import os

from abc import ABC, abstractmethod
from typing import Optional, Protocol, runtime_checkable

from chatrelay.types import ChatCompletionRequest, ChatCompletionResponse


@runtime_checkable
class ChatAdapter(Protocol):
    """Anything that can serve one chat-completion call."""

    def chat(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        ...

    def healthcheck(self) -> bool:
        ...


class ProviderAdapter(ABC):
    """Base class for all LLM backends.

    Implementations issue exactly one outbound call per ``chat`` and never
    retry internally; retry policy belongs to the caller.
    """

    @abstractmethod
    def chat(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """Return a single completion for ``request``."""

    @abstractmethod
    def healthcheck(self) -> bool:
        """Whether the adapter can be used (API key present, etc.)."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier."""

    def _get_api_key(self, env_var: str) -> Optional[str]:
        api_key = os.getenv(env_var)
        if api_key and api_key != "your-api-key-here":
            return api_key
        return None

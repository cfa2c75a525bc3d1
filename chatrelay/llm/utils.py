# Copyright (c) Meta Platforms, Inc. and affiliates.
# Modifications copyright (c) 2025 Logan Martel.
# Adapted from https://github.com/meta-pytorch/KernelAgent (Apache-2.0).

"""Utility helpers for LLM providers."""

from __future__ import annotations

import os
import time

from typing import Any, Dict, Optional

from chatrelay.types import TokenUsage


def configure_proxy_environment() -> Optional[Dict[str, Optional[str]]]:
    """Apply CHATRELAY_PROXY_OVERRIDE (if set) to the common proxy env vars."""
    original: Dict[str, Optional[str]] = {}
    proxy = os.environ.get("CHATRELAY_PROXY_OVERRIDE")
    for key in ["HTTP_PROXY", "HTTPS_PROXY", "http_proxy", "https_proxy"]:
        original[key] = os.environ.get(key)
        if proxy:
            os.environ[key] = proxy
    return original


def elapsed_ms(started: float) -> int:
    """Milliseconds since ``started`` (a ``time.monotonic()`` reading)."""
    return int(round((time.monotonic() - started) * 1000))


def _usage_field(usage: Any, key: str) -> Optional[int]:
    if isinstance(usage, dict):
        value = usage.get(key)
    else:
        value = getattr(usage, key, None)
    return value if isinstance(value, int) else None


def parse_usage(usage: Any) -> Optional[TokenUsage]:
    """Map an OpenAI-style ``usage`` object or dict onto ``TokenUsage``."""
    if usage is None:
        return None
    return TokenUsage(
        prompt_tokens=_usage_field(usage, "prompt_tokens"),
        completion_tokens=_usage_field(usage, "completion_tokens"),
        total_tokens=_usage_field(usage, "total_tokens"),
    )


def extract_completion_text(response: Any) -> Optional[str]:
    """Return the trimmed first-choice text, or None when there is none."""
    choices = getattr(response, "choices", None) or []
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str):
        return None
    content = content.strip()
    return content or None

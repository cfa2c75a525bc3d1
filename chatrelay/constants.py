"""Shared constants."""

from __future__ import annotations

PROVIDER_OPENROUTER = "openrouter"
PROVIDER_GROQ = "groq"
CHAT_PROVIDERS = (PROVIDER_OPENROUTER, PROVIDER_GROQ)
PROVIDER_FILTER_ALL = "all"

POWER_TIERS = ("Low", "Medium", "High", "eHigh")

STAR_METRICS = ("coding", "reasoning", "multilingual", "speed", "safety")
METRIC_BALANCED = "balanced"
MODEL_METRICS = STAR_METRICS + (METRIC_BALANCED,)

DEFAULT_TIMEOUT_MS = 45_000
DEFAULT_RANK_LIMIT = 20

FALLBACK_FILENAME = "generated-file.txt"
RESPONSES_DIR = "responses"
DEFAULT_BUNDLE_SUMMARY = "Готово. Файлы созданы."

PENDING_SYSTEM_PROMPT = "system_prompt"
PENDING_BUILD_REQUEST = "build_request"

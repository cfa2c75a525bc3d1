"""Typed helpers for parsing chat relay configuration dictionaries."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

import yaml

from chatrelay.constants import (
    CHAT_PROVIDERS,
    DEFAULT_TIMEOUT_MS,
    POWER_TIERS,
    PROVIDER_GROQ,
    PROVIDER_OPENROUTER,
)
from chatrelay.exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = Path("configs/default_config.yaml")

_PROVIDER_DEFAULTS: Dict[str, Dict[str, Any]] = {
    PROVIDER_OPENROUTER: {
        "base_url": "https://openrouter.ai/api/v1",
        "api_key_env": "OPENROUTER_API_KEY",
        "extra_headers": {
            "HTTP-Referer": "https://telegram.org",
            "X-Title": "Multi AI Telegram Bot",
        },
    },
    PROVIDER_GROQ: {
        "base_url": "https://api.groq.com/openai/v1",
        "api_key_env": "GROQ_API_KEY",
        "extra_headers": {},
    },
}


def _ensure_path(
    value: Optional[str | Path],
    *,
    config_root: Path,
    default: Optional[Path] = None,
) -> Path:
    if value is None:
        if default is None:
            raise ValueError("Path value is required")
        return default
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (config_root / path).resolve()
    return path


def _coerce_markers(
    value: Optional[Iterable[Any]],
) -> Tuple[Tuple[str, ...], ...]:
    """Accept ``["phrase", ["role", "system"]]`` style marker lists."""

    if not value:
        return tuple()
    markers = []
    for item in value:
        if isinstance(item, str):
            terms: Tuple[str, ...] = (item.lower(),)
        else:
            terms = tuple(str(term).lower() for term in item)
        if terms and all(terms):
            markers.append(terms)
    return tuple(markers)


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


@dataclass(frozen=True)
class ProviderSettings:
    name: str
    base_url: str
    api_key_env: str
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    extra_headers: Dict[str, str] = field(default_factory=dict)
    system_role_markers: Tuple[Tuple[str, ...], ...] = field(
        default_factory=tuple
    )


@dataclass(frozen=True)
class CatalogSettings:
    path: Path


@dataclass(frozen=True)
class ArtifactSettings:
    root: Path
    large_reply_threshold: int = 12_000


@dataclass(frozen=True)
class ChatSettings:
    history_limit: int = 20
    max_history_assistant_chars: int = 2000
    max_system_prompt_chars: int = 4000
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass(frozen=True)
class DefaultModelSettings:
    provider: str = PROVIDER_OPENROUTER
    model: str = "google/gemma-3n-e4b-it:free"
    power_tier: str = "Low"


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"
    file: Optional[Path] = None


@dataclass(frozen=True)
class RelaySettings:
    providers: Dict[str, ProviderSettings]
    catalog: CatalogSettings
    artifacts: ArtifactSettings
    chat: ChatSettings
    defaults: DefaultModelSettings
    logging: LoggingSettings


def _build_provider_settings(
    name: str, raw: Dict[str, Any]
) -> ProviderSettings:
    merged = deepcopy(_PROVIDER_DEFAULTS.get(name, {}))
    merged.update({k: v for k, v in raw.items() if v is not None})
    if not merged.get("base_url"):
        raise ConfigurationError(f"providers.{name}.base_url is required")
    if not merged.get("api_key_env"):
        raise ConfigurationError(f"providers.{name}.api_key_env is required")
    timeout_ms = int(merged.get("timeout_ms", DEFAULT_TIMEOUT_MS))
    if timeout_ms <= 0:
        raise ConfigurationError(f"providers.{name}.timeout_ms must be > 0")
    return ProviderSettings(
        name=name,
        base_url=str(merged["base_url"]).rstrip("/"),
        api_key_env=str(merged["api_key_env"]),
        timeout_ms=timeout_ms,
        extra_headers={
            str(k): str(v)
            for k, v in (merged.get("extra_headers") or {}).items()
        },
        system_role_markers=_coerce_markers(
            merged.get("system_role_markers")
        ),
    )


def build_relay_settings(
    config: Dict[str, Any], *, config_root: Path
) -> RelaySettings:
    relay_cfg = config.get("relay") or {}

    providers_cfg = relay_cfg.get("providers") or {}
    unknown = sorted(set(providers_cfg) - set(CHAT_PROVIDERS))
    if unknown:
        raise ConfigurationError(
            f"Unknown providers in config: {unknown}. "
            f"Supported: {list(CHAT_PROVIDERS)}"
        )
    providers = {
        name: _build_provider_settings(
            name, dict(providers_cfg.get(name) or {})
        )
        for name in CHAT_PROVIDERS
    }

    catalog_cfg = relay_cfg.get("catalog") or {}
    catalog_settings = CatalogSettings(
        path=_ensure_path(
            catalog_cfg.get("path"),
            config_root=config_root,
            default=(config_root / "models.catalog.json").resolve(),
        )
    )

    artifacts_cfg = relay_cfg.get("artifacts") or {}
    artifact_settings = ArtifactSettings(
        root=_ensure_path(
            artifacts_cfg.get("root"),
            config_root=config_root,
            default=Path("generated").resolve(),
        ),
        large_reply_threshold=int(
            artifacts_cfg.get("large_reply_threshold", 12_000)
        ),
    )

    chat_cfg = relay_cfg.get("chat") or {}
    chat_settings = ChatSettings(
        history_limit=int(chat_cfg.get("history_limit", 20)),
        max_history_assistant_chars=int(
            chat_cfg.get("max_history_assistant_chars", 2000)
        ),
        max_system_prompt_chars=int(
            chat_cfg.get("max_system_prompt_chars", 4000)
        ),
        temperature=_optional_float(chat_cfg.get("temperature")),
        max_tokens=_optional_int(chat_cfg.get("max_tokens")),
    )

    defaults_cfg = relay_cfg.get("defaults") or {}
    default_settings = DefaultModelSettings(
        provider=str(defaults_cfg.get("provider", PROVIDER_OPENROUTER)),
        model=str(
            defaults_cfg.get("model", DefaultModelSettings.model)
        ),
        power_tier=str(defaults_cfg.get("power_tier", "Low")),
    )
    if default_settings.provider not in CHAT_PROVIDERS:
        raise ConfigurationError(
            f"defaults.provider must be one of {list(CHAT_PROVIDERS)}"
        )
    if default_settings.power_tier not in POWER_TIERS:
        raise ConfigurationError(
            f"defaults.power_tier must be one of {list(POWER_TIERS)}"
        )

    logging_cfg = relay_cfg.get("logging") or {}
    log_file = logging_cfg.get("file")
    logging_settings = LoggingSettings(
        level=str(logging_cfg.get("level", "INFO")).upper(),
        file=_ensure_path(log_file, config_root=config_root)
        if log_file
        else None,
    )

    return RelaySettings(
        providers=providers,
        catalog=catalog_settings,
        artifacts=artifact_settings,
        chat=chat_settings,
        defaults=default_settings,
        logging=logging_settings,
    )


def load_config(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(f"Config file '{config_path}' not found.")
    return yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}


def load_relay_settings(config_path: Path) -> RelaySettings:
    """Read a YAML config file and resolve paths relative to it."""

    config = load_config(config_path)
    return build_relay_settings(
        config, config_root=config_path.resolve().parent
    )


__all__ = [
    "ArtifactSettings",
    "CatalogSettings",
    "ChatSettings",
    "DEFAULT_CONFIG_PATH",
    "DefaultModelSettings",
    "LoggingSettings",
    "ProviderSettings",
    "RelaySettings",
    "build_relay_settings",
    "load_config",
    "load_relay_settings",
]

"""Read-only model catalog loaded once at start-up."""

from __future__ import annotations

import json
import logging

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from chatrelay.constants import STAR_METRICS
from chatrelay.exceptions import ConfigurationError
from chatrelay.types import ModelDescriptor, ModelStars

_LOGGER = logging.getLogger(__name__)


def _descriptor_from_dict(
    provider: str, data: Dict[str, Any]
) -> ModelDescriptor:
    stars_data = data.get("stars") or {}
    missing = [metric for metric in STAR_METRICS if metric not in stars_data]
    if missing:
        raise ValueError(f"missing star ratings {missing}")
    return ModelDescriptor(
        provider=provider,
        model_id=str(data["modelId"]),
        title=str(data.get("title") or data["modelId"]),
        power_tier=str(data["powerTier"]),
        tags=tuple(str(tag) for tag in data.get("tags") or ()),
        stars=ModelStars(**{m: stars_data[m] for m in STAR_METRICS}),
    )


class ModelCatalog:
    """Immutable list of ``ModelDescriptor`` values in catalog order.

    The catalog is never mutated after construction, so concurrent readers
    need no synchronisation.
    """

    def __init__(
        self,
        models: Iterable[ModelDescriptor],
        *,
        base_urls: Optional[Dict[str, str]] = None,
        version: int = 1,
    ) -> None:
        self._models: Tuple[ModelDescriptor, ...] = tuple(models)
        self._index: Dict[Tuple[str, str], ModelDescriptor] = {}
        for model in self._models:
            if model.key in self._index:
                raise ConfigurationError(
                    f"Duplicate catalog entry {model.provider}/"
                    f"{model.model_id}"
                )
            self._index[model.key] = model
        providers: List[str] = []
        for model in self._models:
            if model.provider not in providers:
                providers.append(model.provider)
        for name in base_urls or {}:
            if name not in providers:
                providers.append(name)
        self._providers = tuple(providers)
        self._base_urls = dict(base_urls or {})
        self.version = version

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelCatalog":
        providers = data.get("providers")
        if not isinstance(providers, dict):
            raise ConfigurationError("Model catalog has no 'providers' map")
        models: List[ModelDescriptor] = []
        base_urls: Dict[str, str] = {}
        for provider, section in providers.items():
            section = section or {}
            if section.get("baseUrl"):
                base_urls[provider] = str(section["baseUrl"])
            for index, raw in enumerate(section.get("models") or []):
                try:
                    models.append(_descriptor_from_dict(provider, raw))
                except (KeyError, TypeError, ValueError) as exc:
                    raise ConfigurationError(
                        f"Invalid catalog entry {provider}[{index}]: {exc}"
                    ) from exc
        return cls(
            models, base_urls=base_urls, version=int(data.get("version", 1))
        )

    @classmethod
    def from_file(cls, path: Path) -> "ModelCatalog":
        if not path.exists():
            raise ConfigurationError(f"Model catalog '{path}' not found.")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(
                f"Model catalog '{path}' is not valid JSON: {exc}"
            ) from exc
        catalog = cls.from_dict(data)
        _LOGGER.info(
            "Loaded %d models for %d providers from %s",
            len(catalog),
            len(catalog.providers()),
            path,
        )
        return catalog

    def __len__(self) -> int:
        return len(self._models)

    def providers(self) -> Tuple[str, ...]:
        return self._providers

    def base_url(self, provider: str) -> Optional[str]:
        return self._base_urls.get(provider)

    def get_model(
        self, provider: str, model_id: str
    ) -> Optional[ModelDescriptor]:
        return self._index.get((provider, model_id))

    def has_model(self, provider: str, model_id: str) -> bool:
        return (provider, model_id) in self._index

    def list_models(
        self, provider: str, power_tier: Optional[str] = None
    ) -> Tuple[ModelDescriptor, ...]:
        return tuple(
            model
            for model in self._models
            if model.provider == provider
            and (power_tier is None or model.power_tier == power_tier)
        )

    def list_all_models(
        self, power_tier: Optional[str] = None
    ) -> Tuple[ModelDescriptor, ...]:
        result: List[ModelDescriptor] = []
        for provider in self._providers:
            result.extend(self.list_models(provider, power_tier))
        return tuple(result)

    def find_default_model(
        self, provider: str, power_tier: str
    ) -> Optional[ModelDescriptor]:
        """First model of the tier, else the provider's first model."""

        exact = self.list_models(provider, power_tier)
        if exact:
            return exact[0]
        any_tier = self.list_models(provider)
        return any_tier[0] if any_tier else None

"""Rank catalog models by a quality metric."""

from __future__ import annotations

import logging

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from chatrelay.catalog.loader import ModelCatalog
from chatrelay.constants import (
    DEFAULT_RANK_LIMIT,
    METRIC_BALANCED,
    MODEL_METRICS,
    POWER_TIERS,
    PROVIDER_FILTER_ALL,
)
from chatrelay.types import ModelDescriptor

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankResult:
    """Ranked models; ``fallback`` means the tier filter was relaxed."""

    models: Tuple[ModelDescriptor, ...]
    metric: str
    provider_filter: str
    power_tier: Optional[str] = None
    fallback: bool = False

    def __iter__(self):
        return iter(self.models)

    def __len__(self) -> int:
        return len(self.models)


def score(model: ModelDescriptor, metric: str) -> float:
    if metric == METRIC_BALANCED:
        return model.stars.balanced
    if metric not in MODEL_METRICS:
        raise ValueError(
            f"Unknown metric '{metric}'. Available: {list(MODEL_METRICS)}"
        )
    return float(getattr(model.stars, metric))


def sort_models(
    models: Sequence[ModelDescriptor], metric: str
) -> Tuple[ModelDescriptor, ...]:
    """Metric desc, balanced desc, title asc; stable for full ties."""

    return tuple(
        sorted(
            models,
            key=lambda model: (
                -score(model, metric),
                -model.stars.balanced,
                model.title,
            ),
        )
    )


class ModelRanker:
    def __init__(self, catalog: ModelCatalog) -> None:
        self._catalog = catalog

    def _source(
        self, provider_filter: str, power_tier: Optional[str]
    ) -> Tuple[ModelDescriptor, ...]:
        if provider_filter == PROVIDER_FILTER_ALL:
            return self._catalog.list_all_models(power_tier)
        return self._catalog.list_models(provider_filter, power_tier)

    def rank(
        self,
        metric: str = METRIC_BALANCED,
        provider_filter: str = PROVIDER_FILTER_ALL,
        power_tier: Optional[str] = None,
        limit: int = DEFAULT_RANK_LIMIT,
    ) -> RankResult:
        if metric not in MODEL_METRICS:
            raise ValueError(
                f"Unknown metric '{metric}'. Available: {list(MODEL_METRICS)}"
            )
        if power_tier is not None and power_tier not in POWER_TIERS:
            raise ValueError(
                f"Unknown power tier '{power_tier}'. "
                f"Available: {list(POWER_TIERS)}"
            )
        if limit < 0:
            raise ValueError("limit must be >= 0")

        source = self._source(provider_filter, power_tier)
        fallback = False
        if power_tier is not None and not source:
            _LOGGER.info(
                "No %s models for tier %s; ranking all tiers instead",
                provider_filter,
                power_tier,
            )
            source = self._source(provider_filter, None)
            fallback = True

        ranked = sort_models(source, metric)[:limit]
        return RankResult(
            models=ranked,
            metric=metric,
            provider_filter=provider_filter,
            power_tier=power_tier,
            fallback=fallback,
        )


__all__ = ["ModelRanker", "RankResult", "score", "sort_models"]

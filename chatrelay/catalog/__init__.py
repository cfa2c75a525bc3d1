"""Model catalog, ranking and display helpers."""

from .loader import ModelCatalog
from .ranker import ModelRanker, RankResult, score, sort_models
from .render import render_model_card, stars

__all__ = [
    "ModelCatalog",
    "ModelRanker",
    "RankResult",
    "render_model_card",
    "score",
    "sort_models",
    "stars",
]

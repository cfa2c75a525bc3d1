from __future__ import annotations

import pytest

from chatrelay.catalog import ModelCatalog, ModelRanker, score, sort_models

from conftest import make_model


@pytest.fixture()
def ranker() -> ModelRanker:
    catalog = ModelCatalog(
        [
            make_model(
                "alpha",
                title="Alpha",
                coding=5,
                reasoning=1,
                multilingual=1,
                speed=1,
                safety=1,
            ),
            make_model("beta", title="Beta", coding=5, tier="Medium"),
            make_model(
                "charlie",
                title="Charlie",
                coding=4,
                reasoning=4,
                multilingual=4,
                speed=4,
                safety=4,
            ),
            make_model("delta", title="Delta", coding=5, tier="Medium"),
            make_model(
                "gamma",
                provider="groq",
                title="Gamma",
                coding=2,
                speed=5,
                tier="High",
            ),
        ]
    )
    return ModelRanker(catalog)


def _ids(result):
    return [model.model_id for model in result.models]


def test_rank_by_metric_breaks_ties_by_balanced_then_title(ranker):
    result = ranker.rank(metric="coding")

    assert _ids(result) == ["beta", "delta", "alpha", "charlie", "gamma"]
    assert result.fallback is False


def test_rank_balanced(ranker):
    result = ranker.rank()
    assert _ids(result)[:3] == ["charlie", "beta", "delta"]
    assert _ids(result)[-1] == "alpha"


def test_ranking_is_deterministic(ranker):
    first = ranker.rank(metric="speed")
    second = ranker.rank(metric="speed")
    assert first.models == second.models


def test_full_ties_keep_catalog_order():
    catalog = ModelCatalog(
        [
            make_model("twin-a", provider="openrouter", title="Twin"),
            make_model("twin-b", provider="groq", title="Twin"),
        ]
    )
    result = ModelRanker(catalog).rank(metric="coding")
    assert _ids(result) == ["twin-a", "twin-b"]


def test_provider_and_tier_filters(ranker):
    result = ranker.rank(
        metric="coding", provider_filter="openrouter", power_tier="Medium"
    )
    assert _ids(result) == ["beta", "delta"]
    assert result.power_tier == "Medium"
    assert result.fallback is False


def test_empty_tier_falls_back_to_all_tiers(ranker):
    result = ranker.rank(
        metric="coding", provider_filter="groq", power_tier="Low"
    )
    assert _ids(result) == ["gamma"]
    assert result.fallback is True


def test_limit_applies_after_sorting(ranker):
    assert _ids(ranker.rank(metric="coding", limit=2)) == ["beta", "delta"]
    assert len(ranker.rank(metric="coding", limit=0)) == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"metric": "vibes"},
        {"power_tier": "Ultra"},
        {"limit": -1},
    ],
)
def test_invalid_arguments_raise(ranker, kwargs):
    with pytest.raises(ValueError):
        ranker.rank(**kwargs)


def test_score_and_sort_helpers():
    model = make_model("m", coding=5, reasoning=0, speed=5)
    assert score(model, "coding") == 5.0
    assert score(model, "balanced") == pytest.approx(16 / 5)
    with pytest.raises(ValueError):
        score(model, "latency")
    low = make_model("low", title="Low", coding=1)
    assert sort_models([low, model], "coding") == (model, low)


def test_rank_real_catalog(catalog):
    top = ModelRanker(catalog).rank(metric="coding", limit=1)
    assert _ids(top) == ["deepseek/deepseek-chat-v3-0324:free"]

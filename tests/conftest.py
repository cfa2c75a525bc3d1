"""Expose the project root on sys.path and share relay test doubles."""

from __future__ import annotations

import sys

from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import pytest
import yaml

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chatrelay.artifacts.materializer import ArtifactMaterializer  # noqa: E402
from chatrelay.catalog.loader import ModelCatalog  # noqa: E402
from chatrelay.configuration import ChatSettings  # noqa: E402
from chatrelay.llm.providers.router import ProviderRouter  # noqa: E402
from chatrelay.llm.resilient import ResilientChatClient  # noqa: E402
from chatrelay.service import RelayService  # noqa: E402
from chatrelay.store.memory import (  # noqa: E402
    InMemoryChatHistoryStore,
    InMemoryUserSettingsStore,
)
from chatrelay.types import (  # noqa: E402
    ChatCompletionRequest,
    ChatCompletionResponse,
    ModelDescriptor,
    ModelStars,
)

CATALOG_PATH = ROOT / "configs" / "models.catalog.json"

Outcome = Union[str, BaseException]


class ScriptedAdapter:
    """Adapter double that replays queued answers or errors."""

    def __init__(self, name: str, outcomes: Sequence[Outcome] = ()) -> None:
        self._name = name
        self.outcomes: List[Outcome] = list(outcomes)
        self.requests: List[ChatCompletionRequest] = []

    @property
    def name(self) -> str:
        return self._name

    def healthcheck(self) -> bool:
        return True

    def chat(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        self.requests.append(request)
        if not self.outcomes:
            raise AssertionError("ScriptedAdapter has no outcome queued")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return ChatCompletionResponse(
            content=outcome,
            model=request.model,
            provider=self._name,
            latency_ms=1,
        )


def make_model(
    model_id: str,
    *,
    provider: str = "openrouter",
    title: Optional[str] = None,
    tier: str = "Low",
    coding: int = 3,
    reasoning: int = 3,
    multilingual: int = 3,
    speed: int = 3,
    safety: int = 3,
) -> ModelDescriptor:
    return ModelDescriptor(
        provider=provider,
        model_id=model_id,
        title=title or model_id,
        power_tier=tier,
        stars=ModelStars(
            coding=coding,
            reasoning=reasoning,
            multilingual=multilingual,
            speed=speed,
            safety=safety,
        ),
    )


@pytest.fixture()
def adapters() -> dict:
    return {
        "openrouter": ScriptedAdapter("openrouter"),
        "groq": ScriptedAdapter("groq"),
    }


@pytest.fixture()
def catalog() -> ModelCatalog:
    return ModelCatalog.from_file(CATALOG_PATH)


@pytest.fixture()
def make_service(
    tmp_path: Path, adapters: dict, catalog: ModelCatalog
) -> Callable[..., RelayService]:
    def _factory(**kwargs) -> RelayService:
        client = ResilientChatClient(ProviderRouter(adapters))
        return RelayService(
            client,
            kwargs.pop("catalog", catalog),
            InMemoryUserSettingsStore(),
            InMemoryChatHistoryStore(20),
            ArtifactMaterializer(tmp_path / "generated"),
            chat_settings=kwargs.pop("chat_settings", ChatSettings()),
            **kwargs,
        )

    return _factory


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    """Write a config whose artifacts land under ``tmp_path``."""

    config = {
        "relay": {
            "catalog": {"path": str(CATALOG_PATH)},
            "artifacts": {"root": "generated"},
        }
    }
    path = tmp_path / "relay.yaml"
    path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return path

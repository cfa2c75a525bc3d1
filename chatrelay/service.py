"""Request flow: resolve the owner's model, chat, and build artifacts."""

from __future__ import annotations

import logging

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from chatrelay.artifacts.extractor import ArtifactExtractor, ExtractionResult
from chatrelay.artifacts.materializer import ArtifactMaterializer
from chatrelay.catalog.loader import ModelCatalog
from chatrelay.catalog.ranker import ModelRanker, RankResult
from chatrelay.configuration import ChatSettings, RelaySettings
from chatrelay.constants import (
    CHAT_PROVIDERS,
    DEFAULT_RANK_LIMIT,
    METRIC_BALANCED,
    POWER_TIERS,
    PROVIDER_FILTER_ALL,
)
from chatrelay.exceptions import (
    ExtractionFailure,
    NoAvailableModel,
    SystemPromptTooLong,
)
from chatrelay.llm.providers import load_router
from chatrelay.llm.resilient import ResilientChatClient
from chatrelay.prompting.manager import PromptManager
from chatrelay.store.base import (
    ChatHistoryGateway,
    UserSettings,
    UserSettingsGateway,
)
from chatrelay.store.memory import (
    InMemoryChatHistoryStore,
    InMemoryUserSettingsStore,
)
from chatrelay.types import (
    ArtifactBundle,
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    WrittenArtifactBundle,
)

LOGGER = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n...[truncated]"


@dataclass(frozen=True)
class ActiveModel:
    settings: UserSettings
    provider: str
    model: str


@dataclass(frozen=True)
class ChatReply:
    response: ChatCompletionResponse
    saved_path: Optional[Path] = None

    @property
    def content(self) -> str:
        return self.response.content


@dataclass(frozen=True)
class BuildOutcome:
    """Result of a build request.

    When extraction fails ``bundle``/``written`` are None and the caller
    should deliver ``response.content`` as a plain answer.
    """

    response: ChatCompletionResponse
    extraction: ExtractionResult
    written: Optional[WrittenArtifactBundle] = None
    saved_path: Optional[Path] = None

    @property
    def bundle(self) -> Optional[ArtifactBundle]:
        return self.extraction.bundle

    @property
    def ok(self) -> bool:
        return self.written is not None


def clip_for_history(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}{TRUNCATION_MARKER}"


def format_run_instructions(steps: Sequence[str]) -> str:
    if not steps:
        return "Run instructions: not specified."
    lines = ["Run instructions:"]
    lines.extend(f"{index}. {step}" for index, step in enumerate(steps, 1))
    return "\n".join(lines)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RelayService:
    """Wires the chat client, catalog, gateways and artifact pipeline."""

    def __init__(
        self,
        client: ResilientChatClient,
        catalog: ModelCatalog,
        settings_store: UserSettingsGateway,
        history_store: ChatHistoryGateway,
        materializer: ArtifactMaterializer,
        *,
        prompts: Optional[PromptManager] = None,
        extractor: Optional[ArtifactExtractor] = None,
        chat_settings: Optional[ChatSettings] = None,
        large_reply_threshold: int = 12_000,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.client = client
        self.catalog = catalog
        self.ranker = ModelRanker(catalog)
        self.settings_store = settings_store
        self.history_store = history_store
        self.materializer = materializer
        self.prompts = prompts or PromptManager()
        self.extractor = extractor or ArtifactExtractor()
        self.chat_settings = chat_settings or ChatSettings()
        self.large_reply_threshold = large_reply_threshold
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "RelayService":
        router = load_router(settings.providers)
        client = ResilientChatClient(
            router,
            provider_markers={
                name: provider.system_role_markers
                for name, provider in settings.providers.items()
            },
        )
        return cls(
            client,
            ModelCatalog.from_file(settings.catalog.path),
            InMemoryUserSettingsStore(settings.defaults),
            InMemoryChatHistoryStore(settings.chat.history_limit),
            ArtifactMaterializer(settings.artifacts.root),
            chat_settings=settings.chat,
            large_reply_threshold=settings.artifacts.large_reply_threshold,
        )

    # -- settings ---------------------------------------------------------

    def resolve_active_model(self, owner_id: str) -> ActiveModel:
        """Return the owner's model, repairing stale selections."""

        settings = self.settings_store.get_by_user_id(owner_id)
        provider = settings.selected_provider
        model = settings.selected_model
        if not self.catalog.has_model(provider, model):
            fallback = self.catalog.find_default_model(
                provider, settings.selected_power_tier
            )
            if fallback is None:
                raise NoAvailableModel(
                    provider, settings.selected_power_tier
                )
            LOGGER.info(
                "Model %s/%s not in catalog; owner %s falls back to %s",
                provider,
                model,
                owner_id,
                fallback.model_id,
            )
            provider, model = fallback.provider, fallback.model_id
            self.settings_store.set_selected_model(owner_id, provider, model)
            settings = self.settings_store.get_by_user_id(owner_id)
        return ActiveModel(settings=settings, provider=provider, model=model)

    def select_model(
        self, owner_id: str, provider: str, model_id: str
    ) -> None:
        if not self.catalog.has_model(provider, model_id):
            raise ValueError(f"Unknown model {provider}/{model_id}")
        self.settings_store.set_selected_model(owner_id, provider, model_id)

    def select_power_tier(self, owner_id: str, power_tier: str) -> None:
        if power_tier not in POWER_TIERS:
            raise ValueError(
                f"Unknown power tier '{power_tier}'. "
                f"Available: {list(POWER_TIERS)}"
            )
        self.settings_store.set_power_tier(owner_id, power_tier)

    def select_provider(self, owner_id: str, provider: str) -> None:
        """Switch provider, picking its default model for the owner's tier."""

        if provider not in CHAT_PROVIDERS:
            raise ValueError(
                f"Unknown provider '{provider}'. "
                f"Available: {list(CHAT_PROVIDERS)}"
            )
        settings = self.settings_store.get_by_user_id(owner_id)
        model = self.catalog.find_default_model(
            provider, settings.selected_power_tier
        )
        if model is None:
            raise NoAvailableModel(provider, settings.selected_power_tier)
        self.settings_store.set_selected_model(
            owner_id, provider, model.model_id
        )

    def set_system_prompt(self, owner_id: str, prompt: str) -> None:
        normalized = prompt.strip()
        limit = self.chat_settings.max_system_prompt_chars
        if len(normalized) > limit:
            raise SystemPromptTooLong(len(normalized), limit)
        self.settings_store.set_system_prompt(owner_id, normalized)

    def clear_history(self, owner_id: str) -> None:
        self.history_store.clear(owner_id)

    def rank_models(
        self,
        metric: str = METRIC_BALANCED,
        provider_filter: str = PROVIDER_FILTER_ALL,
        power_tier: Optional[str] = None,
        limit: int = DEFAULT_RANK_LIMIT,
    ) -> RankResult:
        return self.ranker.rank(
            metric=metric,
            provider_filter=provider_filter,
            power_tier=power_tier,
            limit=limit,
        )

    # -- requests ---------------------------------------------------------

    def _conversation(
        self, owner_id: str, settings: UserSettings
    ) -> List[ChatMessage]:
        messages: List[ChatMessage] = []
        if settings.system_prompt:
            messages.append(
                ChatMessage(role="system", content=settings.system_prompt)
            )
        messages.extend(self.history_store.get(owner_id))
        return messages

    def _request(
        self, active: ActiveModel, messages: Sequence[ChatMessage]
    ) -> ChatCompletionRequest:
        return ChatCompletionRequest(
            provider=active.provider,
            model=active.model,
            messages=tuple(messages),
            temperature=self.chat_settings.temperature,
            max_tokens=self.chat_settings.max_tokens,
        )

    def _remember(self, owner_id: str, user_text: str, answer: str) -> None:
        self.history_store.add(
            owner_id, ChatMessage(role="user", content=user_text)
        )
        self.history_store.add(
            owner_id,
            ChatMessage(
                role="assistant",
                content=clip_for_history(
                    answer, self.chat_settings.max_history_assistant_chars
                ),
            ),
        )

    def _save_if_large(
        self, owner_id: str, title: str, text: str
    ) -> Optional[Path]:
        if len(text) <= self.large_reply_threshold:
            return None
        stamp = self._clock().strftime("%Y%m%d%H%M%S")
        return self.materializer.write_large_text(
            owner_id, f"{title}-{stamp}.txt", text
        )

    def chat(self, owner_id: str, text: str) -> ChatReply:
        active = self.resolve_active_model(owner_id)
        messages = self._conversation(owner_id, active.settings)
        messages.append(ChatMessage(role="user", content=text))
        response = self.client.chat(self._request(active, messages))
        self._remember(owner_id, text, response.content)
        LOGGER.info(
            "Chat reply for %s via %s/%s in %d ms",
            owner_id,
            response.provider,
            response.model,
            response.latency_ms,
        )
        return ChatReply(
            response=response,
            saved_path=self._save_if_large(
                owner_id, "ai-response", response.content
            ),
        )

    def build(self, owner_id: str, request_text: str) -> BuildOutcome:
        """Ask for a file bundle and write it into the owner's sandbox."""

        active = self.resolve_active_model(owner_id)
        messages = self._conversation(owner_id, active.settings)
        messages.append(
            ChatMessage(
                role="user", content=self.prompts.build_task(request_text)
            )
        )
        response = self.client.chat(self._request(active, messages))
        extraction = self.extractor.extract(response.content)

        try:
            bundle = extraction.require_bundle()
        except ExtractionFailure as exc:
            LOGGER.info("Build for %s produced no bundle: %s", owner_id, exc)
            self._remember(owner_id, request_text, response.content)
            return BuildOutcome(
                response=response,
                extraction=extraction,
                saved_path=self._save_if_large(
                    owner_id, "build-response", response.content
                ),
            )

        written = self.materializer.write_bundle(owner_id, bundle)
        self._remember(owner_id, request_text, bundle.summary)
        return BuildOutcome(
            response=response, extraction=extraction, written=written
        )


__all__ = [
    "ActiveModel",
    "BuildOutcome",
    "ChatReply",
    "RelayService",
    "clip_for_history",
    "format_run_instructions",
]

"""Gateway protocols for per-owner settings and chat history."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Literal, Optional, Protocol, Sequence

from chatrelay.configuration import DefaultModelSettings
from chatrelay.types import ChatMessage

PendingInput = Optional[Literal["system_prompt", "build_request"]]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class UserSettings:
    """Per-owner preferences; replaced wholesale on every update."""

    owner_id: str
    selected_provider: str
    selected_model: str
    selected_power_tier: str
    system_prompt: str = ""
    pending_input: PendingInput = None
    updated_at: str = ""

    @classmethod
    def default(
        cls,
        owner_id: str,
        defaults: Optional[DefaultModelSettings] = None,
    ) -> "UserSettings":
        defaults = defaults or DefaultModelSettings()
        return cls(
            owner_id=owner_id,
            selected_provider=defaults.provider,
            selected_model=defaults.model,
            selected_power_tier=defaults.power_tier,
            updated_at=utc_now_iso(),
        )

    def updated(self, **changes: Any) -> "UserSettings":
        return replace(self, updated_at=utc_now_iso(), **changes)


class UserSettingsGateway(Protocol):
    def get_by_user_id(self, owner_id: str) -> UserSettings: ...

    def set_selected_model(
        self, owner_id: str, provider: str, model_id: str
    ) -> None: ...

    def set_power_tier(self, owner_id: str, power_tier: str) -> None: ...

    def set_system_prompt(self, owner_id: str, prompt: str) -> None: ...

    def set_pending_input(
        self, owner_id: str, pending_input: PendingInput
    ) -> None: ...


class ChatHistoryGateway(Protocol):
    def get(self, owner_id: str) -> Sequence[ChatMessage]: ...

    def add(self, owner_id: str, message: ChatMessage) -> None: ...

    def clear(self, owner_id: str) -> None: ...

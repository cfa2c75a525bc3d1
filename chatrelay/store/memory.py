"""In-memory gateway implementations, constructed once per process."""

from __future__ import annotations

import threading

from typing import Dict, Optional, Tuple

from chatrelay.configuration import DefaultModelSettings
from chatrelay.store.base import PendingInput, UserSettings
from chatrelay.types import ChatMessage


class InMemoryUserSettingsStore:
    def __init__(self, defaults: Optional[DefaultModelSettings] = None):
        self._defaults = defaults or DefaultModelSettings()
        self._by_owner: Dict[str, UserSettings] = {}
        self._lock = threading.Lock()

    def get_by_user_id(self, owner_id: str) -> UserSettings:
        with self._lock:
            return self._get_or_create(owner_id)

    def set_selected_model(
        self, owner_id: str, provider: str, model_id: str
    ) -> None:
        self._update(
            owner_id, selected_provider=provider, selected_model=model_id
        )

    def set_power_tier(self, owner_id: str, power_tier: str) -> None:
        self._update(owner_id, selected_power_tier=power_tier)

    def set_system_prompt(self, owner_id: str, prompt: str) -> None:
        self._update(owner_id, system_prompt=prompt)

    def set_pending_input(
        self, owner_id: str, pending_input: PendingInput
    ) -> None:
        self._update(owner_id, pending_input=pending_input)

    def _update(self, owner_id: str, **changes) -> None:
        with self._lock:
            current = self._get_or_create(owner_id)
            self._by_owner[owner_id] = current.updated(**changes)

    def _get_or_create(self, owner_id: str) -> UserSettings:
        existing = self._by_owner.get(owner_id)
        if existing is not None:
            return existing
        created = UserSettings.default(owner_id, self._defaults)
        self._by_owner[owner_id] = created
        return created


class InMemoryChatHistoryStore:
    """Keeps the most recent ``max_messages`` per owner, oldest dropped."""

    def __init__(self, max_messages: int = 20) -> None:
        if max_messages < 1:
            raise ValueError("max_messages must be >= 1")
        self.max_messages = max_messages
        self._by_owner: Dict[str, Tuple[ChatMessage, ...]] = {}
        self._lock = threading.Lock()

    def get(self, owner_id: str) -> Tuple[ChatMessage, ...]:
        with self._lock:
            return self._by_owner.get(owner_id, ())

    def add(self, owner_id: str, message: ChatMessage) -> None:
        with self._lock:
            history = self._by_owner.get(owner_id, ()) + (message,)
            self._by_owner[owner_id] = history[-self.max_messages :]

    def clear(self, owner_id: str) -> None:
        with self._lock:
            self._by_owner.pop(owner_id, None)

"""Settings and chat-history gateways."""

from .base import (
    ChatHistoryGateway,
    PendingInput,
    UserSettings,
    UserSettingsGateway,
)
from .memory import InMemoryChatHistoryStore, InMemoryUserSettingsStore

__all__ = [
    "ChatHistoryGateway",
    "InMemoryChatHistoryStore",
    "InMemoryUserSettingsStore",
    "PendingInput",
    "UserSettings",
    "UserSettingsGateway",
]

"""LLM access: provider adapters, routing and the resilient chat client."""

from .providers import ProviderRouter, load_router
from .resilient import ResilientChatClient

__all__ = ["ProviderRouter", "ResilientChatClient", "load_router"]

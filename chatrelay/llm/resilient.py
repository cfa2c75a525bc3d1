"""Chat client that degrades once when a backend rejects system messages.

Some OpenAI-compatible backends refuse requests that carry a ``system``
role message. The only signal is the wording of the error, so detection
is a heuristic over a small table of known phrasings. When it matches,
the system instructions are folded into the first user message and the
call is re-issued exactly once.

The attempt is tracked as a tiny state machine::

    INITIAL -> SUCCEEDED
    INITIAL -> FAILED
    INITIAL -> RETRIED_WITHOUT_SYSTEM_ROLE -> SUCCEEDED | FAILED
"""

from __future__ import annotations

import enum
import logging

from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Tuple

from chatrelay.llm.providers.router import ProviderRouter
from chatrelay.types import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
)

_LOGGER = logging.getLogger(__name__)

Marker = Tuple[str, ...]

# Heuristic: every phrase of a marker must occur (case-insensitive) in the
# error text. Backends with other wording need entries here or in the
# provider's ``system_role_markers`` config.
DEFAULT_SYSTEM_ROLE_MARKERS: Tuple[Marker, ...] = (
    ("developer instruction is not enabled",),
    ("system instruction is not enabled",),
    ("role", "system"),
)

SYSTEM_BLOCK_HEADER = "IMPORTANT INSTRUCTIONS (from system prompt):"
SYSTEM_BLOCK_FOOTER = "Follow them as high-priority constraints."


class AttemptState(enum.Enum):
    INITIAL = "initial"
    RETRIED_WITHOUT_SYSTEM_ROLE = "retried_without_system_role"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS = {
    AttemptState.INITIAL: {
        AttemptState.SUCCEEDED,
        AttemptState.FAILED,
        AttemptState.RETRIED_WITHOUT_SYSTEM_ROLE,
    },
    AttemptState.RETRIED_WITHOUT_SYSTEM_ROLE: {
        AttemptState.SUCCEEDED,
        AttemptState.FAILED,
    },
    AttemptState.SUCCEEDED: set(),
    AttemptState.FAILED: set(),
}


@dataclass
class ChatAttempt:
    """Trace of one logical chat call."""

    request: ChatCompletionRequest
    state: AttemptState = AttemptState.INITIAL
    history: List[AttemptState] = field(
        default_factory=lambda: [AttemptState.INITIAL]
    )
    calls: int = 0

    def advance(self, new_state: AttemptState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid chat attempt transition {self.state.value} -> "
                f"{new_state.value}"
            )
        self.state = new_state
        self.history.append(new_state)

    @property
    def retried(self) -> bool:
        return AttemptState.RETRIED_WITHOUT_SYSTEM_ROLE in self.history


def matches_system_role_rejection(
    error: BaseException | str,
    markers: Sequence[Marker] = DEFAULT_SYSTEM_ROLE_MARKERS,
) -> bool:
    """Whether ``error`` reads like a refusal of system-role messages."""

    text = str(error).lower()
    return any(
        marker and all(term in text for term in marker) for marker in markers
    )


def fold_system_messages(
    messages: Sequence[ChatMessage],
) -> Tuple[ChatMessage, ...]:
    """Move system instructions into the leading user message."""

    system_parts = [
        message.content.strip()
        for message in messages
        if message.role == "system"
    ]
    system_parts = [part for part in system_parts if part]
    others = [message for message in messages if message.role != "system"]
    if not system_parts:
        return tuple(others)

    block = (
        f"{SYSTEM_BLOCK_HEADER}\n"
        + "\n\n".join(system_parts)
        + f"\n\n{SYSTEM_BLOCK_FOOTER}"
    )
    if not others:
        return (ChatMessage(role="user", content=block),)
    first, rest = others[0], others[1:]
    if first.role == "user":
        merged = ChatMessage(
            role="user", content=f"{block}\n\n{first.content}"
        )
        return (merged, *rest)
    return (ChatMessage(role="user", content=block), *others)


class ResilientChatClient:
    """Routes chat calls and applies the role-compatibility retry."""

    def __init__(
        self,
        router: ProviderRouter,
        *,
        markers: Sequence[Marker] = DEFAULT_SYSTEM_ROLE_MARKERS,
        provider_markers: Optional[Mapping[str, Sequence[Marker]]] = None,
    ) -> None:
        self._router = router
        self._markers = tuple(markers)
        self._provider_markers = {
            name: tuple(extra)
            for name, extra in (provider_markers or {}).items()
        }

    @property
    def router(self) -> ProviderRouter:
        return self._router

    def markers_for(self, provider: str) -> Tuple[Marker, ...]:
        return self._markers + self._provider_markers.get(provider, ())

    def chat(
        self,
        request: ChatCompletionRequest,
        attempt: Optional[ChatAttempt] = None,
    ) -> ChatCompletionResponse:
        """Send ``request``, retrying once if the system role is refused.

        Pass a fresh ``attempt`` to observe the call's state trace; the
        client itself keeps no per-call state.
        """

        if attempt is None:
            attempt = ChatAttempt(request=request)
        elif attempt.request != request:
            raise ValueError("ChatAttempt belongs to a different request")
        elif attempt.calls:
            raise ValueError("ChatAttempt has already been used")
        adapter = self._router.get(request.provider)

        try:
            attempt.calls += 1
            response = adapter.chat(request)
        except Exception as exc:
            if not (
                request.has_system_message
                and matches_system_role_rejection(
                    exc, self.markers_for(request.provider)
                )
            ):
                attempt.advance(AttemptState.FAILED)
                raise
            first_error = exc
        else:
            attempt.advance(AttemptState.SUCCEEDED)
            return response

        attempt.advance(AttemptState.RETRIED_WITHOUT_SYSTEM_ROLE)
        _LOGGER.info(
            "Provider %s rejected system role (%s); retrying with "
            "instructions folded into the user message",
            request.provider,
            first_error,
        )
        retry_request = request.with_messages(
            fold_system_messages(request.messages)
        )
        try:
            attempt.calls += 1
            response = adapter.chat(retry_request)
        except Exception:
            attempt.advance(AttemptState.FAILED)
            raise
        attempt.advance(AttemptState.SUCCEEDED)
        return response


__all__ = [
    "AttemptState",
    "ChatAttempt",
    "DEFAULT_SYSTEM_ROLE_MARKERS",
    "ResilientChatClient",
    "fold_system_messages",
    "matches_system_role_rejection",
]

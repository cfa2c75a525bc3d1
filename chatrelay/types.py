"""Core dataclasses shared across the relay."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple

from chatrelay.constants import POWER_TIERS, STAR_METRICS

Role = Literal["system", "user", "assistant"]
ChatProvider = Literal["openrouter", "groq"]
PowerTier = Literal["Low", "Medium", "High", "eHigh"]

ROLES = ("system", "user", "assistant")


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """Single chat message exchanged with a model."""

    role: Role
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Unsupported chat role: {self.role!r}")

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True, slots=True)
class ChatCompletionRequest:
    """Immutable request handed to a provider adapter."""

    provider: str
    model: str
    messages: Tuple[ChatMessage, ...]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None

    def __post_init__(self) -> None:
        # Accept any sequence but store a tuple.
        object.__setattr__(self, "messages", tuple(self.messages))

    @property
    def has_system_message(self) -> bool:
        return any(message.role == "system" for message in self.messages)

    def with_messages(
        self, messages: Tuple[ChatMessage, ...]
    ) -> "ChatCompletionRequest":
        return ChatCompletionRequest(
            provider=self.provider,
            model=self.model,
            messages=tuple(messages),
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )


@dataclass(frozen=True, slots=True)
class TokenUsage:
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


@dataclass(frozen=True, slots=True)
class ChatCompletionResponse:
    """Standardized response from a provider adapter."""

    content: str
    model: str
    provider: str
    latency_ms: int
    usage: Optional[TokenUsage] = None


@dataclass(frozen=True, slots=True)
class ModelStars:
    """Per-dimension quality ratings, each an integer from 0 to 5."""

    coding: int
    reasoning: int
    multilingual: int
    speed: int
    safety: int

    def __post_init__(self) -> None:
        for metric in STAR_METRICS:
            value = getattr(self, metric)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"stars.{metric} must be an integer")
            if not 0 <= value <= 5:
                raise ValueError(f"stars.{metric} must be between 0 and 5")

    @property
    def balanced(self) -> float:
        values = [getattr(self, metric) for metric in STAR_METRICS]
        return sum(values) / len(values)

    def to_dict(self) -> Dict[str, int]:
        return {metric: getattr(self, metric) for metric in STAR_METRICS}


@dataclass(frozen=True, slots=True)
class ModelDescriptor:
    """Catalog entry for one model; ``(provider, model_id)`` is unique."""

    provider: str
    model_id: str
    title: str
    power_tier: str
    stars: ModelStars
    tags: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.power_tier not in POWER_TIERS:
            raise ValueError(f"Unknown power tier: {self.power_tier!r}")
        object.__setattr__(self, "tags", tuple(self.tags))

    @property
    def key(self) -> Tuple[str, str]:
        return (self.provider, self.model_id)


@dataclass(frozen=True, slots=True)
class GeneratedArtifactFile:
    path: str
    content: str
    language: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ArtifactBundle:
    """Validated set of generated files recovered from a model answer."""

    summary: str
    files: Tuple[GeneratedArtifactFile, ...]
    run_instructions: Tuple[str, ...] = field(default_factory=tuple)
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "files", tuple(self.files))
        object.__setattr__(
            self, "run_instructions", tuple(self.run_instructions)
        )
        if not self.files:
            raise ValueError("An artifact bundle needs at least one file")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "summary": self.summary,
            "files": [
                {
                    key: value
                    for key, value in (
                        ("path", item.path),
                        ("content", item.content),
                        ("language", item.language),
                        ("description", item.description),
                    )
                    if value is not None
                }
                for item in self.files
            ],
            "runInstructions": list(self.run_instructions),
        }
        if self.notes is not None:
            data["notes"] = self.notes
        return data


@dataclass(frozen=True, slots=True)
class WrittenArtifactFile:
    relative_path: str
    absolute_path: Path
    content: str


@dataclass(frozen=True, slots=True)
class WrittenArtifactBundle:
    """Files materialized on disk; every path lives under ``base_dir``."""

    base_dir: Path
    files: Tuple[WrittenArtifactFile, ...]


__all__ = [
    "ArtifactBundle",
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    "ChatMessage",
    "ChatProvider",
    "GeneratedArtifactFile",
    "ModelDescriptor",
    "ModelStars",
    "PowerTier",
    "Role",
    "TokenUsage",
    "WrittenArtifactBundle",
    "WrittenArtifactFile",
]

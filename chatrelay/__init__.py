"""chatrelay package entry point."""

from .exceptions import (
    ArtifactWriteError,
    ExtractionFailure,
    InvalidOutputPath,
    NoAvailableModel,
    ProviderError,
    RelayError,
)
from .service import BuildOutcome, ChatReply, RelayService
from .types import (
    ArtifactBundle,
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    GeneratedArtifactFile,
    ModelDescriptor,
)

__all__ = [
    "ArtifactBundle",
    "ArtifactWriteError",
    "BuildOutcome",
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    "ChatMessage",
    "ChatReply",
    "ExtractionFailure",
    "GeneratedArtifactFile",
    "InvalidOutputPath",
    "ModelDescriptor",
    "NoAvailableModel",
    "ProviderError",
    "RelayError",
    "RelayService",
]

"""Custom exceptions for the chat relay."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from chatrelay.artifacts.extractor import NormalizationReport


class RelayError(RuntimeError):
    """Base exception for relay failures surfaced to callers."""


class ConfigurationError(RelayError):
    """Raised when settings or the model catalog are unusable."""


class NoAvailableModel(ConfigurationError):
    """Raised when no catalog model can serve an owner's request."""

    def __init__(self, provider: str, power_tier: Optional[str] = None):
        self.provider = provider
        self.power_tier = power_tier
        super().__init__(
            f"No available model for provider '{provider}'. "
            "Check the model catalog."
        )


class ProviderError(RelayError):
    """Base class for failures of a single backend call."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderHttpError(ProviderError):
    """Backend answered with a non-success HTTP status."""

    def __init__(self, provider: str, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(
            provider, f"Provider {provider} error {status_code}: {body}"
        )


class ProviderEmptyResponse(ProviderError):
    """Backend answered successfully but without completion text."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            provider, f"Provider {provider} returned empty content"
        )


class ProviderTimeoutError(ProviderError):
    """The bounded backend call exceeded its deadline and was aborted."""

    def __init__(self, provider: str, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(
            provider, f"Provider {provider} timed out after {timeout_ms} ms"
        )


class ProviderConnectionError(ProviderError):
    """The backend could not be reached."""

    def __init__(self, provider: str, details: str) -> None:
        super().__init__(
            provider, f"Provider {provider} connection failed: {details}"
        )


class ProviderUnavailableError(ProviderError):
    """The adapter has no usable client (usually a missing API key)."""

    def __init__(self, provider: str, api_key_env: str) -> None:
        self.api_key_env = api_key_env
        super().__init__(
            provider,
            f"Provider {provider} is not available: set {api_key_env}",
        )


class UnknownProviderError(KeyError):
    """Raised for provider identifiers outside the registered set."""


class ExtractionFailure(RelayError):
    """No artifact bundle with at least one file could be recovered."""

    def __init__(
        self, message: str, report: "NormalizationReport | None" = None
    ) -> None:
        self.report = report
        super().__init__(message)


class InvalidOutputPath(RelayError):
    """A sanitized output path still resolved outside the owner's sandbox."""

    def __init__(self, path: str, base_dir: Path) -> None:
        self.path = path
        self.base_dir = base_dir
        super().__init__(f"Invalid output path detected: {path}")


class SystemPromptTooLong(RelayError):
    """Raised when a system prompt exceeds the configured limit."""

    def __init__(self, length: int, limit: int) -> None:
        self.length = length
        self.limit = limit
        super().__init__(
            f"System prompt is too long. Max length is {limit} characters."
        )


class ArtifactWriteError(RelayError):
    """A bundle could not be written into the owner's sandbox."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot write artifact file {path}: {reason}")

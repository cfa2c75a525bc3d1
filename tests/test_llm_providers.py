from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List

import httpx
import openai
import pytest

from chatrelay.configuration import ProviderSettings
from chatrelay.exceptions import (
    ProviderConnectionError,
    ProviderEmptyResponse,
    ProviderHttpError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    UnknownProviderError,
)
from chatrelay.llm.providers import (
    GroqAdapter,
    OpenAICompatibleAdapter,
    OpenRouterAdapter,
    ProviderRouter,
    load_provider,
    load_router,
)
from chatrelay.types import ChatCompletionRequest, ChatMessage

_REQUEST = httpx.Request("POST", "https://example.test/v1/chat/completions")


def _completion(content: Any, usage: Any = None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=usage,
    )


class _FakeCompletions:
    def __init__(self, outcome: Any) -> None:
        self.outcome = outcome
        self.calls: List[Dict[str, Any]] = []

    def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


class _FakeClient:
    def __init__(self, outcome: Any) -> None:
        self.completions = _FakeCompletions(outcome)
        self.chat = SimpleNamespace(completions=self.completions)


def _adapter(outcome: Any, **kwargs: Any) -> OpenAICompatibleAdapter:
    return OpenAICompatibleAdapter(
        "groq",
        base_url="https://api.groq.com/openai/v1/",
        api_key_env="GROQ_API_KEY",
        client=_FakeClient(outcome),
        **kwargs,
    )


def _request(**kwargs: Any) -> ChatCompletionRequest:
    return ChatCompletionRequest(
        provider="groq",
        model="llama-3.1-8b-instant",
        messages=(
            ChatMessage(role="system", content="Be brief."),
            ChatMessage(role="user", content="hi"),
        ),
        **kwargs,
    )


def test_chat_returns_trimmed_content_and_usage():
    usage = SimpleNamespace(
        prompt_tokens=7, completion_tokens=3, total_tokens=10
    )
    adapter = _adapter(_completion("  hello there \n", usage))

    response = adapter.chat(_request())

    assert response.content == "hello there"
    assert response.provider == "groq"
    assert response.model == "llama-3.1-8b-instant"
    assert response.latency_ms >= 0
    assert response.usage is not None
    assert response.usage.prompt_tokens == 7
    assert response.usage.completion_tokens == 3
    assert response.usage.total_tokens == 10


def test_chat_sends_messages_and_omits_unset_options():
    adapter = _adapter(_completion("ok"), timeout_ms=1500)

    adapter.chat(_request())

    call = adapter.client.completions.calls[0]
    assert call["model"] == "llama-3.1-8b-instant"
    assert call["messages"] == [
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "hi"},
    ]
    assert call["timeout"] == 1.5
    assert "temperature" not in call
    assert "max_tokens" not in call


def test_chat_passes_temperature_and_max_tokens():
    adapter = _adapter(_completion("ok"))

    adapter.chat(_request(temperature=0.2, max_tokens=256))

    call = adapter.client.completions.calls[0]
    assert call["temperature"] == 0.2
    assert call["max_tokens"] == 256


def test_usage_is_optional():
    adapter = _adapter(_completion("ok"))
    assert adapter.chat(_request()).usage is None


@pytest.mark.parametrize("content", [None, "", "   \n"])
def test_empty_content_raises(content):
    adapter = _adapter(_completion(content))
    with pytest.raises(ProviderEmptyResponse):
        adapter.chat(_request())


def test_missing_choices_raise_empty_response():
    adapter = _adapter(SimpleNamespace(choices=[], usage=None))
    with pytest.raises(ProviderEmptyResponse):
        adapter.chat(_request())


def test_http_error_carries_status_and_body():
    response = httpx.Response(
        400,
        request=_REQUEST,
        text='{"error": "system instruction is not enabled"}',
    )
    error = openai.BadRequestError("bad request", response=response, body=None)
    adapter = _adapter(error)

    with pytest.raises(ProviderHttpError) as excinfo:
        adapter.chat(_request())

    assert excinfo.value.status_code == 400
    assert excinfo.value.provider == "groq"
    assert "system instruction is not enabled" in excinfo.value.body
    assert str(excinfo.value).startswith("Provider groq error 400:")
    assert excinfo.value.__cause__ is error


def test_http_error_body_is_redacted(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "gsk-super-secret-1234")
    response = httpx.Response(
        401, request=_REQUEST, text="bad key gsk-super-secret-1234"
    )
    adapter = _adapter(
        openai.APIStatusError("unauthorized", response=response, body=None)
    )

    with pytest.raises(ProviderHttpError) as excinfo:
        adapter.chat(_request())

    assert "gsk-super-secret-1234" not in str(excinfo.value)
    assert "<REDACTED_KEY>" in excinfo.value.body


def test_timeout_maps_to_provider_timeout():
    adapter = _adapter(openai.APITimeoutError(request=_REQUEST), timeout_ms=10)

    with pytest.raises(ProviderTimeoutError) as excinfo:
        adapter.chat(_request())

    assert excinfo.value.timeout_ms == 10


def test_connection_error_is_surfaced():
    adapter = _adapter(openai.APIConnectionError(request=_REQUEST))
    with pytest.raises(ProviderConnectionError):
        adapter.chat(_request())


def test_missing_key_disables_adapter(monkeypatch):
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    adapter = GroqAdapter()

    assert adapter.client is None
    assert adapter.healthcheck() is False
    with pytest.raises(ProviderUnavailableError) as excinfo:
        adapter.chat(_request())
    assert excinfo.value.api_key_env == "GROQ_API_KEY"


def test_placeholder_key_counts_as_missing(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "your-api-key-here")
    assert OpenRouterAdapter().healthcheck() is False


def test_real_client_gets_base_url_and_headers(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-test-key")
    adapter = OpenRouterAdapter()

    assert adapter.healthcheck() is True
    assert str(adapter.client.base_url).rstrip("/") == (
        "https://openrouter.ai/api/v1"
    )
    assert adapter.client.default_headers["X-Title"] == (
        "Multi AI Telegram Bot"
    )
    assert adapter.client.default_headers["HTTP-Referer"] == (
        "https://telegram.org"
    )
    assert adapter.client.max_retries == 0


def test_load_provider_uses_settings():
    client = _FakeClient(_completion("pong"))
    settings = ProviderSettings(
        name="groq",
        base_url="https://groq.example/v1",
        api_key_env="CUSTOM_GROQ_KEY",
        timeout_ms=2000,
    )

    adapter = load_provider(settings, client=client)

    assert isinstance(adapter, GroqAdapter)
    assert adapter.base_url == "https://groq.example/v1"
    assert adapter.api_key_env == "CUSTOM_GROQ_KEY"
    assert adapter.timeout_ms == 2000
    assert adapter.chat(_request()).content == "pong"


def test_load_provider_rejects_unknown_name():
    settings = ProviderSettings(
        name="mystery", base_url="http://x", api_key_env="X"
    )
    with pytest.raises(ValueError):
        load_provider(settings)


def test_load_router_builds_one_adapter_per_provider(monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    providers = {
        "openrouter": ProviderSettings(
            name="openrouter",
            base_url="https://openrouter.ai/api/v1",
            api_key_env="OPENROUTER_API_KEY",
        ),
        "groq": ProviderSettings(
            name="groq",
            base_url="https://api.groq.com/openai/v1",
            api_key_env="GROQ_API_KEY",
        ),
    }

    router = load_router(providers)

    assert router.providers() == ("openrouter", "groq")
    assert "groq" in router
    assert isinstance(router.get("openrouter"), OpenRouterAdapter)


def test_router_rejects_unknown_provider():
    router = ProviderRouter({"groq": _adapter(_completion("ok"))})
    with pytest.raises(UnknownProviderError):
        router.get("anthropic")
    with pytest.raises(KeyError):
        router.get("")

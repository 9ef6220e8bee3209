"""Tests for the concrete providers, with the remote APIs mocked out."""

import types
from unittest.mock import MagicMock

import httpx
import openai
import pytest
import requests
from google.api_core import exceptions as google_exceptions

from stock_vision.config import AppConfig
from stock_vision.providers import CapabilityClass, FailureKind, ProviderError, TaskRequest, build_registry
from stock_vision.providers import cloudflare as cloudflare_module
from stock_vision.providers.cloudflare import CloudflareProvider
from stock_vision.providers.gemini import GeminiProvider
from stock_vision.providers.openai_compatible import create_groq_provider, create_openrouter_provider

_HTTP_REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def _chat_response(content):
    message = types.SimpleNamespace(content=content)
    return types.SimpleNamespace(choices=[types.SimpleNamespace(message=message)])


def _status_error(cls, status, body=None):
    return cls("request failed", response=httpx.Response(status, request=_HTTP_REQUEST), body=body)


def _openrouter(models=("model-a",), capability=CapabilityClass.TEXT):
    provider = create_openrouter_provider(capability, "sk-or-test-key", list(models))
    provider._client = MagicMock()
    return provider


# ===========================================
# OpenAI-compatible providers
# ===========================================

class TestOpenAICompatibleProvider:
    def test_returns_message_content(self):
        provider = _openrouter()
        provider._client.chat.completions.create.return_value = _chat_response("## Report")

        assert provider.invoke(TaskRequest(prompt="write")) == "## Report"
        kwargs = provider._client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "model-a"
        assert kwargs["messages"] == [{"role": "user", "content": "write"}]

    def test_image_is_sent_as_data_url(self):
        provider = _openrouter(capability=CapabilityClass.VISION)
        provider._client.chat.completions.create.return_value = _chat_response("{}")

        provider.invoke(TaskRequest(prompt="read", image=b"png"))

        content = provider._client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "read"}
        assert content[1]["image_url"]["url"] == "data:image/png;base64,cG5n"

    @pytest.mark.parametrize("error, kind", [
        (_status_error(openai.RateLimitError, 429), FailureKind.RATE_LIMITED),
        (_status_error(openai.InternalServerError, 503), FailureKind.SERVICE_UNAVAILABLE),
        (_status_error(openai.NotFoundError, 404), FailureKind.NOT_FOUND_OR_REMOVED),
        (_status_error(openai.BadRequestError, 400, {"code": "model_decommissioned"}), FailureKind.NOT_FOUND_OR_REMOVED),
        (_status_error(openai.InternalServerError, 500), FailureKind.OTHER),
        (openai.APIConnectionError(request=_HTTP_REQUEST), FailureKind.OTHER),
    ])
    def test_errors_are_classified(self, error, kind):
        provider = _openrouter()
        provider._client.chat.completions.create.side_effect = error

        with pytest.raises(ProviderError) as exc_info:
            provider.invoke(TaskRequest(prompt="write"))

        assert exc_info.value.kind is kind
        assert exc_info.value.provider == "openrouter"

    def test_empty_content_is_a_failure(self):
        provider = _openrouter()
        provider._client.chat.completions.create.return_value = _chat_response("   ")

        with pytest.raises(ProviderError) as exc_info:
            provider.invoke(TaskRequest(prompt="write"))
        assert exc_info.value.kind is FailureKind.OTHER

    def test_model_fallback_on_rate_limit(self):
        provider = _openrouter(models=("model-a", "model-b"))
        provider._client.chat.completions.create.side_effect = [
            _status_error(openai.RateLimitError, 429),
            _chat_response("from b"),
            _chat_response("from b again"),
        ]

        assert provider.invoke(TaskRequest(prompt="x")) == "from b"
        assert provider.invoke(TaskRequest(prompt="x")) == "from b again"
        models = [c.kwargs["model"] for c in provider._client.chat.completions.create.call_args_list]
        assert models == ["model-a", "model-b", "model-b"]

    def test_missing_api_key_disables_provider(self):
        assert create_groq_provider(CapabilityClass.TEXT, None, ["llama"]).enabled is False
        assert create_groq_provider(CapabilityClass.TEXT, "gsk_key", []).enabled is False
        assert create_groq_provider(CapabilityClass.TEXT, "gsk_key", ["llama"]).enabled is True


# ===========================================
# Gemini
# ===========================================

class _FakeModel:
    outcomes = []
    keys = []

    def __init__(self, model_name):
        self.model_name = model_name

    def generate_content(self, parts, generation_config=None, request_options=None):
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return types.SimpleNamespace(text=outcome)


@pytest.fixture
def fake_genai(monkeypatch):
    import google.generativeai as genai

    _FakeModel.outcomes = []
    _FakeModel.keys = []
    monkeypatch.setattr(genai, "configure", lambda api_key: _FakeModel.keys.append(api_key))
    monkeypatch.setattr(genai, "GenerativeModel", _FakeModel)
    return _FakeModel


class TestGeminiProvider:
    def test_rotates_to_next_key_on_quota_error(self, fake_genai):
        fake_genai.outcomes = [google_exceptions.ResourceExhausted("quota"), "answer", "second answer"]
        provider = GeminiProvider(CapabilityClass.VISION, ["key-one", "key-two"])

        assert provider.invoke(TaskRequest(prompt="read", image=b"png")) == "answer"
        assert provider.invoke(TaskRequest(prompt="read", image=b"png")) == "second answer"
        assert fake_genai.keys == ["key-one", "key-two", "key-two"]

    def test_all_keys_exhausted(self, fake_genai):
        fake_genai.outcomes = [google_exceptions.ResourceExhausted("quota"), google_exceptions.ServiceUnavailable("down")]
        provider = GeminiProvider(CapabilityClass.TEXT, ["key-one", "key-two"])

        with pytest.raises(ProviderError) as exc_info:
            provider.invoke(TaskRequest(prompt="write"))
        assert exc_info.value.kind is FailureKind.EXHAUSTED

    def test_single_key_keeps_status_classification(self, fake_genai):
        fake_genai.outcomes = [google_exceptions.NotFound("model gone")]
        provider = GeminiProvider(CapabilityClass.TEXT, ["key-one"])

        with pytest.raises(ProviderError) as exc_info:
            provider.invoke(TaskRequest(prompt="write"))
        assert exc_info.value.kind is FailureKind.NOT_FOUND_OR_REMOVED

    def test_blocked_response_is_other(self, fake_genai):
        fake_genai.outcomes = [ValueError("response was blocked")]
        provider = GeminiProvider(CapabilityClass.TEXT, ["key-one"])

        with pytest.raises(ProviderError) as exc_info:
            provider.invoke(TaskRequest(prompt="write"))
        assert exc_info.value.kind is FailureKind.OTHER

    def test_keys_are_never_logged_as_labels(self):
        provider = GeminiProvider(CapabilityClass.TEXT, ["secret-one", "secret-two"])

        assert provider.variant_label(1) == "key #2"
        assert "secret" not in repr(provider)

    def test_no_keys_disables_provider(self):
        assert GeminiProvider(CapabilityClass.TEXT, []).enabled is False


# ===========================================
# Cloudflare
# ===========================================

def _cf_response(status_code=200, payload=None, text=""):
    return types.SimpleNamespace(status_code=status_code, text=text, json=lambda: payload)


class TestCloudflareProvider:
    def _provider(self):
        return CloudflareProvider(CapabilityClass.VISION, "account-id", "cf-token", ["@cf/meta/llama-3.2-11b-vision-instruct"])

    def test_posts_prompt_and_image(self, monkeypatch):
        post = MagicMock(return_value=_cf_response(payload={"success": True, "result": {"response": "{}"}}))
        monkeypatch.setattr(cloudflare_module.requests, "post", post)

        assert self._provider().invoke(TaskRequest(prompt="read", image=b"png")) == "{}"

        url = post.call_args.args[0]
        assert url.endswith("/accounts/account-id/ai/run/@cf/meta/llama-3.2-11b-vision-instruct")
        assert post.call_args.kwargs["json"]["image"] == "cG5n"
        assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer cf-token"

    @pytest.mark.parametrize("status, kind", [
        (429, FailureKind.RATE_LIMITED),
        (503, FailureKind.SERVICE_UNAVAILABLE),
        (500, FailureKind.OTHER),
    ])
    def test_http_errors_are_classified(self, monkeypatch, status, kind):
        monkeypatch.setattr(cloudflare_module.requests, "post", MagicMock(return_value=_cf_response(status, text="error")))

        with pytest.raises(ProviderError) as exc_info:
            self._provider().invoke(TaskRequest(prompt="read"))
        assert exc_info.value.kind is kind
        assert exc_info.value.status_code == status

    def test_unsuccessful_envelope(self, monkeypatch):
        payload = {"success": False, "errors": [{"message": "bad input"}]}
        monkeypatch.setattr(cloudflare_module.requests, "post", MagicMock(return_value=_cf_response(payload=payload)))

        with pytest.raises(ProviderError) as exc_info:
            self._provider().invoke(TaskRequest(prompt="read"))
        assert exc_info.value.kind is FailureKind.OTHER

    def test_network_error(self, monkeypatch):
        monkeypatch.setattr(cloudflare_module.requests, "post", MagicMock(side_effect=requests.ConnectionError("down")))

        with pytest.raises(ProviderError) as exc_info:
            self._provider().invoke(TaskRequest(prompt="read"))
        assert exc_info.value.kind is FailureKind.OTHER

    def test_requires_account_and_token(self):
        assert CloudflareProvider(CapabilityClass.VISION, "account-id", None, ["m"]).enabled is False


# ===========================================
# Registry construction
# ===========================================

def test_build_registry_follows_configured_order():
    config = AppConfig(
        openrouter_api_key="sk-or-key",
        groq_api_key="gsk_key",
        provider_order={
            "vision": ["gemini", "openrouter", "cloudflare"],
            "text": ["groq", "cloudflare", "mystery", "openrouter"],
            "reasoning": ["groq"],
        },
    )

    registry = build_registry(config)

    assert [p.key for p in registry.providers(CapabilityClass.VISION)] == ["gemini", "openrouter", "cloudflare"]
    # Cloudflare only serves vision, unknown keys are ignored
    assert [p.key for p in registry.providers(CapabilityClass.TEXT)] == ["groq", "openrouter"]
    enabled = {p.key: p.enabled for p in registry.providers(CapabilityClass.VISION)}
    assert enabled == {"gemini": False, "openrouter": True, "cloudflare": False}
    # Each capability class owns its own provider instance
    assert registry.get(CapabilityClass.TEXT, "groq") is not registry.get(CapabilityClass.REASONING, "groq")

"""
Tests for settings, the provider factory and provider error translation.
"""

import time
from types import SimpleNamespace

import httpx
import openai
import pytest
from pydantic import ValidationError as PydanticValidationError

from grade_engine.ai.base_provider import APIErrorContext, stop_after_call_budget
from grade_engine.ai.batch_grader import AIGradingClient
from grade_engine.ai.gemini_provider import GeminiProvider
from grade_engine.ai.openai_provider import OpenAIProvider
from grade_engine.ai.provider_factory import create_ai_provider, get_available_providers
from grade_engine.config.settings import Settings
from grade_engine.core.exceptions import (
    APIConnectionError,
    APITimeoutError,
    ConfigurationError,
    ParsingError,
    ProviderError,
)


def make_settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


# ============================================================================
# Settings
# ============================================================================

def test_default_settings(monkeypatch):
    monkeypatch.delenv("GRADE_ENGINE_AI_PROVIDER", raising=False)
    settings = make_settings()

    assert settings.ai_provider == "none"
    assert settings.ai_timeout_seconds == 30
    assert settings.fallback_score_ratio == 0.7
    assert settings.database_url.startswith("sqlite")


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("GRADE_ENGINE_AI_PROVIDER", "OpenAI")
    monkeypatch.setenv("GRADE_ENGINE_OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("GRADE_ENGINE_AI_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("GRADE_ENGINE_LOG_LEVEL", "debug")

    settings = make_settings()

    assert settings.ai_provider == "openai"
    assert settings.ai_timeout_seconds == 12.5
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("kwargs", [
    {"ai_provider": "claude"},
    {"ai_provider": "gemini"},
    {"fallback_score_ratio": 0},
    {"fallback_score_ratio": 1.5},
    {"ai_timeout_seconds": 0},
    {"log_level": "LOUD"},
])
def test_invalid_settings(kwargs):
    with pytest.raises(PydanticValidationError):
        make_settings(**kwargs)


# ============================================================================
# Provider factory
# ============================================================================

def test_no_provider():
    assert create_ai_provider(settings=make_settings(ai_provider="none")) is None


def test_openai_provider_created():
    provider = create_ai_provider(settings=make_settings(ai_provider="openai", openai_api_key="sk-test"))

    assert isinstance(provider, OpenAIProvider)
    assert provider.name == "openai/gpt-4o-mini"
    assert provider.call_timeout == 30


def test_gemini_provider_created():
    settings = make_settings(ai_provider="gemini", gemini_api_key="g-test", gemini_model="gemini-2.5-pro")
    provider = create_ai_provider(settings=settings)

    assert isinstance(provider, GeminiProvider)
    assert provider.name == "gemini/gemini-2.5-pro"


def test_openrouter_requires_model():
    settings = make_settings(ai_provider="openrouter", openrouter_api_key="or-test")
    with pytest.raises(ConfigurationError, match="Model required"):
        create_ai_provider(settings=settings)

    provider = create_ai_provider(model="meta/llama-3", settings=settings)
    assert provider.base_url == "https://openrouter.ai/api/v1"


def test_unknown_or_unkeyed_provider():
    settings = make_settings()
    with pytest.raises(ConfigurationError, match="Unknown provider"):
        create_ai_provider("mistral", settings=settings)
    with pytest.raises(ConfigurationError, match="API key required"):
        create_ai_provider("openai", settings=settings)


def test_available_providers():
    settings = make_settings(openai_api_key="sk-test", gemini_api_key="g-test")
    assert get_available_providers(settings) == ["gemini", "openai"]


def test_client_from_settings():
    settings = make_settings(ai_timeout_seconds=3, fallback_score_ratio=0.5)
    client = AIGradingClient.from_settings(settings)

    assert client.provider is None
    assert client.timeout == 3
    assert client.fallback_ratio == 0.5


# ============================================================================
# Providers
# ============================================================================

def fake_openai_client(create):
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def test_openai_provider_call_text():
    calls = []

    def create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='{"results": []}'))],
            usage=SimpleNamespace(prompt_tokens=10, completion_tokens=4),
        )

    provider = OpenAIProvider(api_key="sk-test", model="gpt-4o-mini", client=fake_openai_client(create))
    result = provider.call_text("grade this", system_prompt="be fair", response_format="json")

    assert result == '{"results": []}'
    assert calls[0]["response_format"] == {"type": "json_object"}
    assert calls[0]["messages"][0] == {"role": "system", "content": "be fair"}


def test_openai_provider_translates_errors():
    def create(**kwargs):
        raise RuntimeError("invalid request")

    provider = OpenAIProvider(api_key="sk-test", model="gpt-4o-mini", client=fake_openai_client(create))
    with pytest.raises(ProviderError):
        provider.call_text("grade this")


def test_gemini_provider_call_text():
    seen = {}

    def generate_content(model, contents, config):
        seen.update(model=model, contents=contents, config=config)
        return SimpleNamespace(text='{"results": []}', usage_metadata=None)

    client = SimpleNamespace(models=SimpleNamespace(generate_content=generate_content))
    provider = GeminiProvider(api_key="", model="gemini-2.5-flash", client=client)

    assert provider.call_text("grade this", response_format="json") == '{"results": []}'
    assert seen["config"].response_mime_type == "application/json"


def _raise_in_context(error):
    with APIErrorContext("batch grading", "fake/model"):
        raise error


@pytest.mark.parametrize("error_name, expected", [
    ("ReadTimeout", APITimeoutError),
    ("ConnectError", APIConnectionError),
    ("JSONDecodeError", ParsingError),
    ("BadRequestError", ProviderError),
])
def test_error_context_translation(error_name, expected):
    error_class = type(error_name, (Exception,), {})
    with pytest.raises(expected):
        _raise_in_context(error_class("boom"))


def test_error_context_lets_provider_errors_through():
    with pytest.raises(ParsingError, match="already translated"):
        _raise_in_context(ParsingError("already translated"))


# ============================================================================
# Retry budget
# ============================================================================

def test_call_budget_stop_condition():
    provider = SimpleNamespace(call_timeout=5)

    assert not stop_after_call_budget(SimpleNamespace(args=(provider,), seconds_since_start=1.0))
    assert stop_after_call_budget(SimpleNamespace(args=(provider,), seconds_since_start=5.0))

    unbounded = SimpleNamespace(call_timeout=None)
    assert not stop_after_call_budget(SimpleNamespace(args=(unbounded,), seconds_since_start=999.0))


def test_retries_end_when_call_budget_is_spent():
    """A spent budget stops tenacity before another attempt is made."""
    calls = []

    def create(**kwargs):
        calls.append(kwargs)
        time.sleep(0.05)
        raise openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))

    provider = OpenAIProvider(
        api_key="sk-test", model="gpt-4o-mini",
        client=fake_openai_client(create), call_timeout=0.01,
    )

    with pytest.raises(APIConnectionError):
        provider.call_text("grade this")
    assert len(calls) == 1

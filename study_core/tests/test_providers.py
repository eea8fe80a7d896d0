import pytest

from study_core.domain.exceptions import ValidationError
from study_core.providers import create_provider
from study_core.providers.gemini_client import GeminiClient
from study_core.providers.glm_client import GlmClient
from study_core.providers.kimi_client import KimiClient
from study_core.providers.registry import get_provider_config


class DummySettings:
    default_provider = "gemini"
    gemini_api_key = "gemini-key-123"
    gemini_base_url = "https://generativelanguage.googleapis.com/v1beta/openai"
    kimi_api_key = None
    glm_api_key = None
    http_timeout = 1.0


def test_create_provider_default(monkeypatch):
    monkeypatch.setattr("study_core.providers.settings", DummySettings())
    provider = create_provider()
    assert isinstance(provider, GeminiClient)
    assert provider.name == "gemini"


def test_create_provider_explicit(monkeypatch):
    monkeypatch.setattr("study_core.providers.settings", DummySettings())
    assert isinstance(create_provider("kimi"), KimiClient)
    assert isinstance(create_provider("GLM"), GlmClient)


def test_create_provider_unknown(monkeypatch):
    monkeypatch.setattr("study_core.providers.settings", DummySettings())
    with pytest.raises(ValidationError) as exc_info:
        create_provider("nope")
    assert exc_info.value.code == "UNKNOWN_PROVIDER"


def test_registry_lookup_is_case_insensitive():
    assert get_provider_config("Gemini").models["study-chat"].provider_model == "gemini-2.0-flash"
    with pytest.raises(KeyError):
        get_provider_config("other")

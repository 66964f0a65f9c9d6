import pytest

from src.quickcode.config import Settings, settings
from src.quickcode.domain.errors import ProviderConfigurationError
from src.quickcode.main import on_startup
from src.quickcode.services.extraction.backends import (
    DemoCompletionBackend,
    GeminiCompletionBackend,
    OpenAICompletionBackend,
    ensure_provider_configured,
    get_completion_backend_from_env,
)


def test_demo_backend_needs_no_credentials(monkeypatch):
    monkeypatch.setattr(settings, "extraction_backend", "demo")
    monkeypatch.setattr(settings, "openai_api_key", None)

    ensure_provider_configured()
    assert isinstance(get_completion_backend_from_env(), DemoCompletionBackend)


@pytest.mark.parametrize("backend_name, key_attr", [("openai", "openai_api_key"), ("gemini", "gemini_api_key")])
def test_missing_credential_is_a_configuration_error(monkeypatch, backend_name, key_attr):
    monkeypatch.setattr(settings, "extraction_backend", backend_name)
    monkeypatch.setattr(settings, key_attr, None)

    with pytest.raises(ProviderConfigurationError):
        ensure_provider_configured()
    with pytest.raises(ProviderConfigurationError):
        get_completion_backend_from_env()


def test_unknown_backend_is_a_configuration_error(monkeypatch):
    monkeypatch.setattr(settings, "extraction_backend", "llama")

    with pytest.raises(ProviderConfigurationError):
        ensure_provider_configured()


def test_configured_openai_backend_is_selected(monkeypatch):
    monkeypatch.setattr(settings, "extraction_backend", "OpenAI")
    monkeypatch.setattr(settings, "openai_api_key", "sk-test")

    ensure_provider_configured()
    assert isinstance(get_completion_backend_from_env(), OpenAICompletionBackend)


def test_backend_constructors_require_keys(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", None)
    monkeypatch.setattr(settings, "gemini_api_key", None)

    with pytest.raises(ProviderConfigurationError):
        OpenAICompletionBackend()
    with pytest.raises(ProviderConfigurationError):
        GeminiCompletionBackend()


async def test_startup_hook_refuses_missing_credential(monkeypatch):
    monkeypatch.setattr(settings, "extraction_backend", "openai")
    monkeypatch.setattr(settings, "openai_api_key", None)

    with pytest.raises(ProviderConfigurationError):
        await on_startup()


async def test_startup_hook_accepts_demo_backend(monkeypatch):
    monkeypatch.setattr(settings, "extraction_backend", "demo")

    await on_startup()


async def test_default_backend_without_key_refuses_to_start(monkeypatch):
    monkeypatch.delenv("EXTRACTION_BACKEND", raising=False)
    defaults = Settings()
    assert defaults.extraction_backend == "gemini"

    monkeypatch.setattr(settings, "extraction_backend", defaults.extraction_backend)
    monkeypatch.setattr(settings, "gemini_api_key", None)

    with pytest.raises(ProviderConfigurationError):
        ensure_provider_configured()
    with pytest.raises(ProviderConfigurationError):
        await on_startup()

"""Tests for application settings."""

from gembooth.config import Settings, provider_credentials
from gembooth.domain.photos import ProviderName


def test_defaults_match_generation_policy(monkeypatch) -> None:
    for name in ("MAX_RETRIES", "REQUEST_TIMEOUT_SECONDS", "IMAGE_CONCURRENCY"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.request_timeout_seconds == 123.333
    assert settings.max_retries == 5
    assert settings.retry_base_delay_seconds == 1.233
    assert settings.image_concurrency == 2
    assert settings.text_concurrency == 4
    assert settings.image_provider == ProviderName.GEMINI


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("IMAGE_PROVIDER", "openai")
    monkeypatch.setenv("MAX_RETRIES", "3")
    monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf-env-key")

    settings = Settings(_env_file=None)

    assert settings.image_provider == ProviderName.OPENAI
    assert settings.max_retries == 3
    assert provider_credentials(settings)[ProviderName.HUGGINGFACE] == "hf-env-key"

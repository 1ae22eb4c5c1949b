"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from gembooth.domain.photos import ProviderName

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    gemini_api_key: str | None = None
    gemini_image_model: str = "gemini-2.5-flash-image"
    gemini_text_model: str = "gemini-2.5-flash"
    huggingface_api_key: str | None = None
    huggingface_model: str = "stabilityai/stable-diffusion-xl-base-1.0"
    huggingface_base_url: str = "https://api-inference.huggingface.co/models"
    openai_api_key: str | None = None
    openai_image_model: str = "gpt-image-1"
    openai_text_model: str = "gpt-5-mini"
    image_provider: ProviderName = ProviderName.GEMINI
    text_provider: ProviderName = ProviderName.GEMINI
    request_timeout_seconds: float = 123.333
    max_retries: int = 5
    retry_base_delay_seconds: float = 1.233
    max_retry_after_seconds: float = 15.0
    image_concurrency: int = 2
    text_concurrency: int = 4
    database_path: str = "gembooth.db"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def provider_credentials(settings: Settings) -> dict[ProviderName, str | None]:
    """Return the caller-supplied credential for each provider."""
    return {
        ProviderName.GEMINI: settings.gemini_api_key,
        ProviderName.HUGGINGFACE: settings.huggingface_api_key,
        ProviderName.OPENAI: settings.openai_api_key,
    }

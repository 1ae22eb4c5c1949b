"""Tests for container wiring."""

import asyncio

from gembooth.config import Settings
from gembooth.containers import build_container
from gembooth.domain.photos import ProviderName


def test_build_container_creates_services(settings: Settings) -> None:
    container = build_container(settings)

    service = container.photo_service
    assert set(service.image_providers) == set(ProviderName)
    assert service.text_provider is not None
    assert service.credentials[ProviderName.HUGGINGFACE] == "hf-key"
    assert service.executor.policy.max_retries == 5
    asyncio.run(container.close_resources())


def test_build_container_without_keys(tmp_path) -> None:
    settings = Settings(
        gemini_api_key=None,
        huggingface_api_key=None,
        openai_api_key=None,
        database_path=str(tmp_path / "booth.db"),
        image_provider=ProviderName.HUGGINGFACE,
        max_retries=2,
    )

    container = build_container(settings)

    service = container.photo_service
    assert service.default_provider == ProviderName.HUGGINGFACE
    assert service.credentials[ProviderName.HUGGINGFACE] is None
    assert service.executor.policy.max_retries == 2
    asyncio.run(container.close_resources())

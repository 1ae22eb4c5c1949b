"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from gembooth.adapters.gemini_provider import (
    GeminiImageProvider,
    GeminiTextProvider,
    create_gemini_client,
)
from gembooth.adapters.huggingface_provider import HuggingFaceImageProvider
from gembooth.adapters.openai_provider import (
    OpenAIImageProvider,
    OpenAITextProvider,
    create_openai_client,
)
from gembooth.adapters.sqlite_database import SqliteDatabase
from gembooth.adapters.sqlite_image_repository import SqliteImageRepository
from gembooth.adapters.sqlite_metadata_repository import SqliteMetadataRepository
from gembooth.config import Settings, provider_credentials
from gembooth.domain.photos import ProviderName
from gembooth.services.dispatcher import ConcurrencyDispatcher
from gembooth.services.executor import ResilientExecutor, RetryPolicy
from gembooth.services.photos import PhotoService
from gembooth.services.providers import TextProvider
from gembooth.services.state import StateStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    photo_service: PhotoService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    database = SqliteDatabase.open(resolved_settings.database_path)
    gemini_client = create_gemini_client(resolved_settings.gemini_api_key)
    openai_client = create_openai_client(resolved_settings.openai_api_key)
    huggingface_provider = HuggingFaceImageProvider.create(
        model=resolved_settings.huggingface_model,
        base_url=resolved_settings.huggingface_base_url,
    )
    image_providers = {
        ProviderName.GEMINI: GeminiImageProvider(
            client=gemini_client, model=resolved_settings.gemini_image_model
        ),
        ProviderName.HUGGINGFACE: huggingface_provider,
        ProviderName.OPENAI: OpenAIImageProvider(
            client=openai_client, model=resolved_settings.openai_image_model
        ),
    }
    text_providers: dict[ProviderName, TextProvider] = {
        ProviderName.GEMINI: GeminiTextProvider(
            client=gemini_client, model=resolved_settings.gemini_text_model
        ),
        ProviderName.OPENAI: OpenAITextProvider(
            client=openai_client, model=resolved_settings.openai_text_model
        ),
    }
    executor = ResilientExecutor(
        policy=RetryPolicy(
            timeout_seconds=resolved_settings.request_timeout_seconds,
            max_retries=resolved_settings.max_retries,
            base_delay_seconds=resolved_settings.retry_base_delay_seconds,
            max_retry_after_seconds=resolved_settings.max_retry_after_seconds,
        )
    )
    photo_service = PhotoService(
        store=StateStore(),
        metadata_repository=SqliteMetadataRepository(database),
        image_repository=SqliteImageRepository(database),
        dispatcher=ConcurrencyDispatcher(
            image_limit=resolved_settings.image_concurrency,
            text_limit=resolved_settings.text_concurrency,
        ),
        executor=executor,
        image_providers=image_providers,
        text_provider=text_providers.get(resolved_settings.text_provider),
        default_provider=resolved_settings.image_provider,
        credentials=provider_credentials(resolved_settings),
    )

    async def close_resources() -> None:
        await huggingface_provider.close()
        if openai_client is not None:
            await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        photo_service=photo_service,
        close_resources=close_resources,
    )

"""Shared test fixtures."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

import pytest

from gembooth.config import Settings
from gembooth.containers import AppContainer
from gembooth.domain.metadata import PersistedMetadata
from gembooth.domain.photos import DurableImageEntry, ImageBlob, ProviderName
from gembooth.services.dispatcher import ConcurrencyDispatcher
from gembooth.services.executor import ResilientExecutor, RetryPolicy
from gembooth.services.photos import PhotoService
from gembooth.services.providers import ImageProvider, TextProvider
from gembooth.services.state import StateStore
from gembooth.services.storage import ImageRepository, MetadataRepository

JPEG_BYTES = b"\xff\xd8\xff\xe0input-photo"
PNG_BYTES = b"\x89PNG\r\n\x1a\ngenerated"


@dataclass
class InMemoryMetadataRepository(MetadataRepository):
    """In-memory metadata repository for tests."""

    metadata: PersistedMetadata | None = None
    saves: int = 0

    def load(self) -> PersistedMetadata | None:
        if self.metadata is None:
            return None
        return self.metadata.model_copy(deep=True)

    def save(self, metadata: PersistedMetadata) -> None:
        self.metadata = metadata.model_copy(deep=True)
        self.saves += 1


@dataclass
class InMemoryImageRepository(ImageRepository):
    """In-memory image repository for tests."""

    entries: dict[str, DurableImageEntry] = field(default_factory=dict)

    def get(self, photo_id: str) -> DurableImageEntry | None:
        return self.entries.get(photo_id)

    def list_ids(self) -> list[str]:
        return list(self.entries)

    def save_input(
        self,
        photo_id: str,
        input_image: ImageBlob,
        prompt_text: str,
        provider: ProviderName,
    ) -> DurableImageEntry:
        entry = DurableImageEntry(
            id=photo_id,
            input_image=input_image,
            created_at=datetime.now(tz=UTC),
            prompt_text=prompt_text,
            provider=provider,
        )
        self.entries[photo_id] = entry
        return entry

    def save_output(self, photo_id: str, output_image: ImageBlob) -> None:
        entry = self.entries.get(photo_id)
        if entry is not None:
            self.entries[photo_id] = replace(entry, output_image=output_image)

    def delete(self, photo_id: str) -> None:
        self.entries.pop(photo_id, None)


@dataclass
class FakeImageProvider(ImageProvider):
    """Fake image provider returning queued results in order.

    The last queued result repeats once the queue is down to one item.
    """

    results: list[ImageBlob | Exception] = field(default_factory=list)
    output: ImageBlob = field(
        default_factory=lambda: ImageBlob(data=PNG_BYTES, mime_type="image/png")
    )
    delay: float = 0.0
    calls: list[dict[str, object]] = field(default_factory=list)
    name: ProviderName = ProviderName.GEMINI

    async def generate(
        self,
        prompt: str,
        input_image: bytes | None = None,
        mime_type: str | None = None,
        credentials: str | None = None,
    ) -> ImageBlob:
        self.calls.append(
            {
                "prompt": prompt,
                "input_image": input_image,
                "mime_type": mime_type,
                "credentials": credentials,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.results:
            return self.output
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


@dataclass
class FakeTextProvider(TextProvider):
    """Fake text provider returning a fixed title."""

    result: str | Exception = '"Neon Dream"'
    calls: list[str] = field(default_factory=list)
    name: ProviderName = ProviderName.GEMINI

    async def generate_text(self, prompt: str) -> str:
        self.calls.append(prompt)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@dataclass
class RecordingSleep:
    """Sleep replacement that records delays without waiting."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def build_service(  # noqa: PLR0913
    image_provider: FakeImageProvider | None = None,
    text_provider: TextProvider | None = None,
    metadata_repository: MetadataRepository | None = None,
    image_repository: ImageRepository | None = None,
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> PhotoService:
    """Create a photo service wired to fakes."""
    provider = image_provider or FakeImageProvider()
    return PhotoService(
        store=StateStore(),
        metadata_repository=metadata_repository or InMemoryMetadataRepository(),
        image_repository=image_repository or InMemoryImageRepository(),
        dispatcher=ConcurrencyDispatcher(),
        executor=ResilientExecutor(
            policy=policy or RetryPolicy(timeout_seconds=5, max_retries=3),
            sleep=sleep or RecordingSleep(),
        ),
        image_providers={provider.name: provider},
        text_provider=text_provider,
        default_provider=provider.name,
        credentials={provider.name: "caller-key"},
    )


def complete_entry(
    photo_id: str, created_at: datetime | None = None, prompt: str = "make it pop"
) -> DurableImageEntry:
    """Build a durable entry with both input and output images."""
    return DurableImageEntry(
        id=photo_id,
        input_image=ImageBlob(data=JPEG_BYTES, mime_type="image/jpeg"),
        output_image=ImageBlob(data=PNG_BYTES, mime_type="image/png"),
        prompt_text=prompt,
        provider=ProviderName.GEMINI,
        created_at=created_at or datetime.now(tz=UTC),
    )


def input_only_entry(photo_id: str) -> DurableImageEntry:
    """Build a durable entry left behind by an interrupted generation."""
    return DurableImageEntry(
        id=photo_id,
        input_image=ImageBlob(data=JPEG_BYTES, mime_type="image/jpeg"),
        prompt_text="make it pop",
        provider=ProviderName.GEMINI,
        created_at=datetime.now(tz=UTC),
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        gemini_api_key="gemini-key",
        huggingface_api_key="hf-key",
        openai_api_key="openai-key",
        database_path=str(tmp_path / "booth.db"),
    )


@pytest.fixture
def image_provider() -> FakeImageProvider:
    return FakeImageProvider()


@pytest.fixture
def text_provider() -> FakeTextProvider:
    return FakeTextProvider()


@pytest.fixture
def image_repository() -> InMemoryImageRepository:
    return InMemoryImageRepository()


@pytest.fixture
def metadata_repository() -> InMemoryMetadataRepository:
    return InMemoryMetadataRepository()


@pytest.fixture
def container(
    settings: Settings,
    image_provider: FakeImageProvider,
    text_provider: FakeTextProvider,
    image_repository: InMemoryImageRepository,
    metadata_repository: InMemoryMetadataRepository,
) -> AppContainer:
    photo_service = build_service(
        image_provider=image_provider,
        text_provider=text_provider,
        metadata_repository=metadata_repository,
        image_repository=image_repository,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        photo_service=photo_service,
        close_resources=close_resources,
    )

"""Tests for SQLite-backed repositories."""

import asyncio

from gembooth.adapters.sqlite_database import SqliteDatabase
from gembooth.adapters.sqlite_image_repository import SqliteImageRepository
from gembooth.adapters.sqlite_metadata_repository import SqliteMetadataRepository
from gembooth.domain.metadata import PersistedMetadata, PromptHistoryEntry
from gembooth.domain.photos import ImageBlob, ProviderName
from tests.conftest import JPEG_BYTES, PNG_BYTES, build_service


def test_image_repository_crud(tmp_path) -> None:
    repository = SqliteImageRepository(SqliteDatabase.open(tmp_path / "booth.db"))
    input_image = ImageBlob(data=JPEG_BYTES, mime_type="image/jpeg")

    created = repository.save_input(
        "p1", input_image, "make it pop", ProviderName.OPENAI
    )
    stored = repository.get("p1")

    assert stored == created
    assert stored is not None
    assert stored.is_complete is False
    assert repository.list_ids() == ["p1"]

    output = ImageBlob(data=PNG_BYTES, mime_type="image/png")
    repository.save_output("p1", output)
    stored = repository.get("p1")

    assert stored is not None
    assert stored.output_image == output
    assert stored.input_image == input_image
    assert stored.provider == ProviderName.OPENAI
    assert stored.is_complete is True

    repository.delete("p1")
    repository.delete("p1")

    assert repository.get("p1") is None
    assert repository.list_ids() == []


def test_save_output_for_unknown_id_is_ignored(tmp_path) -> None:
    repository = SqliteImageRepository(SqliteDatabase.open(tmp_path / "booth.db"))

    repository.save_output("missing", ImageBlob(data=PNG_BYTES, mime_type="image/png"))

    assert repository.list_ids() == []


def test_metadata_repository_round_trip(tmp_path) -> None:
    repository = SqliteMetadataRepository(SqliteDatabase.open(tmp_path / "booth.db"))
    metadata = PersistedMetadata(
        prompt_history=[PromptHistoryEntry(id="h1", title="Neon", prompt="neon")],
        last_prompt="neon",
        known_ids=["p1"],
    )

    assert repository.load() is None

    repository.save(metadata)
    repository.save(metadata.model_copy(update={"last_prompt": "other"}))

    loaded = repository.load()
    assert loaded is not None
    assert loaded.last_prompt == "other"
    assert loaded.prompt_history == metadata.prompt_history


def test_open_creates_parent_directories(tmp_path) -> None:
    path = tmp_path / "nested" / "dir" / "booth.db"

    SqliteDatabase.open(path)

    assert path.exists()


def test_state_survives_restart(tmp_path) -> None:
    path = tmp_path / "booth.db"

    def service_for(database: SqliteDatabase):
        return build_service(
            metadata_repository=SqliteMetadataRepository(database),
            image_repository=SqliteImageRepository(database),
        )

    first = service_for(SqliteDatabase.open(path))

    async def capture_one() -> str:
        await first.rehydrate()
        first.set_prompt("make it pop")
        return await first.capture(JPEG_BYTES)

    photo_id = asyncio.run(capture_one())

    database = SqliteDatabase.open(path)
    image_repository = SqliteImageRepository(database)
    image_repository.save_input(
        "interrupted",
        ImageBlob(data=JPEG_BYTES, mime_type="image/jpeg"),
        "make it pop",
        ProviderName.GEMINI,
    )
    second = service_for(database)

    asyncio.run(second.rehydrate())

    assert [photo.id for photo in second.state.photos] == [photo_id]
    assert second.state.current_prompt == "make it pop"
    assert image_repository.get("interrupted") is None
    assert second.get_image(photo_id, "output").data == PNG_BYTES

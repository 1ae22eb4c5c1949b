"""SQLite-backed image blob repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from gembooth.adapters.sqlite_database import SqliteDatabase
from gembooth.domain.photos import DurableImageEntry, ImageBlob, ProviderName
from gembooth.services.storage import ImageRepository

_COLUMNS = (
    "id, input, input_mime, output, output_mime, prompt_text, provider, created_at"
)


@dataclass
class SqliteImageRepository(ImageRepository):
    """Stores one row of input/output images per photo id."""

    database: SqliteDatabase

    def get(self, photo_id: str) -> DurableImageEntry | None:
        """Return the entry for a photo id, if present."""
        with self.database.connect() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM images WHERE id = ?",  # noqa: S608
                (photo_id,),
            ).fetchone()
        if row is None:
            return None
        return _entry_from_row(row)

    def list_ids(self) -> list[str]:
        """Return every stored photo id."""
        with self.database.connect() as conn:
            rows = conn.execute("SELECT id FROM images ORDER BY created_at").fetchall()
        return [row[0] for row in rows]

    def save_input(
        self,
        photo_id: str,
        input_image: ImageBlob,
        prompt_text: str,
        provider: ProviderName,
    ) -> DurableImageEntry:
        """Insert an entry holding only the input image."""
        created_at = datetime.now(tz=UTC)
        with self.database.connect() as conn:
            conn.execute(
                "INSERT INTO images (id, input, input_mime, prompt_text, provider, "
                "created_at) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    photo_id,
                    input_image.data,
                    input_image.mime_type,
                    prompt_text,
                    provider.value,
                    created_at.isoformat(),
                ),
            )
        return DurableImageEntry(
            id=photo_id,
            input_image=input_image,
            created_at=created_at,
            prompt_text=prompt_text,
            provider=provider,
        )

    def save_output(self, photo_id: str, output_image: ImageBlob) -> None:
        """Set or overwrite the output image of an entry."""
        with self.database.connect() as conn:
            conn.execute(
                "UPDATE images SET output = ?, output_mime = ? WHERE id = ?",
                (output_image.data, output_image.mime_type, photo_id),
            )

    def delete(self, photo_id: str) -> None:
        """Delete an entry if present."""
        with self.database.connect() as conn:
            conn.execute("DELETE FROM images WHERE id = ?", (photo_id,))


def _entry_from_row(row: tuple) -> DurableImageEntry:
    (
        photo_id,
        input_data,
        input_mime,
        output_data,
        output_mime,
        prompt_text,
        provider,
        created_at,
    ) = row
    output_image = None
    if output_data is not None:
        output_image = ImageBlob(data=bytes(output_data), mime_type=output_mime)
    return DurableImageEntry(
        id=photo_id,
        input_image=ImageBlob(data=bytes(input_data), mime_type=input_mime),
        output_image=output_image,
        prompt_text=prompt_text,
        provider=ProviderName(provider) if provider else None,
        created_at=datetime.fromisoformat(created_at),
    )

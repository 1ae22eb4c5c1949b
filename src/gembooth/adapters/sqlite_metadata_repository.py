"""SQLite-backed metadata repository."""

from dataclasses import dataclass

from gembooth.adapters.sqlite_database import SqliteDatabase
from gembooth.domain.metadata import PersistedMetadata
from gembooth.services.storage import METADATA_STORE_NAME, MetadataRepository


@dataclass
class SqliteMetadataRepository(MetadataRepository):
    """Stores booth metadata as one JSON row under a fixed name."""

    database: SqliteDatabase
    name: str = METADATA_STORE_NAME

    def load(self) -> PersistedMetadata | None:
        """Return stored metadata, if present."""
        with self.database.connect() as conn:
            row = conn.execute(
                "SELECT value FROM metadata WHERE name = ?", (self.name,)
            ).fetchone()
        if row is None:
            return None
        return PersistedMetadata.model_validate_json(row[0])

    def save(self, metadata: PersistedMetadata) -> None:
        """Replace stored metadata."""
        with self.database.connect() as conn:
            conn.execute(
                "INSERT INTO metadata (name, value) VALUES (?, ?) "
                "ON CONFLICT(name) DO UPDATE SET value = excluded.value",
                (self.name, metadata.model_dump_json()),
            )

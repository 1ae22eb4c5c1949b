"""SQLite database file holding the durable booth stores."""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

_logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS metadata (
        name TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS images (
        id TEXT PRIMARY KEY,
        input BLOB NOT NULL,
        input_mime TEXT NOT NULL,
        output BLOB,
        output_mime TEXT,
        prompt_text TEXT,
        provider TEXT,
        created_at TEXT NOT NULL
    )
    """,
)


@dataclass
class SqliteDatabase:
    """Opens short-lived connections to one SQLite file."""

    path: Path

    @classmethod
    def open(cls, path: str | Path) -> "SqliteDatabase":
        """Create the database file and schema if needed."""
        database = cls(path=Path(path))
        database.path.parent.mkdir(parents=True, exist_ok=True)
        with database.connect() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)
        _logger.info("Opened booth database at %s", database.path)
        return database

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and always closes."""
        conn = sqlite3.connect(self.path)
        try:
            with conn:
                yield conn
        finally:
            conn.close()

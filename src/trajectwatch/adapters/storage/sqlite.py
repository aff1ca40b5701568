"""SQLite storage adapter for trajects."""

import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite

from trajectwatch.adapters.storage.document_base import (
    DocumentTrajectStore,
    decode_document,
    encode_document,
)
from trajectwatch.core.exceptions import StorageError
from trajectwatch.core.models import Traject, TrajectDefaults

_DOCUMENTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    name TEXT PRIMARY KEY,
    body TEXT NOT NULL
);
"""

_SELECT_DOCUMENT = """
SELECT body FROM documents WHERE name = ?
"""

_UPSERT_DOCUMENT = """
INSERT INTO documents (name, body) VALUES (?, ?)
ON CONFLICT(name) DO UPDATE SET body = excluded.body
"""

_DOCUMENT_NAME = "trajects"


class SQLiteTrajectStore(DocumentTrajectStore):
    """Traject store keeping its document as one row of an SQLite table.

    Uses aiosqlite for non-blocking access and WAL mode for file
    databases. The whole document is rewritten on every registration.
    """

    def __init__(self, db_path: str, defaults: TrajectDefaults | None = None) -> None:
        super().__init__(defaults)
        self._db_path = db_path
        self._memory_db: aiosqlite.Connection | None = None
        self._schema_ready = False

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection on which the documents table exists.

        A :memory: database only lives as long as its connection, so that
        connection is opened once and kept until close(). Callers hold the
        store lock.
        """
        if self._db_path == ":memory:":
            if self._memory_db is None:
                self._memory_db = await aiosqlite.connect(":memory:")
                await self._memory_db.executescript(_DOCUMENTS_SCHEMA)
            yield self._memory_db
            return
        async with aiosqlite.connect(self._db_path) as db:
            if not self._schema_ready:
                await db.execute("PRAGMA journal_mode=WAL")
                await db.executescript(_DOCUMENTS_SCHEMA)
                self._schema_ready = True
            yield db

    async def _load(self) -> list[Traject]:
        try:
            async with self._connect() as db:
                async with db.execute(_SELECT_DOCUMENT, (_DOCUMENT_NAME,)) as cursor:
                    row = await cursor.fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"cannot read traject document: {exc}") from exc
        if row is None:
            return []
        return decode_document(row[0])

    async def _save(self, trajects: list[Traject]) -> None:
        try:
            async with self._connect() as db:
                await db.execute(
                    _UPSERT_DOCUMENT, (_DOCUMENT_NAME, encode_document(trajects))
                )
                await db.commit()
        except sqlite3.Error as exc:
            raise StorageError(f"cannot write traject document: {exc}") from exc

    async def close(self) -> None:
        """Close the kept :memory: connection; its data is discarded."""
        if self._memory_db is not None:
            await self._memory_db.close()
            self._memory_db = None

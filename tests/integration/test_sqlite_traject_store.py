"""Tests for the SQLite traject store."""

import asyncio
from collections.abc import AsyncGenerator
from pathlib import Path

import aiosqlite
import pytest

from trajectwatch.adapters.storage.sqlite import SQLiteTrajectStore
from trajectwatch.core.exceptions import DuplicateIdError
from trajectwatch.core.models import TrajectDefaults, TravelMode
from trajectwatch.core.ports import TrajectStorePort

# All tests in this module are tier 2 (integration tests with file I/O)
pytestmark = [pytest.mark.integration, pytest.mark.storage, pytest.mark.tier(2)]


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for traject store tests."""
    return str(tmp_path / "trajects.db")


@pytest.fixture
async def memory_store() -> AsyncGenerator[SQLiteTrajectStore, None]:
    """In-memory traject store with proper cleanup."""
    store = SQLiteTrajectStore(":memory:")
    yield store
    await store.close()


class TestSQLiteTrajectStore:
    """Tests for SQLiteTrajectStore adapter."""

    def test_implements_traject_store_port(self) -> None:
        """Adapter satisfies the TrajectStorePort protocol."""
        assert isinstance(SQLiteTrajectStore(":memory:"), TrajectStorePort)

    async def test_memory_database_register_and_list(
        self, memory_store: SQLiteTrajectStore
    ) -> None:
        """In-memory database should persist data within same instance."""
        traject = await memory_store.register({"origin": "A", "destination": "B"})

        assert await memory_store.list() == [traject]

    async def test_empty_database_lists_nothing(
        self, memory_store: SQLiteTrajectStore
    ) -> None:
        """A fresh database lists no trajects."""
        assert await memory_store.list() == []

    async def test_file_database_survives_new_instance(self, db_path: str) -> None:
        """Trajects persist across store instances on a file database."""
        first = SQLiteTrajectStore(db_path)
        a = await first.register({"id": "a", "origin": "A", "destination": "B"})
        b = await first.register({"id": "b", "origin": "B", "destination": "C"})
        await first.close()

        reopened = SQLiteTrajectStore(db_path)
        try:
            assert await reopened.list() == [a, b]
        finally:
            await reopened.close()

    async def test_duplicate_is_rejected(
        self, memory_store: SQLiteTrajectStore
    ) -> None:
        """A duplicate id is rejected and the store is unchanged."""
        first = await memory_store.register(
            {"id": "dup", "origin": "A", "destination": "B"}
        )

        with pytest.raises(DuplicateIdError):
            await memory_store.register({"id": "dup", "origin": "A", "destination": "C"})

        assert await memory_store.list() == [first]

    async def test_defaults_are_applied(self) -> None:
        """Unspecified fields take the process defaults."""
        store = SQLiteTrajectStore(":memory:", TrajectDefaults(TravelMode.WALKING, 3))
        try:
            traject = await store.register({"origin": "A", "destination": "B"})
        finally:
            await store.close()

        assert traject.mode is TravelMode.WALKING
        assert traject.interval_minutes == 3

    async def test_concurrent_calls_share_one_memory_database(
        self, memory_store: SQLiteTrajectStore
    ) -> None:
        """Racing first calls all see the same in-memory database."""
        results = await asyncio.gather(
            memory_store.list(),
            memory_store.register({"id": "a", "origin": "A", "destination": "B"}),
            memory_store.list(),
        )

        assert [t.id for t in await memory_store.list()] == ["a"]
        assert results[0] == []
        assert [t.id for t in results[2]] == ["a"]

    async def test_close_discards_memory_database(self) -> None:
        """After close() an in-memory store starts over empty."""
        store = SQLiteTrajectStore(":memory:")
        await store.register({"origin": "A", "destination": "B"})

        await store.close()
        try:
            assert await store.list() == []
        finally:
            await store.close()

    async def test_file_database_uses_wal_journal(self, db_path: str) -> None:
        """File databases are switched to write-ahead logging."""
        store = SQLiteTrajectStore(db_path)
        await store.list()

        async with aiosqlite.connect(db_path) as db:
            async with db.execute("PRAGMA journal_mode") as cursor:
                (mode,) = await cursor.fetchone()

        assert mode == "wal"

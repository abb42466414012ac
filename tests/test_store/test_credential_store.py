"""Tests for the SQLite-backed credential store."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio

from signaldesk.exchange.types import Credentials
from signaldesk.store.credentials import SqliteCredentialStore
from signaldesk.store.database import CredentialDatabase


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncIterator[CredentialDatabase]:
    db = CredentialDatabase(str(tmp_path / "nested" / "credentials.db"))
    await db.connect()
    yield db
    await db.close()


@pytest.fixture
def store(database: CredentialDatabase) -> SqliteCredentialStore:
    return SqliteCredentialStore(database)


async def _row_count(database: CredentialDatabase, where: str = "1 = 1") -> int:
    cursor = await database.db.execute(f"SELECT COUNT(*) FROM api_credentials WHERE {where}")
    row = await cursor.fetchone()
    return row[0]


class TestCredentialDatabase:
    """Connection lifecycle and schema setup."""

    def test_db_before_connect_raises(self, tmp_path: Path) -> None:
        with pytest.raises(RuntimeError, match="not connected"):
            _ = CredentialDatabase(str(tmp_path / "x.db")).db

    @pytest.mark.asyncio
    async def test_connect_creates_parent_dir_and_schema(self, tmp_path: Path) -> None:
        path = tmp_path / "a" / "b" / "creds.db"
        async with CredentialDatabase(str(path)) as db:
            cursor = await db.db.execute("SELECT version FROM schema_version")
            assert await cursor.fetchone() == (1,)
        assert path.exists()

    @pytest.mark.asyncio
    async def test_reconnect_keeps_single_schema_version(self, tmp_path: Path) -> None:
        path = str(tmp_path / "creds.db")
        async with CredentialDatabase(path):
            pass
        async with CredentialDatabase(path) as db:
            cursor = await db.db.execute("SELECT COUNT(*) FROM schema_version")
            assert await cursor.fetchone() == (1,)


class TestSqliteCredentialStore:
    """get/save/delete over one active record."""

    @pytest.mark.asyncio
    async def test_get_empty(self, store: SqliteCredentialStore) -> None:
        assert await store.get() is None

    @pytest.mark.asyncio
    async def test_save_then_get(
        self, store: SqliteCredentialStore, valid_credentials: Credentials
    ) -> None:
        saved = await store.save(valid_credentials)
        loaded = await store.get()

        assert loaded is not None
        assert loaded.id == saved.id
        assert loaded.credentials == valid_credentials
        assert loaded.is_active is True
        assert loaded.created_at == saved.created_at

    @pytest.mark.asyncio
    async def test_sandbox_flag_round_trips(self, store: SqliteCredentialStore) -> None:
        creds = Credentials(
            api_key="12345678-1234-1234-1234-123456789abc",
            secret_key="s" * 32,
            passphrase="pp",
            sandbox=True,
        )
        await store.save(creds)
        loaded = await store.get()
        assert loaded is not None
        assert loaded.credentials.sandbox is True

    @pytest.mark.asyncio
    async def test_save_deactivates_previous(
        self,
        store: SqliteCredentialStore,
        database: CredentialDatabase,
        valid_credentials: Credentials,
    ) -> None:
        first = await store.save(valid_credentials)
        replacement = Credentials(
            api_key="87654321-4321-4321-4321-cba987654321",
            secret_key="z" * 40,
            passphrase="other",
        )
        second = await store.save(replacement)

        loaded = await store.get()
        assert loaded is not None
        assert loaded.id == second.id
        assert loaded.credentials == replacement
        assert first.id != second.id

        assert await _row_count(database) == 2
        assert await _row_count(database, "is_active = 1") == 1

    @pytest.mark.asyncio
    async def test_delete_deactivates_without_removing(
        self,
        store: SqliteCredentialStore,
        database: CredentialDatabase,
        valid_credentials: Credentials,
    ) -> None:
        await store.save(valid_credentials)
        await store.delete()

        assert await store.get() is None
        assert await _row_count(database) == 1
        assert await _row_count(database, "is_active = 0") == 1

    @pytest.mark.asyncio
    async def test_delete_when_empty_is_noop(self, store: SqliteCredentialStore) -> None:
        await store.delete()
        assert await store.get() is None

    @pytest.mark.asyncio
    async def test_persists_across_connections(
        self, tmp_path: Path, valid_credentials: Credentials
    ) -> None:
        path = str(tmp_path / "creds.db")
        async with CredentialDatabase(path) as db:
            await SqliteCredentialStore(db).save(valid_credentials)
        async with CredentialDatabase(path) as db:
            loaded = await SqliteCredentialStore(db).get()
        assert loaded is not None
        assert loaded.credentials == valid_credentials

"""Credential persistence: one active API key set per database.

``save`` never overwrites: it deactivates every existing record and inserts a
new active one, so older keys remain in the table as inactive history.
``delete`` deactivates without removing rows.
"""

import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass

from signaldesk.exchange.types import Credentials
from signaldesk.logging import get_logger
from signaldesk.store.database import CredentialDatabase

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoredCredentials:
    """A persisted credential record. Timestamps are Unix milliseconds."""

    id: str
    credentials: Credentials
    is_active: bool
    created_at: int
    updated_at: int


class CredentialStore(ABC):
    """Storage contract the dashboard uses to load and persist API keys."""

    @abstractmethod
    async def get(self) -> StoredCredentials | None:
        """Return the active record, or None."""
        ...

    @abstractmethod
    async def save(self, credentials: Credentials) -> StoredCredentials:
        """Persist ``credentials`` as the new active record."""
        ...

    @abstractmethod
    async def delete(self) -> None:
        """Deactivate the active record, if any."""
        ...


class SqliteCredentialStore(CredentialStore):
    """CredentialStore backed by CredentialDatabase."""

    def __init__(self, database: CredentialDatabase) -> None:
        self._database = database

    async def get(self) -> StoredCredentials | None:
        cursor = await self._database.db.execute(
            "SELECT id, api_key, secret_key, passphrase, sandbox, is_active, "
            "created_at, updated_at FROM api_credentials "
            "WHERE is_active = 1 ORDER BY created_at DESC LIMIT 1"
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return StoredCredentials(
            id=row[0],
            credentials=Credentials(
                api_key=row[1],
                secret_key=row[2],
                passphrase=row[3],
                sandbox=bool(row[4]),
            ),
            is_active=bool(row[5]),
            created_at=row[6],
            updated_at=row[7],
        )

    async def save(self, credentials: Credentials) -> StoredCredentials:
        now_ms = int(time.time() * 1000)
        record_id = str(uuid.uuid4())

        db = self._database.db
        await db.execute(
            "UPDATE api_credentials SET is_active = 0, updated_at = ? WHERE is_active = 1",
            (now_ms,),
        )
        await db.execute(
            "INSERT INTO api_credentials "
            "(id, api_key, secret_key, passphrase, sandbox, is_active, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, 1, ?, ?)",
            (
                record_id,
                credentials.api_key,
                credentials.secret_key,
                credentials.passphrase,
                int(credentials.sandbox),
                now_ms,
                now_ms,
            ),
        )
        await db.commit()

        logger.info("credentials_saved", record_id=record_id, sandbox=credentials.sandbox)
        return StoredCredentials(
            id=record_id,
            credentials=credentials,
            is_active=True,
            created_at=now_ms,
            updated_at=now_ms,
        )

    async def delete(self) -> None:
        now_ms = int(time.time() * 1000)
        cursor = await self._database.db.execute(
            "UPDATE api_credentials SET is_active = 0, updated_at = ? WHERE is_active = 1",
            (now_ms,),
        )
        await self._database.db.commit()
        logger.info("credentials_deactivated", count=cursor.rowcount)

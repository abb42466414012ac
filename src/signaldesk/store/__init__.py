"""Credential persistence backed by async SQLite."""

from signaldesk.store.credentials import CredentialStore, SqliteCredentialStore, StoredCredentials
from signaldesk.store.database import CredentialDatabase

__all__ = [
    "CredentialDatabase",
    "CredentialStore",
    "SqliteCredentialStore",
    "StoredCredentials",
]

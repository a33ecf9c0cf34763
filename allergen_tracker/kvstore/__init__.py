# -*- coding: utf-8 -*-
"""Key/value storage: backend collaborators and the adapter the record store runs on."""

from .adapter import KVStore
from .backends import HttpLedgerBackend, InMemoryBackend, SqliteBackend, StorageBackend, build_backend

__all__ = [
    "KVStore",
    "StorageBackend",
    "InMemoryBackend",
    "SqliteBackend",
    "HttpLedgerBackend",
    "build_backend",
]

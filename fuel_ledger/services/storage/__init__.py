"""
Storage Services Package

Provides the key-value boundary, its implementations, and the ledger
store built on top of it.
"""

from fuel_ledger.services.storage.interface import (
    CorruptDataError,
    InMemoryKeyValueStore,
    KeyValueStore,
    NotFoundError,
    StorageError,
)
from fuel_ledger.services.storage.json_file import JsonFileKeyValueStore
from fuel_ledger.services.storage.ledger_store import LedgerStore

__all__ = [
    # Interfaces
    "KeyValueStore",
    # Exceptions
    "CorruptDataError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "LedgerStore",
]

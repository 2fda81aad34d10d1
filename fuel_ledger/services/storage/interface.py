"""
Abstract Storage Interface

DESIGN DECISION: The ledger persists through a plain key-value boundary.
This allows us to:
1. Keep everything in one local JSON file in production
2. Use in-memory storage for testing
3. Keep ledger logic decoupled from the storage medium

Each slot holds a whole serialized value (the full record collection,
the full station list, ...). Slots are read once and overwritten
wholesale; there are no partial writes.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStore(ABC):
    """
    Abstract synchronous key-value storage.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read a slot.

        Args:
            key: Slot name

        Returns:
            The stored text, or None if the slot was never written

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Overwrite a slot.

        Args:
            key: Slot name
            value: Text to store

        Raises:
            StorageError: If the write fails
        """
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store. Nothing survives the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self.write_count = 0

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self.write_count += 1

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptDataError(StorageError):
    """A slot holds data that cannot be decoded."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(message)


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass

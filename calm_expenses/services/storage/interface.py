"""
Abstract Storage Interface

DESIGN DECISION: The ledger is persisted into a plain key-value slot,
the same shape as browser local storage: string keys, string values.
This allows us to:
1. Keep the whole ledger in one local JSON file
2. Use in-memory storage for testing
3. Swap the backend without touching ledger logic

Backends raise StorageError subclasses. Deciding what a failure means
for the ledger is the job of LedgerStore, not of the backend.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for a durable key-value slot.

    Any backend (JSON file, memory, ...) must implement these methods.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Returns:
            The stored string, or None if the key is absent

        Raises:
            StorageReadError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """
        Store a value under a key, replacing any previous value.

        Raises:
            StorageWriteError: If the value could not be written
        """
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """
        Remove a key. Removing an absent key is not an error.

        Raises:
            StorageWriteError: If the change could not be written
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageReadError(StorageError):
    """The slot exists but could not be read."""
    pass


class StorageWriteError(StorageError):
    """The slot could not be written (disk full, permissions, ...)."""
    pass

"""
Storage Services Package

Provides the abstract key-value slot interface, its JSON file and
in-memory implementations, and the ledger store that serializes the
ledger into a slot.
"""

from calm_expenses.services.storage.interface import (
    KeyValueStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from calm_expenses.services.storage.local_file import JsonFileStorage
from calm_expenses.services.storage.memory import InMemoryStorage
from calm_expenses.services.storage.ledger_store import LedgerStore, LoadResult

__all__ = [
    # Interfaces
    "KeyValueStorageInterface",
    # Exceptions
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Implementations
    "InMemoryStorage",
    "JsonFileStorage",
    # Ledger persistence
    "LedgerStore",
    "LoadResult",
]

"""Services package."""

from calm_expenses.services.storage import (
    InMemoryStorage,
    JsonFileStorage,
    KeyValueStorageInterface,
    LedgerStore,
    LoadResult,
    StorageError,
    StorageReadError,
    StorageWriteError,
)

__all__ = [
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorageInterface",
    "LedgerStore",
    "LoadResult",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
]

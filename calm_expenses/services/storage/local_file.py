"""
JSON File Storage Implementation

DESIGN DECISION: A single JSON object on disk acts as the key-value slot:
    {"calm-expenses:mobile-first": "<serialized ledger>"}

TRADEOFFS:
- Every write rewrites the whole file (fine for personal ledgers)
- Writes go to a temporary file first and are moved into place, so a
  crash mid-write leaves the previous content intact
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog

from calm_expenses.services.storage.interface import (
    KeyValueStorageInterface,
    StorageReadError,
    StorageWriteError,
)

logger = structlog.get_logger(__name__)


class JsonFileStorage(KeyValueStorageInterface):
    """
    Key-value slot backed by one JSON file.

    The file is created on first write, along with its parent directory.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        """Read the whole mapping. A missing file is an empty mapping."""
        if not self._path.exists():
            return {}

        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageReadError(f"Could not read {self._path}: {e}")

        if not text.strip():
            return {}

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageReadError(f"Storage file {self._path} is not valid JSON: {e}")

        if not isinstance(data, dict):
            raise StorageReadError(f"Storage file {self._path} does not hold a JSON object")

        return data

    def _write_all(self, data: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                    f.write("\n")
                os.replace(tmp_name, self._path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise StorageWriteError(f"Could not write {self._path}: {e}")

    def get_item(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        if value is not None and not isinstance(value, str):
            # Values are always strings; anything else is foreign data
            logger.warning("storage_value_not_string", path=str(self._path), key=key)
            return json.dumps(value)
        return value

    def set_item(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except StorageReadError as e:
            # An unreadable file is replaced rather than blocking every save
            logger.warning("storage_file_replaced", path=str(self._path), error=str(e))
            data = {}
        data[key] = value
        self._write_all(data)

    def remove_item(self, key: str) -> None:
        try:
            data = self._read_all()
        except StorageReadError as e:
            raise StorageWriteError(str(e))
        if key in data:
            del data[key]
            self._write_all(data)

"""
JSON File Storage Implementation

DESIGN DECISION: One local JSON object file holds every slot because:
1. Single user, single device: no server, no database setup
2. The file is human-readable and easy to back up
3. The whole ledger is small enough to rewrite on every change

TRADEOFFS:
- Not safe for several writer processes (we have exactly one)
- Every write rewrites the file (fine at personal-ledger scale)

Writes go to a temporary file next to the target and are moved into
place with `os.replace`, so a crash never leaves a half-written ledger.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from fuel_ledger.services.storage.interface import (
    CorruptDataError,
    KeyValueStore,
    StorageError,
)


class JsonFileKeyValueStore(KeyValueStore):
    """
    Key-value store backed by a single JSON object file.

    The file is read on first access and cached; every `set` rewrites it.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._data: Optional[dict[str, str]] = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if self._data is not None:
            return self._data

        if not self._path.exists():
            self._data = {}
            return self._data

        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}")

        if not raw.strip():
            self._data = {}
            return self._data

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptDataError(str(self._path), f"Ledger file is not valid JSON: {e}")

        if not isinstance(data, dict):
            raise CorruptDataError(str(self._path), "Ledger file must hold a JSON object")

        for key, value in data.items():
            if not isinstance(value, str):
                raise CorruptDataError(
                    key,
                    f"Slot {key!r} in {self._path} must hold text, not {type(value).__name__}"
                )

        self._data = data
        return self._data

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = dict(self._load())
        data[key] = value
        try:
            self._write(data)
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}")
        self._data = data

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write(self, data: dict[str, str]) -> None:
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            dir=directory,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

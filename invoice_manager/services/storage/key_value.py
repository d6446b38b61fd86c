"""
Key-Value Store Implementations

Two media behind the KeyValueStore interface:

- InMemoryKeyValueStore: JSON text kept in a dict. Used by tests and when
  INVOICE_STORAGE_BACKEND=memory. Values are serialized on write exactly
  like the file store, so callers never share mutable state with it.
- JsonFileKeyValueStore: one ``<key>.json`` file per key in a data
  directory. Writes go to a temporary file that is then renamed over the
  target, so a crash mid-write leaves the previous value intact.

Reads never raise for bad data: a missing, unreadable or corrupt value
comes back as the caller's default and a warning is logged. Writes raise
StorageError.
"""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Optional

import structlog

from invoice_manager.services.storage.interface import KeyValueStore, StorageError


logger = structlog.get_logger(__name__)

# Keys become file names
_KEY_PATTERN = re.compile(r"[A-Za-z0-9_\-]+")


def _serialize(key: str, value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False, indent=2)
    except (TypeError, ValueError) as e:
        raise StorageError(f"Failed to serialize value for '{key}': {e}") from e


class InMemoryKeyValueStore(KeyValueStore):
    """
    Dict-backed store.

    Args:
        initial: Optional raw JSON text per key, e.g. to simulate
                 a corrupted entry in tests.
    """

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning("storage_read_failed", key=key, error=str(e))
            return default

    def set(self, key: str, value: Any) -> None:
        self._data[key] = _serialize(key, value)

    def has(self, key: str) -> bool:
        return key in self._data


class JsonFileKeyValueStore(KeyValueStore):
    """
    Store backed by JSON files in ``data_dir``.

    The directory is created on first write.
    """

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.fullmatch(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(
                "storage_read_failed",
                key=key,
                path=str(path),
                error=str(e),
            )
            return default

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        payload = _serialize(key, value)

        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{key}.", suffix=".tmp", dir=self._data_dir
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write '{key}' to {path}: {e}") from e

    def has(self, key: str) -> bool:
        return self._path(key).exists()

"""
Durable Local Storage

Synchronous string key-value storage scoped to one customer device.
The file-backed implementation keeps one JSON object per session and
guards read-modify-write cycles with a file lock; concurrent writers from
the same device still race with last-write-wins semantics.

Author: Storefront Team
Version: 1.0.0
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from filelock import FileLock, Timeout

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """The storage backend could not be read or written."""


class BaseStorage(ABC):
    """Key-value interface: get(key) -> str | None, set(key, value)."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass


class MemoryStorage(BaseStorage):
    """Process-local storage, used by tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStorage(BaseStorage):
    """
    One JSON object on disk, keys mapping to string values.

    Attributes:
        path: Storage file
        lock_timeout: Seconds to wait for the file lock
    """

    def __init__(self, path: Path, lock_timeout: int = 30):
        self.path = Path(path)
        self.lock_timeout = lock_timeout
        self._lock_path = self.path.with_suffix(self.path.suffix + ".lock")

    def _ensure_dir(self) -> None:
        if not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created storage directory: {self.path.parent}")

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Unexpected content in {self.path}")
        return data

    def _lock(self) -> FileLock:
        return FileLock(str(self._lock_path), timeout=self.lock_timeout)

    def get(self, key: str) -> Optional[str]:
        self._ensure_dir()
        try:
            with self._lock():
                value = self._read_all().get(key)
        except Timeout as e:
            raise StorageError(f"Lock timeout ({self.lock_timeout}s) on {self.path}") from e
        return value if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        self._ensure_dir()
        try:
            with self._lock():
                try:
                    data = self._read_all()
                except StorageError as e:
                    logger.warning(f"Overwriting unreadable storage: {e}")
                    data = {}
                data[key] = value
                self.path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        except Timeout as e:
            raise StorageError(f"Lock timeout ({self.lock_timeout}s) on {self.path}") from e
        except OSError as e:
            raise StorageError(f"Cannot write {self.path}: {e}") from e


"""
Durable key-value storage for client-side state.

Values are strings, keys are fixed names. ``JsonFileStorage`` keeps every key
in one JSON document on disk; ``MemoryStorage`` is the same contract without
the file. Every write or removal is announced to listeners registered with
``subscribe`` together with the writer's ``origin``.
"""

import json
import logging
import os
from pathlib import Path
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

StorageListener = Callable[[str, Optional[str]], None]


class StorageError(Exception):
    """Raised when a write cannot be made durable (disk full, read-only, ...)."""


class MemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._listeners: List[StorageListener] = []

    # -- listeners --
    def subscribe(self, listener: StorageListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _announce(self, key: str, origin: Optional[str]) -> None:
        for listener in list(self._listeners):
            listener(key, origin)

    # -- contract --
    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str, origin: Optional[str] = None) -> None:
        self._data[key] = value
        self._announce(key, origin)

    def remove_item(self, key: str, origin: Optional[str] = None) -> None:
        if key in self._data:
            del self._data[key]
            self._announce(key, origin)

    def keys(self) -> List[str]:
        return list(self._data)


class JsonFileStorage(MemoryStorage):
    """File-backed storage. The file is rewritten whole on every write."""

    def __init__(self, path):
        super().__init__()
        self.path = Path(path)
        self._data = self._read()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, ValueError) as e:
            logger.warning("Discarding unreadable storage file %s: %s", self.path, e)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Discarding storage file %s: expected an object", self.path)
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as handle:
                json.dump(data, handle)
            os.replace(tmp, self.path)
        except OSError as e:
            if tmp.exists():
                tmp.unlink()
            raise StorageError(f"Could not write {self.path}: {e}") from e

    def set_item(self, key: str, value: str, origin: Optional[str] = None) -> None:
        data = {**self._data, key: value}
        self._write(data)
        self._data = data
        self._announce(key, origin)

    def remove_item(self, key: str, origin: Optional[str] = None) -> None:
        if key not in self._data:
            return
        data = {k: v for k, v in self._data.items() if k != key}
        self._write(data)
        self._data = data
        self._announce(key, origin)

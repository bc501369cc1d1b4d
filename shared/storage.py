"""
Key-value storage backends for persistent caches.

The metadata cache only needs get/set/remove and key enumeration, so any
backend offering those works: an in-memory dict for tests and short-lived
processes, or a JSON document on disk that survives restarts.
"""

import json
import logging
import os
import tempfile
from typing import Dict, Iterator, Optional

logger = logging.getLogger(__name__)


class StorageFullError(Exception):
    """Raised when a write would exceed the backend's quota."""


class KeyValueStorage:
    """Interface for string key-value stores."""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> Iterator[str]:
        raise NotImplementedError


class InMemoryStorage(KeyValueStorage):
    """Dict-backed storage. max_items emulates a quota."""

    def __init__(self, max_items: Optional[int] = None):
        self._items: Dict[str, str] = {}
        self.max_items = max_items

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if (self.max_items is not None
                and key not in self._items
                and len(self._items) >= self.max_items):
            raise StorageFullError(f"Storage quota of {self.max_items} items exceeded")
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> Iterator[str]:
        # Snapshot so callers may remove while iterating
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)


class JsonFileStorage(InMemoryStorage):
    """
    Storage persisted as a single JSON object on disk.

    The file is loaded once and rewritten atomically after each mutation.
    A missing or unreadable file starts an empty store.
    """

    def __init__(self, path: str, max_items: Optional[int] = None):
        super().__init__(max_items=max_items)
        self.path = path
        self._load()

    def _load(self) -> None:
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable cache file %s: %s", self.path, e)
            return
        if isinstance(data, dict):
            self._items = {str(k): str(v) for k, v in data.items()}

    def _flush(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self._items, f)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def set_item(self, key: str, value: str) -> None:
        super().set_item(key, value)
        self._flush()

    def remove_item(self, key: str) -> None:
        if key in self._items:
            super().remove_item(key)
            self._flush()

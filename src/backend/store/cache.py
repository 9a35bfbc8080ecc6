from __future__ import annotations

import threading
from typing import Any, Optional


class CollectionCache:
    """
    In-process cache holding one parsed container per collection key.

    The document store owns the invalidation rules: entries are replaced only
    after a successful write and dropped by ``invalidate``/``clear``. Each store
    instance gets its own cache unless one is injected explicitly.
    """

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[dict[str, Any]]:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, container: dict[str, Any]) -> None:
        with self._lock:
            self._entries[key] = container

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

"""
Generic CRUD + pagination over JSON collections.

Every mutation is a read-modify-write of the whole container, so each
collection key has its own re-entrant lock. Mutations work on a deep copy of
the cached container and only replace the cache after the file write
succeeded, so readers never observe a partial write.

Deployment constraint: one serving process per data directory. Caches of
separate processes are not coordinated.
"""

from __future__ import annotations

import copy
import random
import string
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from src.shared.timestamps import now_iso

from .cache import CollectionCache
from .codec import CollectionCodec, Container, resolve_spec
from .errors import RecordNotFoundError


Record = dict[str, Any]
Predicate = Callable[[Record], bool]

IMMUTABLE_FIELDS = ("id", "createdAt")

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_record_id() -> str:
    """Millisecond timestamp plus random suffix, both base-36."""
    millis = int(time.time() * 1000)
    suffix = "".join(random.choices(_BASE36, k=11))
    return _to_base36(millis) + suffix


@dataclass(frozen=True)
class Page:
    records: list[Record]
    total: int
    page: int
    page_size: int

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "data": self.records,
            "total": self.total,
            "page": self.page,
            "limit": self.page_size,
        }


class DocumentStore:
    def __init__(
        self,
        *,
        data_dir: Path | None = None,
        codec: CollectionCodec | None = None,
        cache: CollectionCache | None = None,
    ) -> None:
        if codec is None:
            if data_dir is None:
                raise ValueError("DocumentStore needs either data_dir or codec")
            codec = CollectionCodec(data_dir=Path(data_dir))
        self._codec = codec
        self._cache = cache if cache is not None else CollectionCache()
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @property
    def codec(self) -> CollectionCodec:
        return self._codec

    @property
    def cache(self) -> CollectionCache:
        return self._cache

    # ---------------------------------------------------------------------
    # Container access
    # ---------------------------------------------------------------------

    def lock_for(self, collection_key: str) -> threading.RLock:
        key = resolve_spec(collection_key).key
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    def read_container(self, collection_key: str) -> Container:
        """Return a copy of the collection container (loading it on first access)."""
        with self.lock_for(collection_key):
            return copy.deepcopy(self._load(collection_key))

    def write_container(self, collection_key: str, container: Container) -> None:
        with self.lock_for(collection_key):
            self._store(collection_key, copy.deepcopy(container))

    def clear_cache(self) -> None:
        self._cache.clear()

    # ---------------------------------------------------------------------
    # Record operations
    # ---------------------------------------------------------------------

    def create(self, collection_key: str, fields: Record) -> Record:
        with self.lock_for(collection_key):
            container = copy.deepcopy(self._load(collection_key))
            items = self._items(collection_key, container)

            record_id = fields.get("id") or generate_record_id()
            if any(item.get("id") == record_id for item in items):
                raise ValueError(f"Record with id {record_id} already exists")

            now = now_iso()
            record = dict(fields)
            record["id"] = record_id
            record["createdAt"] = now
            record["updatedAt"] = now

            items.append(record)
            self._store(collection_key, container)
            return copy.deepcopy(record)

    def find_by_id(self, collection_key: str, record_id: str) -> Optional[Record]:
        with self.lock_for(collection_key):
            container = self._load(collection_key)
            for item in self._items(collection_key, container):
                if item.get("id") == record_id:
                    return copy.deepcopy(item)
            return None

    def find_all(self, collection_key: str, predicate: Optional[Predicate] = None) -> list[Record]:
        with self.lock_for(collection_key):
            container = self._load(collection_key)
            items = self._items(collection_key, container)
            selected = [item for item in items if predicate is None or predicate(item)]
            return copy.deepcopy(selected)

    def find_with_pagination(
        self,
        collection_key: str,
        page: int = 1,
        page_size: int = 10,
        predicate: Optional[Predicate] = None,
    ) -> Page:
        if page < 1:
            raise ValueError("page must be >= 1")
        if page_size < 1:
            raise ValueError("page_size must be >= 1")

        matched = self.find_all(collection_key, predicate)
        start = (page - 1) * page_size
        return Page(
            records=matched[start:start + page_size],
            total=len(matched),
            page=page,
            page_size=page_size,
        )

    def update(self, collection_key: str, record_id: str, partial: Record) -> Record:
        """
        Shallow-merge ``partial`` into a record and refresh ``updatedAt``.

        ``id`` and ``createdAt`` in ``partial`` are ignored.

        Raises:
            RecordNotFoundError: no record with ``record_id``.
        """
        with self.lock_for(collection_key):
            container = copy.deepcopy(self._load(collection_key))
            items = self._items(collection_key, container)

            for index, item in enumerate(items):
                if item.get("id") != record_id:
                    continue
                merged = {**item, **partial}
                for field_name in IMMUTABLE_FIELDS:
                    if field_name in item:
                        merged[field_name] = item[field_name]
                merged["updatedAt"] = now_iso()
                items[index] = merged
                self._store(collection_key, container)
                return copy.deepcopy(merged)

            raise RecordNotFoundError(resolve_spec(collection_key).key, record_id)

    def delete(self, collection_key: str, record_id: str) -> None:
        with self.lock_for(collection_key):
            spec = resolve_spec(collection_key)
            container = copy.deepcopy(self._load(collection_key))
            items = self._items(collection_key, container)

            remaining = [item for item in items if item.get("id") != record_id]
            if len(remaining) == len(items):
                raise RecordNotFoundError(spec.key, record_id)

            container[spec.field] = remaining
            self._store(collection_key, container)

    # ---------------------------------------------------------------------
    # Internals (collection lock must be held)
    # ---------------------------------------------------------------------

    def _load(self, collection_key: str) -> Container:
        key = resolve_spec(collection_key).key
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        container = self._codec.read(key)
        self._cache.put(key, container)
        return container

    def _store(self, collection_key: str, container: Container) -> None:
        key = resolve_spec(collection_key).key
        self._codec.write(key, container)
        self._cache.put(key, container)

    def _items(self, collection_key: str, container: Container) -> list[Record]:
        spec = resolve_spec(collection_key)
        if spec.is_singleton:
            raise ValueError(f"Collection {spec.key} holds a single document, not records")
        return container[spec.field]

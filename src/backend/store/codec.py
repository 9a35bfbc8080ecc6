"""
Collection codec: one JSON file per collection key.

File layout:
    <data_dir>/technicians.json        {"technicians": [...]}
    <data_dir>/announcements.json      {"announcements": [...]}
    <data_dir>/customer-service.json   {"customerService": [...]}
    <data_dir>/admin.json              {"admin": {...}}

An absent file is materialized with the collection's default container on
first read. Existing content that cannot be parsed is reported, never replaced.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from src.shared.timestamps import now_iso

from .errors import MalformedCollectionError, StorageIOError


Container = dict[str, Any]

DEFAULT_ARRAY_FIELD = "items"


def _default_admin() -> dict[str, Any]:
    now = now_iso()
    return {
        "username": "admin",
        "passwordHash": "",
        "lastLogin": None,
        "loginAttempts": 0,
        "lockedUntil": None,
        "createdAt": now,
        "updatedAt": now,
    }


@dataclass(frozen=True)
class CollectionSpec:
    """How a collection key maps onto its backing file and container field."""
    key: str
    filename: str
    field: str
    singleton_factory: Callable[[], dict[str, Any]] | None = None

    @property
    def is_singleton(self) -> bool:
        return self.singleton_factory is not None

    def default_container(self) -> Container:
        if self.singleton_factory is not None:
            return {self.field: self.singleton_factory()}
        return {self.field: []}


KNOWN_COLLECTIONS: dict[str, CollectionSpec] = {
    spec.key: spec
    for spec in (
        CollectionSpec(key="technicians", filename="technicians.json", field="technicians"),
        CollectionSpec(key="announcements", filename="announcements.json", field="announcements"),
        CollectionSpec(key="customer-service", filename="customer-service.json", field="customerService"),
        CollectionSpec(key="admin", filename="admin.json", field="admin", singleton_factory=_default_admin),
    )
}


def normalize_key(collection_key: str) -> str:
    key = collection_key.strip()
    if key.endswith(".json"):
        key = key[: -len(".json")]
    if not key or "/" in key or "\\" in key or key.startswith("."):
        raise ValueError(f"Invalid collection key: {collection_key!r}")
    return key


def resolve_spec(collection_key: str) -> CollectionSpec:
    key = normalize_key(collection_key)
    spec = KNOWN_COLLECTIONS.get(key)
    if spec is not None:
        return spec
    return CollectionSpec(key=key, filename=f"{key}.json", field=DEFAULT_ARRAY_FIELD)


class CollectionCodec:
    def __init__(self, *, data_dir: Path) -> None:
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, collection_key: str) -> Path:
        return self._data_dir / resolve_spec(collection_key).filename

    def read(self, collection_key: str) -> Container:
        """
        Load a collection container.

        Raises:
            MalformedCollectionError: stored content is not a valid container.
            StorageIOError: the file exists but cannot be read.
        """
        spec = resolve_spec(collection_key)
        path = self._data_dir / spec.filename

        if not path.exists():
            container = spec.default_container()
            self.write(spec.key, container)
            return container

        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageIOError(f"Failed to read collection {spec.key}: {exc}") from exc

        try:
            container = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedCollectionError(f"Collection {spec.key} is not valid JSON: {exc}") from exc

        if not isinstance(container, dict):
            raise MalformedCollectionError(f"Collection {spec.key} must be a JSON object")

        if spec.field not in container:
            container[spec.field] = spec.default_container()[spec.field]

        expected = dict if spec.is_singleton else list
        if not isinstance(container[spec.field], expected):
            raise MalformedCollectionError(
                f"Collection {spec.key} field {spec.field!r} must be a JSON {expected.__name__}"
            )

        return container

    def write(self, collection_key: str, container: Container) -> None:
        spec = resolve_spec(collection_key)
        path = self._data_dir / spec.filename
        payload = json.dumps(container, ensure_ascii=False, indent=2)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(path.suffix + ".tmp")
            tmp_path.write_text(payload, encoding="utf-8")
            tmp_path.replace(path)
        except OSError as exc:
            raise StorageIOError(f"Failed to write collection {spec.key}: {exc}") from exc

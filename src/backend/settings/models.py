from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from src.backend.media.layout import DEFAULT_UPLOADS_DIR
from src.backend.media.reconciler import DEFAULT_ENTITY_COLLECTION, DEFAULT_NAME_FIELD
from src.backend.media.uploads import DEFAULT_MAX_IMAGE_BYTES, DEFAULT_MAX_UPLOAD_BYTES


DEFAULT_DATA_DIR = "data"
DEFAULT_PUBLIC_ROOT = "public"


def _int_or_default(value: Any, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


@dataclass
class StorageSettings:
    data_dir: str = DEFAULT_DATA_DIR
    public_root: str = DEFAULT_PUBLIC_ROOT
    uploads_dir: str = DEFAULT_UPLOADS_DIR
    entity_collection: str = DEFAULT_ENTITY_COLLECTION
    entity_name_field: str = DEFAULT_NAME_FIELD
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES
    deterministic_thumbnail_names: bool = False

    def resolve_data_dir(self, repo_root: Path) -> Path:
        return _resolve(self.data_dir, repo_root=repo_root)

    def resolve_public_root(self, repo_root: Path) -> Path:
        return _resolve(self.public_root, repo_root=repo_root)

    def to_persist_dict(self) -> dict[str, Any]:
        return {
            "version": 1,
            "data_dir": self.data_dir,
            "public_root": self.public_root,
            "uploads_dir": self.uploads_dir,
            "entity_collection": self.entity_collection,
            "entity_name_field": self.entity_name_field,
            "max_upload_bytes": self.max_upload_bytes,
            "max_image_bytes": self.max_image_bytes,
            "deterministic_thumbnail_names": self.deterministic_thumbnail_names,
        }

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "StorageSettings":
        return cls(
            data_dir=str(data.get("data_dir") or DEFAULT_DATA_DIR),
            public_root=str(data.get("public_root") or DEFAULT_PUBLIC_ROOT),
            uploads_dir=str(data.get("uploads_dir") or DEFAULT_UPLOADS_DIR),
            entity_collection=str(data.get("entity_collection") or DEFAULT_ENTITY_COLLECTION),
            entity_name_field=str(data.get("entity_name_field") or DEFAULT_NAME_FIELD),
            max_upload_bytes=_int_or_default(data.get("max_upload_bytes"), DEFAULT_MAX_UPLOAD_BYTES),
            max_image_bytes=_int_or_default(data.get("max_image_bytes"), DEFAULT_MAX_IMAGE_BYTES),
            deterministic_thumbnail_names=bool(data.get("deterministic_thumbnail_names", False)),
        )


def _resolve(raw: str, *, repo_root: Path) -> Path:
    p = Path(raw.strip()).expanduser()
    if not p.is_absolute():
        p = (repo_root / p).resolve()
    return p

"""
Reconciliation between entity upload folders and entity records.

Sync pass, per entity folder (scan order):
1. Match the record whose name field equals the folder name (skip if none)
2. Scan the folder for media files
3. Resolve thumbnails: existing one, else synthesized (videos) or the
   original itself (images)
4. Rebuild the media list with sortOrder 1..N
5. Write the list back, unless it is empty (an empty scan never wipes media)

Deletion flows remove files and patch the owning record; see delete_media and
delete_entity.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from src.backend.store import DocumentStore, RecordNotFoundError, StorageError
from src.shared.media_kind import MediaKind, classify_extension

from .layout import InvalidMediaPathError, MediaLayout, is_safe_folder_name
from .naming import thumbnail_matches
from .scanner import DiscoveredMedia, MediaTreeScanner
from .thumbnails import ThumbnailError, ThumbnailSynthesizer


logger = logging.getLogger(__name__)

DEFAULT_ENTITY_COLLECTION = "technicians"
DEFAULT_NAME_FIELD = "nickname"


class EntityNotFoundError(RecordNotFoundError):
    pass


@dataclass
class SyncFailure:
    folder_name: str
    error: str


@dataclass
class SyncResult:
    """Outcome of a sync pass."""
    scanned_folders: int = 0
    updated_entities: int = 0
    skipped_folders: list[str] = field(default_factory=list)
    failures: list[SyncFailure] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scanned_folders": self.scanned_folders,
            "updated_entities": self.updated_entities,
            "skipped_folders": list(self.skipped_folders),
            "failures": [{"folder_name": f.folder_name, "error": f.error} for f in self.failures],
        }


def media_description(entity_name: str, kind: MediaKind) -> str:
    return f"{entity_name}的{kind.label}"


def renumber(media: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Return copies of ``media`` with sortOrder reassigned 1..N in list order."""
    return [{**item, "sortOrder": index} for index, item in enumerate(media, start=1)]


class MediaReconciler:
    """
    Keeps entity records' ``media`` lists in line with the upload tree.

    This is the only component that replaces a record's ``media`` wholesale.

    Usage:
        reconciler = MediaReconciler(store=store, layout=layout)
        result = reconciler.sync_all()
        reconciler.delete_media(entity_id, "/uploads/technicians/Ana/photo.jpg")
        reconciler.delete_entity(entity_id)
    """

    def __init__(
        self,
        *,
        store: DocumentStore,
        layout: MediaLayout,
        scanner: Optional[MediaTreeScanner] = None,
        synthesizer: Optional[ThumbnailSynthesizer] = None,
        collection: str = DEFAULT_ENTITY_COLLECTION,
        name_field: str = DEFAULT_NAME_FIELD,
    ):
        self._store = store
        self._layout = layout
        self._scanner = scanner or MediaTreeScanner(layout)
        self._synthesizer = synthesizer or ThumbnailSynthesizer()
        self._collection = collection
        self._name_field = name_field

    @property
    def scanner(self) -> MediaTreeScanner:
        return self._scanner

    # ---------------------------------------------------------------------
    # Sync
    # ---------------------------------------------------------------------

    def sync_all(self) -> SyncResult:
        """
        Rebuild every matched entity's media list from disk.

        A failure in one folder is recorded in the result and the pass goes on
        with the remaining folders.
        """
        result = SyncResult()
        folders = self._scanner.list_entity_folders()
        result.scanned_folders = len(folders)

        for folder in folders:
            try:
                updated = self._sync_folder(folder)
            except (OSError, InvalidMediaPathError, StorageError) as exc:
                logger.warning("Media sync failed for folder %s: %s", folder.name, exc)
                result.failures.append(SyncFailure(folder_name=folder.name, error=str(exc)))
                continue

            if updated is None:
                result.skipped_folders.append(folder.name)
            elif updated:
                result.updated_entities += 1

        logger.info(
            "Media sync finished: %d folders scanned, %d entities updated, %d failures",
            result.scanned_folders,
            result.updated_entities,
            len(result.failures),
        )
        return result

    def sync_entity(self, entity_id: str) -> bool:
        """
        Sync a single entity's folder.

        Returns:
            True if the record's media list was replaced.

        Raises:
            EntityNotFoundError: No record with ``entity_id``.
        """
        record = self._require_entity(entity_id)
        name = str(record.get(self._name_field) or "")
        if not is_safe_folder_name(name):
            return False
        return bool(self._sync_folder(self._layout.get_entity_paths(name).root, record=record))

    def _sync_folder(self, folder: Path, record: Optional[dict[str, Any]] = None) -> Optional[bool]:
        """
        Returns:
            None if no record matches the folder, otherwise whether the record changed.
        """
        if record is None:
            record = self._find_by_name(folder.name)
        if record is None:
            logger.info("No %s record found for folder: %s", self._collection, folder.name)
            return None

        discovered = self._scanner.scan_folder(folder)
        if not discovered:
            return False

        entity_name = str(record.get(self._name_field) or folder.name)
        media = renumber([self._build_entry(item, entity_name) for item in discovered])
        self._store.update(self._collection, record["id"], {"media": media})
        return True

    def _build_entry(self, item: DiscoveredMedia, entity_name: str) -> dict[str, Any]:
        path_url = self._layout.to_public_url(item.absolute_path)
        return {
            "type": item.kind.value,
            "path": path_url,
            "thumbnail": self._resolve_thumbnail(item, path_url),
            "description": media_description(entity_name, item.kind),
        }

    def _resolve_thumbnail(self, item: DiscoveredMedia, path_url: str) -> str:
        if item.thumbnail_path is not None:
            return self._layout.to_public_url(item.thumbnail_path)
        if item.kind is MediaKind.IMAGE:
            return path_url

        try:
            thumbnail = self._synthesizer.synthesize(item.absolute_path)
        except ThumbnailError as exc:
            logger.warning("Falling back to original path for %s: %s", item.file_name, exc)
            return path_url
        return self._layout.to_public_url(thumbnail)

    # ---------------------------------------------------------------------
    # Deletion
    # ---------------------------------------------------------------------

    def delete_media(self, entity_id: str, stored_path: str) -> bool:
        """
        Delete one media file, its thumbnails, and its entry in the record.

        Missing files are treated as already deleted, so repeating a call is a
        no-op.

        Returns:
            True if the record's media list changed.

        Raises:
            EntityNotFoundError: No record with ``entity_id``.
            InvalidMediaPathError: ``stored_path`` is not a file directly inside
                the entity's own folder.
            OSError: A file exists but cannot be removed.
        """
        record = self._require_entity(entity_id)
        entity_paths = self._layout.get_entity_paths(str(record.get(self._name_field) or ""))
        target = self._layout.from_public_url(stored_path)
        if target.parent != entity_paths.root:
            raise InvalidMediaPathError(f"Media path does not belong to entity {entity_id}: {stored_path!r}")
        media = list(record.get("media") or [])

        thumbnails: set[Path] = set()
        for entry in media:
            if entry.get("path") != stored_path:
                continue
            thumb_url = entry.get("thumbnail")
            if thumb_url and thumb_url != stored_path:
                try:
                    thumb_path = self._layout.from_public_url(thumb_url)
                except InvalidMediaPathError:
                    continue
                if thumb_path.parent == entity_paths.thumbnails:
                    thumbnails.add(thumb_path)

        thumbnail_dir = entity_paths.thumbnails
        if thumbnail_dir.is_dir() and classify_extension(target.name) is not None:
            for candidate in thumbnail_dir.iterdir():
                if candidate.is_file() and thumbnail_matches(candidate.name, target.stem):
                    thumbnails.add(candidate)

        if target.is_file():
            target.unlink(missing_ok=True)
            logger.info("Deleted media file %s", target.name)
        for thumb_path in sorted(thumbnails):
            thumb_path.unlink(missing_ok=True)
            logger.info("Deleted thumbnail %s", thumb_path.name)

        remaining = renumber([entry for entry in media if entry.get("path") != stored_path])
        if remaining == media:
            return False

        self._store.update(self._collection, entity_id, {"media": remaining})
        return True

    def delete_entity(self, entity_id: str) -> None:
        """
        Delete an entity's folder tree and its record.

        Folder removal is best-effort: an orphaned folder is picked up again by
        a later sync, a record pointing at deleted media is not recoverable.

        Raises:
            EntityNotFoundError: No record with ``entity_id``.
        """
        record = self._require_entity(entity_id)
        name = str(record.get(self._name_field) or "")

        if is_safe_folder_name(name):
            folder = self._layout.get_entity_paths(name).root
            if folder.exists():
                try:
                    shutil.rmtree(folder)
                    logger.info("Deleted media folder for %s", name)
                except OSError as exc:
                    logger.warning("Failed to delete media folder for %s: %s", name, exc)
        else:
            logger.warning("Entity %s has no usable folder name, skipping folder removal", entity_id)

        try:
            self._store.delete(self._collection, entity_id)
        except RecordNotFoundError as exc:
            raise EntityNotFoundError(self._collection, entity_id) from exc

    # ---------------------------------------------------------------------
    # Reporting
    # ---------------------------------------------------------------------

    def media_stats(self) -> dict[str, Any]:
        image_files = 0
        video_files = 0
        for item in self._scanner.scan():
            if item.kind is MediaKind.IMAGE:
                image_files += 1
            else:
                video_files += 1

        records = self._store.find_all(self._collection)
        with_media = sum(1 for r in records if r.get("media"))
        return {
            "files": {
                "total": image_files + video_files,
                "images": image_files,
                "videos": video_files,
            },
            "entities": {
                "total": len(records),
                "active": sum(1 for r in records if r.get("isActive")),
                "with_media": with_media,
                "without_media": len(records) - with_media,
            },
        }

    # ---------------------------------------------------------------------
    # Internals
    # ---------------------------------------------------------------------

    def _require_entity(self, entity_id: str) -> dict[str, Any]:
        record = self._store.find_by_id(self._collection, entity_id)
        if record is None:
            raise EntityNotFoundError(self._collection, entity_id)
        return record

    def _find_by_name(self, name: str) -> Optional[dict[str, Any]]:
        matches = self._store.find_all(self._collection, lambda r: r.get(self._name_field) == name)
        return matches[0] if matches else None

"""
Scanner for the entity upload tree.

For each entity folder (one per entity, named after it) the scanner lists the
regular files directly inside it, keeps those whose extension classifies as
image or video, and looks up an existing thumbnail in ``thumbnails/``.

Scan order is lexicographic by folder name, then by file name, so repeated
passes over an unchanged tree produce the same sequence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from src.shared.media_kind import MediaKind, classify_extension

from .layout import MediaLayout
from .naming import THUMBNAILS_DIRNAME, pick_thumbnail


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveredMedia:
    """A media file found on disk."""
    owner_folder: str
    file_name: str
    kind: MediaKind
    absolute_path: Path
    size_bytes: int
    birth_timestamp: datetime

    # Existing thumbnail in <folder>/thumbnails/, if one matched
    thumbnail_path: Optional[Path] = None

    @property
    def base_name(self) -> str:
        return self.absolute_path.stem


@dataclass(frozen=True)
class FolderInfo:
    folder_name: str
    media_count: int
    files: list[str]

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "folder_name": self.folder_name,
            "media_count": self.media_count,
            "files": list(self.files),
        }


def _birth_timestamp(stat_result) -> datetime:
    raw = getattr(stat_result, "st_birthtime", None)
    if raw is None:
        raw = stat_result.st_ctime
    return datetime.fromtimestamp(raw, tz=timezone.utc)


class MediaTreeScanner:
    def __init__(self, layout: MediaLayout) -> None:
        self._layout = layout

    @property
    def layout(self) -> MediaLayout:
        return self._layout

    def list_entity_folders(self) -> list[Path]:
        """
        List entity folders under the upload root.

        Returns:
            Sorted folder paths; empty when the root does not exist yet.
        """
        root = self._layout.entity_root
        if not root.is_dir():
            return []
        return sorted((p for p in root.iterdir() if p.is_dir()), key=lambda p: p.name)

    def scan_folder(self, folder: Path) -> list[DiscoveredMedia]:
        """
        Scan one entity folder.

        Raises:
            OSError: The folder or one of its files cannot be read.
        """
        folder = Path(folder)
        if not folder.is_dir():
            return []

        thumbnail_dir = folder / THUMBNAILS_DIRNAME
        thumbnail_names: list[str] = []
        if thumbnail_dir.is_dir():
            thumbnail_names = [p.name for p in thumbnail_dir.iterdir() if p.is_file()]

        discovered: list[DiscoveredMedia] = []
        for path in sorted(folder.iterdir(), key=lambda p: p.name):
            if path.name == THUMBNAILS_DIRNAME or not path.is_file():
                continue

            kind = classify_extension(path.name)
            if kind is None:
                continue

            stat_result = path.stat()
            thumb_name = pick_thumbnail(thumbnail_names, path.stem)
            discovered.append(
                DiscoveredMedia(
                    owner_folder=folder.name,
                    file_name=path.name,
                    kind=kind,
                    absolute_path=path,
                    size_bytes=stat_result.st_size,
                    birth_timestamp=_birth_timestamp(stat_result),
                    thumbnail_path=(thumbnail_dir / thumb_name) if thumb_name else None,
                )
            )

        logger.debug("Scanned %s: %d media files", folder.name, len(discovered))
        return discovered

    def scan(self) -> list[DiscoveredMedia]:
        """Scan every entity folder; a missing root yields no data."""
        discovered: list[DiscoveredMedia] = []
        for folder in self.list_entity_folders():
            discovered.extend(self.scan_folder(folder))
        return discovered

    def folder_inventory(self) -> list[FolderInfo]:
        inventory = []
        for folder in self.list_entity_folders():
            files = [item.file_name for item in self.scan_folder(folder)]
            inventory.append(FolderInfo(folder_name=folder.name, media_count=len(files), files=files))
        return inventory

"""
Entity media directory structure.

Directory structure:
    <public_root>/<uploads_dir>/<entity_name>/
    <public_root>/<uploads_dir>/<entity_name>/thumbnails/

Public URLs are ``/`` + the path relative to ``public_root``, e.g.
``/uploads/technicians/Ana/photo.jpg``.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import NamedTuple

from .naming import THUMBNAILS_DIRNAME


DEFAULT_UPLOADS_DIR = "uploads/technicians"


class InvalidMediaPathError(ValueError):
    pass


class EntityPaths(NamedTuple):
    """Paths for an entity's media storage."""
    root: Path         # <entity_root>/<name>/
    thumbnails: Path   # <entity_root>/<name>/thumbnails/


class MediaLayout:
    """
    Maps entity names and public URLs onto the on-disk upload tree.

    Entity folders are keyed by the entity's human-readable name, so a name
    change breaks the folder match until the folder is renamed too.
    """

    def __init__(self, public_root: Path, uploads_dir: str = DEFAULT_UPLOADS_DIR):
        """
        Args:
            public_root: Directory served as ``/``.
            uploads_dir: Entity upload tree, relative to ``public_root``.
        """
        self._public_root = Path(public_root).resolve()
        self._entity_root = (self._public_root / uploads_dir).resolve()
        if not self._is_within(self._entity_root, self._public_root):
            raise InvalidMediaPathError(f"uploads_dir escapes public root: {uploads_dir!r}")

    @property
    def public_root(self) -> Path:
        return self._public_root

    @property
    def entity_root(self) -> Path:
        return self._entity_root

    def get_entity_paths(self, name: str) -> EntityPaths:
        """
        Raises:
            InvalidMediaPathError: ``name`` is not a plain folder name.
        """
        if not is_safe_folder_name(name):
            raise InvalidMediaPathError(f"Invalid entity folder name: {name!r}")
        root = self._entity_root / name
        return EntityPaths(root=root, thumbnails=root / THUMBNAILS_DIRNAME)

    def ensure_entity_dirs(self, name: str) -> EntityPaths:
        paths = self.get_entity_paths(name)
        paths.thumbnails.mkdir(parents=True, exist_ok=True)
        return paths

    def to_public_url(self, path: Path) -> str:
        resolved = Path(path).resolve()
        if not self._is_within(resolved, self._public_root):
            raise InvalidMediaPathError(f"Path is outside the public root: {path}")
        return "/" + resolved.relative_to(self._public_root).as_posix()

    def from_public_url(self, url: str) -> Path:
        """
        Resolve a stored public URL to a file path inside the entity upload tree.

        Raises:
            InvalidMediaPathError: the URL is empty or points outside the tree.
        """
        raw = (url or "").strip()
        if not raw:
            raise InvalidMediaPathError("Media path must not be empty")

        relative = PurePosixPath(raw.lstrip("/"))
        if ".." in relative.parts:
            raise InvalidMediaPathError(f"Media path must not contain '..': {url!r}")

        resolved = (self._public_root / relative).resolve()
        if resolved == self._entity_root or not self._is_within(resolved, self._entity_root):
            raise InvalidMediaPathError(f"Media path is outside the upload tree: {url!r}")
        return resolved

    @staticmethod
    def _is_within(path: Path, root: Path) -> bool:
        try:
            path.relative_to(root)
        except ValueError:
            return False
        return True


def is_safe_folder_name(name: str) -> bool:
    if not name or not name.strip():
        return False
    if name in (".", "..", THUMBNAILS_DIRNAME):
        return False
    return "/" not in name and "\\" not in name and "\x00" not in name

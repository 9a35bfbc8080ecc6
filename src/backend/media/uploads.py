"""
Storing uploaded media into an entity folder.

Accepted types: images (.jpg .jpeg .png .webp) and videos (.mp4 .webm .mov).
Size limits: 10 MiB per file, 2 MiB for images.

Name collisions get a ``_<n>`` suffix: photo.jpg, photo_1.jpg, photo_2.jpg, ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from src.shared.media_kind import MediaKind, classify_extension
from src.shared.timestamps import now_iso

from .layout import MediaLayout
from .naming import stable_thumbnail_filename, unique_filename
from .thumbnails import ThumbnailError, ThumbnailSynthesizer, render_image_thumbnail


logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
DEFAULT_MAX_IMAGE_BYTES = 2 * 1024 * 1024

ALLOWED_MIME_TYPES = {
    "image/jpeg": MediaKind.IMAGE,
    "image/png": MediaKind.IMAGE,
    "image/webp": MediaKind.IMAGE,
    "video/mp4": MediaKind.VIDEO,
    "video/webm": MediaKind.VIDEO,
    "video/quicktime": MediaKind.VIDEO,
    "video/mov": MediaKind.VIDEO,
}


class UploadRejectedError(ValueError):
    pass


@dataclass(frozen=True)
class StoredUpload:
    """Result of storing one upload."""
    file_name: str
    original_name: str
    file_url: str
    thumbnail_url: Optional[str]
    size_bytes: int
    kind: MediaKind
    owner_folder: str
    uploaded_at: str

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "fileName": self.file_name,
            "originalName": self.original_name,
            "fileUrl": self.file_url,
            "thumbnailUrl": self.thumbnail_url,
            "fileSize": self.size_bytes,
            "mediaType": self.kind.value,
            "ownerFolder": self.owner_folder,
            "uploadedAt": self.uploaded_at,
        }


class MediaUploads:
    def __init__(
        self,
        *,
        layout: MediaLayout,
        synthesizer: Optional[ThumbnailSynthesizer] = None,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
    ) -> None:
        self._layout = layout
        self._synthesizer = synthesizer or ThumbnailSynthesizer()
        self._max_upload_bytes = max_upload_bytes
        self._max_image_bytes = max_image_bytes

    def validate(self, filename: str, size_bytes: int, content_type: Optional[str] = None) -> MediaKind:
        """
        Check type and size of an upload.

        Raises:
            UploadRejectedError: Unsupported type or too large.
        """
        kind = classify_extension(filename)
        if kind is None:
            raise UploadRejectedError(
                "Invalid file type. Only images (JPEG, PNG, WebP) and videos (MP4, WebM, MOV) are allowed."
            )

        if content_type:
            mime = content_type.lower().split(";")[0].strip()
            mime_kind = ALLOWED_MIME_TYPES.get(mime)
            if mime_kind is not None and mime_kind is not kind:
                raise UploadRejectedError(f"Content type {mime} does not match file extension")

        if size_bytes > self._max_upload_bytes:
            raise UploadRejectedError(
                f"File too large. Maximum size is {self._max_upload_bytes // (1024 * 1024)}MB"
            )
        if kind is MediaKind.IMAGE and size_bytes > self._max_image_bytes:
            raise UploadRejectedError(
                f"Image too large. Maximum size is {self._max_image_bytes // (1024 * 1024)}MB"
            )
        return kind

    def store_upload(
        self,
        owner_name: str,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
    ) -> StoredUpload:
        """
        Write an upload into ``<entity_root>/<owner_name>/`` and derive its thumbnail.

        The record's ``media`` list is not touched; callers add the entry or
        run a sync afterwards.

        Raises:
            UploadRejectedError: Unsupported type or too large.
            InvalidMediaPathError: ``owner_name`` or ``filename`` is not a plain name.
            OSError: The file cannot be written.
        """
        original_name = Path(filename or "").name
        if not original_name or original_name != filename:
            raise UploadRejectedError(f"Invalid upload filename: {filename!r}")

        kind = self.validate(original_name, len(content), content_type)
        paths = self._layout.ensure_entity_dirs(owner_name)

        stored_name = unique_filename(paths.root, original_name)
        target = paths.root / stored_name
        target.write_bytes(content)
        logger.info("Stored upload %s for %s", stored_name, owner_name)

        thumbnail_url: Optional[str] = None
        try:
            if kind is MediaKind.IMAGE:
                thumb = render_image_thumbnail(target, paths.thumbnails / stable_thumbnail_filename(target.stem))
            else:
                thumb = self._synthesizer.synthesize(target)
            thumbnail_url = self._layout.to_public_url(thumb)
        except ThumbnailError as exc:
            logger.warning("No thumbnail for upload %s: %s", stored_name, exc)

        return StoredUpload(
            file_name=stored_name,
            original_name=original_name,
            file_url=self._layout.to_public_url(target),
            thumbnail_url=thumbnail_url,
            size_bytes=len(content),
            kind=kind,
            owner_folder=owner_name,
            uploaded_at=now_iso(),
        )

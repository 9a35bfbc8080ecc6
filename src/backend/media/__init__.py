"""
Entity media tree management.

Provides:
- Directory layout and public URL mapping (layout.py)
- Thumbnail naming conventions (naming.py)
- Upload tree scanning (scanner.py)
- Placeholder and image thumbnails (thumbnails.py)
- Folder/record reconciliation and deletion (reconciler.py)
- Upload storage (uploads.py)
"""

from .layout import EntityPaths, InvalidMediaPathError, MediaLayout
from .naming import generate_thumbnail_filename, parse_thumbnail_filename, thumbnail_matches
from .reconciler import EntityNotFoundError, MediaReconciler, SyncFailure, SyncResult
from .scanner import DiscoveredMedia, FolderInfo, MediaTreeScanner
from .thumbnails import PlaceholderStyle, ThumbnailError, ThumbnailSynthesizer, render_image_thumbnail
from .uploads import MediaUploads, StoredUpload, UploadRejectedError

__all__ = [
    "EntityPaths",
    "InvalidMediaPathError",
    "MediaLayout",
    "generate_thumbnail_filename",
    "parse_thumbnail_filename",
    "thumbnail_matches",
    "EntityNotFoundError",
    "MediaReconciler",
    "SyncFailure",
    "SyncResult",
    "DiscoveredMedia",
    "FolderInfo",
    "MediaTreeScanner",
    "PlaceholderStyle",
    "ThumbnailError",
    "ThumbnailSynthesizer",
    "render_image_thumbnail",
    "MediaUploads",
    "StoredUpload",
    "UploadRejectedError",
]

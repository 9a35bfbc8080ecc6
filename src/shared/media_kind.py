"""
Media kind enum shared across backend modules and tests.

Classification is by file extension only (case-insensitive):
    image: .jpg .jpeg .png .webp
    video: .mp4 .webm .mov
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional


IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp"})
VIDEO_EXTENSIONS = frozenset({".mp4", ".webm", ".mov"})


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"

    @property
    def label(self) -> str:
        """Display label used in generated media descriptions."""
        return "照片" if self is MediaKind.IMAGE else "视频"


def classify_extension(name: str | Path) -> Optional[MediaKind]:
    """Return the media kind for a filename, or None when it is not media."""
    suffix = Path(name).suffix.lower()
    if suffix in IMAGE_EXTENSIONS:
        return MediaKind.IMAGE
    if suffix in VIDEO_EXTENSIONS:
        return MediaKind.VIDEO
    return None

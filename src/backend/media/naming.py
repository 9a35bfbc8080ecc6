"""
Media file naming conventions.

Thumbnails live in a ``thumbnails/`` folder beside the originals:

    thumb_<base>.jpg                          (upload-time image thumbnail)
    thumb_<base>_<epochMillis>_<token6>.jpg   (synthesized placeholder)

- base: original filename without its extension
- epochMillis: creation time in milliseconds since the epoch
- token6: 6 random lowercase base-36 characters
"""

from __future__ import annotations

import random
import re
import string
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from src.shared.timestamps import ensure_utc, utc_now


THUMBNAILS_DIRNAME = "thumbnails"
THUMBNAIL_PREFIX = "thumb_"
THUMBNAIL_EXTENSION = "jpg"

TOKEN_LENGTH = 6

# Pattern to match synthesized names: thumb_<base>_<epochMillis>_<token6>.<ext>
SYNTHESIZED_PATTERN = re.compile(
    r'^thumb_(.+)_(\d{10,})_([a-z0-9]{6})\.(\w+)$',
    re.IGNORECASE
)

# What may follow thumb_<base> in a stable name: .<ext>
STABLE_SUFFIX_PATTERN = re.compile(r'^\.\w+$')


@dataclass(frozen=True)
class ParsedThumbnailName:
    """Parsed components of a synthesized thumbnail filename."""
    base: str
    timestamp_ms: int
    token: str
    extension: str     # Without dot


def random_token(length: int = TOKEN_LENGTH) -> str:
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=length))


def generate_thumbnail_filename(
    base: str,
    *,
    created_at: Optional[datetime] = None,
    token: Optional[str] = None,
    extension: str = THUMBNAIL_EXTENSION,
) -> str:
    """
    Generate a collision-resistant thumbnail filename for a media base name.

    Args:
        base: Original filename without extension.
        created_at: Timestamp embedded in the name (defaults to now).
        token: Random suffix (generated when omitted).
        extension: File extension (with or without leading dot).

    Returns:
        Filename: thumb_<base>_<epochMillis>_<token6>.<ext>
    """
    if not base:
        raise ValueError("base must not be empty")
    created_at = ensure_utc(created_at or utc_now())
    millis = int(created_at.timestamp() * 1000)
    token = (token or random_token()).lower()
    if not re.match(r'^[a-z0-9]{6}$', token):
        raise ValueError(f"token must be 6 base-36 characters, got {token!r}")
    ext = extension.lstrip('.')
    return f"{THUMBNAIL_PREFIX}{base}_{millis}_{token}.{ext}"


def stable_thumbnail_filename(base: str, extension: str = THUMBNAIL_EXTENSION) -> str:
    """Deterministic thumbnail filename: thumb_<base>.<ext>."""
    if not base:
        raise ValueError("base must not be empty")
    return f"{THUMBNAIL_PREFIX}{base}.{extension.lstrip('.')}"


def parse_thumbnail_filename(filename: str) -> Optional[ParsedThumbnailName]:
    """
    Parse a synthesized thumbnail filename.

    Returns:
        ParsedThumbnailName if the name matches, None otherwise.
    """
    match = SYNTHESIZED_PATTERN.match(Path(filename).name)
    if not match:
        return None
    return ParsedThumbnailName(
        base=match.group(1),
        timestamp_ms=int(match.group(2)),
        token=match.group(3).lower(),
        extension=match.group(4).lower(),
    )


def thumbnail_matches(thumbnail_name: str, base: str) -> bool:
    """
    Check whether a file in ``thumbnails/`` belongs to the media file ``base``.

    The name must be ``thumb_<base>`` followed by nothing, an extension, or a
    synthesized ``_<epochMillis>_<token6>.<ext>`` suffix. ``thumb_clipart.jpg``
    and ``thumb_clip_1.jpg`` (the thumbnail of ``clip_1``) do not match ``clip``.
    """
    head = THUMBNAIL_PREFIX + base
    if not thumbnail_name.startswith(head):
        return False

    rest = thumbnail_name[len(head):]
    if not rest or STABLE_SUFFIX_PATTERN.match(rest):
        return True

    parsed = parse_thumbnail_filename(thumbnail_name)
    return parsed is not None and parsed.base == base


def pick_thumbnail(candidates: Iterable[str], base: str) -> Optional[str]:
    """Return the lexicographically smallest matching thumbnail name, if any."""
    matches = sorted(name for name in candidates if thumbnail_matches(name, base))
    return matches[0] if matches else None


def unique_filename(directory: Path, filename: str) -> str:
    """
    Return ``filename`` or, if taken, ``<base>_<n><ext>`` with the smallest free n >= 1.
    """
    candidate = filename
    path = Path(filename)
    base, ext = path.stem, path.suffix
    counter = 1
    while (directory / candidate).exists():
        candidate = f"{base}_{counter}{ext}"
        counter += 1
    return candidate

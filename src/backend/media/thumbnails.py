"""
Thumbnail rendering with Pillow.

- Placeholder synthesis for media without a usable thumbnail (videos): a
  fixed-size picture with a gradient, a "screen", a play button and a caption.
  The picture is identical every time; the filename embeds the creation time
  and a random token unless deterministic names are enabled.
- Upload thumbnails for images: center-cropped square JPEG.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont, ImageOps

from .naming import (
    THUMBNAILS_DIRNAME,
    generate_thumbnail_filename,
    stable_thumbnail_filename,
)


logger = logging.getLogger(__name__)

Color = tuple[int, int, int]

THUMBNAIL_SIZE = 200
PLACEHOLDER_JPEG_QUALITY = 85
IMAGE_JPEG_QUALITY = 80


class ThumbnailError(RuntimeError):
    pass


@dataclass(frozen=True)
class PlaceholderStyle:
    """
    Visual parameters of a synthesized placeholder.

    Attributes:
        size: Edge length of the square output in pixels.
        background: Base color under the gradient.
        gradient_start: Top-left gradient color.
        gradient_end: Bottom-right gradient color.
        gradient_opacity: Gradient strength over the base color (0..1).
        label: Caption drawn under the play button.
        quality: JPEG quality.
    """
    size: int = THUMBNAIL_SIZE
    background: Color = (45, 45, 45)
    gradient_start: Color = (79, 70, 229)
    gradient_end: Color = (124, 58, 237)
    gradient_opacity: float = 0.8
    label: str = "VIDEO"
    quality: int = PLACEHOLDER_JPEG_QUALITY


DEFAULT_STYLE = PlaceholderStyle()


def _lerp(a: Color, b: Color, t: float) -> Color:
    return tuple(round(a[i] + (b[i] - a[i]) * t) for i in range(3))  # type: ignore[return-value]


def render_placeholder(style: PlaceholderStyle = DEFAULT_STYLE) -> Image.Image:
    """Render the placeholder picture as an RGB image."""
    size = style.size
    scale = size / THUMBNAIL_SIZE

    gradient = Image.new("RGB", (size, size))
    gradient_draw = ImageDraw.Draw(gradient)
    span = max(1, 2 * (size - 1))
    for offset in range(2 * size - 1):
        color = _lerp(style.gradient_start, style.gradient_end, offset / span)
        gradient_draw.line([(offset, 0), (0, offset)], fill=color)
    base = Image.new("RGB", (size, size), style.background)
    canvas = Image.blend(base, gradient, style.gradient_opacity).convert("RGBA")

    overlay = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)

    def box(x0: float, y0: float, x1: float, y1: float) -> list[float]:
        return [x0 * scale, y0 * scale, x1 * scale, y1 * scale]

    dark = (31, 41, 55, 255)
    draw.rounded_rectangle(box(40, 60, 160, 140), radius=8 * scale, fill=(255, 255, 255, 230))
    draw.rounded_rectangle(box(50, 70, 150, 130), radius=4 * scale, fill=dark)
    draw.ellipse(box(80, 80, 120, 120), fill=(255, 255, 255, 242))
    draw.polygon(
        [(92 * scale, 88 * scale), (92 * scale, 112 * scale), (116 * scale, 100 * scale)],
        fill=dark,
    )

    if style.label:
        font = ImageFont.load_default()
        left, top, right, bottom = draw.textbbox((0, 0), style.label, font=font)
        x = (size - (right - left)) / 2 - left
        y = 170 * scale - (bottom - top) / 2 - top
        draw.text((x, y), style.label, font=font, fill=(255, 255, 255, 230))

    return Image.alpha_composite(canvas, overlay).convert("RGB")


class ThumbnailSynthesizer:
    """
    Writes placeholder thumbnails into the ``thumbnails/`` folder beside a media file.

    Usage:
        synthesizer = ThumbnailSynthesizer()
        thumb = synthesizer.synthesize(Path(".../Ana/clip.mp4"))
        # .../Ana/thumbnails/thumb_clip_1768300000000_k3x9q1.jpg
    """

    def __init__(self, *, deterministic_names: bool = False, style: PlaceholderStyle = DEFAULT_STYLE):
        """
        Args:
            deterministic_names: Write ``thumb_<base>.jpg`` instead of a
                timestamped name, so repeated passes overwrite one file.
            style: Default placeholder style.
        """
        self._deterministic_names = deterministic_names
        self._style = style

    @property
    def deterministic_names(self) -> bool:
        return self._deterministic_names

    def thumbnail_path_for(self, target_path: Path) -> Path:
        target_path = Path(target_path)
        base = target_path.stem
        if self._deterministic_names:
            filename = stable_thumbnail_filename(base)
        else:
            filename = generate_thumbnail_filename(base)
        return target_path.parent / THUMBNAILS_DIRNAME / filename

    def synthesize(self, target_path: Path, style: Optional[PlaceholderStyle] = None) -> Path:
        """
        Render a placeholder for ``target_path``.

        Returns:
            Path of the written thumbnail.

        Raises:
            ThumbnailError: The image could not be rendered or written.
        """
        style = style or self._style
        thumbnail_path = self.thumbnail_path_for(target_path)

        try:
            thumbnail_path.parent.mkdir(parents=True, exist_ok=True)
            image = render_placeholder(style)
            image.save(thumbnail_path, format="JPEG", quality=style.quality)
        except (OSError, ValueError) as exc:
            raise ThumbnailError(f"Failed to synthesize thumbnail for {Path(target_path).name}: {exc}") from exc

        logger.info("Synthesized thumbnail %s", thumbnail_path.name)
        return thumbnail_path


def render_image_thumbnail(
    source: Path,
    dest: Path,
    *,
    size: int = THUMBNAIL_SIZE,
    quality: int = IMAGE_JPEG_QUALITY,
) -> Path:
    """
    Center-crop and resize an image into a square JPEG thumbnail.

    Raises:
        ThumbnailError: The source is not a readable image or dest cannot be written.
    """
    try:
        with Image.open(source) as img:
            img = ImageOps.exif_transpose(img)
            if img.mode in ("RGBA", "LA", "P"):
                if img.mode == "P":
                    img = img.convert("RGBA")
                # Flatten transparency onto white
                flat = Image.new("RGB", img.size, (255, 255, 255))
                flat.paste(img, mask=img.split()[-1])
                img = flat
            elif img.mode != "RGB":
                img = img.convert("RGB")

            thumb = ImageOps.fit(img, (size, size), Image.Resampling.LANCZOS)
            dest.parent.mkdir(parents=True, exist_ok=True)
            thumb.save(dest, format="JPEG", quality=quality)
    except (OSError, ValueError) as exc:
        raise ThumbnailError(f"Failed to render thumbnail for {Path(source).name}: {exc}") from exc

    return dest

from __future__ import annotations

import base64
import io
import logging
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional

from PIL import Image, ImageDraw, UnidentifiedImageError

from flyer_questionnaire.protocol.constants import TOOL_ERASER

if TYPE_CHECKING:
    from .sketch import Stroke

logger = logging.getLogger(__name__)

PEN_RGBA = (0xEF, 0x44, 0x44, 255)  # #ef4444
CLEAR_RGBA = (0, 0, 0, 0)
PNG_DATA_URI_PREFIX = "data:image/png;base64,"


def resolve_background_path(image_url: str, static_dir: Path | None) -> Optional[Path]:
    """Map a page-relative image url (`/foo.png`, `/static/foo.png`) onto `static_dir`."""
    if not image_url or static_dir is None:
        return None
    rel = image_url.split("?", 1)[0].lstrip("/")
    if rel.startswith("static/"):
        rel = rel[len("static/"):]
    root = static_dir.resolve()
    path = (root / rel).resolve()
    if root not in path.parents:
        return None
    return path


@lru_cache(maxsize=8)
def _open_background(path: Path, mtime: float) -> Image.Image:
    with Image.open(path) as im:
        return im.convert("RGBA")


def load_background(image_url: str, static_dir: Path | None) -> Optional[Image.Image]:
    """
    Load a background image, or None if it cannot be used.

    A missing/unreadable background renders as transparent (like an image
    that never finished loading in the browser).
    """
    path = resolve_background_path(image_url, static_dir)
    if path is None:
        if image_url:
            logger.warning("background %r is outside the static directory", image_url)
        return None
    try:
        return _open_background(path, path.stat().st_mtime)
    except (OSError, UnidentifiedImageError) as e:
        logger.warning("could not load background %s: %s", path, e)
        return None


def _stroke_px_width(width: float, pixel_ratio: float) -> int:
    return max(1, int(round(width * pixel_ratio)))


def _draw_polyline(draw: ImageDraw.ImageDraw, pts: list[tuple[float, float]], fill, width: int) -> None:
    """Round caps and joins, matching a canvas with lineCap/lineJoin = 'round'."""
    if len(pts) >= 2:
        draw.line(pts, fill=fill, width=width, joint="curve")
    r = width / 2.0
    for x, y in (pts[0], pts[-1]):
        draw.ellipse([x - r, y - r, x + r, y + r], fill=fill)


def render_strokes(
    *,
    size: tuple[int, int],
    strokes: Iterable["Stroke"],
    background: Optional[Image.Image] = None,
    pixel_ratio: float = 1.0,
) -> Image.Image:
    """
    Render a sketch as an RGBA image of `size` pixels.

    - **background** is scaled to fill the whole surface first
    - **strokes** are composited in order; pen strokes paint, eraser strokes
      clear to transparent everything painted before them (background included)
    - **pixel_ratio** scales line widths (coordinates are already device pixels)
    """
    w, h = max(1, int(size[0])), max(1, int(size[1]))
    if background is not None:
        img = background.resize((w, h))
    else:
        img = Image.new("RGBA", (w, h), CLEAR_RGBA)
    draw = ImageDraw.Draw(img)

    for stroke in strokes:
        pts = [(float(p[0]), float(p[1])) for p in stroke.points]
        if not pts:
            continue
        px = _stroke_px_width(stroke.width, pixel_ratio)
        if stroke.tool == TOOL_ERASER:
            mask = Image.new("L", (w, h), 0)
            _draw_polyline(ImageDraw.Draw(mask), pts, 255, px)
            img.paste(CLEAR_RGBA, mask=mask)
        else:
            _draw_polyline(draw, pts, PEN_RGBA, px)

    return img


def encode_png_data_uri(img: Image.Image) -> str:
    bio = io.BytesIO()
    img.save(bio, format="PNG", optimize=True)
    return PNG_DATA_URI_PREFIX + base64.b64encode(bio.getvalue()).decode("ascii")


def encode_png_bytes(img: Image.Image) -> bytes:
    bio = io.BytesIO()
    img.save(bio, format="PNG")
    return bio.getvalue()

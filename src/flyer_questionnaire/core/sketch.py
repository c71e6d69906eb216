from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from PIL import Image

from flyer_questionnaire.protocol.constants import (
    PHASE_CANCEL,
    PHASE_DOWN,
    PHASE_MOVE,
    PHASE_UP,
    TOOL_PEN,
    TOOLS,
)
from flyer_questionnaire.protocol.messages import PointerEvent, SketchRecord, StrokeModel

from .rendering import encode_png_data_uri, load_background, render_strokes

Point = tuple[float, float]

DEFAULT_CSS_WIDTH = 640.0
ASPECT = 0.66  # height = round(width * ASPECT)
MAX_SURFACE_PX = 4096  # per side, device pixels


@dataclass(frozen=True)
class Stroke:
    """A committed freehand gesture. Points are device pixels in capture order."""

    tool: str
    width: float
    points: tuple[Point, ...]

    def to_model(self) -> StrokeModel:
        return StrokeModel(tool=self.tool, width=self.width, points=[[x, y] for x, y in self.points])

    @classmethod
    def from_model(cls, m: StrokeModel) -> "Stroke":
        return cls(
            tool=m.tool,
            width=m.width,
            points=tuple((float(p[0]), float(p[1])) for p in m.points if len(p) >= 2),
        )


@dataclass
class _OpenStroke:
    tool: str
    width: float
    points: list[Point] = field(default_factory=list)

    def freeze(self) -> Stroke:
        return Stroke(self.tool, self.width, tuple(self.points))


@dataclass(frozen=True)
class SurfaceSize:
    css_width: float
    css_height: float
    pixel_ratio: float = 1.0

    @property
    def pixels(self) -> tuple[int, int]:
        return (
            min(MAX_SURFACE_PX, max(1, math.floor(self.css_width * self.pixel_ratio))),
            min(MAX_SURFACE_PX, max(1, math.floor(self.css_height * self.pixel_ratio))),
        )

    @classmethod
    def for_width(cls, css_width: float, pixel_ratio: float = 1.0) -> "SurfaceSize":
        return cls(css_width, round(css_width * ASPECT), pixel_ratio)


class SketchSurface:
    """
    Stroke capture surface for one map task.

    - pointer input -> ordered strokes (one gesture open at a time)
    - render: background, committed strokes in order, open stroke last
    - export_raster: PNG data URI at the surface's device-pixel size

    Coordinates are stored as captured; `resize` only changes the render target,
    so strokes drift visually if the surface is resized after drawing.
    """

    def __init__(
        self,
        image_url: str = "",
        *,
        stroke_width: float = 3.0,
        tool: str = TOOL_PEN,
        size: SurfaceSize | None = None,
        static_dir: Path | None = None,
    ) -> None:
        self.image_url = image_url
        self.static_dir = static_dir
        self.size = size or SurfaceSize.for_width(DEFAULT_CSS_WIDTH)
        self.strokes: list[Stroke] = []
        self.raster: Optional[str] = None
        self._open: Optional[_OpenStroke] = None
        self._tool = TOOL_PEN
        self._width = 3.0
        self.set_tool(tool)
        self.set_width(stroke_width)

    # -- gesture ---------------------------------------------------------

    @property
    def tool(self) -> str:
        return self._tool

    @property
    def stroke_width(self) -> float:
        return self._width

    @property
    def in_progress(self) -> Optional[Stroke]:
        return self._open.freeze() if self._open is not None else None

    @property
    def drawing(self) -> bool:
        return self._open is not None

    def begin(self, point: Point) -> bool:
        if self._open is not None:
            return False
        self._open = _OpenStroke(self._tool, self._width, [(float(point[0]), float(point[1]))])
        return True

    def extend(self, point: Point) -> None:
        if self._open is None:
            return
        self._open.points.append((float(point[0]), float(point[1])))

    def commit(self) -> Optional[Stroke]:
        """Close the open gesture; single-point gestures are discarded."""
        opened, self._open = self._open, None
        if opened is None or len(opened.points) < 2:
            return None
        stroke = opened.freeze()
        self.strokes.append(stroke)
        return stroke

    def undo(self) -> Optional[Stroke]:
        if not self.strokes:
            return None
        return self.strokes.pop()

    def clear(self) -> None:
        self.strokes.clear()

    def set_tool(self, kind: str) -> None:
        if kind not in TOOLS:
            raise ValueError(f"unknown tool: {kind!r}")
        self._tool = kind

    def set_width(self, px: float) -> None:
        px = float(px)
        if not math.isfinite(px) or px <= 0:
            raise ValueError(f"stroke width must be positive, got {px!r}")
        self._width = px

    def handle_pointer(self, event: PointerEvent) -> tuple[str, Optional[Stroke]]:
        """
        Apply one pointer event (css pixels) and report what happened.

        Returns (`"begun" | "extended" | "committed" | "discarded" | "ignored"`, stroke).
        """
        point = (event.x * self.size.pixel_ratio, event.y * self.size.pixel_ratio)
        if event.phase == PHASE_DOWN:
            return ("begun" if self.begin(point) else "ignored", None)
        if event.phase == PHASE_MOVE:
            if self._open is None:
                return ("ignored", None)
            self.extend(point)
            return ("extended", None)
        if event.phase in (PHASE_UP, PHASE_CANCEL):
            if self._open is None:
                return ("ignored", None)
            stroke = self.commit()
            return ("committed" if stroke is not None else "discarded", stroke)
        return ("ignored", None)

    # -- raster ----------------------------------------------------------

    def resize(self, css_width: float, css_height: float | None = None, pixel_ratio: float = 1.0) -> None:
        if css_height is None:
            self.size = SurfaceSize.for_width(css_width, pixel_ratio)
        else:
            self.size = SurfaceSize(css_width, css_height, pixel_ratio)

    def render(self, size: tuple[int, int] | None = None) -> Image.Image:
        strokes: list[Stroke] = list(self.strokes)
        if self._open is not None:
            strokes.append(self._open.freeze())
        return render_strokes(
            size=size or self.size.pixels,
            strokes=strokes,
            background=load_background(self.image_url, self.static_dir),
            pixel_ratio=self.size.pixel_ratio,
        )

    def export_raster(self) -> str:
        self.raster = encode_png_data_uri(self.render(self.size.pixels))
        return self.raster

    # -- persistence -----------------------------------------------------

    def to_record(self) -> SketchRecord:
        return SketchRecord(
            imageUrl=self.image_url,
            strokes=[s.to_model() for s in self.strokes],
            strokeWidth=self._width,
            tool=self._tool,
            raster=self.raster,
        )

    def to_dict(self, *, include_raster: bool = True) -> dict[str, Any]:
        data = self.to_record().model_dump()
        if not include_raster:
            data.pop("raster", None)
        return data

    @classmethod
    def from_record(
        cls,
        record: SketchRecord,
        *,
        size: SurfaceSize | None = None,
        static_dir: Path | None = None,
    ) -> "SketchSurface":
        surface = cls(
            record.imageUrl,
            stroke_width=record.strokeWidth,
            tool=record.tool,
            size=size,
            static_dir=static_dir,
        )
        surface.strokes = [Stroke.from_model(m) for m in record.strokes]
        surface.raster = record.raster
        return surface

from __future__ import annotations

import argparse
from pathlib import Path

from pydantic import ValidationError

from flyer_questionnaire.core.sketch import SketchSurface, SurfaceSize
from flyer_questionnaire.protocol.messages import PointerEvent

from .replay_jsonl import load_pointer_events


def render_file(
    jsonl_path: Path,
    out_path: Path,
    *,
    image_url: str = "",
    static_dir: Path | None = None,
    css_width: float = 640.0,
    pixel_ratio: float = 1.0,
    stroke_width: float = 3.0,
) -> SketchSurface:
    """Feed recorded pointer events through a sketch surface and write its PNG."""
    surface = SketchSurface(
        image_url,
        stroke_width=stroke_width,
        size=SurfaceSize.for_width(css_width, pixel_ratio),
        static_dir=static_dir,
    )
    for _ts, msg in load_pointer_events(jsonl_path):
        # tool switches may be recorded inline: {"tool": "eraser"} / {"width": 8}
        try:
            if "tool" in msg:
                surface.set_tool(msg["tool"])
            if "width" in msg:
                surface.set_width(msg["width"])
        except (TypeError, ValueError) as e:
            print(f"[render] skipped record: {e}")
            continue
        if "phase" not in msg:
            continue
        try:
            event = PointerEvent.model_validate(msg)
        except ValidationError:
            continue
        surface.handle_pointer(event)

    out_path.parent.mkdir(parents=True, exist_ok=True)
    surface.render().save(out_path, format="PNG")
    return surface


def main() -> None:
    ap = argparse.ArgumentParser(description="Render pointer-event JSONL to a PNG, offline.")
    ap.add_argument("--in", dest="inp", required=True, help="Input JSONL path")
    ap.add_argument("--out", required=True, help="Output PNG path")
    ap.add_argument("--image-url", default="", help="Background image url, e.g. /creggan-no-x.png")
    ap.add_argument("--static-dir", default=None, help="Directory background urls resolve against")
    ap.add_argument("--css-width", type=float, default=640.0)
    ap.add_argument("--pixel-ratio", type=float, default=1.0)
    ap.add_argument("--stroke-width", type=float, default=3.0)
    args = ap.parse_args()

    surface = render_file(
        Path(args.inp),
        Path(args.out),
        image_url=args.image_url,
        static_dir=Path(args.static_dir) if args.static_dir else None,
        css_width=args.css_width,
        pixel_ratio=args.pixel_ratio,
        stroke_width=args.stroke_width,
    )
    print(f"[render] {len(surface.strokes)} strokes -> {args.out}")


if __name__ == "__main__":
    main()

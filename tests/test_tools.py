import json

from PIL import Image

from flyer_questionnaire.core.rendering import PEN_RGBA
from flyer_questionnaire.tools.stroke_sim.render_jsonl import render_file
from flyer_questionnaire.tools.stroke_sim.replay_jsonl import load_pointer_events


def _write_jsonl(path, rows):
    path.write_text("\n".join(json.dumps(r) for r in rows) + "\n", encoding="utf-8")


def test_load_accepts_recorded_and_raw_lines(tmp_path):
    src = tmp_path / "events.jsonl"
    _write_jsonl(
        src,
        [
            {"ts": 1000, "msg": {"t": "pointer", "phase": "down", "x": 1, "y": 2}},
            {"phase": "up", "x": 1, "y": 2},
        ],
    )
    src.write_text(src.read_text() + "\n\n", encoding="utf-8")

    events = load_pointer_events(src)

    assert [ts for ts, _ in events] == [1000, None]
    assert all(msg["t"] == "pointer" for _, msg in events)


def test_render_file_draws_pen_then_eraser(tmp_path):
    src = tmp_path / "gesture.jsonl"
    out = tmp_path / "out" / "sketch.png"
    _write_jsonl(
        src,
        [
            {"phase": "down", "x": 0, "y": 20},
            {"phase": "move", "x": 39, "y": 20},
            {"phase": "up", "x": 39, "y": 20},
            {"tool": "eraser", "width": 6},
            {"phase": "down", "x": 20, "y": 0},
            {"phase": "move", "x": 20, "y": 39},
            {"phase": "up", "x": 20, "y": 39},
            {"phase": "down", "x": 30, "y": 30},
            {"phase": "up", "x": 30, "y": 30},
        ],
    )

    surface = render_file(src, out, css_width=40, stroke_width=6)

    assert [s.tool for s in surface.strokes] == ["pen", "eraser"]
    img = Image.open(out)
    assert img.size == (40, 26)
    assert img.getpixel((20, 20))[3] == 0
    assert img.getpixel((5, 20)) == PEN_RGBA


def test_render_file_skips_bad_tool_and_width_records(tmp_path):
    src = tmp_path / "bad.jsonl"
    _write_jsonl(
        src,
        [
            {"tool": "crayon"},
            {"width": -4},
            {"width": None},
            {"phase": "down", "x": 0, "y": 10},
            {"phase": "move", "x": 30, "y": 10},
            {"phase": "up", "x": 30, "y": 10},
        ],
    )

    surface = render_file(src, tmp_path / "bad.png", css_width=40, stroke_width=4)

    assert [(s.tool, s.width) for s in surface.strokes] == [("pen", 4)]

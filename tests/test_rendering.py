from PIL import Image

from flyer_questionnaire.core.rendering import (
    PEN_RGBA,
    load_background,
    render_strokes,
    resolve_background_path,
)
from flyer_questionnaire.core.sketch import Stroke

HORIZONTAL_PEN = Stroke("pen", 6, ((0.0, 20.0), (39.0, 20.0)))
VERTICAL_ERASER = Stroke("eraser", 6, ((20.0, 0.0), (20.0, 39.0)))


def test_eraser_after_pen_clears_pixels():
    img = render_strokes(size=(40, 40), strokes=[HORIZONTAL_PEN, VERTICAL_ERASER])

    assert img.getpixel((20, 20))[3] == 0
    assert img.getpixel((5, 20)) == PEN_RGBA


def test_pen_after_eraser_is_not_affected():
    img = render_strokes(size=(40, 40), strokes=[VERTICAL_ERASER, HORIZONTAL_PEN])

    assert img.getpixel((20, 20)) == PEN_RGBA


def test_eraser_punches_through_background():
    bg = Image.new("RGBA", (10, 10), (0, 0, 255, 255))
    eraser = Stroke("eraser", 2, ((0.0, 5.0), (9.0, 5.0)))

    img = render_strokes(size=(10, 10), strokes=[eraser], background=bg)

    assert img.getpixel((5, 5))[3] == 0
    assert img.getpixel((5, 0)) == (0, 0, 255, 255)
    # the cached background itself is left alone
    assert bg.getpixel((5, 5)) == (0, 0, 255, 255)


def test_background_is_scaled_to_surface():
    bg = Image.new("RGBA", (4, 4), (10, 200, 10, 255))
    img = render_strokes(size=(32, 16), strokes=[], background=bg)
    assert img.size == (32, 16)
    assert img.getpixel((31, 15)) == (10, 200, 10, 255)


def test_line_width_scales_with_pixel_ratio():
    stroke = Stroke("pen", 2, ((0.0, 20.0), (39.0, 20.0)))
    thin = render_strokes(size=(40, 40), strokes=[stroke], pixel_ratio=1.0)
    thick = render_strokes(size=(40, 40), strokes=[stroke], pixel_ratio=4.0)

    assert thin.getpixel((10, 22))[3] == 0
    assert thick.getpixel((10, 22)) == PEN_RGBA


def test_load_background_from_static_dir(tmp_path):
    Image.new("RGB", (8, 8), (1, 2, 3)).save(tmp_path / "map.png")

    bg = load_background("/map.png", tmp_path)

    assert bg is not None
    assert bg.mode == "RGBA"
    assert bg.getpixel((0, 0)) == (1, 2, 3, 255)


def test_missing_background_renders_transparent(tmp_path):
    assert load_background("/nope.png", tmp_path) is None
    assert load_background("/map.png", None) is None


def test_background_path_cannot_escape_static_dir(tmp_path):
    assert resolve_background_path("/../secret.png", tmp_path) is None
    assert resolve_background_path("/static/a.png", tmp_path) == (tmp_path / "a.png").resolve()

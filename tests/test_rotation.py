import pytest
from PIL import Image

from photocrop.errors import CanvasAllocationError
from photocrop.models import Point
from photocrop.presets import AspectRatio
from photocrop.render.canvas import build_canvas
from photocrop.viewport import rotation
from photocrop.viewport.rotation import (
    angle_from_drag,
    flip_horizontal,
    max_unrotated_fit,
    quarter_turn_point,
    rotate90,
    rotate_arbitrary,
)
from photocrop.viewport.state import ViewportState, compute_overlay_rect, max_zoom

MARKER = (255, 0, 0)


def _source() -> Image.Image:
    image = Image.new("RGB", (40, 30), (0, 0, 255))
    image.putpixel((0, 0), MARKER)
    return image


def _state(pan: Point) -> ViewportState:
    return ViewportState(zoom=1.0, pan_center=pan, overlay=compute_overlay_rect(AspectRatio.SQUARE, 80, 60))


def test_quarter_turn_point_follows_the_pixels() -> None:
    source = _source()
    canvas = build_canvas(source)
    marker = Point(canvas.content_box.x, canvas.content_box.y)
    assert canvas.image.getpixel((marker.x, marker.y)) == MARKER

    for clockwise in (True, False):
        state = _state(marker)
        rotated = rotate90(source, canvas, state, clockwise=clockwise)
        expected = quarter_turn_point(marker, canvas.width, canvas.height, clockwise)
        assert state.pan_center == expected
        assert rotated.image.getpixel((expected.x, expected.y)) == MARKER


def test_four_clockwise_turns_restore_canvas_and_pan() -> None:
    source = _source()
    original = build_canvas(source)
    canvas = original
    state = _state(Point(50, 70))
    for _ in range(4):
        canvas = rotate90(source, canvas, state, clockwise=True)
    assert state.pan_center == Point(50, 70)
    assert canvas.transform.is_identity
    assert canvas.image.tobytes() == original.image.tobytes()


def test_counter_clockwise_undoes_clockwise() -> None:
    source = _source()
    canvas = build_canvas(source)
    state = _state(Point(33, 81))
    canvas = rotate90(source, canvas, state, clockwise=True)
    canvas = rotate90(source, canvas, state, clockwise=False)
    assert state.pan_center == Point(33, 81)
    assert canvas.transform.quarter_turns == 0


def test_flip_mirrors_pan_x() -> None:
    source = _source()
    canvas = build_canvas(source)
    state = _state(Point(50, 70))
    flipped = flip_horizontal(source, canvas, state)
    assert state.pan_center == Point(70, 70)
    assert flipped.transform.flipped
    assert flipped.image.getpixel((canvas.content_box.right - 1, canvas.content_box.y)) == MARKER


def test_failed_rebuild_leaves_state_untouched(monkeypatch) -> None:
    source = _source()
    canvas = build_canvas(source)
    state = _state(Point(50, 70))

    def _fail(*_args, **_kwargs):
        raise CanvasAllocationError("no memory")

    monkeypatch.setattr(rotation, "build_canvas", _fail)
    with pytest.raises(CanvasAllocationError):
        rotate90(source, canvas, state)
    with pytest.raises(CanvasAllocationError):
        rotate_arbitrary(source, canvas, state, 15.0)
    assert state.pan_center == Point(50, 70)
    assert state.zoom == 1.0


def test_max_unrotated_fit() -> None:
    assert max_unrotated_fit(0.0, 4000, 3000) == (4000, 3000)
    assert max_unrotated_fit(0.0, 17, 5) == (17, 5)
    assert max_unrotated_fit(90.0, 4000, 3000) == (3000, 2250)
    assert max_unrotated_fit(45.0, 4000, 3000) == (2424, 1818)
    assert max_unrotated_fit(-45.0, 4000, 3000) == (2424, 1818)
    assert max_unrotated_fit(89.99, 1, 1000) == (1, 1)
    with pytest.raises(ValueError):
        max_unrotated_fit(10.0, 0, 10)


def test_rotate_arbitrary_recenters_and_limits_zoom() -> None:
    source = _source()
    canvas = build_canvas(source)
    state = _state(Point(50, 70))
    state.zoom = 1.3
    rotated = rotate_arbitrary(source, canvas, state, 30.0)
    assert rotated.transform.angle == 30.0
    assert state.pan_center == rotated.center
    fit_w, fit_h = max_unrotated_fit(30.0, 40, 30)
    assert state.zoom == pytest.approx(max_zoom(True, fit_w, fit_h, 30, 30))

    back = rotate_arbitrary(source, rotated, state, 0.0)
    assert back.transform.is_identity


def test_angle_from_drag_quadrants() -> None:
    assert angle_from_drag(1, 0) == 0.0
    assert angle_from_drag(0, 1) == 90.0
    assert angle_from_drag(-1, 0) == 180.0
    assert angle_from_drag(-1, -0.0) == 180.0
    assert angle_from_drag(0, -1) == -90.0
    assert angle_from_drag(-1, -1) == pytest.approx(-135.0)
    assert angle_from_drag(1, 1) == pytest.approx(45.0)
    assert angle_from_drag(0, 0) is None

import pytest
from PIL import Image

from photocrop.errors import AspectMismatchError, CanvasAllocationError
from photocrop.models import Rect
from photocrop.render import canvas as canvas_module
from photocrop.render.canvas import CanvasTransform, build_canvas, canvas_side
from photocrop.render.resample import aspect_ratios_match, resample


def _marked_source() -> Image.Image:
    image = Image.new("RGB", (40, 30), (0, 0, 255))
    image.putpixel((0, 0), (255, 0, 0))
    return image


def test_canvas_side_is_three_times_longest_edge_with_cap() -> None:
    assert canvas_side(4000, 3000) == 12000
    assert canvas_side(40, 30) == 120
    assert canvas_side(8000, 100) == 16000
    assert canvas_side(20000, 100, 20000, 100) == 20000


def test_build_canvas_centers_source_on_black() -> None:
    canvas = build_canvas(_marked_source())
    assert canvas.size == (120, 120)
    assert canvas.content_box == Rect(40, 45, 40, 30)
    assert canvas.source_size == (40, 30)
    assert canvas.image.getpixel((40, 45)) == (255, 0, 0)
    assert canvas.image.getpixel((41, 46)) == (0, 0, 255)
    assert canvas.image.getpixel((0, 0)) == (0, 0, 0)
    assert canvas.center == canvas_module.Point(60, 60)


def test_quarter_turn_swaps_source_size() -> None:
    canvas = build_canvas(_marked_source(), CanvasTransform().rotated90(True))
    assert canvas.source_size == (30, 40)
    assert canvas.content_box == Rect(45, 40, 30, 40)
    # top-left corner moves to the top-right after a clockwise turn
    assert canvas.image.getpixel((45 + 29, 40)) == (255, 0, 0)


def test_mirror_moves_marker_to_the_right() -> None:
    canvas = build_canvas(_marked_source(), CanvasTransform().mirrored())
    assert canvas.image.getpixel((40 + 39, 45)) == (255, 0, 0)


def test_transform_algebra() -> None:
    transform = CanvasTransform()
    for _ in range(4):
        transform = transform.rotated90(True)
    assert transform.is_identity
    assert CanvasTransform().rotated90(False).quarter_turns == 3
    mirrored = CanvasTransform(quarter_turns=1, angle=10.0).mirrored()
    assert mirrored == CanvasTransform(flipped=True, quarter_turns=3, angle=-10.0)
    assert mirrored.mirrored() == CanvasTransform(quarter_turns=1, angle=10.0)


def test_free_rotation_grows_content_and_keeps_fill() -> None:
    canvas = build_canvas(_marked_source(), CanvasTransform(angle=30.0))
    assert canvas.source_size == (40, 30)
    assert canvas.content_box.width > 40
    assert canvas.content_box.height > 30
    assert canvas.image.getpixel((canvas.content_box.x, canvas.content_box.y)) == (0, 0, 0)


def test_allocation_failure_is_reported(monkeypatch) -> None:
    source = _marked_source()

    def _boom(*_args, **_kwargs):
        raise MemoryError

    monkeypatch.setattr(canvas_module.Image, "new", _boom)
    with pytest.raises(CanvasAllocationError):
        build_canvas(source)


def test_aspect_ratios_match_uses_cross_product() -> None:
    assert aspect_ratios_match((570, 570), (2048, 2048))
    # 1001x563 is 16:9 within a pixel although 1001 // 563 != 16 // 9
    assert aspect_ratios_match((1001, 563), (3840, 2160))
    assert not aspect_ratios_match((1000, 1000), (3840, 2160))
    assert not aspect_ratios_match((0, 10), (10, 10))


def test_resample_checks_ratio_and_pads_outside_area() -> None:
    image = Image.new("RGB", (10, 10), (255, 255, 255))
    with pytest.raises(AspectMismatchError):
        resample(image, Rect(0, 0, 10, 5), (10, 10))
    with pytest.raises(ValueError):
        resample(image, Rect.empty(), (10, 10))

    out = resample(image, Rect(5, 0, 10, 10), (10, 10))
    assert out.size == (10, 10)
    assert out.getpixel((0, 0)) == (255, 255, 255)
    assert out.getpixel((9, 9)) == (0, 0, 0)

    scaled = resample(image, Rect(0, 0, 10, 10), (20, 20))
    assert scaled.size == (20, 20)

from pathlib import Path

import piexif
import pytest
from PIL import Image

from photocrop.errors import CanvasAllocationError, ImageDecodeError
from photocrop.models import Point, Rect, SourceImage
from photocrop.viewport import rotation
from photocrop.viewport.session import SessionError, ViewportSession


def _session(**kwargs) -> ViewportSession:
    session = ViewportSession(aspect="Square", quality="low", display_size=(80, 60), **kwargs)
    session.load_source(SourceImage.from_image(Image.new("RGB", (40, 30), (120, 30, 30))))
    return session


def test_load_resets_viewport() -> None:
    session = _session()
    assert session.is_loaded
    assert session.state.zoom == pytest.approx(1.0)
    assert session.state.pan_center == Point(60, 60)
    assert session.display_overlay() == Rect(25, 15, 30, 30)
    assert session.frame is not None
    assert session.frame.size == (80, 60)

    fit = _session(zoom_mode="fit")
    assert fit.state.zoom == pytest.approx(40 / 30)


def test_tall_overlay_on_wide_display_keeps_a_frame() -> None:
    source = SourceImage.from_image(Image.new("RGB", (400, 300), (30, 90, 30)))
    fit = ViewportSession(aspect="9:16", display_size=(1200, 600), zoom_mode="fit")
    fit.load_source(source)
    assert fit.state.zoom == pytest.approx(1.0)
    assert fit.frame is not None
    assert fit.frame.size == (1200, 600)

    session = ViewportSession(aspect="9:16", display_size=(1200, 600))
    session.load_source(source)
    assert session.show_all()
    assert session.frame is not None
    assert session.frame.size == (1200, 600)
    assert session.state.zoom <= 1.0
    assert session.zoom_at_cursor((0.5, 0.5), zoom_out=False)
    assert session.state.zoom == pytest.approx(1 / 1.1)


def test_operations_need_an_image() -> None:
    session = ViewportSession()
    assert not session.is_loaded
    assert not session.upscale_warning
    with pytest.raises(SessionError):
        session.export()
    with pytest.raises(SessionError):
        session.rotate90()
    with pytest.raises(SessionError):
        session.pan(1, 1)


def test_failed_load_keeps_previous_image(tmp_path: Path) -> None:
    session = _session()
    previous = session.source
    bad = tmp_path / "broken.jpg"
    bad.write_bytes(b"not an image at all")
    with pytest.raises(ImageDecodeError):
        session.load_file(bad)
    assert session.source is previous
    assert session.state.pan_center == Point(60, 60)


def test_load_file_keeps_path_for_output_name(tmp_path: Path) -> None:
    path = tmp_path / "holiday.png"
    Image.new("RGB", (40, 30)).save(path)
    session = ViewportSession(aspect="Square", display_size=(80, 60))
    session.load_file(path)
    assert session.source.path == path
    assert session.default_output_name() == "holiday.jpg"


def test_set_aspect_keeps_pan_center() -> None:
    session = _session()
    session.pan(10, 0)
    assert session.state.pan_center == Point(50, 60)
    session.set_aspect("16:9")
    assert session.display_overlay() == Rect(15, 16, 50, 28)
    assert session.state.pan_center == Point(50, 60)


def test_four_rotations_restore_the_view() -> None:
    session = _session()
    before = session.frame.tobytes()
    for _ in range(4):
        session.rotate90(clockwise=True)
    assert session.transform.is_identity
    assert session.state.pan_center == Point(60, 60)
    assert session.frame.tobytes() == before


def test_failed_rotation_keeps_canvas(monkeypatch) -> None:
    session = _session()
    canvas = session.canvas
    state = session.state

    def _fail(*_args, **_kwargs):
        raise CanvasAllocationError("no memory")

    monkeypatch.setattr(rotation, "build_canvas", _fail)
    with pytest.raises(CanvasAllocationError):
        session.rotate90()
    with pytest.raises(CanvasAllocationError):
        session.flip_horizontal()
    assert session.canvas is canvas
    assert session.state is state
    assert session.canvas.image is not None


def test_rotate_from_drag() -> None:
    session = _session()
    assert session.rotate_from_drag(0, 0) is None
    assert session.rotate_from_drag(0, 5) == 90.0
    assert session.transform.angle == 90.0


def test_flip_negates_free_rotation_angle() -> None:
    session = _session()
    session.rotate_arbitrary(12.5)
    session.flip_horizontal()
    assert session.transform.flipped
    assert session.transform.angle == -12.5
    session.flip_horizontal()
    assert session.transform.angle == 12.5


def test_export_sizes_follow_quality() -> None:
    session = _session()
    assert session.crop_rect() == Rect(45, 45, 30, 30)
    assert session.upscale_warning

    result = session.export()
    assert result.image.size == (1080, 1080)
    assert result.upscaled

    session.set_quality("original")
    assert not session.upscale_warning
    result = session.export()
    assert result.image.size == (30, 30)
    assert not result.upscaled


def test_save_writes_gps_and_avoids_overwrite(tmp_path: Path) -> None:
    session = _session()
    session.set_gps(-33.8568, 151.2153)
    assert session.gps == pytest.approx((-33.8568, 151.2153), abs=1e-6)

    first, skipped, result = session.save(tmp_path, name="crop.jpg")
    assert first == tmp_path / "crop.jpg"
    assert skipped == []
    assert result.upscaled
    loaded = piexif.load(str(first))
    assert loaded["GPS"][piexif.GPSIFD.GPSLatitudeRef] == b"S"
    assert loaded["GPS"][piexif.GPSIFD.GPSLongitudeRef] == b"E"

    second, _, _ = session.save(tmp_path, name="crop.jpg")
    assert second == tmp_path / "crop_1.jpg"
    third, _, _ = session.save(tmp_path, name="crop.jpg", overwrite=True)
    assert third == first


def test_clear_gps_removes_coordinates(tmp_path: Path) -> None:
    session = _session()
    session.set_gps(10.0, 20.0)
    session.clear_gps()
    assert session.gps is None
    saved, _, _ = session.save(tmp_path, name="plain.jpg")
    loaded = piexif.load(str(saved))
    assert piexif.GPSIFD.GPSLatitude not in loaded["GPS"]


def test_close_releases_everything() -> None:
    session = _session()
    session.close()
    assert not session.is_loaded
    assert session.frame is None
    assert session.gps is None

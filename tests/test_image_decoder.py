from pathlib import Path

import piexif
import pytest
from PIL import Image

from photocrop.decoders import image_decoder
from photocrop.decoders.image_decoder import decode_bytes, decode_image
from photocrop.errors import ImageDecodeError


def test_decode_applies_exif_orientation(tmp_path: Path) -> None:
    path = tmp_path / "rotated.jpg"
    exif = piexif.dump({"0th": {piexif.ImageIFD.Orientation: 6, piexif.ImageIFD.Make: b"Nikon"}})
    Image.new("RGB", (40, 30), "#445566").save(path, format="JPEG", exif=exif)

    source = decode_image(path)
    assert source.size == (30, 40)
    assert source.image.mode == "RGB"
    assert source.path == path
    assert any(tag.tag_id == piexif.ImageIFD.Make for tag in source.tags)


def test_decode_png_without_metadata(tmp_path: Path) -> None:
    path = tmp_path / "plain.png"
    Image.new("RGBA", (12, 7), (1, 2, 3, 255)).save(path)
    source = decode_image(path)
    assert source.size == (12, 7)
    assert source.image.mode == "RGB"
    assert source.tags == []


def test_garbage_bytes_raise_decode_error(tmp_path: Path) -> None:
    with pytest.raises(ImageDecodeError):
        decode_bytes(b"\x00\x01 definitely not pixels")
    path = tmp_path / "broken.png"
    path.write_bytes(b"\x89PNG truncated")
    with pytest.raises(ImageDecodeError):
        decode_image(path)


def test_missing_file_raises_decode_error(tmp_path: Path) -> None:
    with pytest.raises(ImageDecodeError):
        decode_image(tmp_path / "missing.jpg")


def test_heif_without_plugin(monkeypatch) -> None:
    monkeypatch.setattr(image_decoder, "_register_heif_opener", lambda: False)
    with pytest.raises(ImageDecodeError, match="pillow-heif"):
        decode_bytes(b"....ftypheic", path=Path("shot.HEIC"))

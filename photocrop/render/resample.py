from __future__ import annotations

from pathlib import Path

from PIL import Image

from photocrop.errors import AspectMismatchError
from photocrop.models import Rect


def aspect_ratios_match(
    a_size: tuple[int, int],
    b_size: tuple[int, int],
    tolerance_px: float = 1.0,
) -> bool:
    """Compare two width/height ratios by cross product.

    The rectangles match when rescaling one onto the other is off by no more
    than ``tolerance_px`` along the longest edge involved.
    """
    a_w, a_h = a_size
    b_w, b_h = b_size
    if a_w <= 0 or a_h <= 0 or b_w <= 0 or b_h <= 0:
        return False
    diff = abs(a_w * b_h - a_h * b_w)
    return diff <= tolerance_px * max(a_w, a_h, b_w, b_h)


def resample(
    image: Image.Image,
    src_rect: Rect,
    dst_size: tuple[int, int],
    tolerance_px: float = 1.0,
) -> Image.Image:
    """Bicubic resample of ``src_rect`` of ``image`` into a ``dst_size`` buffer."""
    if src_rect.is_empty or dst_size[0] <= 0 or dst_size[1] <= 0:
        raise ValueError(f"cannot resample {src_rect} into {dst_size}")
    if not aspect_ratios_match(src_rect.size, dst_size, tolerance_px):
        raise AspectMismatchError(f"aspect mismatch: {src_rect.size} -> {dst_size}")

    bounds = Rect(0, 0, image.width, image.height)
    if bounds.contains(src_rect):
        if src_rect.size == dst_size:
            return image.crop(src_rect.box)
        return image.resize(dst_size, Image.Resampling.BICUBIC, box=src_rect.box)
    # Area outside the buffer comes back as zero (black) pixels.
    region = image.crop(src_rect.box)
    if region.size == dst_size:
        return region
    return region.resize(dst_size, Image.Resampling.BICUBIC)


def encode_image(image: Image.Image, path: Path, exif: bytes = b"", jpeg_quality: int = 92) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    suffix = path.suffix.lower()
    kwargs: dict[str, object] = {}
    if exif:
        kwargs["exif"] = exif
    if suffix == ".png":
        image.save(path, format="PNG", optimize=True, **kwargs)
        return path

    if suffix not in {".jpg", ".jpeg"}:
        path = path.with_suffix(".jpg")
    image.convert("RGB").save(
        path,
        format="JPEG",
        quality=max(1, min(100, jpeg_quality)),
        optimize=True,
        progressive=True,
        **kwargs,
    )
    return path

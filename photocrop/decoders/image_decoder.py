from __future__ import annotations

import io
import logging
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from photocrop.constants import HEIF_EXTENSIONS, STANDARD_EXTENSIONS
from photocrop.errors import ImageDecodeError
from photocrop.meta.exif_io import read_tags
from photocrop.models import SourceImage

LOGGER = logging.getLogger(__name__)

_HEIF_REGISTERED = False


def _register_heif_opener() -> bool:
    global _HEIF_REGISTERED
    if _HEIF_REGISTERED:
        return True
    try:
        from pillow_heif import register_heif_opener
    except ImportError:
        return False
    register_heif_opener()
    _HEIF_REGISTERED = True
    return True


def _decode_stream(stream: io.BytesIO, path: Path | None) -> SourceImage:
    try:
        with Image.open(stream) as image:
            tags = read_tags(image)
            upright = ImageOps.exif_transpose(image).convert("RGB").copy()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        label = path.name if path is not None else "<bytes>"
        raise ImageDecodeError(f"cannot decode image {label}: {exc}") from exc
    return SourceImage.from_image(upright, tags=tags, path=path)


def decode_bytes(data: bytes, path: Path | None = None) -> SourceImage:
    if path is not None and path.suffix.lower() in HEIF_EXTENSIONS and not _register_heif_opener():
        raise ImageDecodeError("pillow-heif is required to decode HEIF/HEIC/HIF")
    return _decode_stream(io.BytesIO(data), path)


def decode_image(path: Path) -> SourceImage:
    """Decode ``path`` into upright RGB pixels plus its EXIF tags.

    The file is read into memory first so it is never held open.
    """
    ext = path.suffix.lower()
    if ext not in STANDARD_EXTENSIONS and ext not in HEIF_EXTENSIONS:
        LOGGER.warning("opening file with unsupported extension: %s", path.name)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ImageDecodeError(f"cannot read {path}: {exc}") from exc
    source = decode_bytes(data, path=path)
    LOGGER.info("decoded %s (%dx%d, %d tags)", path.name, source.width, source.height, len(source.tags))
    return source

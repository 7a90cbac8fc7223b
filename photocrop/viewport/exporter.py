from __future__ import annotations

import logging
import struct
from pathlib import Path

from photocrop.meta.exif_io import ExifWriter
from photocrop.meta.store import ExportOverrides, MetadataStore
from photocrop.models import ExportResult, Point, Rect
from photocrop.render.canvas import Canvas
from photocrop.render.resample import encode_image, resample

LOGGER = logging.getLogger(__name__)


def overlay_to_canvas_rect(overlay: Rect, pan_center: Point, zoom: float) -> Rect:
    """Canvas region under the overlay. Independent of the current display size."""
    width = int(round(overlay.width * zoom))
    height = int(round(overlay.height * zoom))
    return Rect(pan_center.x - width // 2, pan_center.y - height // 2, width, height)


def export_crop(
    canvas: Canvas,
    crop_rect: Rect,
    output_size: tuple[int, int] | None = None,
    tolerance_px: float = 1.0,
) -> ExportResult:
    if crop_rect.is_empty:
        raise ValueError("crop rectangle is empty")
    target = output_size or crop_rect.size
    image = resample(canvas.image, crop_rect, target, tolerance_px=tolerance_px)
    upscaled = output_size is not None and (
        crop_rect.width < output_size[0] or crop_rect.height < output_size[1]
    )
    if upscaled:
        LOGGER.info("crop %dx%d is upscaled to %dx%d", crop_rect.width, crop_rect.height, *output_size)
    return ExportResult(image=image, crop_rect=crop_rect, output_size=output_size, upscaled=upscaled)


def save_export(
    result: ExportResult,
    store: MetadataStore,
    path: Path,
    overrides: ExportOverrides | None = None,
    jpeg_quality: int = 92,
) -> tuple[Path, list[tuple[str, int]]]:
    """Write exported pixels with the stored metadata stamped on.

    Returns the written path (the extension may be normalized) and the keys
    of tags the encoder rejected.
    """
    writer = ExifWriter()
    skipped = store.apply_to(writer, overrides)
    try:
        exif = writer.to_bytes()
    except (ValueError, struct.error) as exc:
        LOGGER.warning("metadata could not be serialized, saving pixels only: %s", exc)
        exif = b""
        skipped = [tag.key for tag in store]
    saved = encode_image(result.image, path, exif=exif, jpeg_quality=jpeg_quality)
    if skipped:
        LOGGER.info("skipped %d metadata tag(s) for %s", len(skipped), saved.name)
    LOGGER.info("saved %s (%dx%d)", saved, result.image.width, result.image.height)
    return saved, skipped

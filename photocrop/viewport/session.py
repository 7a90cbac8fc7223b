"""Caller-owned editing session for one image.

A ``ViewportSession`` bundles everything the viewport operations touch:
the decoded source, its padded canvas, zoom/pan state, metadata and export
settings. Every mutation re-renders the display frame before returning.
Operations that fail leave the previous canvas and viewport state active.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

from PIL import Image

from photocrop.constants import CANVAS_FILL_COLOR
from photocrop.decoders.image_decoder import decode_image
from photocrop.meta.store import ExportOverrides, MetadataStore
from photocrop.models import ExportResult, Point, Rect, SourceImage
from photocrop.naming import build_output_name, unique_output_path
from photocrop.presets import AspectRatio, QualityTier, resolve_output_size
from photocrop.render.canvas import Canvas, CanvasTransform, build_canvas
from photocrop.viewport import rotation
from photocrop.viewport.exporter import export_crop, overlay_to_canvas_rect, save_export
from photocrop.viewport.state import ViewportState, compute_overlay_rect

LOGGER = logging.getLogger(__name__)


class SessionError(RuntimeError):
    """An operation needs a loaded image."""


class ViewportSession:
    def __init__(
        self,
        aspect: AspectRatio | str = AspectRatio.WIDE,
        quality: QualityTier | str = QualityTier.HIGH,
        display_size: tuple[int, int] = (800, 600),
        zoom_mode: str = "fill",
        overrides: ExportOverrides | None = None,
        jpeg_quality: int = 92,
        fill_color: str = CANVAS_FILL_COLOR,
    ) -> None:
        self.aspect = AspectRatio.from_label(aspect)
        self.quality = QualityTier.from_label(quality)
        self.display_w, self.display_h = display_size
        self.zoom_mode = zoom_mode
        self.overrides = overrides or ExportOverrides()
        self.jpeg_quality = jpeg_quality
        self.fill_color = fill_color

        self.source: SourceImage | None = None
        self.canvas: Canvas | None = None
        self.state = ViewportState()
        self.store = MetadataStore()
        self.frame: Image.Image | None = None

    # ------------------------------------------------------------------ state

    @property
    def is_loaded(self) -> bool:
        return self.source is not None and self.canvas is not None

    @property
    def transform(self) -> CanvasTransform:
        return self.canvas.transform if self.canvas is not None else CanvasTransform()

    @property
    def output_size(self) -> tuple[int, int] | None:
        return resolve_output_size(self.aspect, self.quality)

    @property
    def gps(self) -> tuple[float, float] | None:
        return self.store.gps

    @property
    def upscale_warning(self) -> bool:
        """True when the current crop has fewer pixels than the export size."""
        size = self.output_size
        if size is None or not self.is_loaded:
            return False
        crop = self.crop_rect()
        return crop.width < size[0] or crop.height < size[1]

    def _require(self) -> tuple[SourceImage, Canvas]:
        if self.source is None or self.canvas is None:
            raise SessionError("no image loaded")
        return self.source, self.canvas

    def _overlay(self) -> Rect:
        return compute_overlay_rect(self.aspect, self.display_w, self.display_h)

    def _render(self) -> None:
        if self.canvas is None:
            self.frame = None
            return
        self.frame = self.state.render_display_sample(self.canvas, self.display_w, self.display_h)

    def _replace_canvas(self, canvas: Canvas) -> None:
        old = self.canvas
        self.canvas = canvas
        if old is not None and old is not canvas:
            old.release()

    def _reset_zoom(self) -> None:
        if self.canvas is None:
            return
        if self.zoom_mode == "fit":
            self.state.fit(self.canvas, self.display_w, self.display_h)
        else:
            self.state.fill(self.canvas, self.display_w, self.display_h)

    # ------------------------------------------------------------------ loading

    def load_file(self, path: Path) -> SourceImage:
        """Decode ``path`` and make it the session image.

        ImageDecodeError and CanvasAllocationError propagate with the
        previous image still active.
        """
        source = decode_image(path)
        self.load_source(source)
        return source

    def load_source(self, source: SourceImage) -> None:
        canvas = build_canvas(source.image, CanvasTransform(), self.fill_color)
        self._replace_canvas(canvas)
        self.source = source
        self.store = MetadataStore(source.tags)
        self.state = ViewportState(overlay=self._overlay())
        self.state.recenter(canvas)
        self._reset_zoom()
        self._render()
        LOGGER.info(
            "loaded %s %dx%d, canvas %dx%d, zoom %.3f",
            source.path.name if source.path else "<image>",
            source.width,
            source.height,
            canvas.width,
            canvas.height,
            self.state.zoom,
        )

    def close(self) -> None:
        if self.canvas is not None:
            self.canvas.release()
        self.canvas = None
        self.source = None
        self.frame = None
        self.store = MetadataStore()
        self.state = ViewportState()

    # ------------------------------------------------------------------ display

    def resize_display(self, width: int, height: int) -> None:
        self.display_w = max(0, int(width))
        self.display_h = max(0, int(height))
        self.state.overlay = self._overlay()
        if self.canvas is not None:
            self.state.clamp_zoom(self.canvas.source_size)
            rotation.clamp_rotated_zoom(self.canvas, self.state)
            self.state.clamp_pan(self.canvas, self.display_w, self.display_h)
        self._render()

    def set_aspect(self, aspect: AspectRatio | str) -> None:
        """Switch the overlay aspect, keeping the pan center."""
        self.aspect = AspectRatio.from_label(aspect)
        self.resize_display(self.display_w, self.display_h)

    def set_quality(self, quality: QualityTier | str) -> None:
        self.quality = QualityTier.from_label(quality)

    def display_overlay(self) -> Rect:
        return self.state.overlay

    # ------------------------------------------------------------------ pan / zoom

    def pan(self, dx: int, dy: int, origin: Point | None = None) -> bool:
        _, canvas = self._require()
        changed = self.state.pan(canvas, self.display_w, self.display_h, dx, dy, origin=origin)
        if changed:
            self._render()
        return changed

    def zoom_at_cursor(self, cursor_frac: tuple[float, float], zoom_out: bool, fine_step: bool = False) -> bool:
        _, canvas = self._require()
        previous = (self.state.zoom, self.state.pan_center)
        if not self.state.zoom_at_cursor(canvas, self.display_w, self.display_h, cursor_frac, zoom_out, fine_step):
            return False
        rotation.clamp_rotated_zoom(canvas, self.state)
        if (self.state.zoom, self.state.pan_center) == previous:
            return False
        self._render()
        return True

    def step_zoom(self, zoom_out: bool) -> bool:
        _, canvas = self._require()
        changed = self.state.step_zoom(canvas, self.display_w, self.display_h, zoom_out)
        if changed:
            rotation.clamp_rotated_zoom(canvas, self.state)
            self._render()
        return changed

    def show_all(self) -> bool:
        _, canvas = self._require()
        changed = self.state.fit(canvas, self.display_w, self.display_h)
        if changed:
            rotation.clamp_rotated_zoom(canvas, self.state)
            self._render()
        return changed

    def fill(self) -> bool:
        _, canvas = self._require()
        changed = self.state.fill(canvas, self.display_w, self.display_h)
        if changed:
            rotation.clamp_rotated_zoom(canvas, self.state)
            self._render()
        return changed

    # ------------------------------------------------------------------ orientation

    def _apply_rebuild(self, rebuilt: Canvas, staged: ViewportState) -> None:
        self._replace_canvas(rebuilt)
        self.state = staged
        self._render()

    def rotate90(self, clockwise: bool = True) -> None:
        source, canvas = self._require()
        staged = replace(self.state)
        rebuilt = rotation.rotate90(source.image, canvas, staged, clockwise, self.fill_color)
        self._apply_rebuild(rebuilt, staged)

    def flip_horizontal(self) -> None:
        source, canvas = self._require()
        staged = replace(self.state)
        rebuilt = rotation.flip_horizontal(source.image, canvas, staged, self.fill_color)
        self._apply_rebuild(rebuilt, staged)

    def rotate_arbitrary(self, angle: float) -> None:
        source, canvas = self._require()
        staged = replace(self.state)
        rebuilt = rotation.rotate_arbitrary(source.image, canvas, staged, angle, self.fill_color)
        self._apply_rebuild(rebuilt, staged)

    def rotate_from_drag(self, dx: float, dy: float) -> float | None:
        angle = rotation.angle_from_drag(dx, dy)
        if angle is None:
            return None
        self.rotate_arbitrary(angle)
        return angle

    # ------------------------------------------------------------------ metadata

    def set_gps(self, lat: float, lon: float) -> None:
        self.store.set_gps(lat, lon)

    def clear_gps(self) -> None:
        self.store.clear_gps()

    # ------------------------------------------------------------------ export

    def crop_rect(self) -> Rect:
        return overlay_to_canvas_rect(self.state.overlay, self.state.pan_center, self.state.zoom)

    def export(self) -> ExportResult:
        _, canvas = self._require()
        crop = self.crop_rect()
        # Overlay and crop are each rounded to whole pixels.
        tolerance = self.state.zoom + 2.0
        return export_crop(canvas, crop, self.output_size, tolerance_px=tolerance)

    def default_output_name(self, extension: str = "jpg") -> str:
        path = self.source.path if self.source is not None else None
        return build_output_name(path, extension)

    def save(
        self,
        folder: Path,
        name: str | None = None,
        overwrite: bool = False,
    ) -> tuple[Path, list[tuple[str, int]], ExportResult]:
        """Export the current crop into ``folder``.

        Returns the written path, the metadata keys that were skipped and
        the export result (whose ``upscaled`` flag the caller may surface).
        """
        result = self.export()
        folder.mkdir(parents=True, exist_ok=True)
        file_name = name or self.default_output_name()
        target = folder / file_name if overwrite else unique_output_path(folder, file_name)
        saved, skipped = save_export(result, self.store, target, self.overrides, self.jpeg_quality)
        return saved, skipped, result

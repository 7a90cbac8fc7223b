# Viewport geometry: overlay placement, zoom bounds and sampling windows.
# Display coordinates are widget pixels; pan centers and windows live in
# canvas pixels. No Qt dependencies.
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from PIL import Image

from photocrop.constants import BUTTON_ZOOM_STEP, MIN_ZOOM, OVERLAY_PADDING, WHEEL_ZOOM_FINE_STEP, WHEEL_ZOOM_STEP
from photocrop.models import Point, Rect
from photocrop.presets import AspectRatio, aspect_ratio_value
from photocrop.render.canvas import Canvas
from photocrop.render.resample import resample

LOGGER = logging.getLogger(__name__)


class _Sized(Protocol):
    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...


def _effective_padding(padding: int, limit: int) -> int:
    return max(0, min(padding, (limit - 1) // 2))


def compute_overlay_rect(
    aspect: AspectRatio | str | float | None,
    display_w: int,
    display_h: int,
    padding: int = OVERLAY_PADDING,
) -> Rect:
    """Largest rectangle of the aspect ratio centered in the display, inset by ``padding``."""
    ratio = aspect_ratio_value(aspect)
    if ratio <= 0 or display_w <= 0 or display_h <= 0:
        return Rect.empty()

    control_ratio = display_w / float(display_h)
    if control_ratio > ratio:
        # height limits
        rect_h = display_h - 2 * _effective_padding(padding, display_h)
        rect_w = max(1, int(round(rect_h * ratio)))
    else:
        # width limits
        rect_w = display_w - 2 * _effective_padding(padding, display_w)
        rect_h = max(1, int(round(rect_w / ratio)))

    x = (display_w - rect_w) // 2
    y = (display_h - rect_h) // 2
    return Rect(x, y, rect_w, rect_h)


def max_zoom(fill_mode: bool, img_w: int, img_h: int, rect_w: int, rect_h: int) -> float:
    """Zoom at which the source exactly fills (``fill_mode``) or fits the overlay."""
    if rect_w <= 0 or rect_h <= 0:
        raise ValueError(f"overlay must be non-empty, got {rect_w}x{rect_h}")
    fx = img_w / float(rect_w)
    fy = img_h / float(rect_h)
    if fill_mode:
        return min(fx, fy)
    return max(fx, fy)


def sample_window(canvas: _Sized, pan_center: Point, want_w: int, want_h: int) -> Rect:
    """Window of exactly ``want_w`` x ``want_h`` around ``pan_center``, shifted inside the canvas.

    Returns an empty rect when the request cannot fit at all.
    """
    if want_w <= 0 or want_h <= 0 or want_w > canvas.width or want_h > canvas.height:
        return Rect.empty()

    x = pan_center.x - want_w // 2
    y = pan_center.y - want_h // 2
    x = max(0, min(x, canvas.width - want_w))
    y = max(0, min(y, canvas.height - want_h))
    return Rect(x, y, want_w, want_h).intersect(Rect(0, 0, canvas.width, canvas.height))


def display_zoom_cap(canvas: _Sized, display_w: int, display_h: int) -> float | None:
    """Largest zoom whose display window still fits inside the canvas."""
    if display_w <= 0 or display_h <= 0:
        return None
    return min(canvas.width / float(display_w), canvas.height / float(display_h))


def _clamp_axis(value: int, half: int, size: int) -> int:
    low = half
    high = size - 1 - half
    if high < low:
        return size // 2
    return max(low, min(high, value))


@dataclass(slots=True)
class ViewportState:
    """Zoom factor, pan center and overlay rectangle of one loaded image.

    ``zoom`` is canvas pixels per display pixel: a display of ``w`` pixels
    samples ``w * zoom`` canvas pixels, so larger values show more.
    """

    zoom: float = 1.0
    pan_center: Point = field(default_factory=lambda: Point(0, 0))
    overlay: Rect = field(default_factory=Rect.empty)

    def zoom_limit(self, source_size: tuple[int, int], fill_mode: bool = False) -> float | None:
        if self.overlay.is_empty:
            return None
        return max_zoom(fill_mode, source_size[0], source_size[1], self.overlay.width, self.overlay.height)

    def zoom_cap(self, canvas: Canvas, display_w: int, display_h: int, fill_mode: bool = False) -> float | None:
        """Overlay zoom limit, further capped so the display window fits the canvas."""
        caps = [
            cap
            for cap in (
                self.zoom_limit(canvas.source_size, fill_mode),
                display_zoom_cap(canvas, display_w, display_h),
            )
            if cap is not None
        ]
        return min(caps) if caps else None

    def clamp_zoom(self, source_size: tuple[int, int]) -> None:
        limit = self.zoom_limit(source_size)
        if limit is not None:
            self.zoom = min(self.zoom, limit)

    def clamp_to_display(self, canvas: Canvas, display_w: int, display_h: int) -> None:
        cap = display_zoom_cap(canvas, display_w, display_h)
        if cap is not None and self.zoom > cap:
            self.zoom = cap
            self.clamp_pan(canvas, display_w, display_h)

    def window_size(self, display_w: int, display_h: int, zoom: float | None = None) -> tuple[int, int]:
        factor = self.zoom if zoom is None else zoom
        return (int(round(display_w * factor)), int(round(display_h * factor)))

    def display_window(self, canvas: Canvas, display_w: int, display_h: int) -> Rect:
        want_w, want_h = self.window_size(display_w, display_h)
        return sample_window(canvas, self.pan_center, want_w, want_h)

    def render_display_sample(self, canvas: Canvas, display_w: int, display_h: int) -> Image.Image | None:
        if display_w <= 0 or display_h <= 0:
            return None
        self.clamp_zoom(canvas.source_size)
        self.clamp_to_display(canvas, display_w, display_h)
        window = self.display_window(canvas, display_w, display_h)
        if window.is_empty:
            LOGGER.debug("no display window for zoom=%.3f at %s", self.zoom, self.pan_center)
            return None
        return resample(canvas.image, window, (display_w, display_h))

    def clamp_pan(self, canvas: Canvas, display_w: int, display_h: int) -> None:
        self.pan_center = self._clamped_center(canvas, self.pan_center, display_w, display_h)

    def _clamped_center(self, canvas: Canvas, point: Point, display_w: int, display_h: int) -> Point:
        want_w, want_h = self.window_size(display_w, display_h)
        return Point(
            _clamp_axis(point.x, want_w // 2, canvas.width),
            _clamp_axis(point.y, want_h // 2, canvas.height),
        )

    def pan(
        self,
        canvas: Canvas,
        display_w: int,
        display_h: int,
        dx: int,
        dy: int,
        origin: Point | None = None,
    ) -> bool:
        """Move the content with a display-space drag of (dx, dy).

        ``origin`` is the pan center when the drag started; by default the
        delta is applied to the current center.
        """
        if display_w <= 0 or display_h <= 0:
            return False
        start = origin or self.pan_center
        base_w = min(canvas.width, display_w)
        base_h = min(canvas.height, display_h)
        delta_x = int(round(dx * base_w / float(display_w)))
        delta_y = int(round(dy * base_h / float(display_h)))
        moved = Point(
            start.x - int(round(delta_x * self.zoom)),
            start.y - int(round(delta_y * self.zoom)),
        )
        self.pan_center = self._clamped_center(canvas, moved, display_w, display_h)
        return True

    def zoom_at_cursor(
        self,
        canvas: Canvas,
        display_w: int,
        display_h: int,
        cursor_frac: tuple[float, float],
        zoom_out: bool,
        fine_step: bool = False,
    ) -> bool:
        """Wheel zoom keeping the canvas point under the cursor fixed.

        Returns False and leaves the state untouched when the new window
        would be degenerate.
        """
        before = self.display_window(canvas, display_w, display_h)
        if before.is_empty:
            return False
        frac_x = min(1.0, max(0.0, cursor_frac[0]))
        frac_y = min(1.0, max(0.0, cursor_frac[1]))
        anchor_x = before.x + frac_x * before.width
        anchor_y = before.y + frac_y * before.height

        step = WHEEL_ZOOM_FINE_STEP if fine_step else WHEEL_ZOOM_STEP
        new_zoom = self.zoom * step if zoom_out else self.zoom / step
        new_zoom = max(MIN_ZOOM, new_zoom)
        limit = self.zoom_cap(canvas, display_w, display_h)
        if limit is not None:
            new_zoom = min(new_zoom, limit)
        if new_zoom == self.zoom:
            return False

        new_w, new_h = self.window_size(display_w, display_h, zoom=new_zoom)
        wanted = Point(
            int(round(anchor_x - frac_x * new_w + new_w / 2.0)),
            int(round(anchor_y - frac_y * new_h + new_h / 2.0)),
        )
        window = sample_window(canvas, wanted, new_w, new_h)
        if window.is_empty:
            return False
        self.zoom = new_zoom
        self.pan_center = window.center
        return True

    def step_zoom(self, canvas: Canvas, display_w: int, display_h: int, zoom_out: bool) -> bool:
        """Zoom In / Zoom Out buttons: change zoom by a fixed step."""
        if zoom_out:
            limit = self.zoom_cap(canvas, display_w, display_h)
            if limit is not None and self.zoom + BUTTON_ZOOM_STEP >= limit:
                return False
            self.zoom += BUTTON_ZOOM_STEP
        else:
            new_zoom = max(MIN_ZOOM, self.zoom - BUTTON_ZOOM_STEP)
            if new_zoom == self.zoom:
                return False
            self.zoom = new_zoom
        self.clamp_pan(canvas, display_w, display_h)
        return True

    def recenter(self, canvas: Canvas) -> None:
        self.pan_center = canvas.center

    def fit(self, canvas: Canvas, display_w: int = 0, display_h: int = 0) -> bool:
        """Show All: the whole source is visible inside the overlay.

        With a display size, the zoom is also capped so the display window
        fits the canvas.
        """
        if self.overlay.is_empty:
            return False
        limit = self.zoom_cap(canvas, display_w, display_h, fill_mode=False)
        if limit is None:
            return False
        self.zoom = limit
        self.recenter(canvas)
        return True

    def fill(self, canvas: Canvas, display_w: int = 0, display_h: int = 0) -> bool:
        """Fill: the overlay is fully covered by source pixels."""
        if self.overlay.is_empty:
            return False
        limit = self.zoom_cap(canvas, display_w, display_h, fill_mode=True)
        if limit is None:
            return False
        self.zoom = limit
        self.recenter(canvas)
        return True

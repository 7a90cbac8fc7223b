"""Orientation changes: quarter turns, mirroring and free rotation.

Each operation builds the replacement canvas from the untouched source
before touching the viewport state, so a failed rebuild (for example
CanvasAllocationError) leaves the previous canvas and pan intact. The
caller owns the old canvas and releases it.
"""
from __future__ import annotations

import logging
import math

from PIL import Image

from photocrop.constants import CANVAS_FILL_COLOR
from photocrop.models import Point
from photocrop.render.canvas import Canvas, build_canvas
from photocrop.viewport.state import ViewportState, max_zoom

LOGGER = logging.getLogger(__name__)


def quarter_turn_point(point: Point, width: int, height: int, clockwise: bool = True) -> Point:
    """Where the pixel at ``point`` of a ``width`` x ``height`` buffer lands after a 90 degree turn.

    Clockwise maps (x, y) to (height-1-y, x), the pixel's real position after
    the turn; (y, width-1-x) is where it lands after a counter-clockwise turn.
    """
    if clockwise:
        return Point(height - 1 - point.y, point.x)
    return Point(point.y, width - 1 - point.x)


def _clamp_to_canvas(point: Point, canvas: Canvas) -> Point:
    return Point(
        max(0, min(canvas.width - 1, point.x)),
        max(0, min(canvas.height - 1, point.y)),
    )


def rotate90(
    source: Image.Image,
    canvas: Canvas,
    state: ViewportState,
    clockwise: bool = True,
    fill: str = CANVAS_FILL_COLOR,
) -> Canvas:
    transform = canvas.transform.rotated90(clockwise)
    rebuilt = build_canvas(source, transform, fill)
    moved = quarter_turn_point(state.pan_center, canvas.width, canvas.height, clockwise)
    state.pan_center = _clamp_to_canvas(moved, rebuilt)
    state.clamp_zoom(rebuilt.source_size)
    LOGGER.debug("rotate90 clockwise=%s -> %s", clockwise, transform)
    return rebuilt


def flip_horizontal(
    source: Image.Image,
    canvas: Canvas,
    state: ViewportState,
    fill: str = CANVAS_FILL_COLOR,
) -> Canvas:
    rebuilt = build_canvas(source, canvas.transform.mirrored(), fill)
    mirrored = Point(canvas.width - state.pan_center.x, state.pan_center.y)
    state.pan_center = _clamp_to_canvas(mirrored, rebuilt)
    return rebuilt


def max_unrotated_fit(angle: float, width: int, height: int) -> tuple[int, int]:
    """Largest same-aspect rectangle inside a ``width`` x ``height`` image rotated by ``angle`` degrees."""
    if width <= 0 or height <= 0:
        raise ValueError(f"image size must be positive, got {width}x{height}")
    theta = math.radians(-angle)
    c = abs(math.cos(theta))
    s = abs(math.sin(theta))
    k = min(
        1.0,
        width / (width * c + height * s),
        height / (width * s + height * c),
    )
    return (max(1, int(round(k * width))), max(1, int(round(k * height))))


def clamp_rotated_zoom(canvas: Canvas, state: ViewportState) -> None:
    """Keep the crop inside real pixels while a free rotation is active."""
    if not canvas.transform.angle or state.overlay.is_empty:
        return
    fit_w, fit_h = max_unrotated_fit(canvas.transform.angle, *canvas.source_size)
    limit = max_zoom(True, fit_w, fit_h, state.overlay.width, state.overlay.height)
    state.zoom = min(state.zoom, limit)


def rotate_arbitrary(
    source: Image.Image,
    canvas: Canvas,
    state: ViewportState,
    angle: float,
    fill: str = CANVAS_FILL_COLOR,
) -> Canvas:
    """Set the free rotation to ``angle`` degrees (positive is clockwise)."""
    rebuilt = build_canvas(source, canvas.transform.with_angle(angle), fill)
    state.pan_center = rebuilt.center
    state.clamp_zoom(rebuilt.source_size)
    clamp_rotated_zoom(rebuilt, state)
    LOGGER.debug("rotate to %.2f degrees, zoom=%.3f", angle, state.zoom)
    return rebuilt


def angle_from_drag(dx: float, dy: float) -> float | None:
    """Direction of a drag vector in degrees, within (-180, 180].

    Screen y grows downwards, so a drag down and to the right gives a
    positive (clockwise) angle. A zero-length drag returns None.
    """
    if dx == 0 and dy == 0:
        return None
    angle = math.degrees(math.atan2(dy, dx))
    if angle <= -180.0:
        angle += 360.0
    return angle

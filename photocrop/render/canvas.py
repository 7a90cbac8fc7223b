"""Padded working canvas.

The current (flipped / rotated) source is drawn centered on a square black
canvas three times its longest edge, so pans and rotations always find
pixels to sample. The canvas is rebuilt from the untouched source on every
orientation change and never modified in place.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from PIL import Image, ImageColor

from photocrop.constants import CANVAS_FILL_COLOR, CANVAS_MAX_SIDE, CANVAS_PADDING_FACTOR
from photocrop.errors import CanvasAllocationError
from photocrop.models import Point, Rect

LOGGER = logging.getLogger(__name__)

_QUARTER_TURN_TRANSPOSE = {
    1: Image.Transpose.ROTATE_270,
    2: Image.Transpose.ROTATE_180,
    3: Image.Transpose.ROTATE_90,
}


def fill_color_for_mode(mode: str, fill: str) -> tuple[int, ...]:
    rgb = ImageColor.getrgb(fill)
    if mode == "RGBA":
        return (*rgb[:3], 255)
    if mode == "L":
        return (int(0.299 * rgb[0] + 0.587 * rgb[1] + 0.114 * rgb[2]),)
    return tuple(rgb[:3])


@dataclass(frozen=True, slots=True)
class CanvasTransform:
    """Orientation of the source on the canvas.

    Applied in order: horizontal mirror, clockwise quarter turns, then a
    free rotation of ``angle`` degrees (positive is clockwise on screen).
    """

    flipped: bool = False
    quarter_turns: int = 0
    angle: float = 0.0

    @property
    def is_identity(self) -> bool:
        return not self.flipped and self.quarter_turns % 4 == 0 and self.angle == 0.0

    def rotated90(self, clockwise: bool = True) -> CanvasTransform:
        step = 1 if clockwise else -1
        return replace(self, quarter_turns=(self.quarter_turns + step) % 4)

    def mirrored(self) -> CanvasTransform:
        # Mirroring after a rotation reverses the rotation's direction.
        return CanvasTransform(
            flipped=not self.flipped,
            quarter_turns=(-self.quarter_turns) % 4,
            angle=-self.angle if self.angle else 0.0,
        )

    def with_angle(self, angle: float) -> CanvasTransform:
        return replace(self, angle=float(angle))

    def oriented_size(self, width: int, height: int) -> tuple[int, int]:
        if self.quarter_turns % 2:
            return (height, width)
        return (width, height)

    def apply(self, image: Image.Image, fill: str = CANVAS_FILL_COLOR) -> Image.Image:
        out = image
        if self.flipped:
            out = out.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
        transpose = _QUARTER_TURN_TRANSPOSE.get(self.quarter_turns % 4)
        if transpose is not None:
            out = out.transpose(transpose)
        if self.angle:
            out = out.rotate(
                -self.angle,
                resample=Image.Resampling.BICUBIC,
                expand=True,
                fillcolor=fill_color_for_mode(out.mode, fill),
            )
        return out


@dataclass(slots=True)
class Canvas:
    image: Image.Image
    content_box: Rect
    source_size: tuple[int, int]
    transform: CanvasTransform

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    @property
    def center(self) -> Point:
        return Point(self.width // 2, self.height // 2)

    def release(self) -> None:
        self.image.close()


def canvas_side(width: int, height: int, content_width: int = 0, content_height: int = 0) -> int:
    """Square canvas edge for a ``width`` x ``height`` source.

    Capped at CANVAS_MAX_SIDE unless the transformed content itself is larger.
    """
    side = min(CANVAS_MAX_SIDE, CANVAS_PADDING_FACTOR * max(width, height))
    return max(side, content_width, content_height)


def build_canvas(
    source: Image.Image,
    transform: CanvasTransform | None = None,
    fill: str = CANVAS_FILL_COLOR,
) -> Canvas:
    transform = transform or CanvasTransform()
    try:
        content = transform.apply(source, fill)
        side = canvas_side(source.width, source.height, content.width, content.height)
        image = Image.new(source.mode, (side, side), fill_color_for_mode(source.mode, fill))
    except MemoryError as exc:
        raise CanvasAllocationError(f"cannot allocate canvas for {source.width}x{source.height} source") from exc

    offset_x = (side - content.width) // 2
    offset_y = (side - content.height) // 2
    image.paste(content, (offset_x, offset_y))
    LOGGER.debug(
        "canvas %dx%d, content %dx%d at (%d, %d), transform=%s",
        side,
        side,
        content.width,
        content.height,
        offset_x,
        offset_y,
        transform,
    )
    return Canvas(
        image=image,
        content_box=Rect(offset_x, offset_y, content.width, content.height),
        source_size=transform.oriented_size(source.width, source.height),
        transform=transform,
    )

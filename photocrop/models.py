from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image

from photocrop.constants import IFD_PRIMARY


@dataclass(frozen=True, slots=True)
class Point:
    x: int
    y: int


@dataclass(frozen=True, slots=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def empty(cls) -> Rect:
        return cls(0, 0, 0, 0)

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width // 2, self.y + self.height // 2)

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def box(self) -> tuple[int, int, int, int]:
        """PIL style (left, top, right, bottom)."""
        return (self.x, self.y, self.right, self.bottom)

    def intersect(self, other: Rect) -> Rect:
        left = max(self.x, other.x)
        top = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if right <= left or bottom <= top:
            return Rect.empty()
        return Rect(left, top, right - left, bottom - top)

    def contains(self, other: Rect) -> bool:
        return (
            other.x >= self.x
            and other.y >= self.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )


@dataclass(frozen=True, slots=True)
class MetadataTag:
    tag_id: int
    type_code: int
    value: bytes
    ifd: str = IFD_PRIMARY

    @property
    def key(self) -> tuple[str, int]:
        return (self.ifd, self.tag_id)


@dataclass(slots=True)
class SourceImage:
    image: Image.Image
    width: int
    height: int
    tags: list[MetadataTag] = field(default_factory=list)
    path: Path | None = None

    @classmethod
    def from_image(
        cls,
        image: Image.Image,
        tags: list[MetadataTag] | None = None,
        path: Path | None = None,
    ) -> SourceImage:
        return cls(image=image, width=image.width, height=image.height, tags=list(tags or []), path=path)

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)


@dataclass(slots=True)
class ExportResult:
    image: Image.Image
    crop_rect: Rect
    output_size: tuple[int, int] | None
    upscaled: bool = False

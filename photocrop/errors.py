from __future__ import annotations


class PhotoCropError(Exception):
    """Base class for recoverable engine errors."""


class ImageDecodeError(PhotoCropError):
    """Source bytes are not a recognizable image."""


class CanvasAllocationError(PhotoCropError):
    """The padded working canvas could not be allocated."""


class AspectMismatchError(PhotoCropError, ValueError):
    """Source and destination rectangles of a resample disagree on aspect ratio."""


class TagRejectedError(PhotoCropError):
    """A metadata tag cannot be attached to the export destination."""

    def __init__(self, key: tuple[str, int], reason: str) -> None:
        super().__init__(f"tag {key[0]}:{key[1]:#06x} rejected: {reason}")
        self.key = key
        self.reason = reason

"""Aspect ratios, quality tiers and the fixed export resolutions they map to."""
from __future__ import annotations

from enum import Enum
from typing import Any


class AspectRatio(Enum):
    WIDE = "16:9"
    TALL = "9:16"
    SQUARE = "Square"
    PORTRAIT = "4:5"
    LANDSCAPE = "5:4"

    @property
    def label(self) -> str:
        return self.value

    @property
    def ratio(self) -> float:
        return _ASPECT_RATIOS[self]

    @classmethod
    def from_label(cls, label: Any) -> AspectRatio:
        if isinstance(label, AspectRatio):
            return label
        text = str(label or "").strip().lower()
        for item in cls:
            if item.value.lower() == text:
                return item
        return cls.WIDE


class QualityTier(Enum):
    HIGH = "high"
    LOW = "low"
    ORIGINAL = "original"

    @property
    def label(self) -> str:
        return self.value

    @classmethod
    def from_label(cls, label: Any) -> QualityTier:
        if isinstance(label, QualityTier):
            return label
        text = str(label or "").strip().lower()
        for item in cls:
            if item.value == text:
                return item
        return cls.HIGH


_ASPECT_RATIOS: dict[AspectRatio, float] = {
    AspectRatio.WIDE: 16.0 / 9.0,
    AspectRatio.TALL: 9.0 / 16.0,
    AspectRatio.SQUARE: 1.0,
    AspectRatio.PORTRAIT: 4.0 / 5.0,
    AspectRatio.LANDSCAPE: 5.0 / 4.0,
}

_OUTPUT_SIZES: dict[AspectRatio, dict[QualityTier, tuple[int, int]]] = {
    AspectRatio.WIDE: {QualityTier.HIGH: (3840, 2160), QualityTier.LOW: (1920, 1080)},
    AspectRatio.TALL: {QualityTier.HIGH: (2160, 3840), QualityTier.LOW: (1080, 1920)},
    AspectRatio.SQUARE: {QualityTier.HIGH: (2048, 2048), QualityTier.LOW: (1080, 1080)},
    AspectRatio.PORTRAIT: {QualityTier.HIGH: (2160, 2700), QualityTier.LOW: (1080, 1350)},
    AspectRatio.LANDSCAPE: {QualityTier.HIGH: (2700, 2160), QualityTier.LOW: (1350, 1080)},
}


def aspect_ratio_value(aspect: AspectRatio | str | float | None) -> float:
    """Return width/height for an aspect enum, label or raw ratio."""
    if isinstance(aspect, (int, float)) and not isinstance(aspect, bool):
        return float(aspect)
    return AspectRatio.from_label(aspect).ratio


def resolve_output_size(aspect: AspectRatio | str, tier: QualityTier | str) -> tuple[int, int] | None:
    """Fixed output resolution, or None to export the crop at its sampled size."""
    quality = QualityTier.from_label(tier)
    if quality is QualityTier.ORIGINAL:
        return None
    return _OUTPUT_SIZES[AspectRatio.from_label(aspect)][quality]

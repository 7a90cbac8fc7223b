import pytest

from photocrop.presets import AspectRatio, QualityTier, aspect_ratio_value, resolve_output_size


def test_from_label_is_case_insensitive_with_wide_default() -> None:
    assert AspectRatio.from_label("square") is AspectRatio.SQUARE
    assert AspectRatio.from_label("4:5") is AspectRatio.PORTRAIT
    assert AspectRatio.from_label("") is AspectRatio.WIDE
    assert AspectRatio.from_label(None) is AspectRatio.WIDE
    assert AspectRatio.from_label("21:9") is AspectRatio.WIDE
    assert QualityTier.from_label("LOW") is QualityTier.LOW
    assert QualityTier.from_label("whatever") is QualityTier.HIGH


def test_output_size_table() -> None:
    assert resolve_output_size("16:9", "high") == (3840, 2160)
    assert resolve_output_size("16:9", "low") == (1920, 1080)
    assert resolve_output_size("9:16", "high") == (2160, 3840)
    assert resolve_output_size("Square", "high") == (2048, 2048)
    assert resolve_output_size("Square", "low") == (1080, 1080)
    assert resolve_output_size("4:5", "high") == (2160, 2700)
    assert resolve_output_size("4:5", "low") == (1080, 1350)
    assert resolve_output_size("5:4", "high") == (2700, 2160)
    assert resolve_output_size("5:4", "low") == (1350, 1080)
    assert resolve_output_size(AspectRatio.WIDE, QualityTier.ORIGINAL) is None


def test_every_output_size_matches_its_ratio() -> None:
    for aspect in AspectRatio:
        for tier in (QualityTier.HIGH, QualityTier.LOW):
            width, height = resolve_output_size(aspect, tier)
            assert width / height == pytest.approx(aspect.ratio)


def test_aspect_ratio_value_accepts_floats() -> None:
    assert aspect_ratio_value(1.5) == 1.5
    assert aspect_ratio_value("9:16") == pytest.approx(0.5625)
    assert aspect_ratio_value(AspectRatio.SQUARE) == 1.0

from __future__ import annotations

import math
import re
import struct
from typing import Iterable, Sequence

from photocrop.constants import (
    GPS_SECONDS_DENOMINATOR,
    IFD_GPS,
    TAG_GPS_LATITUDE,
    TAG_GPS_LATITUDE_REF,
    TAG_GPS_LONGITUDE,
    TAG_GPS_LONGITUDE_REF,
    TYPE_ASCII,
    TYPE_RATIONAL,
)
from photocrop.models import MetadataTag

Rational = tuple[int, int]

_UINT32_MAX = 0xFFFFFFFF
_COORDINATE_PATTERN = re.compile(r"^\s*([-+]?\d+(?:\.\d+)?)\s*[,;\s]\s*([-+]?\d+(?:\.\d+)?)\s*$")


def pack_rationals(pairs: Iterable[Rational]) -> bytes:
    payload = bytearray()
    for numerator, denominator in pairs:
        if not (0 <= numerator <= _UINT32_MAX and 0 <= denominator <= _UINT32_MAX):
            raise ValueError(f"rational out of unsigned 32-bit range: {numerator}/{denominator}")
        payload += struct.pack("<II", numerator, denominator)
    return bytes(payload)


def unpack_rationals(payload: bytes) -> list[Rational]:
    count = len(payload) // 8
    values = struct.unpack(f"<{count * 2}I", payload[: count * 8])
    return [(values[i], values[i + 1]) for i in range(0, len(values), 2)]


def rational_to_float(value: Rational) -> float:
    numerator, denominator = value
    if denominator == 0:
        return 0.0
    return float(numerator) / float(denominator)


def dms_to_degrees(values: Sequence[Rational], ref: str | None) -> float | None:
    if len(values) != 3:
        return None
    d = rational_to_float(values[0])
    m = rational_to_float(values[1])
    s = rational_to_float(values[2])
    degree = d + (m / 60.0) + (s / 3600.0)
    if ref and ref.upper() in {"S", "W"}:
        degree = -degree
    return degree


def degrees_to_dms(value: float) -> list[Rational]:
    """Split |value| into whole degrees, whole minutes and micro-second seconds."""
    magnitude = abs(value)
    degrees = int(magnitude)
    remainder = (magnitude - degrees) * 60.0
    minutes = int(remainder)
    seconds = int(round((remainder - minutes) * 60.0 * GPS_SECONDS_DENOMINATOR))
    # rounding can land on exactly 60 seconds
    if seconds >= 60 * GPS_SECONDS_DENOMINATOR:
        seconds -= 60 * GPS_SECONDS_DENOMINATOR
        minutes += 1
    if minutes >= 60:
        minutes -= 60
        degrees += 1
    return [
        (degrees, 1),
        (minutes, 1),
        (seconds, GPS_SECONDS_DENOMINATOR),
    ]


def _ref_text(tag: MetadataTag | None) -> str | None:
    if tag is None or not tag.value:
        return None
    return chr(tag.value[0])


def decode_gps(tags: Iterable[MetadataTag]) -> tuple[float, float] | None:
    by_id = {tag.tag_id: tag for tag in tags if tag.ifd == IFD_GPS}
    lat_tag = by_id.get(TAG_GPS_LATITUDE)
    lon_tag = by_id.get(TAG_GPS_LONGITUDE)
    if lat_tag is None or lon_tag is None:
        return None
    lat = dms_to_degrees(unpack_rationals(lat_tag.value), _ref_text(by_id.get(TAG_GPS_LATITUDE_REF)))
    lon = dms_to_degrees(unpack_rationals(lon_tag.value), _ref_text(by_id.get(TAG_GPS_LONGITUDE_REF)))
    if lat is None or lon is None:
        return None
    return (lat, lon)


def encode_gps(lat: float, lon: float) -> list[MetadataTag]:
    if not (math.isfinite(lat) and -90.0 <= lat <= 90.0):
        raise ValueError(f"latitude out of range: {lat}")
    if not (math.isfinite(lon) and -180.0 <= lon <= 180.0):
        raise ValueError(f"longitude out of range: {lon}")
    return [
        MetadataTag(TAG_GPS_LATITUDE_REF, TYPE_ASCII, b"S" if lat < 0 else b"N", IFD_GPS),
        MetadataTag(TAG_GPS_LATITUDE, TYPE_RATIONAL, pack_rationals(degrees_to_dms(lat)), IFD_GPS),
        MetadataTag(TAG_GPS_LONGITUDE_REF, TYPE_ASCII, b"W" if lon < 0 else b"E", IFD_GPS),
        MetadataTag(TAG_GPS_LONGITUDE, TYPE_RATIONAL, pack_rationals(degrees_to_dms(lon)), IFD_GPS),
    ]


def parse_coordinate_text(text: str | None) -> tuple[float, float] | None:
    """Parse user input such as "37.4219, -122.0840"."""
    match = _COORDINATE_PATTERN.match(text or "")
    if not match:
        return None
    lat = float(match.group(1))
    lon = float(match.group(2))
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None
    return (lat, lon)


def format_coordinate_text(lat: float, lon: float) -> str:
    return f"{lat:.5f}, {lon:.5f}"

"""Raw EXIF tag (de)serialization on top of piexif.

Tags are kept as ``MetadataTag`` values whose payload is the little-endian
byte form of the field, so the store never depends on piexif's value shapes.
"""
from __future__ import annotations

import logging
import struct
from typing import Any

import piexif
from PIL import Image

from photocrop.constants import (
    IFD_EXIF,
    IFD_PRIMARY,
    KEPT_IFDS,
    TYPE_ASCII,
    TYPE_BYTE,
    TYPE_DOUBLE,
    TYPE_FLOAT,
    TYPE_LONG,
    TYPE_RATIONAL,
    TYPE_SHORT,
    TYPE_SLONG,
    TYPE_SRATIONAL,
    TYPE_UNDEFINED,
)
from photocrop.errors import TagRejectedError
from photocrop.models import MetadataTag

LOGGER = logging.getLogger(__name__)

_SCALAR_FORMATS = {
    TYPE_BYTE: "B",
    TYPE_SHORT: "H",
    TYPE_LONG: "I",
    TYPE_SLONG: "i",
    TYPE_FLOAT: "f",
    TYPE_DOUBLE: "d",
}
_RATIONAL_FORMATS = {
    TYPE_RATIONAL: "I",
    TYPE_SRATIONAL: "i",
}
# Directory pointers are rebuilt by piexif.dump.
_POINTER_TAGS = {
    (IFD_PRIMARY, piexif.ImageIFD.ExifTag),
    (IFD_PRIMARY, piexif.ImageIFD.GPSTag),
    (IFD_EXIF, piexif.ExifIFD.InteroperabilityTag),
}


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _unwrap(values: tuple[Any, ...] | list[Any]) -> Any:
    if len(values) == 1:
        return values[0]
    return tuple(values)


def pack_value(type_code: int, value: Any) -> bytes:
    """Convert a piexif-shaped value into the raw payload of ``type_code``."""
    if type_code == TYPE_ASCII:
        if isinstance(value, str):
            return value.encode("ascii", errors="replace")
        return bytes(value)
    if type_code == TYPE_UNDEFINED:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        return bytes(_as_list(value))
    if type_code in _SCALAR_FORMATS:
        if type_code == TYPE_BYTE and isinstance(value, (bytes, bytearray)):
            return bytes(value)
        items = _as_list(value)
        return struct.pack(f"<{len(items)}{_SCALAR_FORMATS[type_code]}", *items)
    if type_code in _RATIONAL_FORMATS:
        items = _as_list(value)
        pairs = [tuple(items)] if items and isinstance(items[0], int) else [tuple(pair) for pair in items]
        flat = [part for pair in pairs for part in pair]
        if len(flat) != len(pairs) * 2:
            raise ValueError(f"malformed rational value: {value!r}")
        return struct.pack(f"<{len(flat)}{_RATIONAL_FORMATS[type_code]}", *flat)
    raise ValueError(f"unsupported EXIF type code: {type_code}")


def unpack_value(type_code: int, payload: bytes) -> Any:
    """Inverse of ``pack_value``: return the value shape piexif.dump expects."""
    if type_code in (TYPE_ASCII, TYPE_UNDEFINED):
        return bytes(payload)
    if type_code in _SCALAR_FORMATS:
        fmt = _SCALAR_FORMATS[type_code]
        count = len(payload) // struct.calcsize(fmt)
        if count == 0:
            raise ValueError("empty payload")
        return _unwrap(struct.unpack(f"<{count}{fmt}", payload[: count * struct.calcsize(fmt)]))
    if type_code in _RATIONAL_FORMATS:
        count = len(payload) // 8
        if count == 0:
            raise ValueError("empty payload")
        flat = struct.unpack(f"<{count * 2}{_RATIONAL_FORMATS[type_code]}", payload[: count * 8])
        pairs = [(flat[i], flat[i + 1]) for i in range(0, len(flat), 2)]
        return _unwrap(pairs)
    raise ValueError(f"unsupported EXIF type code: {type_code}")


def _exif_block(image: Image.Image) -> bytes:
    raw = image.info.get("exif")
    if raw:
        return bytes(raw)
    exif = image.getexif()
    if not exif:
        return b""
    return exif.tobytes()


def read_tags(image: Image.Image) -> list[MetadataTag]:
    """Collect primary, Exif and GPS tags of ``image`` in directory order."""
    raw = _exif_block(image)
    if not raw:
        return []
    try:
        exif_dict = piexif.load(raw)
    except Exception as exc:
        LOGGER.debug("EXIF block could not be parsed: %s", exc)
        return []

    tags: list[MetadataTag] = []
    for ifd in KEPT_IFDS:
        directory = exif_dict.get(ifd) or {}
        for tag_id, value in directory.items():
            if (ifd, tag_id) in _POINTER_TAGS:
                continue
            info = piexif.TAGS[ifd].get(tag_id)
            if info is None:
                continue
            type_code = int(info["type"])
            try:
                payload = pack_value(type_code, value)
            except (ValueError, TypeError, struct.error) as exc:
                LOGGER.debug("skipping tag %s:%#06x (%s)", ifd, tag_id, exc)
                continue
            tags.append(MetadataTag(tag_id, type_code, payload, ifd))
    return tags


class ExifWriter:
    """Export destination that accumulates tags into a piexif dictionary."""

    def __init__(self) -> None:
        self._ifds: dict[str, dict[int, Any]] = {ifd: {} for ifd in KEPT_IFDS}

    def __len__(self) -> int:
        return sum(len(directory) for directory in self._ifds.values())

    def set_tag(self, tag: MetadataTag) -> None:
        if tag.ifd not in self._ifds:
            raise TagRejectedError(tag.key, "unsupported directory")
        if tag.tag_id not in piexif.TAGS[tag.ifd]:
            raise TagRejectedError(tag.key, "unknown tag")
        try:
            value = unpack_value(tag.type_code, tag.value)
            piexif.dump({tag.ifd: {tag.tag_id: value}})
        except (ValueError, TypeError, KeyError, struct.error) as exc:
            raise TagRejectedError(tag.key, str(exc)) from exc
        self._ifds[tag.ifd][tag.tag_id] = value

    def value(self, tag_id: int, ifd: str = IFD_PRIMARY) -> Any | None:
        return self._ifds.get(ifd, {}).get(tag_id)

    def to_bytes(self) -> bytes:
        if not len(self):
            return b""
        return piexif.dump({ifd: dict(directory) for ifd, directory in self._ifds.items() if directory})

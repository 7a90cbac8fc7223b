from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Iterable, Iterator, Protocol

from photocrop.constants import (
    DEFAULT_SOFTWARE,
    GPS_VERSION,
    IFD_GPS,
    IFD_PRIMARY,
    ORIENTATION_NORMAL,
    TAG_ARTIST,
    TAG_GPS_LATITUDE,
    TAG_GPS_LATITUDE_REF,
    TAG_GPS_LONGITUDE,
    TAG_GPS_LONGITUDE_REF,
    TAG_GPS_VERSION,
    TAG_ORIENTATION,
    TAG_SOFTWARE,
    TYPE_ASCII,
    TYPE_BYTE,
    TYPE_SHORT,
)
from photocrop.errors import TagRejectedError
from photocrop.meta.rational import decode_gps, encode_gps
from photocrop.models import MetadataTag

LOGGER = logging.getLogger(__name__)

_GPS_COORDINATE_IDS = (
    TAG_GPS_LATITUDE_REF,
    TAG_GPS_LATITUDE,
    TAG_GPS_LONGITUDE_REF,
    TAG_GPS_LONGITUDE,
)


class TagDestination(Protocol):
    def set_tag(self, tag: MetadataTag) -> None: ...


@dataclass(slots=True)
class ExportOverrides:
    software: str = DEFAULT_SOFTWARE
    editor: str = ""


def ascii_tag(tag_id: int, text: str, ifd: str = IFD_PRIMARY) -> MetadataTag:
    return MetadataTag(tag_id, TYPE_ASCII, text.encode("ascii", errors="replace"), ifd)


def orientation_tag(value: int = ORIENTATION_NORMAL) -> MetadataTag:
    return MetadataTag(TAG_ORIENTATION, TYPE_SHORT, struct.pack("<H", value), IFD_PRIMARY)


class MetadataStore:
    """Ordered tags captured from a loaded image, unique per (directory, id)."""

    def __init__(self, tags: Iterable[MetadataTag] | None = None) -> None:
        self._tags: list[MetadataTag] = []
        for tag in tags or ():
            self.set_or_replace(tag)

    def __iter__(self) -> Iterator[MetadataTag]:
        return iter(self._tags)

    def __len__(self) -> int:
        return len(self._tags)

    def __contains__(self, key: object) -> bool:
        return any(tag.key == key for tag in self._tags)

    @property
    def tags(self) -> list[MetadataTag]:
        return list(self._tags)

    def copy(self) -> MetadataStore:
        clone = MetadataStore()
        clone._tags = list(self._tags)
        return clone

    def get(self, tag_id: int, ifd: str = IFD_PRIMARY) -> MetadataTag | None:
        for tag in self._tags:
            if tag.tag_id == tag_id and tag.ifd == ifd:
                return tag
        return None

    def set_or_replace(self, tag: MetadataTag) -> None:
        for index, existing in enumerate(self._tags):
            if existing.key == tag.key:
                self._tags[index] = tag
                return
        self._tags.append(tag)

    def remove(self, tag_id: int, ifd: str = IFD_PRIMARY) -> bool:
        for index, existing in enumerate(self._tags):
            if existing.tag_id == tag_id and existing.ifd == ifd:
                del self._tags[index]
                return True
        return False

    @property
    def gps(self) -> tuple[float, float] | None:
        return decode_gps(self._tags)

    def set_gps(self, lat: float, lon: float) -> None:
        for tag in encode_gps(lat, lon):
            self.set_or_replace(tag)
        if self.get(TAG_GPS_VERSION, IFD_GPS) is None:
            self.set_or_replace(MetadataTag(TAG_GPS_VERSION, TYPE_BYTE, bytes(GPS_VERSION), IFD_GPS))

    def clear_gps(self) -> None:
        for tag_id in _GPS_COORDINATE_IDS:
            self.remove(tag_id, IFD_GPS)

    def apply_to(self, destination: TagDestination, overrides: ExportOverrides | None = None) -> list[tuple[str, int]]:
        """Stamp a copy of the tags onto ``destination``; return rejected keys.

        Orientation is written as "no rotation" because exported pixels are
        already physically upright.
        """
        overrides = overrides or ExportOverrides()
        output = self.copy()
        output.set_or_replace(orientation_tag(ORIENTATION_NORMAL))
        output.set_or_replace(ascii_tag(TAG_SOFTWARE, overrides.software))
        output.set_or_replace(ascii_tag(TAG_ARTIST, overrides.editor))

        skipped: list[tuple[str, int]] = []
        for tag in output:
            try:
                destination.set_tag(tag)
            except TagRejectedError as exc:
                LOGGER.debug("%s", exc)
                skipped.append(tag.key)
        return skipped

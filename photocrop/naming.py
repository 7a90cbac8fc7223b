from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

from photocrop.constants import EXPORT_EXTENSIONS

INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1F]')


def sanitize_filename(value: str, fallback: str = "image") -> str:
    text = INVALID_FILENAME_CHARS.sub("_", value).strip()
    text = text.strip(" .")
    return text or fallback


def normalize_extension(extension: str) -> str:
    ext = "." + extension.lower().lstrip(".")
    if ext == ".jpeg":
        return ".jpg"
    if ext not in EXPORT_EXTENSIONS:
        return ".jpg"
    return ext


def build_output_name(source: Path | None, extension: str = "jpg", now: datetime | None = None) -> str:
    """Export file name: the source name with the export extension.

    Sources without a path (pasted or piped bytes) get a timestamped name.
    """
    ext = normalize_extension(extension)
    if source is not None and source.stem:
        stem = sanitize_filename(source.stem)
    else:
        stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
        stem = f"image_{stamp}"
    return f"{stem}{ext}"


def unique_output_path(folder: Path, name: str) -> Path:
    """Return ``folder / name``, adding ``_1``, ``_2``... when taken."""
    candidate = folder / name
    if not candidate.exists():
        return candidate
    stem = candidate.stem
    suffix = candidate.suffix
    index = 1
    while True:
        candidate = folder / f"{stem}_{index}{suffix}"
        if not candidate.exists():
            return candidate
        index += 1

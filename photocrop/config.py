from __future__ import annotations

import copy
import logging
import os
import platform
import sys
from pathlib import Path
from typing import Any

import yaml

from photocrop.constants import DEFAULT_SOFTWARE
from photocrop.presets import AspectRatio, QualityTier

LOGGER = logging.getLogger(__name__)

ZOOM_MODES = ("fit", "fill")


def default_storage_folder() -> Path:
    pictures = Path.home() / "Pictures"
    base = pictures if pictures.is_dir() else Path.home()
    return base / "PhotoCrop"


DEFAULT_CONFIG: dict[str, Any] = {
    "storage_folder": "",
    "aspect": AspectRatio.WIDE.label,
    "quality": QualityTier.HIGH.label,
    "zoom_mode": "fill",
    "jpeg_quality": 92,
    "window_width": 1280,
    "window_height": 860,
    "software": DEFAULT_SOFTWARE,
    "editor": "",
    "geocode": True,
    "geocode_timeout": 5.0,
}


def get_app_dir() -> Path:
    """Return the application root directory.

    - Frozen (PyInstaller): directory containing the executable.
    - Development: project root (two levels up from this file).
    """
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parent.parent


def get_user_data_dir() -> Path:
    """Writable per-user directory; never inside a frozen app bundle."""
    if not getattr(sys, "frozen", False):
        return get_app_dir()

    system_name = platform.system().lower()
    if system_name == "windows":
        base = (
            os.environ.get("APPDATA")
            or os.environ.get("LOCALAPPDATA")
            or str(Path.home() / "AppData" / "Roaming")
        )
        return Path(base) / "PhotoCrop"
    if system_name == "darwin":
        return Path.home() / "Library" / "Application Support" / "PhotoCrop"

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home) / "PhotoCrop"
    return Path.home() / ".config" / "PhotoCrop"


def get_config_path() -> Path:
    return get_user_data_dir() / "Config" / "config.yaml"


def _deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _normalize(cfg: dict[str, Any]) -> dict[str, Any]:
    cfg["aspect"] = AspectRatio.from_label(cfg.get("aspect")).label
    cfg["quality"] = QualityTier.from_label(cfg.get("quality")).label
    if cfg.get("zoom_mode") not in ZOOM_MODES:
        cfg["zoom_mode"] = DEFAULT_CONFIG["zoom_mode"]
    try:
        cfg["jpeg_quality"] = max(1, min(100, int(cfg.get("jpeg_quality"))))
    except (TypeError, ValueError):
        cfg["jpeg_quality"] = DEFAULT_CONFIG["jpeg_quality"]
    for key in ("window_width", "window_height"):
        try:
            cfg[key] = max(320, int(cfg.get(key)))
        except (TypeError, ValueError):
            cfg[key] = DEFAULT_CONFIG[key]
    try:
        cfg["geocode_timeout"] = max(0.5, float(cfg.get("geocode_timeout")))
    except (TypeError, ValueError):
        cfg["geocode_timeout"] = DEFAULT_CONFIG["geocode_timeout"]
    if not cfg.get("storage_folder"):
        cfg["storage_folder"] = str(default_storage_folder())
    return cfg


def load_config(path: Path | None = None) -> dict[str, Any]:
    cfg_path = path or get_config_path()
    if not cfg_path.exists():
        return _normalize(copy.deepcopy(DEFAULT_CONFIG))

    text = cfg_path.read_text(encoding="utf-8")
    try:
        loaded = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        LOGGER.warning("ignoring unreadable config %s: %s", cfg_path, exc)
        loaded = {}
    if not isinstance(loaded, dict):
        loaded = {}
    return _normalize(_deep_merge(DEFAULT_CONFIG, loaded))


def save_config(cfg: dict[str, Any], path: Path | None = None) -> Path:
    cfg_path = path or get_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    merged = _deep_merge(DEFAULT_CONFIG, cfg)
    cfg_path.write_text(yaml.safe_dump(merged, sort_keys=False, allow_unicode=True), encoding="utf-8")
    return cfg_path


def write_default_config(path: Path | None = None, force: bool = False) -> Path:
    cfg_path = path or get_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    if cfg_path.exists() and not force:
        return cfg_path
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg_path.write_text(yaml.safe_dump(cfg, sort_keys=False, allow_unicode=True), encoding="utf-8")
    return cfg_path

from pathlib import Path

import yaml

from photocrop import config
from photocrop.config import DEFAULT_CONFIG, load_config, save_config, write_default_config


def test_missing_config_returns_defaults(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "missing.yaml")
    assert cfg["aspect"] == "16:9"
    assert cfg["quality"] == "high"
    assert cfg["zoom_mode"] == "fill"
    assert cfg["storage_folder"]


def test_values_are_merged_and_normalized(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "aspect": "square",
                "quality": "bogus",
                "zoom_mode": "stretch",
                "jpeg_quality": 400,
                "window_width": 10,
                "geocode_timeout": "abc",
                "storage_folder": str(tmp_path / "out"),
            }
        ),
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg["aspect"] == "Square"
    assert cfg["quality"] == "high"
    assert cfg["zoom_mode"] == "fill"
    assert cfg["jpeg_quality"] == 100
    assert cfg["window_width"] == 320
    assert cfg["window_height"] == DEFAULT_CONFIG["window_height"]
    assert cfg["geocode_timeout"] == DEFAULT_CONFIG["geocode_timeout"]
    assert cfg["storage_folder"] == str(tmp_path / "out")
    assert cfg["software"] == "PhotoCrop"


def test_unreadable_yaml_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("aspect: [unclosed", encoding="utf-8")
    cfg = load_config(path)
    assert cfg["aspect"] == DEFAULT_CONFIG["aspect"]


def test_save_then_load(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "config.yaml"
    save_config({"aspect": "4:5", "editor": "Robin"}, path)
    cfg = load_config(path)
    assert cfg["aspect"] == "4:5"
    assert cfg["editor"] == "Robin"
    assert cfg["quality"] == "high"


def test_write_default_config_respects_force(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    write_default_config(path)
    path.write_text("aspect: '9:16'\n", encoding="utf-8")
    write_default_config(path)
    assert load_config(path)["aspect"] == "9:16"
    write_default_config(path, force=True)
    assert load_config(path)["aspect"] == "16:9"


def test_config_path_lives_under_user_data_dir(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(config, "get_user_data_dir", lambda: tmp_path)
    assert config.get_config_path() == tmp_path / "Config" / "config.yaml"

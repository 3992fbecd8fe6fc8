"""Tests for configuration persistence."""

import json

from routers.config import mask_key
from services.config_manager import ConfigManager
from services.orchestrator import ScanSettings


def test_defaults_when_no_file(tmp_path):
    config = ConfigManager(tmp_path).get_config()

    assert config["apiVersion"] == "2023-10"
    assert config["rateLimit"] == {"intervalMs": 1000, "maxRetries": 3, "multiplier": 2}
    assert config["scan"]["allowedExtensions"] == [".js", ".json", ".liquid"]


def test_save_merges_nested_sections(tmp_path):
    manager = ConfigManager(tmp_path)
    manager.save_config({"shop": "example.myshopify.com", "rateLimit": {"intervalMs": 500}})

    config = ConfigManager(tmp_path).get_config()

    assert config["shop"] == "example.myshopify.com"
    assert config["rateLimit"] == {"intervalMs": 500, "maxRetries": 3, "multiplier": 2}
    assert json.loads((tmp_path / "config.json").read_text())["shop"] == "example.myshopify.com"


def test_environment_selects_config_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("THEME_DIFF_CONFIG_DIR", str(tmp_path / "cfg"))
    ConfigManager.reset_instance()
    try:
        assert ConfigManager.get_instance().config_dir == tmp_path / "cfg"
    finally:
        ConfigManager.reset_instance()


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    (tmp_path / "config.json").write_text("{not json")
    assert ConfigManager(tmp_path).get_config()["shop"] == ""


def test_scan_settings_from_config():
    settings = ScanSettings.from_config({"scan": {"allowedExtensions": [".css"], "progressEvery": 0}})

    assert settings.allowed_extensions == (".css",)
    assert settings.progress_every == 1
    assert settings.strip_trailing_whitespace is False


def test_mask_key():
    assert mask_key("") == ""
    assert mask_key("short") == "*****"
    assert mask_key("shpat_1234567890") == "shpa********7890"

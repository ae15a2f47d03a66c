import json

import pytest

from folio.cli.config_manager import FolioConfigManager, get_config_manager


def test_defaults_without_file(tmp_path):
    manager = FolioConfigManager(str(tmp_path))

    assert manager.get("ocr_page_limit") == 50
    assert manager.get("log_level") == "INFO"
    assert manager.settings_overrides() == {}
    assert not manager.config_file.exists()


def test_set_coerces_and_persists(tmp_path):
    manager = FolioConfigManager(str(tmp_path))

    manager.set("ocr_page_limit", "10")
    manager.set("ocr_scale", "1.5")
    manager.set("json_logs", "true")

    saved = json.loads(manager.config_file.read_text())
    assert saved["ocr_page_limit"] == 10
    assert saved["ocr_scale"] == 1.5
    assert saved["json_logs"] is True

    reloaded = FolioConfigManager(str(tmp_path))
    assert reloaded.settings_overrides() == {"ocr_page_limit": 10, "ocr_scale": 1.5}


def test_set_rejects_unknown_key_and_bad_value(tmp_path):
    manager = FolioConfigManager(str(tmp_path))

    with pytest.raises(KeyError):
        manager.set("openai_api_key", "x")
    with pytest.raises(ValueError):
        manager.set("ocr_page_limit", "many")


def test_reset(tmp_path):
    manager = FolioConfigManager(str(tmp_path))
    manager.set("default_language", "hin")

    assert manager.reset("default_language") is True
    assert manager.get("default_language") == "eng"
    assert manager.reset("nope") is False


def test_validate(tmp_path):
    manager = FolioConfigManager(str(tmp_path))
    assert manager.validate()["valid"] is True

    manager.set("ocr_page_limit", 0)
    manager.set("log_level", "LOUD")
    validation = manager.validate()

    assert validation["valid"] is False
    assert "ocr_page_limit must be a positive integer" in validation["issues"]
    assert len(validation["issues"]) == 2


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    (tmp_path / "folio_cli.json").write_text("{not json")
    assert FolioConfigManager(str(tmp_path)).get("ocr_page_limit") == 50


def test_get_config_manager_uses_env(tmp_path, monkeypatch):
    monkeypatch.setenv("FOLIO_CONFIG_DIR", str(tmp_path))
    assert get_config_manager().config_dir == tmp_path

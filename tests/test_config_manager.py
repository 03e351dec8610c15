"""
Tests for settings persistence.
"""

from image2svg.config_manager import ConfigManager
from image2svg.models import VectorizerSettings


def test_missing_file_gives_defaults(tmp_path):
    manager = ConfigManager(tmp_path / "missing.json")
    assert manager.load() == VectorizerSettings()


def test_save_then_load(tmp_path):
    manager = ConfigManager(tmp_path / "settings.json")
    settings = VectorizerSettings().with_changes(color_count=12, simplify_strength=4)

    ok, error = manager.save(settings)

    assert ok and error is None
    assert manager.load() == settings


def test_corrupt_file_gives_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{broken")

    assert ConfigManager(path).load() == VectorizerSettings()


def test_invalid_enum_gives_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text('{"preprocessing": {"smooth_method": "gaussian"}}')

    assert ConfigManager(path).load() == VectorizerSettings()


def test_save_failure_reported(tmp_path):
    manager = ConfigManager(tmp_path / "no" / "such" / "dir.json")

    ok, error = manager.save(VectorizerSettings())

    assert not ok
    assert error

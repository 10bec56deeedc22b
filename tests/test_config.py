"""Tests for configuration management."""

import pytest
from pathlib import Path
import tempfile

from mothra_annotator.core.config import AppConfig, ConfigManager


class TestAppConfig:
    """Tests for AppConfig."""

    def test_default_config(self):
        """Test creating config with defaults."""
        config = AppConfig()

        assert config.default_directory == ""
        assert config.session_directory == ""
        assert config.autosave is True
        assert config.box_opacity == pytest.approx(0.3)
        assert config.show_labels is True
        assert config.max_history_entries == 100
        assert config.recent_paths == []

    def test_custom_config(self):
        """Test creating config with custom values."""
        config = AppConfig(
            default_directory="/path/to/dir",
            box_opacity=0.5,
            show_labels=False,
            autosave=False
        )

        assert config.default_directory == "/path/to/dir"
        assert config.box_opacity == 0.5
        assert config.show_labels is False
        assert config.autosave is False

    def test_to_dict(self):
        """Test converting config to dictionary."""
        config = AppConfig(
            default_directory="/path/to/dir",
            box_opacity=0.6
        )

        data = config.to_dict()

        assert data["defaultDirectory"] == "/path/to/dir"
        assert data["boxOpacity"] == 0.6
        assert "showLabels" in data
        assert "sessionDirectory" in data

    def test_from_dict(self):
        """Test creating config from dictionary."""
        data = {
            "defaultDirectory": "/test/path",
            "sessionDirectory": "/sessions",
            "boxOpacity": 0.8,
            "showLabels": False,
            "maxHistoryEntries": 50,
        }

        config = AppConfig.from_dict(data)

        assert config.default_directory == "/test/path"
        assert config.session_directory == "/sessions"
        assert config.box_opacity == 0.8
        assert config.show_labels is False
        assert config.max_history_entries == 50

    def test_from_dict_with_defaults(self):
        """Test creating config from partial dictionary."""
        config = AppConfig.from_dict({"defaultDirectory": "/test/path"})

        assert config.default_directory == "/test/path"
        assert config.line_thickness == 2  # default
        assert config.autosave is True  # default

    def test_dict_round_trip(self):
        """Test that to_dict and from_dict are inverses."""
        config = AppConfig(recent_paths=["/a.png", "/b.png"], font_size=16)

        assert AppConfig.from_dict(config.to_dict()) == config


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_load_nonexistent_file(self):
        """Test loading config when file doesn't exist."""
        with tempfile.TemporaryDirectory() as tmpdir:
            manager = ConfigManager(Path(tmpdir) / "nonexistent.yaml")

            config = manager.load()

            assert config == AppConfig()

    def test_load_malformed_file(self, tmp_path):
        """Test that a malformed YAML file falls back to defaults."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text("boxOpacity: [unclosed\n")

        config = ConfigManager(config_path).load()

        assert config == AppConfig()

    def test_load_non_mapping_file(self, tmp_path):
        """Test that a YAML file holding a list falls back to defaults."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text("- one\n- two\n")

        assert ConfigManager(config_path).load() == AppConfig()

    def test_save_and_load(self):
        """Test saving and loading config."""
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.yaml"
            manager = ConfigManager(config_path)

            manager.save(AppConfig(default_directory="/test/dir", box_opacity=0.45))

            loaded = manager.load()

            assert loaded.default_directory == "/test/dir"
            assert loaded.box_opacity == 0.45

    def test_update(self, tmp_path):
        """Test updating config values."""
        manager = ConfigManager(tmp_path / "config.yaml")

        manager.update(default_directory="/new/path", show_labels=False)

        assert manager.config.default_directory == "/new/path"
        assert manager.config.show_labels is False
        assert (tmp_path / "config.yaml").exists()

    def test_update_unknown_key(self, tmp_path, caplog):
        """Test that unknown keys are ignored with a warning."""
        manager = ConfigManager(tmp_path / "config.yaml")

        manager.update(no_such_setting=1)

        assert not hasattr(manager.config, "no_such_setting")
        assert "Unknown config key" in caplog.text

    def test_config_property(self, tmp_path):
        """Test config property lazy loading."""
        manager = ConfigManager(tmp_path / "config.yaml")

        assert manager.config is manager.config

    def test_add_recent_path(self, tmp_path):
        """Test that recent paths are most-recent-first, unique and bounded."""
        manager = ConfigManager(tmp_path / "config.yaml")
        manager.config.max_recent_paths = 3

        for path in ["/a.png", "/b.png", "/c.png", "/a.png", "/d.png"]:
            manager.add_recent_path(path)

        assert manager.config.recent_paths == ["/d.png", "/a.png", "/c.png"]

    def test_add_recent_path_disabled(self, tmp_path):
        """Test that recent paths are not tracked when disabled."""
        manager = ConfigManager(tmp_path / "config.yaml")
        manager.config.max_recent_paths = 0

        manager.add_recent_path("/a.png")

        assert manager.config.recent_paths == []


class TestConfigLocation:
    """Tests for where settings are stored."""

    def test_default_path(self, monkeypatch, tmp_path):
        """Test the default file lives in XDG_CONFIG_HOME on Linux."""
        monkeypatch.setattr("platform.system", lambda: "Linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        manager = ConfigManager()

        assert manager.config_path == tmp_path / "mothra-annotator" / "config.yaml"

    def test_save_creates_directory(self, tmp_path):
        """Test saving creates a missing settings directory."""
        manager = ConfigManager(tmp_path / "nested" / "config.yaml")

        assert manager.save(AppConfig(font_size=16)) is True
        assert ConfigManager(tmp_path / "nested" / "config.yaml").load().font_size == 16

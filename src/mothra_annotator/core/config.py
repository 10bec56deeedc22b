"""Configuration management for Mothra Annotator."""

from __future__ import annotations

import logging
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .constants import DEFAULT_BOX_OPACITY

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.yaml"


def get_config_dir() -> Path:
    """Per-user directory holding the settings file."""
    system = platform.system()

    if system == "Darwin":  # macOS
        config_base = Path.home() / "Library" / "Preferences"
    elif system == "Windows":
        config_base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    else:  # Linux and others
        config_base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))

    return config_base / "mothra-annotator"


@dataclass
class AppConfig:
    """
    Display preferences, session storage options and recent images.

    Serialized with camelCase keys, like the exported annotation records.
    """

    default_directory: str = ""
    session_directory: str = ""  # Empty uses the per-user data directory
    autosave: bool = True  # Persist sessions in the background after edits
    box_opacity: float = DEFAULT_BOX_OPACITY  # Fill opacity of boxes (0.0-1.0)
    show_labels: bool = True
    line_thickness: int = 2  # Box border width in screen pixels
    font_size: int = 12  # Minimum label font size in screen pixels
    max_history_entries: int = 100  # Maximum undo history entries (10-1000)
    max_recent_paths: int = 10  # Number of recent images to remember (0-20, 0 = disabled)
    recent_paths: list[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return {
            "defaultDirectory": self.default_directory,
            "sessionDirectory": self.session_directory,
            "autosave": self.autosave,
            "boxOpacity": self.box_opacity,
            "showLabels": self.show_labels,
            "lineThickness": self.line_thickness,
            "fontSize": self.font_size,
            "maxHistoryEntries": self.max_history_entries,
            "maxRecentPaths": self.max_recent_paths,
            "recentPaths": self.recent_paths,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AppConfig:
        """Create config from dictionary."""
        return cls(
            default_directory=data.get("defaultDirectory", ""),
            session_directory=data.get("sessionDirectory", ""),
            autosave=data.get("autosave", True),
            box_opacity=data.get("boxOpacity", DEFAULT_BOX_OPACITY),
            show_labels=data.get("showLabels", True),
            line_thickness=data.get("lineThickness", 2),
            font_size=data.get("fontSize", 12),
            max_history_entries=data.get("maxHistoryEntries", 100),
            max_recent_paths=data.get("maxRecentPaths", 10),
            recent_paths=data.get("recentPaths", []),
        )


class ConfigManager:
    """
    Reads and writes the YAML settings file.

    The file is read lazily on first access to `config`. A missing or
    unreadable file never stops the app: defaults are used instead and
    the next save replaces it.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Args:
            config_path: Settings file; defaults to `config.yaml` in the
                per-user config directory
        """
        self.config_path = Path(config_path) if config_path else get_config_dir() / CONFIG_FILE_NAME
        self._config: Optional[AppConfig] = None

    @property
    def config(self) -> AppConfig:
        """Settings in effect, read from disk on first use."""
        if self._config is None:
            self._config = self.load()
        return self._config

    def load(self) -> AppConfig:
        """
        Read the settings file.

        Returns:
            Settings from the file, or defaults if it is missing, not a
            mapping, or not valid YAML
        """
        if not self.config_path.exists():
            logger.info(f"No settings at {self.config_path}, using defaults")
            return AppConfig()

        try:
            with open(self.config_path, "r") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                logger.error(f"Config file {self.config_path} is not a mapping")
                return AppConfig()
            logger.info(f"Loaded settings from {self.config_path}")
            return AppConfig.from_dict(data)
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in {self.config_path}: {e}")
            return AppConfig()
        except OSError as e:
            logger.error(f"Could not read {self.config_path}: {e}")
            return AppConfig()

    def save(self, config: Optional[AppConfig] = None) -> bool:
        """
        Write the settings file, creating its directory if needed.

        Args:
            config: Settings to adopt before writing; the current ones if omitted

        Returns:
            True if the file was written
        """
        if config is not None:
            self._config = config

        if self._config is None:
            logger.warning("No configuration to save")
            return False

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w") as f:
                yaml.dump(self._config.to_dict(), f, default_flow_style=False)
            logger.info(f"Saved settings to {self.config_path}")
            return True
        except OSError as e:
            logger.error(f"Could not write {self.config_path}: {e}")
            return False

    def update(self, **kwargs: Any) -> None:
        """
        Change settings by attribute name and write them out.

        Unknown names are logged and skipped.
        """
        config = self.config
        for key, value in kwargs.items():
            if hasattr(config, key):
                setattr(config, key, value)
            else:
                logger.warning(f"Unknown config key: {key}")
        self.save()

    def add_recent_path(self, path: str) -> None:
        """
        Move a path to the front of the recent list.

        Args:
            path: Image path that was just opened
        """
        config = self.config
        if config.max_recent_paths <= 0:
            return

        recent = [p for p in config.recent_paths if p != path]
        recent.insert(0, path)
        config.recent_paths = recent[:config.max_recent_paths]
        self.save()

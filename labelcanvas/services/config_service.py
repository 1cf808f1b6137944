"""
Configuration service for LabelCanvas.

This module handles loading, saving, and managing editor settings.
Configuration is stored as JSON in ~/.config/labelcanvas/config.json following
the XDG Base Directory Specification.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

from labelcanvas.services.logging_service import get_logger

# Default configuration directory following XDG Base Directory Specification
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "labelcanvas"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "canvas": {
        "min_zoom": 0.1,
        "max_zoom": 5.0,
        # Mouse wheel zoom factors (in / out)
        "wheel_zoom_in": 1.1,
        "wheel_zoom_out": 0.9,
        # Zoom factor for the +/- shortcuts
        "button_zoom_factor": 1.2,
        # Fraction of the widget filled by a fitted image
        "fit_margin": 0.9,
        "grid_size": 50,
        "show_grid": False,
        "show_labels": True,
        # Boxes at or under this size (image pixels) are discarded
        "min_box_size": 5,
        # Handle size in screen pixels
        "handle_size": 6,
        "resize_debounce_ms": 100,
    },
    "mask": {
        "brush_size": 20,
        "min_brush_size": 5,
        "max_brush_size": 100,
        "brush_step": 5,
        "opacity": 0.5,
        "autosave_delay_ms": 2000,
        "double_click_ms": 300,
    },
    "default_skeleton": "coco-17",
}


def default_section(name: str) -> Dict[str, Any]:
    """Return a private copy of one section of DEFAULT_CONFIG."""
    return copy.deepcopy(DEFAULT_CONFIG[name])


class ConfigService:
    """
    Service for managing editor configuration.

    Handles loading, saving, and accessing configuration values.
    Provides sensible defaults when config file is missing or corrupted.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize the ConfigService.

        Args:
            config_path: Optional path to config file. Defaults to
                        ~/.config/labelcanvas/config.json
        """
        self._logger = get_logger(__name__)
        self._config_path = config_path or DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}

        self._load()

    def _load(self) -> None:
        """Load configuration from file, using defaults if needed."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)

        if not self._config_path.exists():
            self._logger.info(
                f"Config file not found at {self._config_path}. Using defaults."
            )
            self._save_to_file()
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded_config = json.load(f)

            if isinstance(loaded_config, dict):
                self._deep_merge(self._config, loaded_config)
                self._logger.info(f"Configuration loaded from {self._config_path}")
                # Persist any new default keys
                self._save_to_file()
            else:
                raise ValueError("Config file does not contain a valid JSON object")

        except (json.JSONDecodeError, ValueError) as e:
            self._logger.warning(
                f"Config file corrupted or invalid: {e}. Recreating with defaults."
            )
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            self._save_to_file()

        except (OSError, PermissionError) as e:
            self._logger.warning(
                f"Could not read config file: {e}. Using defaults."
            )

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Recursively merge override dict into base dict."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _save_to_file(self) -> None:
        """Save current configuration to file."""
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self._config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)

            self._logger.debug(f"Configuration saved to {self._config_path}")

        except (OSError, PermissionError) as e:
            self._logger.error(f"Could not save config file: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key to retrieve.
            default: Default value if key doesn't exist.

        Returns:
            The configuration value, or default if not found.
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value (in memory only).

        Note:
            Call save() to persist changes to disk.
        """
        self._config[key] = value
        self._logger.debug(f"Config key '{key}' set to '{value}'")

    def save(self) -> None:
        """Persist current configuration to disk."""
        self._save_to_file()

    # ─── Canvas Settings ──────────────────────────────────────────────────

    @property
    def canvas(self) -> Dict[str, Any]:
        """Get a copy of the canvas settings."""
        return dict(self.get("canvas", DEFAULT_CONFIG["canvas"]))

    # ─── Mask Settings ────────────────────────────────────────────────────

    @property
    def mask(self) -> Dict[str, Any]:
        """Get a copy of the mask brush settings."""
        return dict(self.get("mask", DEFAULT_CONFIG["mask"]))

    # ─── Skeleton Settings ────────────────────────────────────────────────

    @property
    def default_skeleton(self) -> str:
        """Get the preset id used for classes without a skeleton."""
        return self.get("default_skeleton", "coco-17")

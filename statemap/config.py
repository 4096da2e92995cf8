"""
Viewer Configuration Manager for the statemap explorer.
Handles loading and saving viewer preferences from a JSON configuration file.
"""

import json
import logging
import os
from typing import Any, Dict, Optional

from statemap.utils.error_handler import ConfigError

# Configure logger
logger = logging.getLogger(__name__)

CONFIG_SECTION = 'statemap'

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class ViewerConfig:
    """
    Manages viewer preferences.
    Preferences are stored in the "statemap" section of a JSON file, next to
    any other sections the file may hold.
    """

    DEFAULT_CONFIG = {
        'tag_display_budget': 40,
        'strip_height': 10,
        'center_marker_on_zoom': True,
        'strict_validation': False,
        'log_level': 'INFO',
        'log_file': None,
    }

    def __init__(self, config_file: Optional[str] = None, **overrides):
        """
        Initialize viewer configuration.

        Args:
            config_file: Path to configuration file (optional)
            **overrides: Values taking precedence over defaults and the file

        Raises:
            ConfigError: If an override has an invalid value
        """
        self.config_file = config_file
        self.config: Dict[str, Any] = dict(self.DEFAULT_CONFIG)

        if config_file and os.path.exists(config_file):
            self.load()

        for key, value in overrides.items():
            self.set(key, value)

    def load(self):
        """Load viewer preferences from the configuration file."""
        if not self.config_file or not os.path.exists(self.config_file):
            return

        try:
            # Empty files are treated as "no preferences"
            if os.path.getsize(self.config_file) == 0:
                return

            with open(self.config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Error loading configuration {self.config_file}: {e}")
            return

        section = data.get(CONFIG_SECTION) if isinstance(data, dict) else None
        if not isinstance(section, dict):
            return

        for key, value in section.items():
            if key not in self.DEFAULT_CONFIG:
                logger.warning(f"Ignoring unknown configuration key '{key}'")
                continue
            try:
                self.set(key, value)
            except ConfigError as e:
                logger.warning(f"Keeping default for '{key}': {e.message}")

    def save(self):
        """Save viewer preferences, preserving other sections of the file."""
        if not self.config_file:
            return

        existing_data = {}
        if os.path.exists(self.config_file) and os.path.getsize(self.config_file) > 0:
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    existing_data = json.load(f)
            except json.JSONDecodeError:
                # File exists but is not valid JSON, start fresh
                existing_data = {}

        if not isinstance(existing_data, dict):
            existing_data = {}

        existing_data[CONFIG_SECTION] = self.config

        config_dir = os.path.dirname(self.config_file)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)

        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(existing_data, f, indent=2)

        logger.debug(f"Saved viewer configuration to {self.config_file}")

    def set(self, key: str, value: Any):
        """
        Set a preference after validating it.

        Args:
            key: Preference name
            value: New value

        Raises:
            ConfigError: If the key is unknown or the value invalid
        """
        if key not in self.DEFAULT_CONFIG:
            raise ConfigError(f"Unknown configuration key '{key}'")

        if key in ('tag_display_budget', 'strip_height'):
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"'{key}' must be a positive integer, got {value!r}")
        elif key in ('center_marker_on_zoom', 'strict_validation'):
            if not isinstance(value, bool):
                raise ConfigError(f"'{key}' must be true or false, got {value!r}")
        elif key == 'log_level':
            if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
                raise ConfigError(f"'log_level' must be one of {', '.join(LOG_LEVELS)}")
            value = value.upper()
        elif key == 'log_file':
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"'log_file' must be a path, got {value!r}")

        self.config[key] = value

    @property
    def tag_display_budget(self) -> int:
        return self.config['tag_display_budget']

    @property
    def strip_height(self) -> int:
        return self.config['strip_height']

    @property
    def center_marker_on_zoom(self) -> bool:
        return self.config['center_marker_on_zoom']

    @property
    def strict_validation(self) -> bool:
        return self.config['strict_validation']

    @property
    def log_level(self) -> str:
        return self.config['log_level']

    @property
    def log_file(self) -> Optional[str]:
        return self.config['log_file']

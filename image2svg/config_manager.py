"""Settings persistence manager for the image2svg vectorizer.

This module handles loading and saving of vectorizer settings to/from JSON files.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Tuple

from image2svg.models import CONFIG_FILE, VectorizerSettings

logger = logging.getLogger(__name__)


class ConfigManager:
    """Handles loading and saving of vectorizer settings."""

    def __init__(self, config_path: Path = CONFIG_FILE):
        """Initialize config manager.

        Args:
            config_path: Path to settings file (defaults to ~/.image2svg_settings.json)
        """
        self.config_path = Path(config_path)

    def load(self) -> VectorizerSettings:
        """Load settings from file, returning defaults if not found.

        Returns:
            VectorizerSettings with loaded or default values
        """
        if not self.config_path.exists():
            return VectorizerSettings()

        try:
            with open(self.config_path, "r") as f:
                data = json.load(f)
            settings = VectorizerSettings.from_dict(data)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Could not load settings file %s: %s", self.config_path, e)
            return VectorizerSettings()

        logger.info("Loaded settings from %s", self.config_path)
        return settings

    def save(self, settings: VectorizerSettings) -> Tuple[bool, Optional[str]]:
        """Save settings to file.

        Args:
            settings: VectorizerSettings to save

        Returns:
            Tuple of (success: bool, error_message: Optional[str])
        """
        try:
            with open(self.config_path, "w") as f:
                json.dump(settings.to_dict(), f, indent=2)
            return True, None
        except OSError as e:
            return False, str(e)

"""Configuration manager for Folio CLI settings."""

import os
import json
from dataclasses import fields
from pathlib import Path
from typing import Dict, Any
import logging

from folio.core.settings import ExtractionSettings

logger = logging.getLogger(__name__)


def _default_config() -> Dict[str, Any]:
    defaults = ExtractionSettings()
    config: Dict[str, Any] = {}
    for f in fields(ExtractionSettings):
        value = getattr(defaults, f.name)
        config[f.name] = str(value) if isinstance(value, Path) else value
    config["log_level"] = "INFO"
    config["json_logs"] = False
    return config


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class FolioConfigManager:
    """Manage Folio configuration settings with persistence."""

    def __init__(self, config_dir: str = "./config"):
        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / "folio_cli.json"
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file, merged over the defaults."""
        config = _default_config()

        if self.config_file.exists():
            try:
                with open(self.config_file, 'r') as f:
                    config.update(json.load(f))
                logger.info("Configuration loaded from file")
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Failed to load config file: {e}, using defaults")
        else:
            logger.debug("No config file found, using defaults")

        return config

    def _save_config(self):
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, 'w') as f:
            json.dump(self.config, f, indent=2)
        logger.info("Configuration saved to file")

    def _coerce(self, key: str, value: Any) -> Any:
        """Convert a CLI string to the type of the default value."""
        default = _default_config().get(key)
        if not isinstance(value, str) or default is None or isinstance(default, str):
            return value
        if isinstance(default, bool):
            lowered = value.strip().lower()
            if lowered in ("1", "true", "yes", "on"):
                return True
            if lowered in ("0", "false", "no", "off"):
                return False
            raise ValueError(f"{key} expects a boolean, got {value!r}")
        if isinstance(default, int):
            return int(value)
        if isinstance(default, float):
            return float(value)
        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self.config.get(key, default)

    def set(self, key: str, value: Any, persist: bool = True):
        """
        Set configuration value.

        Raises:
            KeyError: If ``key`` is not a known setting
            ValueError: If ``value`` cannot be converted to the setting's type
        """
        if key not in _default_config():
            raise KeyError(key)

        self.config[key] = self._coerce(key, value)

        if persist:
            self._save_config()

        logger.info(f"Set {key} = {self.config[key]}")

    def reset(self, key: str, persist: bool = True) -> bool:
        """Reset configuration value to default. Returns False for unknown keys."""
        defaults = _default_config()
        if key not in defaults:
            logger.warning(f"No default value for {key}")
            return False

        self.set(key, defaults[key], persist)
        logger.info(f"Reset {key} to default")
        return True

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration values."""
        return self.config.copy()

    def settings_overrides(self) -> Dict[str, Any]:
        """Values that differ from the defaults, keyed by settings field."""
        defaults = _default_config()
        known = {f.name for f in fields(ExtractionSettings)}
        return {
            key: value
            for key, value in self.config.items()
            if key in known and value != defaults.get(key)
        }

    def validate(self) -> Dict[str, Any]:
        """Validate current configuration."""
        validation = {
            "valid": True,
            "issues": [],
            "warnings": []
        }

        if not self.get("database_url"):
            validation["issues"].append("database_url not set")
            validation["valid"] = False

        for key in ("min_letter_count", "ocr_page_limit", "min_sample_chars", "detect_min_length"):
            value = self.get(key)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                validation["issues"].append(f"{key} must be a positive integer")
                validation["valid"] = False

        for key in ("ocr_scale", "fetch_timeout"):
            value = self.get(key)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                validation["issues"].append(f"{key} must be a positive number")
                validation["valid"] = False

        if str(self.get("log_level", "")).upper() not in _LOG_LEVELS:
            validation["issues"].append(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
            validation["valid"] = False

        if not self.get("default_language"):
            validation["issues"].append("default_language not set")
            validation["valid"] = False

        cache_dir = Path(str(self.get("tessdata_cache_dir", ""))).expanduser()
        if not cache_dir.exists():
            validation["warnings"].append(f"Language pack cache not created yet: {cache_dir}")

        if not self.get("site_url"):
            validation["warnings"].append("site_url not set; relative PDF links cannot be resolved")

        return validation


def get_config_manager() -> FolioConfigManager:
    """Get the configuration manager for the current config directory."""
    config_dir = os.getenv("FOLIO_CONFIG_DIR", "./config")
    return FolioConfigManager(config_dir)

"""Configuration management for snippyops."""

import copy
import logging
import os
from typing import Any, Dict, Optional

import yaml

from ..utils.errors import ConfigurationError, create_error_suggestions, format_validation_errors
from .schemas import DEFAULT_CONFIG
from .validator import ConfigValidator

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "snippyops.yml"
SYSTEM_CONFIG_PATH = "/etc/snippyops/config.yml"


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Loads and validates snippyops configuration."""

    def __init__(self, path: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            path: Optional explicit configuration file; when omitted
                ./snippyops.yml and then /etc/snippyops/config.yml are tried
        """
        self.path = path
        self.validator = ConfigValidator()
        self._config_cache: Optional[Dict[str, Any]] = None

    def get_config_path(self) -> Optional[str]:
        """Get path to the configuration file in effect, if any."""
        if self.path:
            return self.path

        for candidate in (os.path.join(os.getcwd(), CONFIG_FILENAME), SYSTEM_CONFIG_PATH):
            if os.path.exists(candidate):
                return candidate

        return None

    def load_config(self) -> Dict[str, Any]:
        """
        Load configuration merged over the built-in defaults.

        Returns:
            Dict[str, Any]: Effective configuration

        Raises:
            ConfigurationError: If the file is unreadable, not YAML, or invalid
        """
        if self._config_cache is not None:
            return self._config_cache

        config_path = self.get_config_path()
        overrides: Dict[str, Any] = {}

        if config_path:
            if not os.path.exists(config_path):
                raise ConfigurationError(f"Configuration file not found: {config_path}")

            try:
                with open(config_path, encoding="utf-8") as f:
                    overrides = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    f"Error parsing YAML file {config_path}",
                    details=str(e),
                    suggestions=create_error_suggestions("configuration_invalid"),
                )

            if not isinstance(overrides, dict):
                raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")

            errors = self.validator.validate(overrides)
            if errors:
                raise ConfigurationError(
                    f"Invalid configuration in {config_path}",
                    details=format_validation_errors(errors),
                    suggestions=create_error_suggestions("configuration_invalid"),
                )

            logger.debug(f"Loaded configuration from {config_path}")

        self._config_cache = _deep_merge(DEFAULT_CONFIG, overrides)
        return self._config_cache

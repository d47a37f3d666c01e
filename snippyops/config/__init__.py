"""Configuration management for snippyops."""

from .env import load_env_file
from .manager import ConfigManager
from .schemas import CONFIG_SCHEMA, DEFAULT_CONFIG

__all__ = ["ConfigManager", "CONFIG_SCHEMA", "DEFAULT_CONFIG", "load_env_file"]

"""Deployment environment file handling."""

import logging
import os
from typing import Dict, Optional, Union

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

DEFAULT_POSTGRES_USER = "snippy_user"
DEFAULT_POSTGRES_DB = "snippy_production"


def load_env_file(path: str) -> Dict[str, str]:
    """
    Read KEY=VALUE pairs from an env file.

    Missing files yield an empty mapping; keys without a value are dropped.
    """
    if not os.path.isfile(path):
        logger.debug(f"No environment file at {path}")
        return {}

    values = dotenv_values(path)
    return {key: value for key, value in values.items() if value is not None}


def is_truthy(value: Union[str, bool, None]) -> bool:
    """Interpret a flag the way the shell scripts compare against 'true'."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return value.strip().lower() == "true"


def lookup(name: str, env: Dict[str, str], default: Optional[str] = None) -> Optional[str]:
    """Look a variable up in the loaded env file, then the process environment."""
    value = env.get(name)
    if value:
        return value
    value = os.environ.get(name)
    if value:
        return value
    return default

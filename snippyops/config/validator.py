"""Configuration validation for snippyops."""

from typing import Any, Dict, List

import jsonschema

from .schemas import CONFIG_SCHEMA


class ConfigValidator:
    """Validates snippyops configuration files."""

    def validate(self, config: Dict[str, Any]) -> List[str]:
        """
        Validate a configuration mapping.

        Args:
            config: Configuration dictionary to validate

        Returns:
            List[str]: List of validation errors (empty if valid)
        """
        errors = []

        validator = jsonschema.Draft7Validator(CONFIG_SCHEMA)
        for error in sorted(validator.iter_errors(config), key=lambda e: list(e.path)):
            location = ".".join(str(part) for part in error.path)
            if location:
                errors.append(f"{location}: {error.message}")
            else:
                errors.append(error.message)

        renewal = config.get("renewal") or {}
        if "schedule" in renewal and isinstance(renewal["schedule"], str):
            errors.extend(self._validate_cron_schedule(renewal["schedule"]))

        return errors

    def _validate_cron_schedule(self, schedule: str) -> List[str]:
        """Validate a five-field cron expression."""
        fields = schedule.split()
        if len(fields) != 5:
            return [f"renewal.schedule: expected 5 cron fields, got {len(fields)}: '{schedule}'"]

        allowed = set("0123456789*/,-")
        for field in fields:
            if not set(field) <= allowed:
                return [f"renewal.schedule: invalid cron field '{field}'"]

        return []

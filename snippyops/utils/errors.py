"""Error handling utilities for snippyops."""

import shlex
import sys
import traceback
from typing import List, Optional, Tuple

import click


class SnippyOpsError(Exception):
    """Base exception for snippyops errors."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        suggestions: Optional[list] = None,
    ):
        self.message = message
        self.details = details
        self.suggestions = suggestions or []
        super().__init__(message)


class ConfigurationError(SnippyOpsError):
    """Raised when configuration is invalid or missing."""

    pass


class CommandError(SnippyOpsError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
        suggestions: Optional[list] = None,
    ):
        self.command = command or []
        self.returncode = returncode
        self.stderr = stderr or ""
        super().__init__(message, details=self.stderr.strip() or None, suggestions=suggestions)


class DeploymentError(SnippyOpsError):
    """Raised when a deployment step fails."""

    pass


class HealthCheckError(SnippyOpsError):
    """Raised when a service does not report healthy."""

    pass


class SSLError(SnippyOpsError):
    """Raised when SSL certificate operations fail."""

    pass


class CronError(SnippyOpsError):
    """Raised when crontab operations fail."""

    pass


# Python exceptions that surface from file and network operations, with hints.
GENERIC_ERRORS = [
    (
        FileNotFoundError,
        "File not found",
        ["Check that the file path is correct", "Ensure the file exists and is readable"],
    ),
    (
        PermissionError,
        "Permission denied",
        ["Check file/directory permissions", "Try running with sudo on the deployment host"],
    ),
    (
        ConnectionError,
        "Connection failed",
        ["Verify that the target service is running", "Check firewall settings"],
    ),
]


class ErrorHandler:
    """Prints errors raised by commands to stderr."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def handle_error(self, error: Exception, context: Optional[str] = None) -> None:
        """
        Print an error with its context, details and suggestions.

        CommandError additionally reports the failed command line and its exit code.
        """
        if isinstance(error, SnippyOpsError):
            message, suggestions = error.message, error.suggestions
            lines = []
            if isinstance(error, CommandError):
                if error.command:
                    lines.append(f"Command: {shlex.join(str(part) for part in error.command)}")
                if error.returncode is not None:
                    lines.append(f"Exit code: {error.returncode}")
            if error.details:
                lines.append(f"Details: {error.details}")
        else:
            message, suggestions = self._describe(error)
            lines = []

        click.echo(f"✗ {message}", err=True)
        if context:
            click.echo(f"Context: {context}", err=True)
        for line in lines:
            click.echo(line, err=True)

        if suggestions:
            click.echo("\nSuggestions:", err=True)
            for suggestion in suggestions:
                click.echo(f"  • {suggestion}", err=True)

        if self.verbose:
            click.echo("\nFull traceback:", err=True)
            traceback.print_exc()

    @staticmethod
    def _describe(error: Exception) -> Tuple[str, List[str]]:
        for error_type, label, suggestions in GENERIC_ERRORS:
            if isinstance(error, error_type):
                return f"{label}: {error}", suggestions
        return f"{type(error).__name__}: {error}", []

    def exit_with_error(self, error: Exception, context: Optional[str] = None, exit_code: int = 1) -> None:
        """Handle error and exit with specified code."""
        self.handle_error(error, context)
        sys.exit(exit_code)


def create_error_suggestions(error_type: str, **kwargs) -> list:
    """
    Create contextual error suggestions based on error type.

    Args:
        error_type: Type of error
        **kwargs: Additional context information

    Returns:
        list: List of suggestion strings
    """
    suggestions = {
        "command_not_found": [
            f"Install {kwargs.get('command', 'the missing tool')} on this host",
            "Check that it is available on PATH",
        ],
        "certbot_missing": [
            "Install certbot: sudo apt install certbot",
            "Or run without a domain to create a self-signed certificate",
        ],
        "docker_not_running": [
            "Start the Docker daemon",
            "Verify Docker permissions for current user",
        ],
        "service_unhealthy": [
            "Check service logs: docker compose logs api",
            "Verify the service configuration and environment file",
            "Ensure required ports are available",
        ],
        "configuration_invalid": [
            "Check YAML syntax in configuration file",
            "Validate configuration values against the documented keys",
        ],
        "crontab_failed": [
            "Check that cron is installed and running",
            "Run the command as the user who should own the cron job",
        ],
    }

    return suggestions.get(error_type, [])


def format_validation_errors(errors: list) -> str:
    """
    Format validation errors for display.

    Args:
        errors: List of validation error messages

    Returns:
        str: Formatted error message
    """
    if not errors:
        return "No validation errors"

    if len(errors) == 1:
        return f"Validation error: {errors[0]}"

    formatted = "Validation errors:\n"
    for i, error in enumerate(errors, 1):
        formatted += f"  {i}. {error}\n"

    return formatted.strip()

"""Utilities for snippyops."""

from .files import FileManager
from .logging import setup_logging
from .shell import CommandResult, CommandRunner

__all__ = ["CommandResult", "CommandRunner", "FileManager", "setup_logging"]

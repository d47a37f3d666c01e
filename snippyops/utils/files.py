"""File operations utilities for snippyops."""

import glob
import os
import stat
from typing import List

GITIGNORE_MARKER = "ssl/"

GITIGNORE_SSL_RULES = [
    "# SSL Certificates (never commit private keys)",
    "ssl/",
    "*.key",
    "*.crt",
    "*.pem",
]


class FileManager:
    """Manages file operations for snippyops."""

    def __init__(self, verbose: bool = False):
        """Initialize file manager."""
        self.verbose = verbose

    def make_executable(self, path: str) -> str:
        """
        Add execute permission bits to a file (chmod +x).

        Args:
            path: File to update

        Returns:
            str: The path
        """
        mode = os.stat(path).st_mode
        os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

        if self.verbose:
            print(f"Made executable: {path}")

        return path

    def make_scripts_executable(self, directory: str, pattern: str = "*.sh") -> List[str]:
        """
        Make every matching file in a directory executable.

        Args:
            directory: Directory to scan
            pattern: Glob pattern for scripts

        Returns:
            List[str]: Paths that were updated
        """
        updated = []
        for path in sorted(glob.glob(os.path.join(directory, pattern))):
            if os.path.isfile(path):
                updated.append(self.make_executable(path))
        return updated

    def ensure_gitignore_rules(self, path: str = ".gitignore") -> bool:
        """
        Append SSL exclusion rules to .gitignore unless already present.

        Args:
            path: Path to .gitignore file

        Returns:
            bool: True if the file was changed
        """
        existing = ""
        if os.path.exists(path):
            with open(path, encoding="utf-8") as f:
                existing = f.read()

        if any(GITIGNORE_MARKER in line for line in existing.splitlines()):
            return False

        with open(path, "a", encoding="utf-8") as f:
            if existing and not existing.endswith("\n"):
                f.write("\n")
            f.write("\n")
            f.write("\n".join(GITIGNORE_SSL_RULES) + "\n")

        if self.verbose:
            print(f"Added SSL rules to {path}")

        return True

    def touch(self, path: str, mode: int = 0o644) -> str:
        """
        Create a file if missing and set its permissions.

        Args:
            path: File to create
            mode: Permission bits to apply

        Returns:
            str: The path
        """
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(path, "a", encoding="utf-8"):
            pass
        os.chmod(path, mode)

        return path

    def append_line(self, path: str, line: str) -> None:
        """Append a single line to a text file."""
        with open(path, "a", encoding="utf-8") as f:
            f.write(line.rstrip("\n") + "\n")

    def write_secure(self, path: str, data: bytes, mode: int) -> str:
        """Write bytes to a file and set its permissions."""
        with open(path, "wb") as f:
            f.write(data)
        os.chmod(path, mode)
        return path

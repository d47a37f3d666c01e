"""External command execution for snippyops."""

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional

import click

from .errors import CommandError, create_error_suggestions

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of a single external command."""

    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_command(cmd: List[str]) -> str:
    """Render an argument list the way it would be typed in a shell."""
    return " ".join(shlex.quote(str(part)) for part in cmd)


class CommandRunner:
    """Runs external commands with abort-on-failure semantics."""

    def __init__(
        self,
        dry_run: bool = False,
        verbose: bool = False,
        env: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize command runner.

        Args:
            dry_run: Print commands instead of executing them
            verbose: Echo each command before running it
            env: Extra environment variables for every child process
        """
        self.dry_run = dry_run
        self.verbose = verbose
        self.env = dict(env or {})

    def update_env(self, values: Dict[str, str]) -> None:
        """Merge variables into the environment passed to child processes."""
        self.env.update({key: str(value) for key, value in values.items() if value is not None})

    def _child_env(self, env: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        if not self.env and not env:
            return None
        merged = dict(os.environ)
        merged.update(self.env)
        if env:
            merged.update(env)
        return merged

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        cwd: Optional[str] = None,
        input: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        """
        Run a command and capture its output.

        Args:
            cmd: Command as an argument list
            check: Raise CommandError on non-zero exit; when False the
                failure is logged and returned
            cwd: Working directory for the command
            input: Text passed on stdin
            env: Extra environment variables for this command only

        Returns:
            CommandResult: Captured result

        Raises:
            CommandError: If check is set and the command fails or is missing
        """
        rendered = format_command(cmd)

        if self.dry_run:
            logger.info(f"[dry-run] {rendered}")
            click.echo(f"DRY RUN: {rendered}")
            return CommandResult(args=list(cmd), returncode=0)

        if self.verbose:
            click.echo(f"Running: {rendered}")
        logger.debug(f"Running: {rendered} (cwd={cwd or os.getcwd()})")

        try:
            completed = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                cwd=cwd,
                input=input,
                env=self._child_env(env),
            )
        except FileNotFoundError:
            result = CommandResult(args=list(cmd), returncode=127, stderr=f"'{cmd[0]}' not found")
            if check:
                raise CommandError(
                    f"Command not found: {cmd[0]}",
                    command=list(cmd),
                    returncode=127,
                    stderr=result.stderr,
                    suggestions=create_error_suggestions("command_not_found", command=cmd[0]),
                )
            logger.warning(f"Command not found (ignored): {cmd[0]}")
            return result

        result = CommandResult(
            args=list(cmd),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

        if result.ok:
            return result

        if check:
            raise CommandError(
                f"Command failed with exit code {result.returncode}: {rendered}",
                command=list(cmd),
                returncode=result.returncode,
                stderr=result.stderr,
            )

        logger.warning(f"Command failed with exit code {result.returncode} (ignored): {rendered}")
        return result

    def spawn_detached(self, cmd: List[str], log_path: str, cwd: Optional[str] = None) -> Optional[int]:
        """
        Start a background process with output written to a fresh log file.

        Args:
            cmd: Command as an argument list
            log_path: File receiving stdout and stderr
            cwd: Working directory for the process

        Returns:
            Optional[int]: PID of the started process, None in dry-run mode
        """
        rendered = format_command(cmd)

        if self.dry_run:
            click.echo(f"DRY RUN: nohup {rendered} > {log_path} 2>&1 &")
            return None

        logger.debug(f"Starting in background: {rendered} > {log_path}")

        try:
            with open(log_path, "wb") as log:
                process = subprocess.Popen(
                    cmd,
                    cwd=cwd,
                    stdout=log,
                    stderr=subprocess.STDOUT,
                    stdin=subprocess.DEVNULL,
                    env=self._child_env(None),
                    start_new_session=True,
                )
        except FileNotFoundError:
            raise CommandError(
                f"Command not found: {cmd[0]}",
                command=list(cmd),
                returncode=127,
                suggestions=create_error_suggestions("command_not_found", command=cmd[0]),
            )

        return process.pid

    @staticmethod
    def which(name: str) -> bool:
        """Check whether an executable is available on PATH."""
        return shutil.which(name) is not None

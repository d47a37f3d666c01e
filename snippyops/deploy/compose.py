"""docker compose invocations used by deployments."""

import logging
from typing import List, Optional

from ..utils.shell import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


class ComposeRunner:
    """Runs docker compose commands in a project directory."""

    def __init__(self, runner: CommandRunner, project_dir: Optional[str] = None, legacy: bool = False):
        """
        Initialize compose runner.

        Args:
            runner: Command runner
            project_dir: Directory holding docker-compose.yml
            legacy: Use the standalone docker-compose binary
        """
        self.runner = runner
        self.project_dir = project_dir
        self.legacy = legacy

    def _compose(self, *args: str) -> List[str]:
        base = ["docker-compose"] if self.legacy else ["docker", "compose"]
        return base + list(args)

    def up(self, services: Optional[List[str]] = None, detach: bool = True) -> CommandResult:
        """Start services (all when none given)."""
        cmd = self._compose("up")
        if detach:
            cmd.append("-d")
        cmd.extend(services or [])
        return self.runner.run(cmd, cwd=self.project_dir)

    def down(self) -> CommandResult:
        """Stop and remove the project's containers; failure tolerated."""
        return self.runner.run(self._compose("down"), check=False, cwd=self.project_dir)

    def ps(self) -> CommandResult:
        return self.runner.run(self._compose("ps"), check=False, cwd=self.project_dir)

    def logs(self, service: str, tail: int = 50) -> CommandResult:
        return self.runner.run(self._compose("logs", f"--tail={tail}", service), check=False, cwd=self.project_dir)

    def exec(self, service: str, command: List[str], check: bool = True) -> CommandResult:
        """Run a command in a running service container without a TTY."""
        return self.runner.run(self._compose("exec", "-T", service, *command), check=check, cwd=self.project_dir)

    def create_volume(self, name: str) -> CommandResult:
        """Create a named docker volume; an existing volume is not an error."""
        return self.runner.run(["docker", "volume", "create", name], check=False)

    def volume_mountpoint(self, name: str) -> Optional[str]:
        """Host path backing a named volume, or None if it cannot be resolved."""
        result = self.runner.run(
            ["docker", "volume", "inspect", "--format", "{{ .Mountpoint }}", name],
            check=False,
        )
        mountpoint = result.stdout.strip()
        if not result.ok or not mountpoint:
            logger.debug(f"Could not resolve mountpoint for volume {name}")
            return None
        return mountpoint

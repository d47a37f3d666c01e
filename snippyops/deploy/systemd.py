"""systemd unit management."""

import logging
import os
import shutil

from ..utils.errors import DeploymentError
from ..utils.shell import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


class SystemdService:
    """A systemd service unit controlled through systemctl."""

    def __init__(self, name: str, runner: CommandRunner, unit_dir: str = "/etc/systemd/system"):
        self.name = name
        self.runner = runner
        self.unit_dir = unit_dir

    @property
    def unit_filename(self) -> str:
        return f"{self.name}.service"

    @property
    def unit_path(self) -> str:
        return os.path.join(self.unit_dir, self.unit_filename)

    def is_installed(self) -> bool:
        return os.path.isfile(self.unit_path)

    def install(self, unit_source: str) -> None:
        """
        Copy a unit file into place, reload systemd and enable the service.

        Args:
            unit_source: Unit file shipped with the deployment

        Raises:
            DeploymentError: If the unit file is missing
        """
        if not os.path.isfile(unit_source):
            raise DeploymentError(
                f"Unit file not found: {unit_source}",
                suggestions=[f"Ship {self.unit_filename} alongside the binary"],
            )

        if self.runner.dry_run:
            self.runner.run(["cp", unit_source, self.unit_dir + "/"])
        else:
            shutil.copy(unit_source, self.unit_path)
            logger.info(f"Installed {self.unit_path}")

        self.runner.run(["systemctl", "daemon-reload"])
        self.runner.run(["systemctl", "enable", self.name])

    def ensure_installed(self, unit_source: str) -> bool:
        """Install the unit only if it is absent. Returns True if installed now."""
        if self.is_installed():
            return False
        self.install(unit_source)
        return True

    def restart(self) -> CommandResult:
        return self.runner.run(["systemctl", "restart", self.name])

    def status(self) -> CommandResult:
        """systemctl status; a non-zero exit is not an error here."""
        return self.runner.run(["systemctl", "status", self.name, "--no-pager"], check=False)

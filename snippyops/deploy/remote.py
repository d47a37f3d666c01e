"""Running deployments on a remote host over ssh."""

import logging
from typing import List, Optional

from ..utils.errors import CommandError, DeploymentError
from ..utils.shell import CommandResult, CommandRunner

logger = logging.getLogger(__name__)

DEFAULT_REMOTE_COMMAND = "snippyops deploy server"


def ssh_base_args(address: str, key_path: Optional[str] = None, port: int = 22) -> List[str]:
    """ssh arguments up to and including the destination."""
    args = [
        "ssh",
        "-o",
        "StrictHostKeyChecking=no",
        "-o",
        "UserKnownHostsFile=/dev/null",
        "-o",
        "LogLevel=ERROR",
    ]
    if key_path:
        args.extend(["-i", key_path])
    args.extend(["-p", str(port), address])
    return args


class RemoteDeployer:
    """Triggers a deployment on a server through ssh."""

    def __init__(
        self,
        host: str,
        runner: CommandRunner,
        user: Optional[str] = "root",
        port: int = 22,
        key_path: Optional[str] = None,
    ):
        if not host:
            raise DeploymentError(
                "No remote host configured",
                suggestions=["Pass --host or set remote.host in snippyops.yml"],
            )
        self.host = host
        self.runner = runner
        self.user = user
        self.port = port
        self.key_path = key_path

    @property
    def address(self) -> str:
        return f"{self.user}@{self.host}" if self.user else self.host

    def build_command(self, remote_command: str) -> List[str]:
        return ssh_base_args(self.address, self.key_path, self.port) + [remote_command]

    def deploy(self, remote_command: str = DEFAULT_REMOTE_COMMAND) -> CommandResult:
        """
        Run the deployment command on the remote host.

        Raises:
            DeploymentError: If ssh or the remote command fails
        """
        logger.info(f"Deploying on {self.address}:{self.port}")
        try:
            return self.runner.run(self.build_command(remote_command))
        except CommandError as e:
            raise DeploymentError(
                f"Remote deployment on {self.address} failed (exit code {e.returncode})",
                details=e.details,
                suggestions=["Check ssh access to the host", "Inspect the service logs on the server"],
            )

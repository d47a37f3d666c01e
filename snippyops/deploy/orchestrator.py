"""Deployment orchestration for the Snippy API."""

import logging
import os
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import click

from ..config.env import DEFAULT_POSTGRES_DB, DEFAULT_POSTGRES_USER, load_env_file, lookup
from ..ssl.letsencrypt import DEFAULT_CERT_NAME, LetsEncryptManager
from ..ssl.manager import SSLManager
from ..ssl.provisioner import CertificateProvisioner
from ..utils.errors import DeploymentError
from ..utils.files import FileManager
from ..utils.shell import CommandRunner
from .compose import ComposeRunner
from .health import HealthChecker, HealthResult
from .migrations import MigrationReport, MigrationRunner
from .systemd import SystemdService

logger = logging.getLogger(__name__)

CERTBOT_VOLUME_SUFFIX = "_certbot_certs"


def process_pattern(binary: str) -> str:
    """pkill -f pattern matching processes whose executable is <binary>, with or without a path."""
    escaped = re.sub(r"([.\[\]()*+?{}|^$\\])", r"\\\1", os.path.basename(binary))
    return f"^([^ ]*/)?{escaped}( |$)"


@dataclass
class DeploymentResult:
    """Summary of a deployment run."""

    success: bool
    steps: List[str] = field(default_factory=list)
    unit_installed: bool = False
    ssl_action: Optional[str] = None
    migrations: Optional[MigrationReport] = None
    health: Optional[HealthResult] = None


class DeploymentOrchestrator:
    """Runs the server and local deployment sequences."""

    def __init__(
        self,
        config: Dict[str, Any],
        runner: Optional[CommandRunner] = None,
        health_checker: Optional[HealthChecker] = None,
        ssl_manager: Optional[SSLManager] = None,
        verbose: bool = False,
        sleep=time.sleep,
    ):
        """
        Initialize deployment orchestrator.

        Args:
            config: Effective configuration
            runner: Command runner
            health_checker: Health endpoint checker
            ssl_manager: Self-signed certificate generator for SSL initialization
            verbose: Enable verbose output
            sleep: Wait function, replaced in tests
        """
        self.config = config
        self.runner = runner or CommandRunner(verbose=verbose)
        self.health_checker = health_checker or HealthChecker(verbose=verbose)
        self.ssl_manager = ssl_manager or SSLManager(verbose=verbose)
        self.files = FileManager(verbose=verbose)
        self.verbose = verbose
        self.sleep = sleep

    def _wait(self, seconds: int) -> None:
        if self.runner.dry_run:
            click.echo(f"DRY RUN: sleep {seconds}")
            return
        self.sleep(seconds)

    def _chmod_executable(self, path: str) -> None:
        if self.runner.dry_run:
            click.echo(f"DRY RUN: chmod +x {path}")
            return
        if not os.path.isfile(path):
            raise DeploymentError(f"File not found: {path}", suggestions=["Upload the build artifact before deploying"])
        self.files.make_executable(path)

    def load_environment(self, deploy_dir: str) -> Dict[str, str]:
        """Read the deployment env file and export it to child processes."""
        env_path = os.path.join(deploy_dir, self.config["deploy"]["env_file"])
        env = load_env_file(env_path)
        if env:
            click.echo("Loading environment variables...")
            self.runner.update_env(env)
        return env

    def initialize_ssl(self, compose: ComposeRunner, env: Dict[str, str]) -> Optional[str]:
        """
        Provision the proxy certificate into the certbot volume if missing.

        Returns:
            Optional[str]: Provisioning action, or None when nothing was needed
        """
        deploy_cfg = self.config["deploy"]
        ssl_cfg = self.config["ssl"]

        volume = f"{deploy_cfg['compose_project']}{CERTBOT_VOLUME_SUFFIX}"
        compose.create_volume(volume)
        mountpoint = compose.volume_mountpoint(volume)

        if mountpoint:
            cert_dir = os.path.join(mountpoint, "live", DEFAULT_CERT_NAME)
        else:
            cert_dir = ssl_cfg["cert_dir"]

        if os.path.isfile(os.path.join(cert_dir, "fullchain.pem")):
            logger.info(f"Certificate already present in {cert_dir}")
            return None

        if self.runner.dry_run:
            click.echo(f"DRY RUN: would provision SSL certificate into {cert_dir}")
            return None

        provisioner = CertificateProvisioner(
            cert_dir=cert_dir,
            ssl_manager=self.ssl_manager,
            letsencrypt_factory=lambda email, staging, config_dir: LetsEncryptManager(
                email=email,
                staging=staging,
                runner=self.runner,
                config_dir=config_dir,
                verbose=self.verbose,
            ),
            webroot=ssl_cfg["webroot"],
            organization=ssl_cfg["organization"],
        )
        result = provisioner.initialize(
            domain=lookup("DOMAIN", env, ""),
            email=lookup("CERTBOT_EMAIL", env, ""),
            staging=lookup("CERTBOT_STAGING", env, "false"),
        )
        return result.action

    def deploy_server(self) -> DeploymentResult:
        """
        Deploy on the server: permissions, systemd unit, SSL, restart,
        migrations, health check.

        Returns:
            DeploymentResult: success is False only when the final health check fails

        Raises:
            DeploymentError: If a required step fails
            CommandError: If a required external command fails
        """
        cfg = self.config["deploy"]
        deploy_dir = cfg["deploy_dir"]
        result = DeploymentResult(success=False)

        click.echo("Starting deployment...")

        if not os.path.isdir(deploy_dir):
            raise DeploymentError(
                f"Deployment directory not found: {deploy_dir}",
                suggestions=["Check deploy.deploy_dir in snippyops.yml"],
            )

        env = self.load_environment(deploy_dir)

        click.echo("Setting binary permissions...")
        self._chmod_executable(os.path.join(deploy_dir, cfg["binary"]))
        result.steps.append("binary_permissions")

        click.echo("Setting script permissions...")
        scripts_dir = os.path.join(deploy_dir, "scripts")
        if self.runner.dry_run:
            click.echo(f"DRY RUN: chmod +x {scripts_dir}/*.sh")
        else:
            self.files.make_scripts_executable(scripts_dir)
        result.steps.append("script_permissions")

        service = SystemdService(cfg["service_name"], self.runner, unit_dir=cfg["unit_dir"])
        if not service.is_installed():
            click.echo("Installing systemd service...")
        result.unit_installed = service.ensure_installed(os.path.join(deploy_dir, service.unit_filename))
        if result.unit_installed:
            result.steps.append("systemd_install")

        compose = ComposeRunner(self.runner, project_dir=deploy_dir, legacy=cfg["compose_legacy"])

        click.echo("Initializing SSL certificates...")
        result.ssl_action = self.initialize_ssl(compose, env)
        result.steps.append("ssl_init")

        click.echo("Restarting service...")
        service.restart()
        result.steps.append("restart")

        click.echo("Waiting for services to start...")
        self._wait(cfg["startup_wait"])

        click.echo("Running database migrations...")
        migrations = MigrationRunner(
            compose,
            user=lookup("POSTGRES_USER", env, DEFAULT_POSTGRES_USER),
            database=lookup("POSTGRES_DB", env, DEFAULT_POSTGRES_DB),
            migrations_dir=os.path.join(deploy_dir, cfg["migrations_dir"]),
        )
        result.migrations = migrations.apply_all()
        click.echo("Migrations completed")
        result.steps.append("migrations")

        click.echo("Checking service status...")
        service.status()

        click.echo("Checking Docker containers...")
        compose.ps()

        click.echo("Running health check...")
        if self.runner.dry_run:
            click.echo(f"DRY RUN: would check {cfg['health_url']}")
            result.success = True
            return result

        result.health = self.health_checker.check(cfg["health_url"])
        result.steps.append("health_check")

        if result.health.healthy:
            click.echo(result.health.body)
            click.echo("Deploy successful!")
            click.echo("Application is healthy and running")
            result.success = True
        else:
            click.echo("Health check failed")
            click.echo("Recent logs:")
            logs = compose.logs("api", tail=50)
            if logs.stdout:
                click.echo(logs.stdout)
            result.success = False

        return result

    def deploy_local(self, project_dir: str = ".") -> DeploymentResult:
        """
        Development deployment: postgres through compose, API binary in the background.

        Returns:
            DeploymentResult: success reflects the health check
        """
        deploy_cfg = self.config["deploy"]
        local_cfg = self.config["local"]
        binary = deploy_cfg["binary"]
        result = DeploymentResult(success=False)

        click.echo("🚀 Deploying...")

        compose = ComposeRunner(self.runner, project_dir=project_dir, legacy=deploy_cfg["compose_legacy"])
        compose.up(["postgres"])
        result.steps.append("postgres")
        self._wait(local_cfg["postgres_wait"])

        self.runner.run(["pkill", "-f", process_pattern(binary)], check=False)
        self.runner.spawn_detached(
            [os.path.join(".", binary)],
            log_path=os.path.join(project_dir, local_cfg["log_file"]),
            cwd=project_dir,
        )
        result.steps.append("api")
        self._wait(local_cfg["api_wait"])

        if self.runner.dry_run:
            click.echo(f"DRY RUN: would check {local_cfg['health_url']}")
            result.success = True
            return result

        result.health = self.health_checker.check(local_cfg["health_url"])
        result.success = result.health.healthy
        click.echo("✅ Deployed!" if result.success else "❌ Failed")

        return result

    def run_migrations(self) -> MigrationReport:
        """Apply migrations on their own, using the deployment env file."""
        cfg = self.config["deploy"]
        deploy_dir = cfg["deploy_dir"]
        env = self.load_environment(deploy_dir)
        compose = ComposeRunner(self.runner, project_dir=deploy_dir, legacy=cfg["compose_legacy"])

        migrations = MigrationRunner(
            compose,
            user=lookup("POSTGRES_USER", env, DEFAULT_POSTGRES_USER),
            database=lookup("POSTGRES_DB", env, DEFAULT_POSTGRES_DB),
            migrations_dir=os.path.join(deploy_dir, cfg["migrations_dir"]),
        )
        report = migrations.apply_all()
        click.echo("Migrations completed")
        return report

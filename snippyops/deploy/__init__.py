"""Deployment orchestration for the Snippy API."""

from .compose import ComposeRunner
from .health import HealthChecker, HealthResult
from .migrations import MigrationReport, MigrationRunner
from .orchestrator import DeploymentOrchestrator, DeploymentResult
from .remote import RemoteDeployer
from .systemd import SystemdService

__all__ = [
    "ComposeRunner",
    "DeploymentOrchestrator",
    "DeploymentResult",
    "HealthChecker",
    "HealthResult",
    "MigrationReport",
    "MigrationRunner",
    "RemoteDeployer",
    "SystemdService",
]

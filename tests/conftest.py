"""Pytest configuration and shared fixtures."""

import copy
import logging
import os
import shutil
import tempfile
from typing import Callable, Dict, List, Optional

import pytest

from snippyops.config.schemas import DEFAULT_CONFIG
from snippyops.utils.errors import CommandError
from snippyops.utils.shell import CommandResult, CommandRunner


class FakeRunner(CommandRunner):
    """CommandRunner that records commands instead of executing them."""

    def __init__(self, dry_run: bool = False):
        super().__init__(dry_run=dry_run)
        self.commands: List[List[str]] = []
        self.inputs: List[Optional[str]] = []
        self.cwds: List[Optional[str]] = []
        self.spawned: List[List[str]] = []
        self.responses: List[tuple] = []
        self.available = {"certbot"}

    def respond(self, predicate: Callable[[List[str]], bool], returncode: int = 0, stdout: str = "", stderr: str = ""):
        """Register the result for commands matching predicate (first match wins)."""
        self.responses.append((predicate, CommandResult([], returncode, stdout, stderr)))

    def run(self, cmd, check=True, cwd=None, input=None, env=None):
        self.commands.append(list(cmd))
        self.inputs.append(input)
        self.cwds.append(cwd)

        result = CommandResult(args=list(cmd), returncode=0)
        for predicate, response in self.responses:
            if predicate(cmd):
                result = CommandResult(list(cmd), response.returncode, response.stdout, response.stderr)
                break

        if check and not result.ok:
            raise CommandError(
                f"Command failed with exit code {result.returncode}",
                command=list(cmd),
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result

    def spawn_detached(self, cmd, log_path, cwd=None):
        self.spawned.append(list(cmd))
        return 4242

    def which(self, name):
        return name in self.available

    def ran(self, *prefix: str) -> bool:
        return any(command[: len(prefix)] == list(prefix) for command in self.commands)


@pytest.fixture
def temp_directory():
    """Create a temporary directory for testing."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(autouse=True)
def isolate_filesystem(temp_directory, monkeypatch):
    """Isolate filesystem operations to temporary directory."""
    monkeypatch.chdir(temp_directory)
    for name in ("DOMAIN", "CERTBOT_EMAIL", "CERTBOT_STAGING", "LETSENCRYPT_EMAIL", "POSTGRES_USER", "POSTGRES_DB"):
        monkeypatch.delenv(name, raising=False)
    return temp_directory


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by CLI invocations (their streams close with the runner)."""
    yield
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, "_snippyops", False):
            root_logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def fake_runner():
    """Recording command runner."""
    return FakeRunner()


@pytest.fixture
def dry_runner():
    """Recording command runner in dry-run mode."""
    return FakeRunner(dry_run=True)


@pytest.fixture
def sample_config(temp_directory) -> Dict:
    """Default configuration rooted in the temporary directory."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    deploy_dir = os.path.join(temp_directory, "snippy-api")
    config["deploy"]["deploy_dir"] = deploy_dir
    config["deploy"]["unit_dir"] = os.path.join(temp_directory, "systemd")
    config["ssl"]["cert_dir"] = os.path.join(temp_directory, "letsencrypt", "live", "cert")
    config["renewal"]["log_file"] = os.path.join(temp_directory, "ssl-renewal.log")
    return config


@pytest.fixture
def deploy_tree(sample_config):
    """A deployment directory with binary, scripts, unit file and migrations."""
    deploy_dir = sample_config["deploy"]["deploy_dir"]
    os.makedirs(os.path.join(deploy_dir, "scripts"))
    os.makedirs(os.path.join(deploy_dir, "migrations"))
    os.makedirs(sample_config["deploy"]["unit_dir"])

    files = {
        "snippy-api": "#binary",
        "snippy-api.service": "[Service]\nExecStart=/usr/bin/docker compose up\n",
        "scripts/renew-ssl.sh": "#!/bin/bash\n",
        "migrations/001_init.sql": "select 1;",
        "migrations/001_init_rollback.sql": "select 0;",
        "migrations/002_sessions.sql": "select 2;",
        ".env.production": "DOMAIN=\nPOSTGRES_USER=app\nPOSTGRES_DB=appdb\n",
    }
    for relative, content in files.items():
        path = os.path.join(deploy_dir, relative)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(path, 0o644)

    return deploy_dir

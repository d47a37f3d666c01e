"""SQL migrations applied through the compose postgres service."""

import logging
import os
from dataclasses import dataclass, field
from typing import List

import click

from .compose import ComposeRunner

logger = logging.getLogger(__name__)

ROLLBACK_SUFFIX = "rollback.sql"


@dataclass
class MigrationReport:
    """Which migration files applied cleanly and which did not."""

    applied: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class MigrationRunner:
    """Applies forward migrations in filename order with psql."""

    def __init__(
        self,
        compose: ComposeRunner,
        user: str,
        database: str,
        migrations_dir: str = "migrations",
        service: str = "postgres",
        container_dir: str = "/migrations",
    ):
        self.compose = compose
        self.user = user
        self.database = database
        self.migrations_dir = migrations_dir
        self.service = service
        self.container_dir = container_dir

    def discover(self) -> List[str]:
        """Forward migration filenames, sorted; rollback scripts are skipped."""
        if not os.path.isdir(self.migrations_dir):
            logger.info(f"No migrations directory at {self.migrations_dir}")
            return []

        return sorted(
            name
            for name in os.listdir(self.migrations_dir)
            if name.endswith(".sql")
            and not name.endswith(ROLLBACK_SUFFIX)
            and os.path.isfile(os.path.join(self.migrations_dir, name))
        )

    def apply(self, name: str) -> bool:
        result = self.compose.exec(
            self.service,
            ["psql", "-U", self.user, "-d", self.database, "-f", f"{self.container_dir}/{name}"],
            check=False,
        )
        return result.ok

    def apply_all(self) -> MigrationReport:
        """
        Apply every forward migration. A failing file is reported and skipped;
        migrations are not tracked, so re-running an applied file may fail.
        """
        report = MigrationReport()

        for name in self.discover():
            click.echo(f"Applying migration: {name}")
            if self.apply(name):
                report.applied.append(name)
            else:
                click.echo(f"Warning: Migration {name} may have already been applied or encountered an error")
                report.failed.append(name)

        return report

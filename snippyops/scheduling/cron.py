"""Crontab management for scheduled certificate renewal."""

import logging
from typing import Iterable, Optional

from ..utils.errors import CommandError, CronError, create_error_suggestions
from ..utils.files import FileManager
from ..utils.shell import CommandRunner

logger = logging.getLogger(__name__)

RENEWAL_MARKER = "ssl renew"
LEGACY_RENEWAL_MARKER = "renew-ssl.sh"


def format_schedule_description(schedule: str) -> str:
    """Describe a cron schedule in words where it is a simple daily job."""
    fields = schedule.split()
    if len(fields) == 5 and fields[2:] == ["*", "*", "*"] and fields[0].isdigit() and fields[1].isdigit():
        hour = int(fields[1])
        minute = int(fields[0])
        suffix = "AM" if hour < 12 else "PM"
        display_hour = hour % 12 or 12
        return f"daily at {display_hour}:{minute:02d} {suffix}"
    return schedule


class CronManager:
    """Reads and updates the invoking user's crontab."""

    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner()
        self.files = FileManager()

    def read_crontab(self) -> str:
        """Current crontab contents; no crontab yields an empty string."""
        result = self.runner.run(["crontab", "-l"], check=False)
        return result.stdout if result.ok else ""

    def has_job(self, markers: Iterable[str], crontab: Optional[str] = None) -> bool:
        text = self.read_crontab() if crontab is None else crontab
        return any(marker in line for line in text.splitlines() for marker in markers)

    def install_job(self, line: str, markers: Iterable[str]) -> bool:
        """
        Append a job unless a line containing any marker already exists.

        Args:
            line: Full crontab line
            markers: Substrings identifying an equivalent existing job

        Returns:
            bool: True if the crontab was changed

        Raises:
            CronError: If the crontab cannot be written
        """
        current = self.read_crontab()
        if self.has_job(markers, crontab=current):
            logger.info("Cron job already present")
            return False

        new_crontab = current
        if new_crontab and not new_crontab.endswith("\n"):
            new_crontab += "\n"
        new_crontab += line + "\n"

        try:
            self.runner.run(["crontab", "-"], input=new_crontab)
        except CommandError as e:
            raise CronError(
                "Failed to update crontab",
                details=e.details,
                suggestions=create_error_suggestions("crontab_failed"),
            )

        return True

    def install_renewal_job(
        self,
        command: str,
        schedule: str = "0 3 * * *",
        log_file: str = "/var/log/ssl-renewal.log",
    ) -> bool:
        """
        Register the daily renewal job and prepare its log file.

        Returns:
            bool: True if the job was added, False if it already existed
        """
        line = f"{schedule} {command} >> {log_file} 2>&1"
        installed = self.install_job(line, markers=[RENEWAL_MARKER, LEGACY_RENEWAL_MARKER])

        if self.runner.dry_run:
            self.runner.run(["touch", log_file])
        else:
            self.files.touch(log_file, mode=0o644)

        return installed

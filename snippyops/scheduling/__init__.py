"""Scheduled jobs for snippyops."""

from .cron import CronManager, format_schedule_description

__all__ = ["CronManager", "format_schedule_description"]

"""safefix cleanup command."""

from __future__ import annotations

from pathlib import Path

import click

from safefix.apply.backup import BackupManager
from safefix.core.config import get_backup_dir, load_config
from safefix.core.output import console


@click.command()
@click.option("--max-age-hours", type=float, default=None, help="Delete backups older than this (default from config)")
@click.option("--project", "-p", "project", default=".", help="Project root (default: current dir)")
def cleanup(max_age_hours: float | None, project: str):
    """Delete stale backups left behind by interrupted runs."""
    project_path = Path(project).resolve()
    config = load_config(project_path)
    if max_age_hours is None:
        max_age_hours = config.backup.max_age_hours

    manager = BackupManager(get_backup_dir(project_path, config))
    removed = manager.cleanup_old_backups(max_age_hours)

    if removed:
        console.print(f"\n  Removed {removed} backup file(s) older than {max_age_hours:g}h.\n")
    else:
        console.print(f"\n  No backups older than {max_age_hours:g}h.\n")

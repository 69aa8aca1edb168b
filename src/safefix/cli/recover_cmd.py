"""safefix recover command."""

from __future__ import annotations

from pathlib import Path

import click

from safefix.apply.backup import BackupManager
from safefix.core.config import get_backup_dir, load_config
from safefix.core.output import console, print_orphans


@click.command()
@click.argument("fix_id", required=False)
@click.option("--list", "list_all", is_flag=True, help="List orphaned backups")
@click.option("--project", "-p", "project", default=".", help="Project root (default: current dir)")
def recover(fix_id: str | None, list_all: bool, project: str):
    """Restore files from backups orphaned by an interrupted run.

    Pass the FIX_ID shown by `safefix recover --list`.
    """
    project_path = Path(project).resolve()
    config = load_config(project_path)
    manager = BackupManager(get_backup_dir(project_path, config))

    if list_all or not fix_id:
        print_orphans(manager.list_orphans())
        if not fix_id and not list_all:
            console.print("  Usage: safefix recover <FIX_ID>\n")
        return

    result = manager.restore_orphan(fix_id)
    if not result.rolled_back:
        console.print(f"\n  [red]Nothing to recover for {fix_id}:[/red] {result.reason}\n")
        raise SystemExit(1)

    console.print(f"\n  [green]Restored {result.files_rolled_back} file(s) from {fix_id}.[/green]")
    for err in result.errors:
        console.print(f"  [red]-> {err}[/red]")
    console.print()

"""safefix risk command."""

from __future__ import annotations

from pathlib import Path

import click

from safefix.apply.risk import RiskAssessor
from safefix.cli.fixfile import load_fixes
from safefix.core.config import load_config
from safefix.core.output import console, print_fix_preview


@click.command()
@click.argument("fix_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--project", "-p", "project", default=".", help="Project root (default: current dir)")
def risk(fix_file: Path, project: str):
    """Show the risk assessment of the fixes in FIX_FILE without applying them."""
    config = load_config(Path(project).resolve())
    assessor = RiskAssessor.from_config(config.apply)

    fixes = load_fixes(fix_file)
    if not fixes:
        console.print("\n  No fixes found.\n")
        return

    for fix in fixes:
        print_fix_preview(
            fix,
            assessor.assess_risk_level(fix),
            assessor.risk_score(fix),
            assessor.requires_confirmation(fix),
        )

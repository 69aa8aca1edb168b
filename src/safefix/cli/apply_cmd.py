"""safefix apply command."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from safefix.apply.audit import ApplyAuditLog
from safefix.apply.confirm import (
    AlwaysApprovePolicy,
    AlwaysDenyPolicy,
    AuditedPolicy,
    ConfirmationPolicy,
    InteractivePolicy,
    ThresholdPolicy,
)
from safefix.apply.engine import FixEngine
from safefix.cli.fixfile import load_fixes
from safefix.core.config import ensure_gitignore, load_config
from safefix.core.models import FixContext
from safefix.core.output import console, print_apply_result, print_fix_preview, print_stats


@click.command()
@click.argument("fix_files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--project", "-p", "project", default=".", help="Project root (default: current dir)")
@click.option("--yes", "-y", is_flag=True, help="Approve risky fixes without asking (decisions are audited)")
@click.option("--deny-risky", is_flag=True, help="Refuse every fix that needs confirmation")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON")
def apply(fix_files: tuple[Path, ...], project: str, yes: bool, deny_risky: bool, as_json: bool):
    """Apply fixes from one or more FIX_FILES.

    Each fix is applied all-or-nothing. Fixes flagged as risky are confirmed
    interactively unless --yes or --deny-risky is given.
    """
    if yes and deny_risky:
        raise click.UsageError("--yes and --deny-risky are mutually exclusive")

    project_path = Path(project).resolve()
    config = load_config(project_path)
    policy = _choose_policy(project_path, config.apply.auto_approve_above, yes, deny_risky, as_json)
    engine = FixEngine(project_path, config, policy=policy)
    ensure_gitignore(project_path)
    context = FixContext(project_root=project_path)

    results = []
    for fix_file in fix_files:
        for fix in load_fixes(fix_file):
            if not as_json:
                print_fix_preview(
                    fix,
                    engine.assess_risk_level(fix),
                    engine.risk.risk_score(fix),
                    engine.requires_confirmation(fix),
                )
            result = engine.apply_fix(fix, context)
            results.append(result)
            if not as_json:
                print_apply_result(result, label=fix.type)

    if as_json:
        click.echo(json.dumps(
            {"results": [r.to_dict() for r in results], "stats": engine.get_stats()},
            indent=2,
        ))
    else:
        print_stats(engine.get_stats())

    if not all(r.success for r in results):
        sys.exit(1)


def _choose_policy(
    project_path: Path,
    auto_approve_above: float,
    yes: bool,
    deny_risky: bool,
    as_json: bool,
) -> ConfirmationPolicy:
    audit_log = ApplyAuditLog(project_path)
    if deny_risky:
        return AuditedPolicy(AlwaysDenyPolicy(), audit_log)
    if yes:
        return AuditedPolicy(AlwaysApprovePolicy(), audit_log)
    if as_json or not sys.stdin.isatty():
        return AuditedPolicy(ThresholdPolicy(auto_approve_above), audit_log)
    return InteractivePolicy(console)

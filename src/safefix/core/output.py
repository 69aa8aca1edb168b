"""Rich terminal formatting for SafeFix output."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from safefix.core.models import ApplyResult, Fix, OrphanBackup, RiskLevel

console = Console()
error_console = Console(stderr=True)


RISK_COLORS = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "red",
}


def print_fix_preview(fix: Fix, risk_level: RiskLevel, score: float, needs_confirmation: bool) -> None:
    """Print a fix and its risk assessment."""
    color = RISK_COLORS[risk_level]
    conf_filled = round(min(max(fix.confidence, 0.0), 1.0) * 12)
    conf_bar = "█" * conf_filled + "░" * (12 - conf_filled)

    lines = []
    lines.append(f"  Confidence: [{color}]{conf_bar}[/{color}] {fix.confidence * 100:.0f}%")
    lines.append(f"  Risk:       [{color}]{risk_level.value}[/{color}] (score {score:.1f})")
    lines.append(f"  Complexity: {fix.complexity or 'medium'}")
    if needs_confirmation:
        lines.append("  [yellow]Requires confirmation before applying[/yellow]")
    lines.append("")

    if fix.explanation:
        lines.append(f"  {escape(fix.explanation)}")
        lines.append("")

    for change in fix.changes:
        location = f"{change.file}:{change.line}" if change.line else str(change.file)
        lines.append(f"  [dim]{escape(change.type):<8}[/dim] {escape(location)}")
        if change.type == "replace":
            lines.append(f"  [red]- {escape(change.old_code)}[/red]")
            lines.append(f"  [green]+ {escape(str(change.new_code))}[/green]")
        elif change.type == "delete":
            lines.append(f"  [red]- {escape(change.text)}[/red]")
        elif change.type == "insert":
            lines.append(f"  [green]+ {escape(change.text)}[/green]")

    console.print(Panel(
        "\n".join(lines),
        title=f"[bold]Fix Preview — {escape(fix.type)}[/bold]",
        border_style=color,
        padding=(0, 1),
    ))


def print_apply_result(result: ApplyResult, label: str = "") -> None:
    """Print a single apply result."""
    name = escape(label or result.fix_id)
    if result.success:
        console.print(f"  [green]✅ {name}[/green]  {result.message}")
        return

    console.print(f"  [red]❌ {name}[/red]  {escape(result.reason)}")
    if result.rolled_back:
        console.print("     [yellow]-> changes rolled back[/yellow]")
    if result.rollback and result.rollback.errors:
        for err in result.rollback.errors:
            console.print(f"     [red]-> rollback error: {escape(err)}[/red]")


def print_stats(stats: dict) -> None:
    """Print engine statistics after a run."""
    console.print()
    console.print(
        f"  Applied: {stats['total_applied']}  "
        f"[green]ok {stats['successful_fixes']}[/green]  "
        f"[red]failed {stats['failed_fixes']}[/red]  "
        f"[yellow]rolled back {stats['rolled_back_fixes']}[/yellow]  "
        f"({stats['success_rate']}% success)"
    )
    if stats["by_type"]:
        by_type = ", ".join(f"{k}: {v}" for k, v in sorted(stats["by_type"].items()))
        console.print(f"  [dim]By type: {by_type}[/dim]")
    console.print()


def print_orphans(orphans: list[OrphanBackup]) -> None:
    if not orphans:
        console.print("\n  No orphaned backups found.\n")
        return

    console.print("\n  [bold]Orphaned backups[/bold]\n")
    for orphan in orphans:
        console.print(f"  {orphan.fix_id}  [{orphan.created_at}]")
        for file in orphan.files:
            console.print(f"     {file}")
    console.print()

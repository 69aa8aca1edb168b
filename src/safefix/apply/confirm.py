"""Confirmation policies for fixes the risk assessor flags.

The engine only asks a policy when a fix requires confirmation. Front-ends
choose the policy: a terminal session prompts the user, automation can
approve above a confidence threshold, audit every decision, or refuse
everything risky.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from rich.console import Console
from rich.prompt import Confirm

from safefix.apply.audit import ApplyAuditLog
from safefix.core.models import Fix, RiskLevel


class ConfirmationPolicy(ABC):
    """Decides whether a risky fix may be applied."""

    name = "policy"
    interactive = False

    @abstractmethod
    def decide(self, fix: Fix, risk_level: RiskLevel) -> bool:
        ...

    def decline_reason(self) -> str:
        if self.interactive:
            return "User declined to apply fix"
        return f"Confirmation policy declined to apply fix ({self.name})"


class ThresholdPolicy(ConfirmationPolicy):
    """Approves fixes whose confidence is above a fixed threshold."""

    name = "threshold"

    def __init__(self, auto_approve_above: float = 0.8):
        self.auto_approve_above = auto_approve_above

    def decide(self, fix: Fix, risk_level: RiskLevel) -> bool:
        return fix.confidence > self.auto_approve_above


class AlwaysApprovePolicy(ConfirmationPolicy):
    name = "always-approve"

    def decide(self, fix: Fix, risk_level: RiskLevel) -> bool:
        return True


class AlwaysDenyPolicy(ConfirmationPolicy):
    name = "always-deny"

    def decide(self, fix: Fix, risk_level: RiskLevel) -> bool:
        return False


class AuditedPolicy(ConfirmationPolicy):
    """Wraps another policy and records each decision in the audit log."""

    def __init__(self, inner: ConfirmationPolicy, audit_log: ApplyAuditLog):
        self.inner = inner
        self.audit_log = audit_log
        self.name = f"audited:{inner.name}"
        self.interactive = inner.interactive

    def decide(self, fix: Fix, risk_level: RiskLevel) -> bool:
        approved = self.inner.decide(fix, risk_level)
        self.audit_log.record(
            fix_type=fix.type,
            confidence=fix.confidence,
            risk=risk_level.value,
            changes=len(fix.changes),
            policy=self.inner.name,
            decision="approved" if approved else "declined",
        )
        return approved


class InteractivePolicy(ConfirmationPolicy):
    """Asks the user at the terminal."""

    name = "interactive"
    interactive = True

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def decide(self, fix: Fix, risk_level: RiskLevel) -> bool:
        c = self.console
        c.print("\n  [yellow]High-risk fix requires confirmation:[/yellow]")
        c.print(f"  Type:       {fix.type}")
        c.print(f"  Confidence: {fix.confidence * 100:.1f}%")
        c.print(f"  Risk Level: {risk_level.value}")
        c.print(f"  Changes:    {len(fix.changes)}")
        for change in fix.changes:
            c.print(f"    [dim]{change.type}[/dim]  {change.file}")
        if fix.explanation:
            c.print(f"  Description: {fix.explanation}")
        return Confirm.ask("  Apply this fix?", default=False, console=c)

"""Fix Engine — applies fixes with backup, validation and rollback.

An apply attempt moves through these stages::

    PREFLIGHT -> CONFIRM (only when risky) -> BACKUP -> EXECUTE -> VALIDATE
        -> COMMIT | ROLLBACK

Anything that fails before BACKUP leaves the project untouched. Anything
that fails after BACKUP begins is rolled back, so on return every touched
file holds either its new content or its original content.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from pathlib import Path

from safefix.apply.backup import BackupManager
from safefix.apply.confirm import ConfirmationPolicy, ThresholdPolicy
from safefix.apply.executor import ChangeExecutor
from safefix.apply.locks import PathLocks
from safefix.apply.preflight import PreflightChecker
from safefix.apply.risk import RiskAssessor
from safefix.apply.rollback import RollbackCoordinator
from safefix.apply.stats import FixStats
from safefix.apply.validator import PythonSyntaxCheck, ValidationCheck, Validator
from safefix.core.config import SafeFixConfig, get_backup_dir, load_config
from safefix.core.errors import BackupError, CancelledError
from safefix.core.models import (
    ApplyResult,
    ExecutionResult,
    FailureKind,
    Fix,
    FixContext,
    PreflightResult,
    RiskLevel,
    RollbackResult,
    ValidationResult,
)

logger = logging.getLogger("safefix.apply")


class CancelToken:
    """Cooperative cancellation flag checked between pipeline stages."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledError("Fix application cancelled")


def new_fix_id() -> str:
    return f"fix_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class FixEngine:
    """Core engine that applies fixes to a project all-or-nothing."""

    def __init__(
        self,
        project_path: Path | None = None,
        config: SafeFixConfig | None = None,
        policy: ConfirmationPolicy | None = None,
        validators: list[ValidationCheck] | None = None,
    ):
        self.project_path = (project_path or Path.cwd()).resolve()
        self.config = config or load_config(self.project_path)

        apply_cfg = self.config.apply
        backup_dir = get_backup_dir(self.project_path, self.config)

        self.backups = BackupManager(backup_dir)
        self.preflight = PreflightChecker(backup_dir, min_free_bytes=apply_cfg.min_free_bytes)
        self.risk = RiskAssessor.from_config(apply_cfg)
        self.policy = policy or ThresholdPolicy(apply_cfg.auto_approve_above)
        self.executor = ChangeExecutor()
        self.rollbacks = RollbackCoordinator(self.backups)
        self.locks = PathLocks()
        self.stats = FixStats(
            history_size=self.config.stats.history_size,
            recent_count=self.config.stats.recent_count,
        )

        checks = list(validators or [])
        if apply_cfg.python_syntax_check and not any(isinstance(c, PythonSyntaxCheck) for c in checks):
            checks.append(PythonSyntaxCheck())
        self.validator = Validator(checks)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def apply_fix(
        self,
        fix: Fix,
        context: FixContext | None = None,
        *,
        fix_id: str | None = None,
        cancel: CancelToken | None = None,
    ) -> ApplyResult:
        """Apply ``fix`` and report the outcome. Never raises."""
        start = time.monotonic()
        fix_id = fix_id or new_fix_id()
        context = context or FixContext(project_root=self.project_path)
        logger.info("Starting safe fix application %s (type=%s)", fix_id, fix.type)

        try:
            _check_cancel(cancel)

            preflight = self.preflight.check(fix, context)
            if not preflight.passed:
                logger.info("Preflight failed for %s: %s", fix_id, preflight.reason)
                return self._failed(
                    fix_id, start, FailureKind.PREFLIGHT,
                    f"Preflight failed: {preflight.reason}",
                    details=preflight,
                )

            if self.risk.requires_confirmation(fix):
                level = self.risk.assess_risk_level(fix)
                logger.info("Fix %s requires confirmation (risk=%s)", fix_id, level.value)
                if not self.policy.decide(fix, level):
                    return self._failed(
                        fix_id, start, FailureKind.DECLINED,
                        self.policy.decline_reason(),
                        details=preflight,
                    )

            _check_cancel(cancel)
            paths = [context.resolve(change.file) for change in fix.changes]
        except CancelledError as e:
            return self._failed(fix_id, start, FailureKind.CANCELLED, str(e))
        except Exception as e:
            logger.error("Safe fix application error for %s", fix_id, exc_info=True)
            return self._failed(fix_id, start, FailureKind.UNEXPECTED, f"Unexpected error: {e}")

        with self.locks.hold(paths):
            return self._apply_locked(fix, context, fix_id, cancel, start)

    def requires_confirmation(self, fix: Fix) -> bool:
        return self.risk.requires_confirmation(fix)

    def assess_risk_level(self, fix: Fix) -> RiskLevel:
        return self.risk.assess_risk_level(fix)

    def rollback_fix(self, fix_id: str, context: FixContext | None = None) -> RollbackResult:
        """Restore the files of an in-flight fix. Safe to call repeatedly."""
        result = self.rollbacks.rollback(fix_id, context)
        if result.rolled_back:
            self.stats.record_rollback()
        return result

    def get_stats(self) -> dict:
        return self.stats.snapshot(active_backups=self.backups.active_count)

    def cleanup_old_backups(self, max_age_hours: float | None = None) -> int:
        if max_age_hours is None:
            max_age_hours = self.config.backup.max_age_hours
        return self.backups.cleanup_old_backups(max_age_hours)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _apply_locked(
        self,
        fix: Fix,
        context: FixContext,
        fix_id: str,
        cancel: CancelToken | None,
        start: float,
    ) -> ApplyResult:
        # Another fix may have committed to these files while we waited for the locks.
        drift = self.preflight.recheck_hashes(fix, context)
        if drift is not None:
            logger.info("Preflight failed for %s after locking: %s", fix_id, drift.reason)
            return self._failed(
                fix_id, start, FailureKind.PREFLIGHT,
                f"Preflight failed: {drift.reason}",
                details=PreflightResult(passed=False, checks=[drift], reason=drift.reason),
            )

        try:
            self.backups.create_backups(fix, context, fix_id)
            _check_cancel(cancel)

            execution = self.executor.execute_fix(fix, context, fix_id)
            if not execution.success:
                logger.error("Fix application failed for %s, rolling back: %s", fix_id, execution.error)
                rollback = self.rollback_fix(fix_id, context)
                return self._failed(
                    fix_id, start, FailureKind.APPLICATION,
                    f"Fix application failed: {execution.error}",
                    details=execution,
                    rollback=rollback,
                )

            _check_cancel(cancel)

            validation = self.validator.validate(fix, context, execution)
            if not validation.valid:
                logger.warning("Fix validation failed for %s, rolling back: %s", fix_id, validation.reason)
                rollback = self.rollback_fix(fix_id, context)
                return self._failed(
                    fix_id, start, FailureKind.VALIDATION,
                    f"Fix validation failed: {validation.reason}",
                    details=execution,
                    validation=validation,
                    rollback=rollback,
                )

            self.backups.cleanup_backups(fix_id)
        except BackupError as e:
            # Nothing was written to the project yet.
            logger.error("Backup failed for %s: %s", fix_id, e)
            return self._failed(fix_id, start, FailureKind.UNEXPECTED, f"Unexpected error: {e}")
        except CancelledError as e:
            logger.info("Fix %s cancelled after backup, rolling back", fix_id)
            rollback = self.rollback_fix(fix_id, context)
            return self._failed(fix_id, start, FailureKind.CANCELLED, str(e), rollback=rollback)
        except Exception as e:
            logger.error("Safe fix application error for %s", fix_id, exc_info=True)
            reason = f"Unexpected error: {e}"
            try:
                rollback = self.rollback_fix(fix_id, context)
            except Exception as rollback_error:
                logger.error("Rollback also failed for %s", fix_id, exc_info=True)
                rollback = RollbackResult(rolled_back=False, errors=[str(rollback_error)])
                reason = f"{reason}; rollback also failed: {rollback_error}"
            return self._failed(fix_id, start, FailureKind.UNEXPECTED, reason, rollback=rollback)

        duration_ms = _elapsed_ms(start)
        self.stats.record_success(fix, fix_id, duration_ms)
        logger.info("Fix %s applied in %.1f ms", fix_id, duration_ms)
        return ApplyResult(
            success=True,
            fix_id=fix_id,
            message="Fix applied successfully",
            details=execution,
            validation=validation,
            duration_ms=duration_ms,
        )

    def _failed(
        self,
        fix_id: str,
        start: float,
        kind: FailureKind,
        reason: str,
        details: PreflightResult | ExecutionResult | None = None,
        validation: ValidationResult | None = None,
        rollback: RollbackResult | None = None,
    ) -> ApplyResult:
        self.stats.record_failure()
        if rollback is not None and rollback.errors:
            logger.error("Rollback of %s left errors: %s", fix_id, "; ".join(rollback.errors))
        return ApplyResult(
            success=False,
            fix_id=fix_id,
            reason=reason,
            details=details,
            validation=validation,
            rolled_back=bool(rollback and rollback.rolled_back),
            failure=kind,
            rollback=rollback,
            duration_ms=_elapsed_ms(start),
        )


def _check_cancel(cancel: CancelToken | None) -> None:
    if cancel is not None:
        cancel.raise_if_cancelled()


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000

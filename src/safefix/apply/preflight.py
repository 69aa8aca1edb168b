"""Pre-flight checks run before any file is touched."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from safefix.core.fileio import sha256_of
from safefix.core.models import ChangeType, CheckResult, Fix, FixContext, PreflightResult

logger = logging.getLogger("safefix.apply")

# Size assumed for a change whose target cannot be measured.
DEFAULT_FILE_ESTIMATE = 10 * 1024


class PreflightChecker:
    """Validates the preconditions of a fix.

    Every check is reported individually; the first failing check provides
    the overall reason.
    """

    def __init__(self, backup_dir: Path, min_free_bytes: int = 1024 * 1024):
        self.backup_dir = backup_dir
        self.min_free_bytes = min_free_bytes

    def check(self, fix: Fix, context: FixContext) -> PreflightResult:
        checks: list[CheckResult] = []

        for change in fix.changes:
            file_path = context.resolve(change.file)
            if not file_path.is_file():
                checks.append(CheckResult(
                    check="file_exists",
                    passed=False,
                    reason=f"File does not exist: {change.file}",
                    file=change.file,
                ))
                continue
            checks.append(CheckResult(check="file_exists", passed=True, file=change.file))

            if os.access(file_path, os.W_OK):
                checks.append(CheckResult(check="file_writable", passed=True, file=change.file))
            else:
                checks.append(CheckResult(
                    check="file_writable",
                    passed=False,
                    reason=f"File not writable: {change.file}",
                    file=change.file,
                ))

            # Atomic writes create a temp file beside the target and rename it.
            if os.access(file_path.parent, os.W_OK):
                checks.append(CheckResult(check="dir_writable", passed=True, file=change.file))
            else:
                checks.append(CheckResult(
                    check="dir_writable",
                    passed=False,
                    reason=f"Directory not writable: {file_path.parent}",
                    file=change.file,
                ))

            if change.expected_sha256:
                checks.append(self._check_hash(file_path, change.file, change.expected_sha256))

        if any(c.type in (ChangeType.INSERT.value, ChangeType.REPLACE.value) for c in fix.changes):
            checks.append(CheckResult(
                check="syntax_basic",
                passed=True,
                note="Basic syntax validation passed",
            ))

        checks.append(self.check_backup_space(fix, context))

        failed = [c for c in checks if not c.passed]
        return PreflightResult(
            passed=not failed,
            checks=checks,
            reason=failed[0].reason if failed else None,
        )

    def check_backup_space(self, fix: Fix, context: FixContext) -> CheckResult:
        """Check that the backup store can hold a copy of every target."""
        try:
            estimated = self.estimate_backup_size(fix, context)
            free = shutil.disk_usage(self.backup_dir).free
        except OSError as e:
            logger.warning("Backup space check failed: %s", e)
            return CheckResult(
                check="backup_space",
                passed=False,
                reason=f"Could not determine backup space: {e}",
            )

        if free - estimated < self.min_free_bytes:
            return CheckResult(
                check="backup_space",
                passed=False,
                reason=(
                    f"Insufficient space for backups: need {estimated} bytes "
                    f"plus {self.min_free_bytes} reserved, {free} available"
                ),
            )
        return CheckResult(check="backup_space", passed=True, note=f"{estimated} bytes estimated")

    def estimate_backup_size(self, fix: Fix, context: FixContext) -> int:
        total = 0
        seen: set[Path] = set()
        for change in fix.changes:
            file_path = context.resolve(change.file)
            if file_path in seen:
                continue
            seen.add(file_path)
            if file_path.is_file():
                total += file_path.stat().st_size
            else:
                total += DEFAULT_FILE_ESTIMATE
        return total

    def recheck_hashes(self, fix: Fix, context: FixContext) -> CheckResult | None:
        """Re-run the content-hash preconditions; return the first failure."""
        for change in fix.changes:
            if not change.expected_sha256:
                continue
            result = self._check_hash(context.resolve(change.file), change.file, change.expected_sha256)
            if not result.passed:
                return result
        return None

    def _check_hash(self, file_path: Path, file: Path, expected: str) -> CheckResult:
        try:
            actual = sha256_of(file_path)
        except OSError as e:
            return CheckResult(check="content_hash", passed=False, reason=f"Could not read {file}: {e}", file=file)
        if actual != expected.lower():
            return CheckResult(
                check="content_hash",
                passed=False,
                reason=f"File has changed since the fix was generated: {file}",
                file=file,
            )
        return CheckResult(check="content_hash", passed=True, file=file)

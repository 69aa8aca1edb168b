"""Post-apply validation."""

from __future__ import annotations

import ast
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from safefix.core.fileio import read_text
from safefix.core.models import ExecutionResult, Fix, FixContext, ValidationResult

logger = logging.getLogger("safefix.apply")


class ValidationCheck(ABC):
    """One postcondition. ``run`` returns a failure reason or None."""

    name = "check"

    @abstractmethod
    def run(self, files: list[tuple[Path, Path]]) -> str | None:
        ...


class FileIntegrityCheck(ValidationCheck):
    """Every touched file must still exist."""

    name = "file_integrity"

    def run(self, files: list[tuple[Path, Path]]) -> str | None:
        for display, resolved in files:
            if not resolved.exists():
                return f"File no longer exists: {display}"
        return None


class PythonSyntaxCheck(ValidationCheck):
    """Touched ``.py`` files must still parse."""

    name = "python_syntax"

    def run(self, files: list[tuple[Path, Path]]) -> str | None:
        for display, resolved in files:
            if resolved.suffix != ".py":
                continue
            try:
                ast.parse(read_text(resolved), filename=str(resolved))
            except SyntaxError as e:
                return f"Syntax error in {display} line {e.lineno}: {e.msg}"
        return None


class Validator:
    """Runs the baseline integrity check plus any extra checks."""

    def __init__(self, checks: list[ValidationCheck] | None = None):
        self.checks: list[ValidationCheck] = [FileIntegrityCheck()]
        for check in checks or []:
            if not isinstance(check, FileIntegrityCheck):
                self.checks.append(check)

    def validate(self, fix: Fix, context: FixContext, execution: ExecutionResult) -> ValidationResult:
        files = []
        seen = set()
        for change in fix.changes:
            resolved = context.resolve(change.file)
            if resolved not in seen:
                seen.add(resolved)
                files.append((change.file, resolved))

        passed = []
        for check in self.checks:
            try:
                reason = check.run(files)
            except Exception as e:
                logger.warning("Validation check %s raised", check.name, exc_info=True)
                return ValidationResult(valid=False, reason=f"Validation error: {e}", checks=passed)
            if reason is not None:
                return ValidationResult(valid=False, reason=reason, checks=passed)
            passed.append(check.name)

        return ValidationResult(valid=True, checks=passed)

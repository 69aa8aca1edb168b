"""Change execution: applies a fix's changes to files, in order."""

from __future__ import annotations

import logging
from datetime import datetime

from safefix.core.errors import ChangeError
from safefix.core.fileio import read_text, write_text_atomic
from safefix.core.models import (
    Change,
    ChangeResult,
    ChangeType,
    ExecutionResult,
    Fix,
    FixContext,
)

logger = logging.getLogger("safefix.apply")


def apply_change_to_content(content: str, change: Change) -> str:
    """Return ``content`` with a single change applied.

    Raises ChangeError when the change cannot be applied.
    """
    try:
        change_type = ChangeType(change.type)
    except ValueError:
        raise ChangeError(f"Unknown change type: {change.type}") from None

    if change_type is ChangeType.INSERT:
        if change.line is None:
            raise ChangeError("Insert change requires a line number")
        lines = content.split("\n")
        index = change.line - 1
        if not 0 <= index <= len(lines):
            raise ChangeError(f"Invalid line number: {change.line}")
        if change.column < 0:
            raise ChangeError(f"Invalid column: {change.column}")
        if index == len(lines):
            lines.append("")
        target = lines[index]
        lines[index] = target[: change.column] + change.text + target[change.column :]
        return "\n".join(lines)

    if change_type is ChangeType.DELETE:
        if not change.text:
            raise ChangeError("Delete change requires text to remove")
        if change.text not in content:
            raise ChangeError(f"Text to delete not found in {change.file}")
        return content.replace(change.text, "", 1)

    # Replace
    if not change.old_code or change.new_code is None:
        raise ChangeError("Replace change requires oldCode and newCode")
    if change.old_code not in content:
        raise ChangeError(f"Code to replace not found in {change.file}")
    return content.replace(change.old_code, change.new_code, 1)


class ChangeExecutor:
    """Applies changes one by one, stopping at the first failure.

    The executor never rolls back; restoring files is the orchestrator's job.
    """

    def execute_fix(self, fix: Fix, context: FixContext, fix_id: str) -> ExecutionResult:
        results: list[ChangeResult] = []

        for change in fix.changes:
            result = self.apply_change(change, context)
            results.append(result)

            if not result.success:
                logger.debug("Change %d of %s failed: %s", len(results), fix_id, result.error)
                return ExecutionResult(
                    success=False,
                    error=result.error,
                    partial_results=results,
                )

        return ExecutionResult(success=True, results=results, applied_at=datetime.now())

    def apply_change(self, change: Change, context: FixContext) -> ChangeResult:
        file_path = context.resolve(change.file)
        try:
            content = read_text(file_path)
            new_content = apply_change_to_content(content, change)
            write_text_atomic(file_path, new_content)
        except (ChangeError, OSError) as e:
            return ChangeResult(success=False, change=change, file=change.file, error=str(e))

        return ChangeResult(success=True, change=change, file=change.file)

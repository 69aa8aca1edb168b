"""Rollback of a fix from its backups."""

from __future__ import annotations

import logging

from safefix.apply.backup import BackupManager
from safefix.core.fileio import write_text_atomic
from safefix.core.models import FixContext, RollbackResult

logger = logging.getLogger("safefix.apply")


class RollbackCoordinator:
    """Restores every backed-up file of a fix.

    Restoring continues past per-file errors; the registry entry for the fix
    is cleared in all cases, which makes a second rollback a no-op.
    """

    def __init__(self, backups: BackupManager):
        self.backups = backups

    def rollback(self, fix_id: str, context: FixContext | None = None) -> RollbackResult:
        entries = self.backups.take(fix_id)
        if not entries:
            logger.warning("No backups found for rollback of %s", fix_id)
            if entries is not None:
                self.backups.remove_manifest(fix_id)
            return RollbackResult(rolled_back=False, reason="No backups available")

        restored = 0
        errors: list[str] = []

        for backup in entries:
            try:
                write_text_atomic(backup.original_path, backup.content)
                backup.backup_path.unlink(missing_ok=True)
                restored += 1
                logger.info("File rolled back for %s: %s", fix_id, backup.original_path.name)
            except OSError as e:
                errors.append(f"{backup.original_path}: {e}")
                logger.error("Rollback failed for %s (%s): %s", backup.original_path, fix_id, e)

        if not errors:
            self.backups.remove_manifest(fix_id)

        return RollbackResult(rolled_back=True, files_rolled_back=restored, errors=errors)

"""Backup management for in-flight fixes.

Each apply attempt snapshots every existing file it will touch before any
change runs. Artifacts live in the backup store as ``<fix_id>_<basename>``
next to a ``<fix_id>.manifest.json`` that maps them back to their original
paths, so a backup orphaned by a crashed process can still be recovered by
hand or through ``safefix recover``.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from datetime import datetime
from pathlib import Path

from safefix.core.errors import BackupError
from safefix.core.fileio import read_text, write_text_atomic
from safefix.core.models import Backup, Fix, FixContext, OrphanBackup, RollbackResult

logger = logging.getLogger("safefix.backup")

MANIFEST_SUFFIX = ".manifest.json"


class BackupManager:
    """Snapshots files per fix id and restores or discards them.

    The registry maps fix ids to their backups and is only populated while an
    apply attempt is between snapshot and commit/rollback.
    """

    def __init__(self, backup_dir: Path):
        self.backup_dir = backup_dir
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        self._registry: dict[str, list[Backup]] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._registry)

    def has_backups(self, fix_id: str) -> bool:
        with self._lock:
            return fix_id in self._registry

    def get_backups(self, fix_id: str) -> list[Backup]:
        with self._lock:
            return list(self._registry.get(fix_id, []))

    def in_flight(self) -> set[str]:
        with self._lock:
            return set(self._registry)

    def take(self, fix_id: str) -> list[Backup] | None:
        """Remove and return the registry entry for ``fix_id``."""
        with self._lock:
            return self._registry.pop(fix_id, None)

    # ------------------------------------------------------------------
    # Create / discard
    # ------------------------------------------------------------------

    def create_backups(self, fix: Fix, context: FixContext, fix_id: str) -> list[Backup]:
        """Snapshot every existing file touched by ``fix``."""
        with self._lock:
            if fix_id in self._registry:
                raise BackupError(f"Fix {fix_id} is already being applied")
            self._registry[fix_id] = []

        backups: list[Backup] = []
        seen: set[Path] = set()
        used_names: set[str] = set()
        try:
            for change in fix.changes:
                file_path = context.resolve(change.file)
                if file_path in seen or not file_path.exists():
                    continue
                seen.add(file_path)

                backup_path = self._backup_path(fix_id, file_path.name, used_names)
                content = read_text(file_path)
                write_text_atomic(backup_path, content)

                backups.append(Backup(
                    fix_id=fix_id,
                    original_path=file_path,
                    backup_path=backup_path,
                    content=content,
                ))
                logger.info("Backup created for %s: %s", fix_id, change.file)

            self._write_manifest(fix_id, backups)
        except OSError as e:
            for backup in backups:
                _unlink_quietly(backup.backup_path)
            _unlink_quietly(self.manifest_path(fix_id))
            with self._lock:
                self._registry.pop(fix_id, None)
            raise BackupError(f"Could not back up files for {fix_id}: {e}") from e

        with self._lock:
            self._registry[fix_id] = backups
        return backups

    def cleanup_backups(self, fix_id: str) -> None:
        """Discard the backups of a committed fix."""
        backups = self.take(fix_id)
        if backups is None:
            return

        for backup in backups:
            try:
                backup.backup_path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Failed to cleanup backup %s: %s", backup.backup_path, e)
        self.remove_manifest(fix_id)

    def cleanup_old_backups(self, max_age_hours: float = 24) -> int:
        """Delete backup artifacts older than ``max_age_hours``.

        Works on the store directory rather than the registry, so it also
        reclaims backups left behind by a process that died mid-apply.
        """
        if not self.backup_dir.exists():
            return 0

        max_age = max_age_hours * 3600
        now = time.time()
        active = self.in_flight()
        removed = 0

        for artifact in self.backup_dir.iterdir():
            if not artifact.is_file():
                continue
            if any(artifact.name.startswith(f"{fix_id}_") or artifact.name == f"{fix_id}{MANIFEST_SUFFIX}"
                   for fix_id in active):
                continue
            try:
                if now - artifact.stat().st_mtime > max_age:
                    artifact.unlink()
                    removed += 1
                    logger.info("Cleaned up old backup %s", artifact.name)
            except OSError as e:
                logger.warning("Backup cleanup failed for %s: %s", artifact.name, e)

        return removed

    # ------------------------------------------------------------------
    # Manifests and orphan recovery
    # ------------------------------------------------------------------

    def manifest_path(self, fix_id: str) -> Path:
        return self.backup_dir / f"{fix_id}{MANIFEST_SUFFIX}"

    def remove_manifest(self, fix_id: str) -> None:
        try:
            self.manifest_path(fix_id).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to remove manifest for %s: %s", fix_id, e)

    def list_orphans(self) -> list[OrphanBackup]:
        """List backup sets on disk that no apply attempt here owns."""
        orphans = []
        active = self.in_flight()
        for manifest in sorted(self.backup_dir.glob(f"*{MANIFEST_SUFFIX}")):
            fix_id = manifest.name[: -len(MANIFEST_SUFFIX)]
            if fix_id in active:
                continue
            try:
                data = json.loads(manifest.read_text())
            except (OSError, ValueError) as e:
                logger.warning("Unreadable manifest %s: %s", manifest.name, e)
                continue
            orphans.append(OrphanBackup(
                fix_id=fix_id,
                manifest=manifest,
                files=[Path(entry["original_path"]) for entry in data.get("backups", [])],
                created_at=data.get("created_at", ""),
            ))
        return orphans

    def restore_orphan(self, fix_id: str) -> RollbackResult:
        """Restore files from an on-disk manifest and delete its artifacts."""
        if fix_id in self.in_flight():
            return RollbackResult(rolled_back=False, reason=f"Fix {fix_id} is still in flight")

        manifest = self.manifest_path(fix_id)
        if not manifest.exists():
            return RollbackResult(rolled_back=False, reason="No backups available")

        try:
            data = json.loads(manifest.read_text())
        except (OSError, ValueError) as e:
            return RollbackResult(rolled_back=False, reason=f"Unreadable manifest: {e}")

        restored = 0
        errors = []
        for entry in data.get("backups", []):
            original = Path(entry["original_path"])
            backup_path = Path(entry["backup_path"])
            try:
                write_text_atomic(original, read_text(backup_path))
                backup_path.unlink()
                restored += 1
                logger.info("Recovered %s from %s", original, backup_path.name)
            except OSError as e:
                errors.append(f"{original}: {e}")
                logger.error("Recovery failed for %s: %s", original, e)

        if not errors:
            self.remove_manifest(fix_id)
        return RollbackResult(rolled_back=True, files_rolled_back=restored, errors=errors)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _backup_path(self, fix_id: str, name: str, used_names: set[str]) -> Path:
        candidate = f"{fix_id}_{name}"
        counter = 1
        while candidate in used_names:
            candidate = f"{fix_id}_{name}.{counter}"
            counter += 1
        used_names.add(candidate)
        return self.backup_dir / candidate

    def _write_manifest(self, fix_id: str, backups: list[Backup]) -> None:
        manifest = {
            "fix_id": fix_id,
            "created_at": datetime.now().isoformat(),
            "backups": [
                {
                    "original_path": str(b.original_path),
                    "backup_path": str(b.backup_path),
                }
                for b in backups
            ],
        }
        write_text_atomic(self.manifest_path(fix_id), json.dumps(manifest, indent=2))


def _unlink_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug("Could not remove %s: %s", path, e)

"""Tests for backup creation, cleanup and orphan recovery."""

from __future__ import annotations

import json
import os
import time
from pathlib import Path

import pytest

from safefix.apply.backup import BackupManager
from safefix.core.errors import BackupError
from safefix.core.models import Change, Fix, FixContext


@pytest.fixture
def project(tmp_path: Path) -> Path:
    (tmp_path / "src").mkdir()
    (tmp_path / "lib").mkdir()
    return tmp_path


@pytest.fixture
def manager(project: Path) -> BackupManager:
    return BackupManager(project / ".safefix" / "backups")


@pytest.fixture
def context(project: Path) -> FixContext:
    return FixContext(project_root=project)


def _fix(*files: str) -> Fix:
    return Fix(
        type="t",
        confidence=0.9,
        changes=[Change(file=Path(f), type="replace", old_code="a", new_code="b") for f in files],
    )


class TestCreateBackups:
    def test_one_backup_per_existing_file(self, manager: BackupManager, context: FixContext, project: Path):
        (project / "src" / "a.py").write_text("a = 1\n")
        (project / "src" / "b.py").write_text("b = 2\n")

        backups = manager.create_backups(_fix("src/a.py", "src/b.py"), context, "fix_1")

        assert len(backups) == 2
        assert manager.has_backups("fix_1")
        assert manager.active_count == 1
        assert {b.backup_path.name for b in backups} == {"fix_1_a.py", "fix_1_b.py"}
        assert backups[0].content == "a = 1\n"
        assert backups[0].backup_path.read_text() == "a = 1\n"

    def test_skips_missing_files(self, manager: BackupManager, context: FixContext, project: Path):
        (project / "src" / "a.py").write_text("a")

        backups = manager.create_backups(_fix("src/a.py", "src/missing.py"), context, "fix_2")

        assert [b.original_path.name for b in backups] == ["a.py"]

    def test_same_file_backed_up_once(self, manager: BackupManager, context: FixContext, project: Path):
        (project / "src" / "a.py").write_text("a")

        backups = manager.create_backups(_fix("src/a.py", "src/a.py"), context, "fix_3")

        assert len(backups) == 1

    def test_basename_collision_gets_suffix(self, manager: BackupManager, context: FixContext, project: Path):
        (project / "src" / "util.js").write_text("one")
        (project / "lib" / "util.js").write_text("two")

        backups = manager.create_backups(_fix("src/util.js", "lib/util.js"), context, "fix_4")

        names = [b.backup_path.name for b in backups]
        assert names == ["fix_4_util.js", "fix_4_util.js.1"]
        assert backups[1].backup_path.read_text() == "two"

    def test_writes_manifest(self, manager: BackupManager, context: FixContext, project: Path):
        (project / "src" / "a.py").write_text("a")
        manager.create_backups(_fix("src/a.py"), context, "fix_5")

        manifest = json.loads(manager.manifest_path("fix_5").read_text())
        assert manifest["fix_id"] == "fix_5"
        assert manifest["backups"][0]["original_path"] == str((project / "src" / "a.py").resolve())

    def test_rejects_in_flight_fix_id(self, manager: BackupManager, context: FixContext, project: Path):
        (project / "src" / "a.py").write_text("a")
        manager.create_backups(_fix("src/a.py"), context, "fix_6")

        with pytest.raises(BackupError, match="already being applied"):
            manager.create_backups(_fix("src/a.py"), context, "fix_6")
        # The original attempt keeps its backups.
        assert len(manager.get_backups("fix_6")) == 1

    def test_io_error_cleans_up(
        self, manager: BackupManager, context: FixContext, project: Path, monkeypatch
    ):
        (project / "src" / "a.py").write_text("a")
        (project / "src" / "b.py").write_text("b")

        import safefix.apply.backup as backup_module

        real_read = backup_module.read_text

        def flaky_read(path):
            if path.name == "b.py":
                raise PermissionError("denied")
            return real_read(path)

        monkeypatch.setattr(backup_module, "read_text", flaky_read)

        with pytest.raises(BackupError):
            manager.create_backups(_fix("src/a.py", "src/b.py"), context, "fix_7")

        assert not manager.has_backups("fix_7")
        assert list(manager.backup_dir.iterdir()) == []


class TestCleanupBackups:
    def test_removes_artifacts_and_entry(self, manager: BackupManager, context: FixContext, project: Path):
        (project / "src" / "a.py").write_text("a")
        manager.create_backups(_fix("src/a.py"), context, "fix_c")

        manager.cleanup_backups("fix_c")

        assert not manager.has_backups("fix_c")
        assert list(manager.backup_dir.iterdir()) == []

    def test_unknown_fix_id_is_noop(self, manager: BackupManager):
        manager.cleanup_backups("fix_unknown")
        assert manager.active_count == 0


class TestCleanupOldBackups:
    def test_deletes_only_old_artifacts(self, manager: BackupManager):
        old = manager.backup_dir / "fix_old_a.py"
        new = manager.backup_dir / "fix_new_a.py"
        old.write_text("old")
        new.write_text("new")
        two_days_ago = time.time() - 48 * 3600
        os.utime(old, (two_days_ago, two_days_ago))

        removed = manager.cleanup_old_backups(24)

        assert removed == 1
        assert not old.exists()
        assert new.exists()

    def test_skips_in_flight_backups(self, manager: BackupManager, context: FixContext, project: Path):
        (project / "src" / "a.py").write_text("a")
        backups = manager.create_backups(_fix("src/a.py"), context, "fix_live")
        long_ago = time.time() - 100 * 3600
        os.utime(backups[0].backup_path, (long_ago, long_ago))
        os.utime(manager.manifest_path("fix_live"), (long_ago, long_ago))

        assert manager.cleanup_old_backups(1) == 0
        assert backups[0].backup_path.exists()

    def test_missing_store(self, tmp_path: Path):
        manager = BackupManager(tmp_path / "store")
        (tmp_path / "store").rmdir()
        assert manager.cleanup_old_backups() == 0


class TestOrphans:
    def test_orphans_visible_to_new_manager(self, manager: BackupManager, context: FixContext, project: Path):
        target = project / "src" / "a.py"
        target.write_text("original")
        manager.create_backups(_fix("src/a.py"), context, "fix_crash")
        target.write_text("half-written")

        # A fresh process sees only what is on disk.
        survivor = BackupManager(manager.backup_dir)
        orphans = survivor.list_orphans()

        assert [o.fix_id for o in orphans] == ["fix_crash"]
        assert orphans[0].files == [target.resolve()]

        result = survivor.restore_orphan("fix_crash")

        assert result.rolled_back is True
        assert result.files_rolled_back == 1
        assert target.read_text() == "original"
        assert list(manager.backup_dir.iterdir()) == []

    def test_in_flight_not_listed(self, manager: BackupManager, context: FixContext, project: Path):
        (project / "src" / "a.py").write_text("a")
        manager.create_backups(_fix("src/a.py"), context, "fix_live")

        assert manager.list_orphans() == []
        assert manager.restore_orphan("fix_live").rolled_back is False

    def test_restore_unknown(self, manager: BackupManager):
        result = manager.restore_orphan("fix_none")
        assert result.rolled_back is False
        assert result.reason == "No backups available"

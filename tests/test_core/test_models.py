"""Tests for the shared data models."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from safefix.core.models import (
    ApplyResult,
    Change,
    ExecutionResult,
    FailureKind,
    Fix,
    FixContext,
    RollbackResult,
)


class TestFixFromDict:
    def test_camel_case_generator_output(self):
        fix = Fix.from_dict({
            "type": "undefined-variable",
            "confidence": 0.85,
            "explanation": "Import the missing helper",
            "metadata": {"complexity": "simple", "template": "import-missing"},
            "changes": [
                {"file": "src/a.js", "type": "insert", "line": 1, "column": 0, "text": "import x;\n"},
                {"file": "src/b.js", "type": "replace", "oldCode": "foo", "newCode": "bar"},
                {"file": "src/c.js", "type": "delete", "text": "debugger;"},
            ],
        })

        assert fix.type == "undefined-variable"
        assert fix.confidence == 0.85
        assert fix.complexity == "simple"
        assert fix.metadata.extra == {"template": "import-missing"}
        assert [c.type for c in fix.changes] == ["insert", "replace", "delete"]
        assert fix.changes[0].line == 1
        assert fix.changes[1].old_code == "foo"
        assert fix.changes[1].new_code == "bar"
        assert fix.changes[2].file == Path("src/c.js")

    def test_snake_case_keys(self):
        change = Change.from_dict({
            "file": "a.py", "type": "replace", "old_code": "x", "new_code": "y", "expected_sha256": "abc",
        })
        assert change.old_code == "x"
        assert change.new_code == "y"
        assert change.expected_sha256 == "abc"

    def test_missing_new_code_stays_none(self):
        change = Change.from_dict({"file": "a.py", "type": "replace", "oldCode": "x"})
        assert change.new_code is None

    @pytest.mark.parametrize("confidence", [float("nan"), float("inf"), -0.1, 1.5])
    def test_rejects_confidence_outside_unit_range(self, confidence: float):
        with pytest.raises(ValueError, match="confidence must be between 0 and 1"):
            Fix.from_dict({"confidence": confidence})

    def test_defaults(self):
        fix = Fix.from_dict({"confidence": 1})
        assert fix.type == "unknown"
        assert fix.changes == []
        assert fix.complexity is None


class TestFixContext:
    def test_absolute_path_ignores_root(self, tmp_path: Path):
        target = tmp_path / "abs.txt"
        assert FixContext(project_root=Path("/elsewhere")).resolve(target) == target.resolve()

    def test_absolute_symlink_resolves_to_target(self, tmp_path: Path):
        real = tmp_path / "real.txt"
        real.write_text("x")
        link = tmp_path / "link.txt"
        link.symlink_to(real)
        assert FixContext(project_root=tmp_path).resolve(link) == real.resolve()

    def test_relative_to_project_root(self, tmp_path: Path):
        assert FixContext(project_root=tmp_path).resolve("src/a.js") == (tmp_path / "src" / "a.js").resolve()

    def test_falls_back_to_cwd(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert FixContext().resolve("a.js") == (tmp_path / "a.js").resolve()

    def test_explicit_cwd(self, tmp_path: Path):
        assert FixContext(cwd=tmp_path).resolve("a.js") == (tmp_path / "a.js").resolve()


class TestApplyResult:
    def test_to_dict_is_json_serializable(self):
        result = ApplyResult(
            success=False,
            fix_id="fix_1",
            reason="Fix application failed: boom",
            details=ExecutionResult(success=False, error="boom"),
            rolled_back=True,
            failure=FailureKind.APPLICATION,
            rollback=RollbackResult(rolled_back=True, files_rolled_back=1),
        )

        data = json.loads(json.dumps(result.to_dict()))

        assert data["failure"] == "application"
        assert data["rolled_back"] is True
        assert data["rollback"]["files_rolled_back"] == 1
        assert data["details"]["error"] == "boom"

    def test_summary(self):
        assert ApplyResult(success=True, fix_id="f", message="ok").summary == "ok"
        assert ApplyResult(success=False, fix_id="f", reason="bad").summary == "bad"

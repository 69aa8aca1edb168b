"""Shared data models used across SafeFix modules."""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any


class ChangeType(enum.Enum):
    INSERT = "insert"
    DELETE = "delete"
    REPLACE = "replace"


class Complexity(enum.Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class RiskLevel(enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class FailureKind(enum.Enum):
    PREFLIGHT = "preflight"
    DECLINED = "declined"
    APPLICATION = "application"
    VALIDATION = "validation"
    CANCELLED = "cancelled"
    UNEXPECTED = "unexpected"


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return default


@dataclass
class Change:
    """One edit instruction against one file."""

    file: Path
    type: str
    line: int | None = None
    column: int = 0
    text: str = ""
    old_code: str = ""
    new_code: str | None = None
    expected_sha256: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> Change:
        line = data.get("line")
        return cls(
            file=Path(data["file"]),
            type=str(data.get("type", "")),
            line=int(line) if line is not None else None,
            column=int(data.get("column", 0) or 0),
            text=data.get("text", "") or "",
            old_code=_pick(data, "old_code", "oldCode", default="") or "",
            new_code=_pick(data, "new_code", "newCode"),
            expected_sha256=_pick(data, "expected_sha256", "expectedSha256", default="") or "",
        )


@dataclass
class FixMetadata:
    complexity: str | None = None
    extra: dict = field(default_factory=dict)


@dataclass
class Fix:
    """A proposed change set produced by a fix generator."""

    type: str
    confidence: float
    changes: list[Change] = field(default_factory=list)
    metadata: FixMetadata = field(default_factory=FixMetadata)
    explanation: str = ""

    @property
    def complexity(self) -> str | None:
        return self.metadata.complexity

    @classmethod
    def from_dict(cls, data: dict) -> Fix:
        """Build a Fix from the JSON shape emitted by fix generators."""
        meta = dict(data.get("metadata") or {})
        complexity = meta.pop("complexity", None)
        confidence = float(data.get("confidence", 0.0))
        if not 0.0 <= confidence <= 1.0:
            raise ValueError(f"confidence must be between 0 and 1, got {confidence}")
        return cls(
            type=str(data.get("type", "unknown")),
            confidence=confidence,
            changes=[Change.from_dict(c) for c in data.get("changes") or []],
            metadata=FixMetadata(complexity=complexity, extra=meta),
            explanation=data.get("explanation", "") or "",
        )


@dataclass
class FixContext:
    """Where relative change paths are resolved from."""

    project_root: Path | None = None
    cwd: Path | None = None

    def resolve(self, file: Path | str) -> Path:
        path = Path(file)
        if not path.is_absolute():
            path = Path(self.project_root or self.cwd or Path.cwd()) / path
        return path.resolve()


@dataclass
class Backup:
    """Point-in-time capture of one file, owned by one apply attempt."""

    fix_id: str
    original_path: Path
    backup_path: Path
    content: str
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class OrphanBackup:
    """A backup set found on disk with no in-flight apply attempt."""

    fix_id: str
    manifest: Path
    files: list[Path]
    created_at: str


@dataclass
class CheckResult:
    check: str
    passed: bool
    reason: str | None = None
    file: Path | None = None
    note: str = ""


@dataclass
class PreflightResult:
    passed: bool
    checks: list[CheckResult] = field(default_factory=list)
    reason: str | None = None


@dataclass
class ChangeResult:
    success: bool
    change: Change
    file: Path | None = None
    error: str | None = None


@dataclass
class ExecutionResult:
    success: bool
    results: list[ChangeResult] = field(default_factory=list)
    error: str | None = None
    partial_results: list[ChangeResult] = field(default_factory=list)
    applied_at: datetime | None = None


@dataclass
class ValidationResult:
    valid: bool
    reason: str | None = None
    checks: list[str] = field(default_factory=list)


@dataclass
class RollbackResult:
    rolled_back: bool
    files_rolled_back: int = 0
    errors: list[str] = field(default_factory=list)
    reason: str | None = None


@dataclass
class ApplyResult:
    """The single externally observed outcome of one apply attempt."""

    success: bool
    fix_id: str
    message: str = ""
    reason: str = ""
    details: PreflightResult | ExecutionResult | None = None
    validation: ValidationResult | None = None
    rolled_back: bool = False
    failure: FailureKind | None = None
    rollback: RollbackResult | None = None
    duration_ms: float = 0.0

    @property
    def summary(self) -> str:
        return self.message if self.success else self.reason

    def to_dict(self) -> dict:
        data = asdict(self)
        data["failure"] = self.failure.value if self.failure else None
        return _jsonable(data)


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value

"""Configuration management for SafeFix (safefix.toml parsing + defaults)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ImportError:
    try:
        import tomli as tomllib  # type: ignore[no-redef]
    except ImportError:
        tomllib = None  # type: ignore[assignment]


DEFAULT_CRITICAL_FILES = [
    "package.json",
    "webpack.config.js",
    "tsconfig.json",
    "pyproject.toml",
    "setup.py",
    "setup.cfg",
    "requirements.txt",
]


@dataclass
class ApplyConfig:
    confidence_threshold: float = 0.7
    max_changes: int = 3
    auto_approve_above: float = 0.8
    critical_files: list[str] = field(default_factory=lambda: list(DEFAULT_CRITICAL_FILES))
    min_free_bytes: int = 1024 * 1024
    python_syntax_check: bool = True


@dataclass
class BackupConfig:
    dir: str = ".safefix/backups"
    max_age_hours: float = 24


@dataclass
class StatsConfig:
    history_size: int = 100
    recent_count: int = 5


@dataclass
class SafeFixConfig:
    """Complete SafeFix configuration."""

    apply: ApplyConfig = field(default_factory=ApplyConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)
    stats: StatsConfig = field(default_factory=StatsConfig)


def load_config(project_path: Path | None = None) -> SafeFixConfig:
    """Load configuration from safefix.toml if present, otherwise return defaults."""
    config = SafeFixConfig()

    if project_path is None:
        project_path = Path.cwd()

    config_file = project_path / "safefix.toml"
    if not config_file.exists():
        return config

    if tomllib is None:
        return config

    with open(config_file, "rb") as f:
        data = tomllib.load(f)

    if "apply" in data:
        a = data["apply"]
        for attr in (
            "confidence_threshold",
            "max_changes",
            "auto_approve_above",
            "critical_files",
            "min_free_bytes",
            "python_syntax_check",
        ):
            if attr in a:
                setattr(config.apply, attr, a[attr])

    if "backup" in data:
        b = data["backup"]
        if "dir" in b:
            config.backup.dir = b["dir"]
        if "max_age_hours" in b:
            config.backup.max_age_hours = b["max_age_hours"]

    if "stats" in data:
        s = data["stats"]
        for attr in ("history_size", "recent_count"):
            if attr in s:
                setattr(config.stats, attr, s[attr])

    return config


def get_safefix_dir(project_path: Path | None = None) -> Path:
    """Get or create the .safefix directory."""
    if project_path is None:
        project_path = Path.cwd()
    safefix_dir = project_path / ".safefix"
    safefix_dir.mkdir(exist_ok=True)
    return safefix_dir


def get_backup_dir(project_path: Path, config: SafeFixConfig) -> Path:
    """Resolve the backup store, creating it if needed."""
    backup_dir = Path(config.backup.dir)
    if not backup_dir.is_absolute():
        backup_dir = project_path / backup_dir
    backup_dir.mkdir(parents=True, exist_ok=True)
    return backup_dir


def ensure_gitignore(project_path: Path | None = None) -> None:
    """Add .safefix/ to .gitignore if not already present."""
    if project_path is None:
        project_path = Path.cwd()
    gitignore = project_path / ".gitignore"
    entry = ".safefix/"

    if gitignore.exists():
        content = gitignore.read_text()
        if entry in content:
            return
        if not content.endswith("\n"):
            content += "\n"
        content += f"{entry}\n"
        gitignore.write_text(content)
    else:
        gitignore.write_text(f"{entry}\n")

"""Append-only audit log of confirmation decisions.

Every decision taken by an audited confirmation policy is recorded so
operators can review which risky fixes were applied without a human.

Log location: ``.safefix/apply_audit.log``

Format (pipe-delimited, one line per decision)::

    timestamp | fix_type | confidence | risk | changes | policy | decision
"""

from __future__ import annotations

import fcntl
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import TextIO

from safefix.core.config import get_safefix_dir

_LOG_FILENAME = "apply_audit.log"

_HEADER = (
    "# SafeFix Apply Audit Log\n"
    "# Format: timestamp | fix_type | confidence | risk | changes | policy | decision\n"
    "#\n"
)

_FIELDS = ("timestamp", "fix_type", "confidence", "risk", "changes", "policy", "decision")


class ApplyAuditLog:
    """Thread- and process-safe append-only log of confirmation decisions."""

    def __init__(self, project_path: Path | None = None) -> None:
        self._path = get_safefix_dir(project_path) / _LOG_FILENAME
        self._lock = threading.Lock()
        self._ensure_header()

    @property
    def path(self) -> Path:
        return self._path

    def record(
        self,
        *,
        fix_type: str,
        confidence: float,
        risk: str,
        changes: int,
        policy: str,
        decision: str,
    ) -> None:
        """Append one decision to the log."""
        ts = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        line = " | ".join(
            [
                ts,
                _sanitise(fix_type),
                f"{confidence:.2f}",
                _sanitise(risk),
                str(changes),
                _sanitise(policy),
                _sanitise(decision),
            ]
        )
        self._append(line + "\n")

    def read_entries(self, last_n: int = 50) -> list[dict[str, str]]:
        """Parse the last *n* entries into dicts keyed by field name."""
        with self._lock:
            if not self._path.exists():
                return []
            text = self._path.read_text(encoding="utf-8")

        lines = [ln for ln in text.splitlines() if ln.strip() and not ln.startswith("#")]
        entries = []
        for ln in lines[-last_n:]:
            parts = [p.strip() for p in ln.split("|")]
            if len(parts) < len(_FIELDS):
                continue
            entries.append(dict(zip(_FIELDS, parts)))
        return entries

    def _ensure_header(self) -> None:
        if not self._path.exists():
            self._path.write_text(_HEADER, encoding="utf-8")

    def _append(self, text: str) -> None:
        with self._lock:
            fd: TextIO | None = None
            try:
                fd = open(self._path, "a", encoding="utf-8")
                # Advisory lock, best-effort.
                try:
                    fcntl.flock(fd.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                except OSError:
                    pass
                fd.write(text)
                fd.flush()
            finally:
                if fd is not None:
                    try:
                        fcntl.flock(fd.fileno(), fcntl.LOCK_UN)
                    except OSError:
                        pass
                    fd.close()


def _sanitise(value: str) -> str:
    """Replace pipes and newlines so they don't break the log format."""
    return value.replace("|", "/").replace("\n", " ").replace("\r", "")

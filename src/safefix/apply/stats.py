"""Lifetime statistics for an engine instance."""

from __future__ import annotations

import threading
from collections import Counter, deque
from datetime import datetime

from safefix.core.models import Fix


class FixStats:
    """Counts apply outcomes and keeps a rolling window of successes."""

    def __init__(self, history_size: int = 100, recent_count: int = 5):
        self._lock = threading.Lock()
        self.recent_count = recent_count
        self.total_applied = 0
        self.successful_fixes = 0
        self.failed_fixes = 0
        self.rolled_back_fixes = 0
        self.by_type: Counter[str] = Counter()
        self.by_complexity: Counter[str] = Counter()
        self.history: deque[dict] = deque(maxlen=history_size)

    def record_success(self, fix: Fix, fix_id: str, duration_ms: float) -> None:
        with self._lock:
            self.total_applied += 1
            self.successful_fixes += 1
            self.by_type[fix.type or "unknown"] += 1
            self.by_complexity[fix.complexity or "unknown"] += 1
            self.history.append({
                "id": fix_id,
                "type": fix.type,
                "confidence": fix.confidence,
                "complexity": fix.complexity,
                "applied_at": datetime.now().isoformat(),
                "duration_ms": round(duration_ms, 1),
                "files_changed": len(fix.changes),
            })

    def record_failure(self) -> None:
        with self._lock:
            self.total_applied += 1
            self.failed_fixes += 1

    def record_rollback(self) -> None:
        with self._lock:
            self.rolled_back_fixes += 1

    def snapshot(self, active_backups: int = 0) -> dict:
        with self._lock:
            rate = self.successful_fixes / self.total_applied * 100 if self.total_applied else 0.0
            recent = list(self.history)[-self.recent_count:] if self.recent_count else []
            return {
                "total_applied": self.total_applied,
                "successful_fixes": self.successful_fixes,
                "failed_fixes": self.failed_fixes,
                "rolled_back_fixes": self.rolled_back_fixes,
                "success_rate": round(rate, 2),
                "by_type": dict(self.by_type),
                "by_complexity": dict(self.by_complexity),
                "active_backups": active_backups,
                "recent_fixes": recent,
            }

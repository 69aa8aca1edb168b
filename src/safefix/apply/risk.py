"""Risk assessment for fixes before they touch the project."""

from __future__ import annotations

import math

from safefix.core.config import DEFAULT_CRITICAL_FILES, ApplyConfig
from safefix.core.models import Complexity, Fix, RiskLevel

COMPLEXITY_WEIGHTS = {
    Complexity.SIMPLE.value: 1,
    Complexity.MEDIUM.value: 2,
    Complexity.COMPLEX.value: 4,
}


class RiskAssessor:
    """Scores a fix and decides whether it may be applied unattended."""

    def __init__(
        self,
        confidence_threshold: float = 0.7,
        max_changes: int = 3,
        critical_files: list[str] | None = None,
    ):
        self.confidence_threshold = confidence_threshold
        self.max_changes = max_changes
        self.critical_files = list(critical_files if critical_files is not None else DEFAULT_CRITICAL_FILES)

    @classmethod
    def from_config(cls, config: ApplyConfig) -> RiskAssessor:
        return cls(
            confidence_threshold=config.confidence_threshold,
            max_changes=config.max_changes,
            critical_files=config.critical_files,
        )

    def touches_critical_file(self, fix: Fix) -> bool:
        return any(
            critical in str(change.file)
            for change in fix.changes
            for critical in self.critical_files
        )

    def requires_confirmation(self, fix: Fix) -> bool:
        if _confidence(fix) < self.confidence_threshold:
            return True
        if len(fix.changes) > self.max_changes:
            return True
        if self.touches_critical_file(fix):
            return True
        return fix.complexity == Complexity.COMPLEX.value

    def risk_score(self, fix: Fix) -> float:
        confidence = min(max(_confidence(fix), 0.0), 1.0)
        weight = COMPLEXITY_WEIGHTS.get(fix.complexity or Complexity.MEDIUM.value, 2)

        score = (1 - confidence) * 50
        score += weight * 10
        score += len(fix.changes) * 5
        if self.touches_critical_file(fix):
            score += 30
        return score

    def assess_risk_level(self, fix: Fix) -> RiskLevel:
        score = self.risk_score(fix)
        if score < 30:
            return RiskLevel.LOW
        if score < 60:
            return RiskLevel.MEDIUM
        return RiskLevel.HIGH


def _confidence(fix: Fix) -> float:
    """Confidence with NaN and infinities treated as no confidence at all."""
    return fix.confidence if math.isfinite(fix.confidence) else 0.0

"""Tests for risk assessment."""

from __future__ import annotations

from pathlib import Path

import pytest

from safefix.apply.risk import RiskAssessor
from safefix.core.config import ApplyConfig
from safefix.core.models import Change, Fix, FixMetadata, RiskLevel


def _fix(confidence: float = 0.9, files: tuple[str, ...] = ("src/app.js",), complexity: str | None = None) -> Fix:
    return Fix(
        type="t",
        confidence=confidence,
        changes=[Change(file=Path(f), type="replace", old_code="a", new_code="b") for f in files],
        metadata=FixMetadata(complexity=complexity),
    )


@pytest.fixture
def assessor() -> RiskAssessor:
    return RiskAssessor()


class TestRequiresConfirmation:
    def test_confident_simple_fix(self, assessor: RiskAssessor):
        assert assessor.requires_confirmation(_fix(0.9)) is False

    def test_low_confidence(self, assessor: RiskAssessor):
        assert assessor.requires_confirmation(_fix(0.69)) is True

    @pytest.mark.parametrize("confidence", [float("nan"), float("inf")])
    def test_non_finite_confidence_needs_confirmation(self, assessor: RiskAssessor, confidence: float):
        assert assessor.requires_confirmation(_fix(confidence)) is True
        assert assessor.risk_score(_fix(confidence)) == pytest.approx(75)

    def test_threshold_is_exclusive(self, assessor: RiskAssessor):
        assert assessor.requires_confirmation(_fix(0.7)) is False

    def test_too_many_changes(self, assessor: RiskAssessor):
        files = ("a.js", "b.js", "c.js", "d.js")
        assert assessor.requires_confirmation(_fix(0.99, files)) is True
        assert assessor.requires_confirmation(_fix(0.99, files[:3])) is False

    def test_critical_file_regardless_of_confidence(self, assessor: RiskAssessor):
        """package.json always requires confirmation."""
        assert assessor.requires_confirmation(_fix(0.95, ("package.json",))) is True
        assert assessor.requires_confirmation(_fix(1.0, ("frontend/tsconfig.json",))) is True

    def test_complex_fix(self, assessor: RiskAssessor):
        assert assessor.requires_confirmation(_fix(0.99, complexity="complex")) is True
        assert assessor.requires_confirmation(_fix(0.99, complexity="medium")) is False

    def test_lowering_confidence_never_removes_requirement(self, assessor: RiskAssessor):
        for files in [("a.js",), ("package.json",), ("a.js", "b.js", "c.js", "d.js")]:
            for complexity in (None, "simple", "complex"):
                previous = False
                for step in range(100, -1, -5):
                    needed = assessor.requires_confirmation(_fix(step / 100, files, complexity))
                    assert not (previous and not needed)
                    previous = needed

    def test_custom_critical_files(self):
        assessor = RiskAssessor.from_config(ApplyConfig(critical_files=["Dockerfile"]))
        assert assessor.requires_confirmation(_fix(0.99, ("Dockerfile",))) is True
        assert assessor.requires_confirmation(_fix(0.99, ("package.json",))) is False


class TestRiskLevel:
    def test_low(self, assessor: RiskAssessor):
        # (1 - 0.95) * 50 + 1 * 10 + 1 * 5 = 17.5
        fix = _fix(0.95, complexity="simple")
        assert assessor.risk_score(fix) == pytest.approx(17.5)
        assert assessor.assess_risk_level(fix) is RiskLevel.LOW

    def test_default_complexity_is_medium(self, assessor: RiskAssessor):
        # (1 - 0.8) * 50 + 2 * 10 + 1 * 5 = 35
        fix = _fix(0.8)
        assert assessor.risk_score(fix) == pytest.approx(35)
        assert assessor.assess_risk_level(fix) is RiskLevel.MEDIUM

    def test_critical_file_adds_thirty(self, assessor: RiskAssessor):
        plain = assessor.risk_score(_fix(0.9, ("app.js",)))
        critical = assessor.risk_score(_fix(0.9, ("package.json",)))
        assert critical - plain == pytest.approx(30)

    def test_high(self, assessor: RiskAssessor):
        # (1 - 0.5) * 50 + 4 * 10 + 2 * 5 = 75
        fix = _fix(0.5, ("a.js", "b.js"), complexity="complex")
        assert assessor.assess_risk_level(fix) is RiskLevel.HIGH

    @pytest.mark.parametrize("confidence", [-3.0, 0.0, 0.42, 1.0, 7.5])
    @pytest.mark.parametrize("complexity", [None, "simple", "medium", "complex", "weird"])
    def test_score_bounds(self, assessor: RiskAssessor, confidence: float, complexity: str | None):
        fix = Fix(type="t", confidence=confidence, metadata=FixMetadata(complexity=complexity))
        assert assessor.risk_score(fix) >= 0
        assert assessor.assess_risk_level(fix) in set(RiskLevel)

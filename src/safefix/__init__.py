"""SafeFix — all-or-nothing application of generated code fixes."""

from safefix._version import __version__
from safefix.apply.confirm import (
    AlwaysApprovePolicy,
    AlwaysDenyPolicy,
    AuditedPolicy,
    ConfirmationPolicy,
    InteractivePolicy,
    ThresholdPolicy,
)
from safefix.apply.engine import CancelToken, FixEngine
from safefix.core.config import load_config
from safefix.core.models import ApplyResult, Change, Fix, FixContext, RiskLevel

__all__ = [
    "__version__",
    "AlwaysApprovePolicy",
    "AlwaysDenyPolicy",
    "ApplyResult",
    "AuditedPolicy",
    "CancelToken",
    "Change",
    "ConfirmationPolicy",
    "Fix",
    "FixContext",
    "FixEngine",
    "InteractivePolicy",
    "RiskLevel",
    "ThresholdPolicy",
    "load_config",
]

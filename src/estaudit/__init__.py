"""Reconstruction and reconciliation of job-estimate pricing multipliers."""

from .config import Config, load_config
from .models import (
    NOT_AVAILABLE,
    UNASSIGNED_BRANCH,
    BranchSummary,
    ErrorSeverity,
    MultiplierSource,
    RawEstimate,
    ResolvedEstimate,
)
from .pipeline import AuditResult, audit_estimates, resolve_estimate

__version__ = "0.1.0"

__all__ = [
    "AuditResult",
    "BranchSummary",
    "Config",
    "ErrorSeverity",
    "MultiplierSource",
    "NOT_AVAILABLE",
    "RawEstimate",
    "ResolvedEstimate",
    "UNASSIGNED_BRANCH",
    "audit_estimates",
    "load_config",
    "resolve_estimate",
]

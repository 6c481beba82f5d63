"""
Validation engine: tally computation, severity classification, action
dispatch and run orchestration.
"""

from .dispatch import ActionDispatcher, DispatchReport, build_context
from .orchestrator import StepState, ValidationRunner
from .severity import classify, highest_level, is_breached, resolve_thresholds
from .tally import compute_tally, failed_tally

__all__ = [
    "ActionDispatcher",
    "DispatchReport",
    "build_context",
    "StepState",
    "ValidationRunner",
    "classify",
    "highest_level",
    "is_breached",
    "resolve_thresholds",
    "compute_tally",
    "failed_tally",
]

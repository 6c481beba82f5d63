"""
Core data models for the stepguard validation engine.

All models use Pydantic for runtime validation and are frozen after
construction.
"""

from .action_context import ActionContext
from .raw_result import AggregateCounts, RawResult, RowResults
from .run_result import RunResult
from .severity import SEVERITY_ORDER, SeverityLevel
from .step_outcome import ActionFailure, StepOutcome
from .tally import Tally
from .thresholds import ThresholdConfig, ThresholdOverrides
from .validation_step import ValidationStep

__all__ = [
    "ActionContext",
    "ActionFailure",
    "AggregateCounts",
    "RawResult",
    "RowResults",
    "RunResult",
    "SEVERITY_ORDER",
    "SeverityLevel",
    "StepOutcome",
    "Tally",
    "ThresholdConfig",
    "ThresholdOverrides",
    "ValidationStep",
]

"""
stepguard: step-wise data quality validation.

Runs an ordered plan of validation steps against a table, tallies
pass/fail/NA counts per step, classifies each step against warn/stop/notify
thresholds and fires the actions of the highest level breached.
"""

from stepguard.core.errors import (
    ActionError,
    ConfigurationError,
    EvaluationError,
    StepguardError,
    StepStopError,
)
from stepguard.core.models import (
    ActionContext,
    RunResult,
    SeverityLevel,
    StepOutcome,
    Tally,
    ThresholdConfig,
    ThresholdOverrides,
    ValidationStep,
)
from stepguard.core.engine import ValidationRunner
from stepguard.core.plan import PlanBuilder, ValidationPlan, load_plan
from stepguard.tables import MemoryTableEvaluator, RecordTable, TableEvaluator

__version__ = "0.1.0"

__all__ = [
    "ActionError",
    "ConfigurationError",
    "EvaluationError",
    "StepguardError",
    "StepStopError",
    "ActionContext",
    "RunResult",
    "SeverityLevel",
    "StepOutcome",
    "Tally",
    "ThresholdConfig",
    "ThresholdOverrides",
    "ValidationStep",
    "ValidationRunner",
    "PlanBuilder",
    "ValidationPlan",
    "load_plan",
    "MemoryTableEvaluator",
    "RecordTable",
    "TableEvaluator",
]

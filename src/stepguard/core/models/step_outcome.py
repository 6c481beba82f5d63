"""
StepOutcome model: the immutable result of running one step.
"""

from pydantic import BaseModel, ConfigDict, computed_field, model_validator

from .severity import SeverityLevel
from .tally import Tally


class ActionFailure(BaseModel):
    """Record of an action that raised while being dispatched."""

    model_config = ConfigDict(frozen=True)

    level: SeverityLevel
    action_name: str
    error_type: str
    message: str
    stop: bool = False


class StepOutcome(BaseModel):
    """
    Outcome of one active step in one run.

    Attributes:
        step_index: Index of the originating ValidationStep
        step_type: Step-type tag
        target: Target column(s) of the step
        label: Step label, if any
        tally: Pass/fail/NA counts
        breached_levels: Levels whose threshold was met or exceeded
        highest_breached: Most severe breached level, or None
        error: Evaluation error description when the evaluation failed
        action_errors: Failures raised by actions during dispatch
        fired_actions: Number of actions invoked for this step
    """

    model_config = ConfigDict(frozen=True)

    step_index: int
    step_type: str
    target: tuple[str, ...] | None = None
    label: str | None = None
    tally: Tally
    breached_levels: frozenset[SeverityLevel] = frozenset()
    highest_breached: SeverityLevel | None = None
    error: str | None = None
    action_errors: tuple[ActionFailure, ...] = ()
    fired_actions: int = 0

    @model_validator(mode="after")
    def check_highest_breached(self):
        expected = max(self.breached_levels, key=lambda lvl: lvl.rank) if self.breached_levels else None
        if self.highest_breached != expected:
            raise ValueError(
                f"highest_breached must be {expected}, got {self.highest_breached}"
            )
        return self

    @computed_field
    @property
    def evaluation_failed(self) -> bool:
        return self.tally.evaluation_failed

    @property
    def passed(self) -> bool:
        """True when the step was evaluated and no unit failed."""
        return not self.tally.evaluation_failed and self.tally.n_fail == 0

    def breached(self, level: SeverityLevel | str) -> bool:
        return SeverityLevel(level) in self.breached_levels

"""
ActionContext model: the read-only snapshot passed to every action.
"""

from pydantic import BaseModel, ConfigDict

from .severity import SeverityLevel
from .thresholds import ThresholdValue


class ActionContext(BaseModel):
    """
    Snapshot of a step outcome at the moment an action fires.

    Attributes:
        step_index: Index of the step
        step_type: Step-type tag
        target: Target column(s), if any
        label: Step label, if any
        n, n_pass, n_fail, n_na: Tally counts (None when evaluation failed)
        f_failed: Failing fraction (None when evaluation failed)
        breached_level: The level whose actions are firing
        threshold_value: The threshold configured for that level
        evaluation_failed: True when this firing is the evaluation-failure fallback
        error: Evaluation error description, if any
    """

    model_config = ConfigDict(frozen=True)

    step_index: int
    step_type: str
    target: tuple[str, ...] | None = None
    label: str | None = None
    n: int | None = None
    n_pass: int | None = None
    n_fail: int | None = None
    n_na: int | None = None
    f_failed: float | None = None
    breached_level: SeverityLevel
    threshold_value: ThresholdValue = None
    evaluation_failed: bool = False
    error: str | None = None

    def message(self) -> str:
        """One-line human description, used by the built-in actions."""
        target = ", ".join(self.target) if self.target else "*"
        if self.evaluation_failed:
            detail = f"evaluation failed: {self.error}"
        else:
            detail = (
                f"{self.n_fail}/{self.n} failing units "
                f"(f_failed={self.f_failed:.4f}, threshold={self.threshold_value})"
            )
        return f"Step {self.step_index} {self.step_type}({target}) breached {self.breached_level.value}: {detail}"

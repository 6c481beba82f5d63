"""
RunResult model: ordered outcomes of one validation run.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .severity import SeverityLevel
from .step_outcome import StepOutcome


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunResult(BaseModel):
    """
    Immutable snapshot of a completed run.

    Outcomes are ordered by ascending step index, one per active step.
    """

    model_config = ConfigDict(frozen=True)

    label: str | None = None
    outcomes: tuple[StepOutcome, ...] = ()
    started_at: datetime = Field(default_factory=_utcnow)
    finished_at: datetime = Field(default_factory=_utcnow)

    def _any_breached(self, level: SeverityLevel) -> bool:
        return any(level in outcome.breached_levels for outcome in self.outcomes)

    @property
    def warned(self) -> bool:
        return self._any_breached(SeverityLevel.WARN)

    @property
    def stopped(self) -> bool:
        return self._any_breached(SeverityLevel.STOP)

    @property
    def notified(self) -> bool:
        return self._any_breached(SeverityLevel.NOTIFY)

    @property
    def any_evaluation_failed(self) -> bool:
        return any(outcome.evaluation_failed for outcome in self.outcomes)

    @property
    def all_passed(self) -> bool:
        """True when every step was evaluated and had no failing units."""
        return all(outcome.passed for outcome in self.outcomes)

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    def get_outcome(self, step_index: int) -> StepOutcome:
        for outcome in self.outcomes:
            if outcome.step_index == step_index:
                return outcome
        raise KeyError(f"No outcome for step {step_index}")

    def failed_steps(self) -> list[StepOutcome]:
        """Outcomes that failed evaluation or had at least one failing unit."""
        return [outcome for outcome in self.outcomes if not outcome.passed]

    def summary(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "total_steps": len(self.outcomes),
            "passed_steps": sum(1 for o in self.outcomes if o.passed),
            "evaluation_failures": sum(1 for o in self.outcomes if o.evaluation_failed),
            "action_failures": sum(len(o.action_errors) for o in self.outcomes),
            "warned": self.warned,
            "stopped": self.stopped,
            "notified": self.notified,
            "duration_seconds": round(self.duration_seconds, 3),
        }

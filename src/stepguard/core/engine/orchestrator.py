"""
Run orchestration for validation plans.

The runner walks the active steps in ascending index order and drives each
one through evaluation, tallying, classification and action dispatch.
Nothing raised while evaluating a step or firing its actions escapes run().
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Sequence

from stepguard.core.errors import ConfigurationError, EvaluationError
from stepguard.core.models import (
    RunResult,
    StepOutcome,
    Tally,
    ThresholdConfig,
    ValidationStep,
)
from stepguard.core.steps import get_step_type
from stepguard.observability.logger import get_logger, log_operation, log_step_outcome, step_fields
from stepguard.observability.metrics import MetricsCollector
from stepguard.tables.base import TableEvaluator

from .dispatch import ActionDispatcher
from .severity import classify, resolve_thresholds
from .tally import compute_tally, failed_tally

logger = get_logger(__name__)


class StepState(str, Enum):
    PENDING = "pending"
    EVALUATING = "evaluating"
    TALLIED = "tallied"
    EVAL_FAILED = "eval_failed"
    CLASSIFIED = "classified"
    DISPATCHED = "dispatched"
    DONE = "done"


ALLOWED_TRANSITIONS: dict[StepState, frozenset[StepState]] = {
    StepState.PENDING: frozenset({StepState.EVALUATING}),
    StepState.EVALUATING: frozenset({StepState.TALLIED, StepState.EVAL_FAILED}),
    StepState.TALLIED: frozenset({StepState.CLASSIFIED}),
    StepState.EVAL_FAILED: frozenset({StepState.CLASSIFIED}),
    StepState.CLASSIFIED: frozenset({StepState.DISPATCHED}),
    StepState.DISPATCHED: frozenset({StepState.DONE}),
    StepState.DONE: frozenset(),
}


class _StepRun:
    """Tracks the state of one step while it is being run."""

    def __init__(self, step: ValidationStep):
        self.step = step
        self.state = StepState.PENDING

    def advance(self, new_state: StepState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal transition for step {self.step.index}: {self.state.value} -> {new_state.value}"
            )
        logger.debug(
            f"Step {self.step.index}: {self.state.value} -> {new_state.value}",
            extra=step_fields(self.step.index, self.step.type, state=new_state.value),
        )
        self.state = new_state


class ValidationRunner:
    """
    Runs an ordered list of validation steps against a table.

    Steps are run one at a time, strictly in ascending index order; the
    table handle is shared read-only by every step.
    """

    def __init__(
        self,
        steps: Sequence[ValidationStep],
        thresholds: ThresholdConfig | None,
        evaluator: TableEvaluator,
        label: str | None = None,
        require_steps: bool = False,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the runner with a validated plan.

        Args:
            steps: Steps with unique indices
            thresholds: Run-wide thresholds (None disables every level)
            evaluator: Table backend used to evaluate each step
            label: Optional plan label carried into the run result
            require_steps: Reject a plan without active steps
            metrics: Metrics collector (a default one is created if None)

        Raises:
            ConfigurationError: If the plan is malformed
        """
        if thresholds is None:
            thresholds = ThresholdConfig()
        if not isinstance(thresholds, ThresholdConfig):
            raise ConfigurationError(
                f"thresholds must be a ThresholdConfig, got {type(thresholds).__name__}"
            )
        if not isinstance(evaluator, TableEvaluator):
            raise ConfigurationError(
                f"evaluator must be a TableEvaluator, got {type(evaluator).__name__}"
            )

        for step in steps:
            if not isinstance(step, ValidationStep):
                raise ConfigurationError(f"Plan entries must be ValidationStep, got {type(step).__name__}")
        indices = [step.index for step in steps]
        if len(set(indices)) != len(indices):
            raise ConfigurationError(f"Step indices must be unique, got {indices}")

        self.steps: tuple[ValidationStep, ...] = tuple(sorted(steps, key=lambda s: s.index))
        if require_steps and not self.active_steps():
            raise ConfigurationError("Plan has no active steps")

        self.thresholds = thresholds
        self.evaluator = evaluator
        self.label = label
        self.dispatcher = ActionDispatcher()
        self.metrics = metrics or MetricsCollector()

    def active_steps(self) -> list[ValidationStep]:
        return [step for step in self.steps if step.active]

    def run(self, table: Any) -> RunResult:
        """
        Run every active step against the table.

        Args:
            table: Table handle understood by the evaluator

        Returns:
            RunResult with one outcome per active step
        """
        started_at = datetime.now(timezone.utc)
        outcomes: list[StepOutcome] = []

        with log_operation(
            "Validation run",
            logger=logger,
            label=self.label,
            backend=self.evaluator.backend,
            steps=len(self.active_steps()),
        ):
            for step in self.active_steps():
                outcome = self._run_step(step, table)
                self.metrics.record_step(outcome)
                outcomes.append(outcome)

        result = RunResult(
            label=self.label,
            outcomes=tuple(outcomes),
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
        )
        self.metrics.record_run(result)
        logger.info("Validation run summary", extra=result.summary())
        return result

    def _run_step(self, step: ValidationStep, table: Any) -> StepOutcome:
        """Drive one step from PENDING to DONE."""
        run = _StepRun(step)
        run.advance(StepState.EVALUATING)

        tally, error = self._evaluate(step, table)
        run.advance(StepState.EVAL_FAILED if tally.evaluation_failed else StepState.TALLIED)

        thresholds = resolve_thresholds(self.thresholds, step.threshold_overrides)
        breached, highest = classify(tally, thresholds)
        outcome = StepOutcome(
            step_index=step.index,
            step_type=step.type,
            target=step.target,
            label=step.label,
            tally=tally,
            breached_levels=breached,
            highest_breached=highest,
            error=error,
        )
        run.advance(StepState.CLASSIFIED)
        log_step_outcome(logger, outcome)

        report = self.dispatcher.dispatch(outcome, thresholds)
        run.advance(StepState.DISPATCHED)

        if report.fired or report.failures:
            outcome = outcome.model_copy(
                update={"fired_actions": report.fired, "action_errors": report.failures}
            )
        run.advance(StepState.DONE)
        return outcome

    def _evaluate(self, step: ValidationStep, table: Any) -> tuple[Tally, str | None]:
        """Evaluate and tally one step, converting any failure into a failed tally."""
        try:
            raw = self.evaluator.evaluate(step, table)
            return compute_tally(raw, get_step_type(step.type).na_policy), None
        except Exception as e:
            error = e if isinstance(e, EvaluationError) else EvaluationError(step.index, e)
            logger.debug(str(error), extra=step_fields(step.index, step.type), exc_info=True)
            return failed_tally(), error.describe_cause()

"""
Action dispatch: fire the actions of the single highest breached level.
"""

from typing import Any, Callable, NamedTuple

from stepguard.core.errors import ActionError, StepStopError
from stepguard.core.models import (
    ActionContext,
    ActionFailure,
    StepOutcome,
    ThresholdConfig,
)
from stepguard.observability.logger import get_logger, step_fields

logger = get_logger(__name__)


class DispatchReport(NamedTuple):
    fired: int
    failures: tuple[ActionFailure, ...]


def action_name(action: Callable[..., Any]) -> str:
    return getattr(action, "__name__", None) or type(action).__name__


def build_context(outcome: StepOutcome, thresholds: ThresholdConfig) -> ActionContext:
    """Snapshot the outcome for the actions of its highest breached level."""
    level = outcome.highest_breached
    tally = outcome.tally
    return ActionContext(
        step_index=outcome.step_index,
        step_type=outcome.step_type,
        target=outcome.target,
        label=outcome.label,
        n=tally.n,
        n_pass=tally.n_pass,
        n_fail=tally.n_fail,
        n_na=tally.n_na,
        f_failed=tally.f_failed,
        breached_level=level,
        threshold_value=thresholds.threshold_for(level),
        evaluation_failed=tally.evaluation_failed,
        error=outcome.error,
    )


class ActionDispatcher:
    """
    Invokes the action list of a step's highest breached level.

    Actions of lower breached levels are never invoked for the same step.
    Each action runs once, in list order; an action that raises is logged
    and recorded, and the remaining actions still run.
    """

    def dispatch(self, outcome: StepOutcome, thresholds: ThresholdConfig) -> DispatchReport:
        """
        Fire the actions for `outcome.highest_breached`.

        Args:
            outcome: Classified step outcome
            thresholds: Thresholds resolved for this step

        Returns:
            DispatchReport with the number of actions invoked and the
            failures they raised
        """
        level = outcome.highest_breached
        if level is None:
            return DispatchReport(fired=0, failures=())

        actions = thresholds.actions_for(level)
        if not actions:
            return DispatchReport(fired=0, failures=())

        context = build_context(outcome, thresholds)
        failures: list[ActionFailure] = []

        for action in actions:
            name = action_name(action)
            try:
                action(context)
            except Exception as e:
                error = ActionError(outcome.step_index, level.value, name, e)
                logger.error(
                    str(error),
                    extra=step_fields(
                        outcome.step_index, outcome.step_type, severity=level.value, action=name
                    ),
                )
                failures.append(ActionFailure(
                    level=level,
                    action_name=name,
                    error_type=type(e).__name__,
                    message=str(e),
                    stop=isinstance(e, StepStopError),
                ))

        return DispatchReport(fired=len(actions), failures=tuple(failures))

"""
Table evaluator interface shared by all table backends.

An evaluator keeps a handler lookup keyed by step-type tag. The runner
calls evaluate(step, table) and never inspects the backend; a missing
handler, an absent column or a driver failure all surface as
EvaluationError for that step.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable

from stepguard.core.errors import EvaluationError
from stepguard.core.models import AggregateCounts, RawResult, ValidationStep
from stepguard.core.steps import StepType, get_step_type

StepHandler = Callable[[ValidationStep, StepType, Any], RawResult]


class TableEvaluator(ABC):
    """
    Abstract base class for table backends.

    Subclasses return their built-in handlers from default_handlers();
    callers add handlers for new step types with register().
    """

    backend: str = "abstract"

    def __init__(self) -> None:
        self._handlers: dict[str, StepHandler] = dict(self.default_handlers())

    @abstractmethod
    def default_handlers(self) -> dict[str, StepHandler]:
        """Return the tag -> handler mapping this backend supports out of the box."""

    def register(self, tag: str, handler: StepHandler) -> None:
        """Add or replace the handler for a step-type tag."""
        self._handlers[tag] = handler

    def supports(self, tag: str) -> bool:
        return tag in self._handlers

    def evaluate(self, step: ValidationStep, table: Any) -> RawResult:
        """
        Evaluate one step against a table.

        Args:
            step: The step to evaluate
            table: Backend-specific table handle

        Returns:
            RowResults or AggregateCounts

        Raises:
            EvaluationError: If the step cannot be applied to the table
        """
        handler = self._handlers.get(step.type)
        if handler is None:
            raise EvaluationError(
                step.index, f"No {self.backend} handler for step type '{step.type}'"
            )

        try:
            return handler(step, get_step_type(step.type), table)
        except EvaluationError:
            raise
        except Exception as e:
            raise EvaluationError(step.index, e) from e

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(handlers={sorted(self._handlers)})"


def settle_na(counts: AggregateCounts, na_outcome: bool | None) -> AggregateCounts:
    """Fold NA rows into passes (True) or failures (False); None leaves them NA."""
    if na_outcome is None:
        return counts
    n_fail = counts.n_fail if na_outcome else counts.n_fail + counts.n_na
    return AggregateCounts(n=counts.n, n_fail=n_fail)

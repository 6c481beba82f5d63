"""
Exception hierarchy for stepguard.

Plan-building problems raise ConfigurationError before a run starts.
EvaluationError and ActionError are raised inside a run and are always
caught by the runner, which records them on the step outcome.
"""

from typing import Any


class StepguardError(Exception):
    """Base class for all stepguard errors."""


class ConfigurationError(StepguardError, ValueError):
    """Raised when a threshold, step or plan definition is malformed."""


class EvaluationError(StepguardError):
    """Raised when a step cannot be evaluated against a table."""

    def __init__(self, step_index: int, cause: BaseException | str):
        self.step_index = step_index
        self.cause = cause
        super().__init__(f"[step {step_index}] evaluation failed: {self.describe_cause()}")

    def describe_cause(self) -> str:
        """Return a one-line description of the underlying cause."""
        if isinstance(self.cause, BaseException):
            return f"{type(self.cause).__name__}: {self.cause}"
        return str(self.cause)


class ActionError(StepguardError):
    """Raised (and recorded) when an action fails while being dispatched."""

    def __init__(self, step_index: int, level: str, action_name: str, cause: BaseException):
        self.step_index = step_index
        self.level = level
        self.action_name = action_name
        self.cause = cause
        super().__init__(
            f"[step {step_index}] {level} action '{action_name}' failed: "
            f"{type(cause).__name__}: {cause}"
        )


class StepStopError(StepguardError):
    """Hard failure signal raised by the built-in stop action."""

    def __init__(self, message: str, context: Any = None):
        self.context = context
        super().__init__(message)

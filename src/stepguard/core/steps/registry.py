"""
Step-type registry: tag -> StepType lookup.

New step types are added with register_step_type(); the runner and the
table evaluators only ever look step types up by tag.
"""

from stepguard.core.errors import ConfigurationError

from .base_step import StepType
from .comparison import COMPARISON_STEPS
from .expression import ColValsExpr
from .null_checks import ColValsNotNull, ColValsNull
from .regex import ColValsRegex
from .table_checks import ColExists, RowsDistinct


class StepTypeRegistry:
    """Holds the step types known to a plan builder or runner."""

    def __init__(self, step_types: list[StepType] | None = None):
        self._types: dict[str, StepType] = {}
        for step_type in step_types or []:
            self.register(step_type)

    def register(self, step_type: StepType, replace: bool = False) -> None:
        if not step_type.tag:
            raise ConfigurationError(f"{step_type!r} has no tag")
        if step_type.tag in self._types and not replace:
            raise ConfigurationError(f"Step type '{step_type.tag}' is already registered")
        self._types[step_type.tag] = step_type

    def get(self, tag: str) -> StepType:
        step_type = self._types.get(tag)
        if step_type is None:
            raise ConfigurationError(f"Unknown step type: {tag}")
        return step_type

    def __contains__(self, tag: str) -> bool:
        return tag in self._types

    def tags(self) -> list[str]:
        return sorted(self._types)


BUILTIN_STEP_TYPES: list[StepType] = [
    ColExists(),
    RowsDistinct(),
    ColValsRegex(),
    ColValsNull(),
    ColValsNotNull(),
    ColValsExpr(),
    *COMPARISON_STEPS,
]

default_registry = StepTypeRegistry(BUILTIN_STEP_TYPES)


def register_step_type(step_type: StepType, replace: bool = False) -> None:
    """Register a step type in the default registry."""
    default_registry.register(step_type, replace=replace)


def get_step_type(tag: str) -> StepType:
    """Look up a step type in the default registry."""
    return default_registry.get(tag)

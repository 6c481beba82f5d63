"""
Base step-type interface for all validation step kinds.

A step type describes one kind of rule: its tag, the pydantic model its
parameters are validated against, how NA values are counted, and (for
per-row backends) how a single value or row is classified.
"""

import math
from abc import ABC
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from stepguard.core.errors import ConfigurationError


class NAPolicy(str, Enum):
    """How NA units are counted in the tally."""

    EXCLUDE = "exclude"
    FAIL = "fail"
    PASS = "pass"


class StepParameters(BaseModel):
    """Base class for typed step parameters. Steps without parameters use it directly."""

    model_config = ConfigDict(frozen=True, extra="forbid")


def is_na(value: Any) -> bool:
    """True for None and float NaN."""
    return value is None or (isinstance(value, float) and math.isnan(value))


class StepType(ABC):
    """
    Abstract base class for all step types.

    Subclasses set `tag` and override the class attributes that differ from
    the defaults; value-level step types implement check_value().
    """

    tag: str = ""
    parameters_model: type[StepParameters] = StepParameters
    na_policy: NAPolicy = NAPolicy.EXCLUDE
    column_wise: bool = True
    requires_target: bool = True

    def parse_parameters(self, raw: Mapping[str, Any]) -> StepParameters:
        """
        Validate raw parameters for this step type.

        Raises:
            ConfigurationError: If the parameters do not fit the model
        """
        try:
            return self.parameters_model.model_validate(dict(raw))
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid parameters for step type '{self.tag}': {e}") from e

    def check_target(self, target: tuple[str, ...] | None) -> None:
        if self.requires_target and not target:
            raise ConfigurationError(f"Step type '{self.tag}' requires a target column")
        if self.column_wise and target and len(target) > 1:
            raise ConfigurationError(
                f"Step type '{self.tag}' targets one column per step; "
                f"got {len(target)} columns (expand the step per column)"
            )

    def check_value(self, value: Any, parameters: StepParameters) -> bool:
        """Return True if a non-NA value passes the rule."""
        raise NotImplementedError(f"Step type '{self.tag}' has no value-level check")

    def classify_value(self, value: Any, parameters: StepParameters) -> bool | None:
        """Classify one cell as pass (True), fail (False) or NA (None)."""
        if is_na(value):
            return None
        return bool(self.check_value(value, parameters))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(tag={self.tag}, na_policy={self.na_policy.value})"

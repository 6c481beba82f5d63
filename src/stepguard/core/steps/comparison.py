"""
Comparison step types: col_vals_gt/gte/lt/lte/equal/not_equal, the
between pair and the set-membership pair.
"""

import operator
from datetime import date, datetime
from typing import Any, Callable

from pydantic import ConfigDict, Field, field_validator, model_validator

from .base_step import NAPolicy, StepParameters, StepType, is_na

Scalar = bool | int | float | str | datetime | date


class CompareParameters(StepParameters):
    """
    Parameters:
    - value: The value each cell is compared against
    """

    value: Scalar


class BetweenParameters(StepParameters):
    """
    Parameters:
    - left: Lower bound
    - right: Upper bound
    - inclusive: Whether (left, right) bounds are inclusive
    """

    left: Scalar
    right: Scalar
    inclusive: tuple[bool, bool] = (True, True)

    @model_validator(mode="after")
    def check_bounds(self):
        try:
            ordered = self.left <= self.right
        except TypeError as e:
            raise ValueError(f"left and right are not comparable: {e}")
        if not ordered:
            raise ValueError(f"left ({self.left}) must not exceed right ({self.right})")
        return self


class SetParameters(StepParameters):
    """
    Parameters:
    - set: Non-empty collection of allowed (or disallowed) values
    """

    model_config = ConfigDict(populate_by_name=True)

    values: tuple[Any, ...] = Field(..., alias="set", min_length=1)

    @field_validator("values", mode="before")
    @classmethod
    def coerce_values(cls, v):
        if isinstance(v, str | bytes):
            return (v,)
        return tuple(v)

    @property
    def includes_na(self) -> bool:
        return any(is_na(v) for v in self.values)

    @property
    def non_na_values(self) -> tuple[Any, ...]:
        return tuple(v for v in self.values if not is_na(v))


class CompareStep(StepType):
    """Compares each cell against a fixed value with a binary operator."""

    parameters_model = CompareParameters
    na_policy = NAPolicy.FAIL

    def __init__(self, tag: str, op: Callable[[Any, Any], bool], symbol: str):
        self.tag = tag
        self.op = op
        self.symbol = symbol

    def check_value(self, value: Any, parameters: CompareParameters) -> bool:
        return self.op(value, parameters.value)


class BetweenStep(StepType):
    """Checks each cell lies inside (or outside, when negated) a range."""

    parameters_model = BetweenParameters
    na_policy = NAPolicy.FAIL

    def __init__(self, tag: str, negate: bool = False):
        self.tag = tag
        self.negate = negate

    def check_value(self, value: Any, parameters: BetweenParameters) -> bool:
        left_ok = value >= parameters.left if parameters.inclusive[0] else value > parameters.left
        right_ok = value <= parameters.right if parameters.inclusive[1] else value < parameters.right
        inside = left_ok and right_ok
        return not inside if self.negate else inside


class InSetStep(StepType):
    """Checks each cell is (or is not, when negated) a member of a set."""

    parameters_model = SetParameters
    na_policy = NAPolicy.FAIL

    def __init__(self, tag: str, negate: bool = False):
        self.tag = tag
        self.negate = negate

    def check_value(self, value: Any, parameters: SetParameters) -> bool:
        member = value in parameters.non_na_values
        return not member if self.negate else member

    def na_outcome(self, parameters: SetParameters) -> bool | None:
        """
        Classification of NA cells.

        When the set itself holds None (or NaN), NA is an ordinary member:
        it passes col_vals_in_set and fails col_vals_not_in_set. Otherwise
        NA cells stay NA and the step's NA policy applies.
        """
        if not parameters.includes_na:
            return None
        return not self.negate

    def classify_value(self, value: Any, parameters: SetParameters) -> bool | None:
        if is_na(value):
            return self.na_outcome(parameters)
        return bool(self.check_value(value, parameters))


COMPARISON_STEPS = (
    CompareStep("col_vals_gt", operator.gt, ">"),
    CompareStep("col_vals_gte", operator.ge, ">="),
    CompareStep("col_vals_lt", operator.lt, "<"),
    CompareStep("col_vals_lte", operator.le, "<="),
    CompareStep("col_vals_equal", operator.eq, "="),
    CompareStep("col_vals_not_equal", operator.ne, "<>"),
    BetweenStep("col_vals_between"),
    BetweenStep("col_vals_not_between", negate=True),
    InSetStep("col_vals_in_set"),
    InSetStep("col_vals_not_in_set", negate=True),
)

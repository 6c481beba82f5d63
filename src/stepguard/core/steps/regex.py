"""
col_vals_regex - cell values must contain a match for a regular expression.
"""

import re
from typing import Any

from pydantic import field_validator

from .base_step import NAPolicy, StepParameters, StepType


class RegexParameters(StepParameters):
    """
    Parameters:
    - regex: Regular expression searched for in the string form of each cell
    """

    regex: str

    @field_validator("regex")
    @classmethod
    def check_pattern(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid regex pattern: {e}")
        return v


class ColValsRegex(StepType):
    """Passes cells whose string form contains a match for `regex`."""

    tag = "col_vals_regex"
    parameters_model = RegexParameters
    na_policy = NAPolicy.FAIL

    def check_value(self, value: Any, parameters: RegexParameters) -> bool:
        value_str = value if isinstance(value, str) else str(value)
        return re.search(parameters.regex, value_str) is not None

"""
col_vals_null / col_vals_not_null - NA is the value under test, so these
step types never produce NA units.
"""

from typing import Any

from .base_step import StepParameters, StepType, is_na


class ColValsNull(StepType):
    tag = "col_vals_null"

    def classify_value(self, value: Any, parameters: StepParameters) -> bool:
        return is_na(value)


class ColValsNotNull(StepType):
    tag = "col_vals_not_null"

    def classify_value(self, value: Any, parameters: StepParameters) -> bool:
        return not is_na(value)

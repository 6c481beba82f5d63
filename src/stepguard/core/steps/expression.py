"""
col_vals_expr - rows are classified by a Python predicate supplied when
the plan is built.
"""

from typing import Any, Callable, Mapping

from pydantic import ConfigDict

from .base_step import NAPolicy, StepParameters, StepType

RowPredicate = Callable[[Mapping[str, Any]], bool | None]


class ExpressionParameters(StepParameters):
    """
    Parameters:
    - predicate: Callable taking a row mapping and returning True (pass),
      False (fail) or None (NA)
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    predicate: RowPredicate


class ColValsExpr(StepType):
    """
    Classifies each row with a predicate. Only per-row backends can run it.

    An optional target restricts the columns the row mapping exposes.
    """

    tag = "col_vals_expr"
    parameters_model = ExpressionParameters
    na_policy = NAPolicy.EXCLUDE
    column_wise = False
    requires_target = False

    def classify_row(self, row: Mapping[str, Any], parameters: ExpressionParameters) -> bool | None:
        result = parameters.predicate(row)
        return None if result is None else bool(result)

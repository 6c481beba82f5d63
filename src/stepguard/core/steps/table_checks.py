"""
Table-structure step types: col_exists and rows_distinct.
"""

from .base_step import StepType


class ColExists(StepType):
    """
    Passes when the target column is present in the table.

    Evaluated as a single unit: n == 1.
    """

    tag = "col_exists"


class RowsDistinct(StepType):
    """
    Fails every row whose key (the target columns, or all columns when no
    target is given) occurs more than once.
    """

    tag = "rows_distinct"
    column_wise = False
    requires_target = False

"""
Spark DataFrame backend.

Every step is reduced to a single aggregation executed by Spark, so only
counts travel back to the driver (AggregateCounts rather than per-row
results). Row predicates written in Python (col_vals_expr) are not
supported here.
"""

import operator
from typing import cast

from pyspark.sql import Column, DataFrame
from pyspark.sql import functions as F
from pyspark.sql.types import DoubleType, FloatType

from stepguard.core.models import AggregateCounts, ValidationStep
from stepguard.core.steps import (
    BetweenParameters,
    BetweenStep,
    CompareStep,
    InSetStep,
    SetParameters,
    StepType,
)

from .base import StepHandler, TableEvaluator, settle_na


def require_columns(df: DataFrame, columns) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise KeyError(f"Column(s) not found in DataFrame: {', '.join(missing)}")


def na_condition(df: DataFrame, column: str) -> Column:
    """Null, or NaN for floating point columns."""
    col = F.col(column)
    if isinstance(df.schema[column].dataType, DoubleType | FloatType):
        return col.isNull() | F.isnan(col)
    return col.isNull()


def count_where(condition: Column) -> Column:
    return F.coalesce(F.sum(F.when(condition, 1).otherwise(0)), F.lit(0))


def aggregate_condition(df: DataFrame, column: str, passes: Column) -> AggregateCounts:
    """Count rows, NA rows, and non-NA rows for which `passes` is false."""
    is_na = na_condition(df, column)
    row = df.agg(
        F.count(F.lit(1)).alias("n"),
        count_where(is_na).alias("n_na"),
        count_where(~is_na & ~passes).alias("n_fail"),
    ).collect()[0]
    return AggregateCounts(n=row["n"], n_fail=row["n_fail"], n_na=row["n_na"])


def pass_condition(step: ValidationStep, step_type: StepType) -> Column:
    """Build the Spark column expression that is true for passing cells."""
    col = F.col(step.column)
    params = step.parameters

    if isinstance(step_type, CompareStep):
        return step_type.op(col, F.lit(params.value))

    if isinstance(step_type, BetweenStep):
        params = cast(BetweenParameters, params)
        left_op = operator.ge if params.inclusive[0] else operator.gt
        right_op = operator.le if params.inclusive[1] else operator.lt
        inside = left_op(col, F.lit(params.left)) & right_op(col, F.lit(params.right))
        return ~inside if step_type.negate else inside

    if isinstance(step_type, InSetStep):
        params = cast(SetParameters, params)
        allowed = list(params.non_na_values)
        member = col.isin(allowed) if allowed else F.lit(False)
        return ~member if step_type.negate else member

    raise TypeError(f"No Spark expression for step type '{step_type.tag}'")


def evaluate_compare(step: ValidationStep, step_type: StepType, df: DataFrame) -> AggregateCounts:
    require_columns(df, [step.column])
    counts = aggregate_condition(df, step.column, pass_condition(step, step_type))
    if isinstance(step_type, InSetStep):
        return settle_na(counts, step_type.na_outcome(step.parameters))
    return counts


def evaluate_regex(step: ValidationStep, step_type: StepType, df: DataFrame) -> AggregateCounts:
    require_columns(df, [step.column])
    passes = F.col(step.column).cast("string").rlike(step.parameters.regex)
    return aggregate_condition(df, step.column, passes)


def evaluate_null(step: ValidationStep, step_type: StepType, df: DataFrame) -> AggregateCounts:
    require_columns(df, [step.column])
    is_na = na_condition(df, step.column)
    failing = ~is_na if step.type == "col_vals_null" else is_na
    row = df.agg(F.count(F.lit(1)).alias("n"), count_where(failing).alias("n_fail")).collect()[0]
    return AggregateCounts(n=row["n"], n_fail=row["n_fail"])


def evaluate_col_exists(step: ValidationStep, step_type: StepType, df: DataFrame) -> AggregateCounts:
    return AggregateCounts(n=1, n_fail=0 if step.column in df.columns else 1)


def evaluate_rows_distinct(step: ValidationStep, step_type: StepType, df: DataFrame) -> AggregateCounts:
    columns = list(step.target or df.columns)
    require_columns(df, columns)
    n = df.count()
    duplicated = (
        df.groupBy(*columns)
        .count()
        .filter(F.col("count") > 1)
        .agg(F.coalesce(F.sum("count"), F.lit(0)).alias("n_fail"))
        .collect()[0]
    )
    return AggregateCounts(n=n, n_fail=duplicated["n_fail"])


class SparkTableEvaluator(TableEvaluator):
    """Evaluates steps against a Spark DataFrame with one aggregation per step."""

    backend = "spark"

    COMPARE_TAGS = (
        "col_vals_gt", "col_vals_gte", "col_vals_lt", "col_vals_lte",
        "col_vals_equal", "col_vals_not_equal",
        "col_vals_between", "col_vals_not_between",
        "col_vals_in_set", "col_vals_not_in_set",
    )

    def default_handlers(self) -> dict[str, StepHandler]:
        handlers: dict[str, StepHandler] = {tag: evaluate_compare for tag in self.COMPARE_TAGS}
        handlers.update({
            "col_vals_regex": evaluate_regex,
            "col_vals_null": evaluate_null,
            "col_vals_not_null": evaluate_null,
            "col_exists": evaluate_col_exists,
            "rows_distinct": evaluate_rows_distinct,
        })
        return handlers


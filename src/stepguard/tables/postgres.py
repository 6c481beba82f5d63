"""
PostgreSQL table backend.

Each step becomes one aggregate query executed server side; only the
counts come back. Identifiers and literals are composed with psycopg.sql
so table and column names are always quoted.
"""

from typing import cast

from psycopg import sql

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
from .connection import DatabaseConnectionPool


class PostgresTable:
    """
    Handle on a table (or view) reachable through a connection pool.

    Attributes:
        pool: Open DatabaseConnectionPool
        table: Table name
        schema: Schema name (current_schema() when None)
    """

    def __init__(self, pool: DatabaseConnectionPool, table: str, schema: str | None = None):
        self.pool = pool
        self.table = table
        self.schema = schema
        self._columns: tuple[str, ...] | None = None

    @property
    def identifier(self) -> sql.Composable:
        if self.schema:
            return sql.Identifier(self.schema, self.table)
        return sql.Identifier(self.table)

    @property
    def columns(self) -> tuple[str, ...]:
        """Column names in ordinal order, read once from information_schema."""
        if self._columns is None:
            rows = self.pool.execute_query(
                "SELECT column_name FROM information_schema.columns "
                "WHERE table_name = %s AND table_schema = COALESCE(%s, current_schema()) "
                "ORDER BY ordinal_position",
                (self.table, self.schema),
            )
            if not rows:
                raise LookupError(f"Table not found or has no columns: {self.table}")
            self._columns = tuple(row["column_name"] for row in rows)
        return self._columns

    def require_columns(self, columns) -> None:
        missing = [c for c in columns if c not in self.columns]
        if missing:
            raise KeyError(f"Column(s) not found in table {self.table}: {', '.join(missing)}")

    def __repr__(self) -> str:
        return f"PostgresTable(schema={self.schema}, table={self.table})"


OPERATORS = {
    "col_vals_gt": ">",
    "col_vals_gte": ">=",
    "col_vals_lt": "<",
    "col_vals_lte": "<=",
    "col_vals_equal": "=",
    "col_vals_not_equal": "<>",
}


def pass_condition(step: ValidationStep, step_type: StepType) -> sql.Composable:
    """Build the SQL predicate that is true for passing cells."""
    col = sql.Identifier(step.column)
    params = step.parameters

    if isinstance(step_type, CompareStep):
        return sql.SQL("{} {} {}").format(col, sql.SQL(OPERATORS[step_type.tag]), sql.Literal(params.value))

    if isinstance(step_type, BetweenStep):
        params = cast(BetweenParameters, params)
        left = sql.SQL(">=" if params.inclusive[0] else ">")
        right = sql.SQL("<=" if params.inclusive[1] else "<")
        inside = sql.SQL("({col} {left} {lo} AND {col} {right} {hi})").format(
            col=col, left=left, lo=sql.Literal(params.left), right=right, hi=sql.Literal(params.right)
        )
        return sql.SQL("NOT {}").format(inside) if step_type.negate else inside

    if isinstance(step_type, InSetStep):
        params = cast(SetParameters, params)
        if not params.non_na_values:
            member = sql.SQL("FALSE")
        else:
            values = sql.SQL(", ").join(sql.Literal(v) for v in params.non_na_values)
            member = sql.SQL("{} IN ({})").format(col, values)
        return sql.SQL("NOT ({})").format(member) if step_type.negate else member

    if step_type.tag == "col_vals_regex":
        return sql.SQL("{}::text ~ {}").format(col, sql.Literal(params.regex))

    raise TypeError(f"No SQL predicate for step type '{step_type.tag}'")


def aggregate_condition(table: PostgresTable, column: str, passes: sql.Composable) -> AggregateCounts:
    query = sql.SQL(
        "SELECT COUNT(*) AS n, "
        "COUNT(*) FILTER (WHERE {col} IS NULL) AS n_na, "
        "COUNT(*) FILTER (WHERE {col} IS NOT NULL AND NOT ({passes})) AS n_fail "
        "FROM {table}"
    ).format(col=sql.Identifier(column), passes=passes, table=table.identifier)
    row = table.pool.execute_query(query)[0]
    return AggregateCounts(n=row["n"], n_fail=row["n_fail"], n_na=row["n_na"])


def evaluate_condition(step: ValidationStep, step_type: StepType, table: PostgresTable) -> AggregateCounts:
    table.require_columns([step.column])
    counts = aggregate_condition(table, step.column, pass_condition(step, step_type))
    if isinstance(step_type, InSetStep):
        return settle_na(counts, step_type.na_outcome(step.parameters))
    return counts


def evaluate_null(step: ValidationStep, step_type: StepType, table: PostgresTable) -> AggregateCounts:
    table.require_columns([step.column])
    failing = "IS NOT NULL" if step.type == "col_vals_null" else "IS NULL"
    query = sql.SQL("SELECT COUNT(*) AS n, COUNT(*) FILTER (WHERE {col} {failing}) AS n_fail FROM {table}").format(
        col=sql.Identifier(step.column), failing=sql.SQL(failing), table=table.identifier
    )
    row = table.pool.execute_query(query)[0]
    return AggregateCounts(n=row["n"], n_fail=row["n_fail"])


def evaluate_col_exists(step: ValidationStep, step_type: StepType, table: PostgresTable) -> AggregateCounts:
    return AggregateCounts(n=1, n_fail=0 if step.column in table.columns else 1)


def evaluate_rows_distinct(step: ValidationStep, step_type: StepType, table: PostgresTable) -> AggregateCounts:
    columns = list(step.target or table.columns)
    table.require_columns(columns)
    query = sql.SQL(
        "SELECT (SELECT COUNT(*) FROM {table}) AS n, "
        "COALESCE((SELECT SUM(cnt) FROM ("
        "SELECT COUNT(*) AS cnt FROM {table} GROUP BY {cols} HAVING COUNT(*) > 1"
        ") AS dup), 0) AS n_fail"
    ).format(table=table.identifier, cols=sql.SQL(", ").join(sql.Identifier(c) for c in columns))
    row = table.pool.execute_query(query)[0]
    return AggregateCounts(n=row["n"], n_fail=int(row["n_fail"]))


class PostgresTableEvaluator(TableEvaluator):
    """Evaluates steps against a PostgresTable with one aggregate query per step."""

    backend = "postgres"

    def default_handlers(self) -> dict[str, StepHandler]:
        handlers: dict[str, StepHandler] = {
            tag: evaluate_condition
            for tag in (
                *OPERATORS,
                "col_vals_between", "col_vals_not_between",
                "col_vals_in_set", "col_vals_not_in_set",
                "col_vals_regex",
            )
        }
        handlers.update({
            "col_vals_null": evaluate_null,
            "col_vals_not_null": evaluate_null,
            "col_exists": evaluate_col_exists,
            "rows_distinct": evaluate_rows_distinct,
        })
        return handlers

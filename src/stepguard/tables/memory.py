"""
In-memory table backend.

RecordTable holds rows as dictionaries (the same shape as a record
payload); MemoryTableEvaluator classifies every row and returns per-row
results.
"""

from collections import Counter
from typing import Any, Iterable, Mapping, Sequence

from stepguard.core.models import RowResults, ValidationStep
from stepguard.core.steps import BUILTIN_STEP_TYPES, StepType

from .base import StepHandler, TableEvaluator


class RecordTable:
    """
    Immutable in-memory table of rows.

    Columns are taken from `columns` when given, otherwise from the keys of
    the rows in first-seen order. Missing keys in a row read as None.
    """

    def __init__(
        self,
        rows: Iterable[Mapping[str, Any]],
        columns: Sequence[str] | None = None,
        name: str | None = None,
    ):
        self._rows: tuple[dict[str, Any], ...] = tuple(dict(row) for row in rows)
        if columns is None:
            seen: dict[str, None] = {}
            for row in self._rows:
                for key in row:
                    seen.setdefault(key, None)
            columns = list(seen)
        self._columns: tuple[str, ...] = tuple(columns)
        self.name = name

    @classmethod
    def from_columns(cls, data: Mapping[str, Sequence[Any]], name: str | None = None) -> "RecordTable":
        """Build a table from a column name -> values mapping."""
        lengths = {len(values) for values in data.values()}
        if len(lengths) > 1:
            raise ValueError(f"All columns must have the same length, got {sorted(lengths)}")
        n_rows = lengths.pop() if lengths else 0
        columns = list(data)
        rows = [{col: data[col][i] for col in columns} for i in range(n_rows)]
        return cls(rows, columns=columns, name=name)

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    @property
    def rows(self) -> tuple[dict[str, Any], ...]:
        return self._rows

    def __len__(self) -> int:
        return len(self._rows)

    def has_column(self, column: str) -> bool:
        return column in self._columns

    def require_columns(self, columns: Iterable[str]) -> None:
        missing = [c for c in columns if c not in self._columns]
        if missing:
            raise KeyError(f"Column(s) not found in table: {', '.join(missing)}")

    def column_values(self, column: str) -> list[Any]:
        self.require_columns([column])
        return [row.get(column) for row in self._rows]

    def __repr__(self) -> str:
        return f"RecordTable(name={self.name}, rows={len(self)}, columns={list(self._columns)})"


def evaluate_col_exists(step: ValidationStep, step_type: StepType, table: RecordTable) -> RowResults:
    return RowResults(values=(table.has_column(step.column),))


def evaluate_values(step: ValidationStep, step_type: StepType, table: RecordTable) -> RowResults:
    """Classify every cell of the target column with the step type's value check."""
    values = table.column_values(step.column)
    return RowResults(values=tuple(step_type.classify_value(v, step.parameters) for v in values))


def evaluate_rows_distinct(step: ValidationStep, step_type: StepType, table: RecordTable) -> RowResults:
    """Fail every row whose key occurs more than once."""
    columns = step.target or table.columns
    table.require_columns(columns)
    keys = [tuple(row.get(c) for c in columns) for row in table.rows]
    counts = Counter(keys)
    return RowResults(values=tuple(counts[key] == 1 for key in keys))


def evaluate_rows_expr(step: ValidationStep, step_type: StepType, table: RecordTable) -> RowResults:
    """Classify every row with the step's predicate."""
    if step.target:
        table.require_columns(step.target)
        rows = [{c: row.get(c) for c in step.target} for row in table.rows]
    else:
        rows = [{c: row.get(c) for c in table.columns} for row in table.rows]
    return RowResults(values=tuple(step_type.classify_row(row, step.parameters) for row in rows))


class MemoryTableEvaluator(TableEvaluator):
    """Evaluates steps row by row against a RecordTable."""

    backend = "memory"

    def default_handlers(self) -> dict[str, StepHandler]:
        handlers: dict[str, StepHandler] = {
            step_type.tag: evaluate_values
            for step_type in BUILTIN_STEP_TYPES
            if step_type.column_wise
        }
        handlers["col_exists"] = evaluate_col_exists
        handlers["rows_distinct"] = evaluate_rows_distinct
        handlers["col_vals_expr"] = evaluate_rows_expr
        return handlers

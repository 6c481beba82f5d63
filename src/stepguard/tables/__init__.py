"""
Table backends.

The in-memory backend is always available. The Spark and PostgreSQL
backends are imported from their own modules (stepguard.tables.spark,
stepguard.tables.postgres) and need the matching optional dependencies.
"""

from .base import StepHandler, TableEvaluator
from .memory import MemoryTableEvaluator, RecordTable

__all__ = [
    "StepHandler",
    "TableEvaluator",
    "MemoryTableEvaluator",
    "RecordTable",
]

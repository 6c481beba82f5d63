"""
Validation step types.

Provides step types for column presence, value comparisons, ranges, set
membership, regex patterns, null checks, distinct rows and custom row
predicates.
"""

from .base_step import NAPolicy, StepParameters, StepType, is_na
from .comparison import (
    BetweenParameters,
    BetweenStep,
    CompareParameters,
    CompareStep,
    InSetStep,
    SetParameters,
)
from .expression import ColValsExpr, ExpressionParameters
from .null_checks import ColValsNotNull, ColValsNull
from .regex import ColValsRegex, RegexParameters
from .registry import (
    BUILTIN_STEP_TYPES,
    StepTypeRegistry,
    default_registry,
    get_step_type,
    register_step_type,
)
from .table_checks import ColExists, RowsDistinct

__all__ = [
    "NAPolicy",
    "StepParameters",
    "StepType",
    "is_na",
    "BetweenParameters",
    "BetweenStep",
    "CompareParameters",
    "CompareStep",
    "InSetStep",
    "SetParameters",
    "ColValsExpr",
    "ExpressionParameters",
    "ColValsNotNull",
    "ColValsNull",
    "ColValsRegex",
    "RegexParameters",
    "ColExists",
    "RowsDistinct",
    "BUILTIN_STEP_TYPES",
    "StepTypeRegistry",
    "default_registry",
    "get_step_type",
    "register_step_type",
]

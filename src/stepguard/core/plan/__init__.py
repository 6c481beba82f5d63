"""
Validation plan building: YAML loading and the fluent PlanBuilder.
"""

from .plan_config import (
    PlanBuilder,
    PlanConfigLoader,
    ValidationPlan,
    build_overrides,
    build_thresholds,
    load_plan,
    parse_columns,
    parse_plan,
)

__all__ = [
    "PlanBuilder",
    "PlanConfigLoader",
    "ValidationPlan",
    "build_overrides",
    "build_thresholds",
    "load_plan",
    "parse_columns",
    "parse_plan",
]

"""
Validation plan configuration.

Loads validation plans from YAML files and provides a fluent builder for
programmatic plans. Both produce a ValidationPlan: an immutable, ordered
list of ValidationSteps plus the run-wide ThresholdConfig.
"""

import re
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

import yaml
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from stepguard.actions import BUILTIN_ACTIONS
from stepguard.core.engine import ValidationRunner
from stepguard.core.errors import ConfigurationError
from stepguard.core.models import (
    RunResult,
    ThresholdConfig,
    ThresholdOverrides,
    ValidationStep,
)
from stepguard.core.steps import get_step_type

INFORMATIONAL_KEYS = ("tbl_name", "read_fn", "locale", "lang", "table", "columns")
THRESHOLD_KEYS = ("warn_fraction", "stop_fraction", "notify_fraction")
ACTION_LIST_KEYS = ("warn_actions", "stop_actions", "notify_actions")

_VARS_PATTERN = re.compile(r"^\s*vars\((.*)\)\s*$")

Columns = str | Sequence[str] | None


def parse_columns(columns: Columns) -> tuple[str, ...] | None:
    """
    Normalize a column reference.

    Accepts None, "~", a column name, a list of names, or the
    "vars(a, b)" notation.
    """
    if columns is None:
        return None
    if isinstance(columns, str):
        stripped = columns.strip()
        if stripped in ("", "~"):
            return None
        match = _VARS_PATTERN.match(stripped)
        if match:
            names = [name.strip().strip("`\"'") for name in match.group(1).split(",")]
            names = [name for name in names if name]
            return tuple(names) or None
        return (stripped,)
    names = tuple(str(c) for c in columns)
    return names or None


class ValidationPlan(BaseModel):
    """
    An ordered validation plan.

    Attributes:
        label: Optional plan label
        steps: Steps with indices 1..n in order
        thresholds: Run-wide thresholds and actions
    """

    model_config = ConfigDict(frozen=True)

    label: str | None = None
    steps: tuple[ValidationStep, ...] = ()
    thresholds: ThresholdConfig = ThresholdConfig()

    def active_steps(self) -> list[ValidationStep]:
        return [step for step in self.steps if step.active]

    def runner(self, evaluator, require_steps: bool = False, metrics=None) -> ValidationRunner:
        """Create a ValidationRunner for this plan."""
        return ValidationRunner(
            self.steps,
            self.thresholds,
            evaluator,
            label=self.label,
            require_steps=require_steps,
            metrics=metrics,
        )

    def run(self, table: Any, evaluator) -> RunResult:
        """Run the plan against a table with the given evaluator."""
        return self.runner(evaluator).run(table)


def build_thresholds(config: Mapping[str, Any] | None, action_factories: Mapping[str, Callable] | None = None) -> ThresholdConfig:
    """
    Build a ThresholdConfig from a mapping.

    Action lists may contain callables or names of registered action
    factories ("log", "warn", "stop").

    Raises:
        ConfigurationError: If a key, value or action name is invalid
    """
    config = dict(config or {})
    unknown = set(config) - set(THRESHOLD_KEYS) - set(ACTION_LIST_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown threshold option(s): {', '.join(sorted(unknown))}")

    if action_factories is None:
        action_factories = BUILTIN_ACTIONS

    for key in ACTION_LIST_KEYS:
        if key in config:
            config[key] = _resolve_actions(key, config[key], action_factories)

    try:
        return ThresholdConfig(**config)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid threshold configuration: {e}") from e


def _resolve_actions(key: str, actions: Any, factories: Mapping[str, Callable]) -> list[Callable]:
    if actions is None:
        return []
    if isinstance(actions, str) or callable(actions):
        actions = [actions]
    resolved = []
    for action in actions:
        if callable(action):
            resolved.append(action)
        elif isinstance(action, str) and action in factories:
            resolved.append(factories[action]())
        else:
            raise ConfigurationError(f"Unknown action '{action}' in {key}")
    return resolved


def build_overrides(actions: Mapping[str, Any] | None) -> ThresholdOverrides | None:
    if actions is None:
        return None
    if not isinstance(actions, Mapping):
        raise ConfigurationError(f"Step 'actions' must be a mapping, got {type(actions).__name__}")
    try:
        return ThresholdOverrides(**actions)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid step threshold overrides: {e}") from e


class PlanBuilder:
    """
    Programmatically build validation plans.

    Column-wise steps given several columns are expanded into one step
    per column, in column order.

    Example:
        plan = (
            PlanBuilder(label="orders")
            .thresholds(warn_fraction=0.1, stop_fraction=0.25)
            .col_exists(["date", "date_time"])
            .col_vals_gt("d", 100.0)
            .rows_distinct()
            .build()
        )
    """

    def __init__(self, label: str | None = None):
        self.label = label
        self._steps: list[ValidationStep] = []
        self._thresholds = ThresholdConfig()

    def thresholds(self, **config: Any) -> "PlanBuilder":
        """Set the run-wide thresholds (see build_thresholds)."""
        self._thresholds = build_thresholds(config)
        return self

    def set_thresholds(self, thresholds: ThresholdConfig) -> "PlanBuilder":
        """Use an already-built ThresholdConfig."""
        self._thresholds = thresholds
        return self

    def add_step(
        self,
        step_type: str,
        columns: Columns = None,
        active: bool = True,
        label: str | None = None,
        actions: Mapping[str, Any] | ThresholdOverrides | None = None,
        **parameters: Any,
    ) -> "PlanBuilder":
        """
        Add a step of any registered type.

        Args:
            step_type: Registered step-type tag
            columns: Target column(s)
            active: Whether the step runs
            label: Optional description
            actions: Per-step threshold overrides
            **parameters: Step-type parameters

        Raises:
            ConfigurationError: If the step is invalid
        """
        kind = get_step_type(step_type)
        target = parse_columns(columns)
        overrides = actions if isinstance(actions, ThresholdOverrides) else build_overrides(actions)

        targets: list[tuple[str, ...] | None]
        if kind.column_wise and target and len(target) > 1:
            targets = [(column,) for column in target]
        else:
            targets = [target]

        for step_target in targets:
            try:
                step = ValidationStep(
                    index=len(self._steps) + 1,
                    type=step_type,
                    target=step_target,
                    parameters=parameters,
                    active=active,
                    threshold_overrides=overrides,
                    label=label,
                )
            except PydanticValidationError as e:
                raise ConfigurationError(f"Invalid '{step_type}' step: {e}") from e
            self._steps.append(step)
        return self

    def col_exists(self, columns: Columns, **opts: Any) -> "PlanBuilder":
        return self.add_step("col_exists", columns, **opts)

    def col_vals_gt(self, columns: Columns, value: Any, **opts: Any) -> "PlanBuilder":
        return self.add_step("col_vals_gt", columns, value=value, **opts)

    def col_vals_gte(self, columns: Columns, value: Any, **opts: Any) -> "PlanBuilder":
        return self.add_step("col_vals_gte", columns, value=value, **opts)

    def col_vals_lt(self, columns: Columns, value: Any, **opts: Any) -> "PlanBuilder":
        return self.add_step("col_vals_lt", columns, value=value, **opts)

    def col_vals_lte(self, columns: Columns, value: Any, **opts: Any) -> "PlanBuilder":
        return self.add_step("col_vals_lte", columns, value=value, **opts)

    def col_vals_equal(self, columns: Columns, value: Any, **opts: Any) -> "PlanBuilder":
        return self.add_step("col_vals_equal", columns, value=value, **opts)

    def col_vals_not_equal(self, columns: Columns, value: Any, **opts: Any) -> "PlanBuilder":
        return self.add_step("col_vals_not_equal", columns, value=value, **opts)

    def col_vals_between(
        self,
        columns: Columns,
        left: Any,
        right: Any,
        inclusive: tuple[bool, bool] = (True, True),
        **opts: Any,
    ) -> "PlanBuilder":
        return self.add_step("col_vals_between", columns, left=left, right=right, inclusive=inclusive, **opts)

    def col_vals_not_between(
        self,
        columns: Columns,
        left: Any,
        right: Any,
        inclusive: tuple[bool, bool] = (True, True),
        **opts: Any,
    ) -> "PlanBuilder":
        return self.add_step("col_vals_not_between", columns, left=left, right=right, inclusive=inclusive, **opts)

    def col_vals_in_set(self, columns: Columns, values: Sequence[Any], **opts: Any) -> "PlanBuilder":
        return self.add_step("col_vals_in_set", columns, set=list(values), **opts)

    def col_vals_not_in_set(self, columns: Columns, values: Sequence[Any], **opts: Any) -> "PlanBuilder":
        return self.add_step("col_vals_not_in_set", columns, set=list(values), **opts)

    def col_vals_regex(self, columns: Columns, regex: str, **opts: Any) -> "PlanBuilder":
        return self.add_step("col_vals_regex", columns, regex=regex, **opts)

    def col_vals_null(self, columns: Columns, **opts: Any) -> "PlanBuilder":
        return self.add_step("col_vals_null", columns, **opts)

    def col_vals_not_null(self, columns: Columns, **opts: Any) -> "PlanBuilder":
        return self.add_step("col_vals_not_null", columns, **opts)

    def rows_distinct(self, columns: Columns = None, **opts: Any) -> "PlanBuilder":
        return self.add_step("rows_distinct", columns, **opts)

    def col_vals_expr(self, predicate: Callable, columns: Columns = None, **opts: Any) -> "PlanBuilder":
        return self.add_step("col_vals_expr", columns, predicate=predicate, **opts)

    def build(self, require_steps: bool = False) -> ValidationPlan:
        """Build and return the plan."""
        if require_steps and not any(step.active for step in self._steps):
            raise ConfigurationError("Plan has no active steps")
        return ValidationPlan(label=self.label, steps=tuple(self._steps), thresholds=self._thresholds)


class PlanConfigLoader:
    """
    Loads validation plans from YAML configuration files.

    Expected YAML format:
    ```yaml
    label: A simple example
    actions:
      warn_fraction: 0.1
      stop_fraction: 0.25
      notify_fraction: 0.35
      stop_actions: [log]
    steps:
    - col_exists:
        columns: vars(date, date_time)
    - col_vals_regex:
        columns: vars(b)
        regex: '[0-9]-[a-z]{3}-[0-9]{3}'
    - rows_distinct:
        columns: ~
    - col_vals_gt:
        columns: vars(d)
        value: 100.0
        actions:
          stop_fraction: 0.5
    ```
    """

    def __init__(self, config_path: str | Path, action_factories: Mapping[str, Callable] | None = None):
        """
        Initialize the plan config loader.

        Args:
            config_path: Path to the YAML configuration file
            action_factories: Name -> factory mapping for action names
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise ConfigurationError(f"Plan configuration file not found: {config_path}")
        self.action_factories = action_factories

    def load_plan(self) -> ValidationPlan:
        """
        Load and parse the plan.

        Raises:
            ConfigurationError: If the YAML is invalid or a step is malformed
        """
        try:
            with open(self.config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e

        return parse_plan(config, self.action_factories)


def parse_plan(config: Any, action_factories: Mapping[str, Callable] | None = None) -> ValidationPlan:
    """Build a ValidationPlan from an already-parsed plan mapping."""
    if not isinstance(config, Mapping) or "steps" not in config:
        raise ConfigurationError("Plan configuration must contain a 'steps' section")

    unknown = set(config) - {"label", "actions", "steps"} - set(INFORMATIONAL_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown plan section(s): {', '.join(sorted(unknown))}")

    builder = PlanBuilder(label=config.get("label"))
    builder.set_thresholds(build_thresholds(config.get("actions"), action_factories))

    steps = config["steps"] or []
    if not isinstance(steps, list):
        raise ConfigurationError("'steps' must be a list")

    for position, step_def in enumerate(steps, start=1):
        step_type, options = _parse_step(step_def, position)
        columns = options.pop("columns", None)
        active = options.pop("active", True)
        label = options.pop("label", None)
        actions = options.pop("actions", None)
        builder.add_step(step_type, columns, active=active, label=label, actions=actions, **options)

    return builder.build()


def _parse_step(step_def: Any, position: int) -> tuple[str, dict[str, Any]]:
    """
    Parse a single `{step_type: {options}}` entry.

    Raises:
        ConfigurationError: If the entry is not a single-key mapping
    """
    if not isinstance(step_def, Mapping) or len(step_def) != 1:
        raise ConfigurationError(f"Step {position} must be a mapping with exactly one step type")
    step_type, options = next(iter(step_def.items()))
    if options is None:
        options = {}
    if not isinstance(options, Mapping):
        raise ConfigurationError(f"Options for step {position} ('{step_type}') must be a mapping")
    return step_type, dict(options)


def load_plan(config_path: str | Path, action_factories: Mapping[str, Callable] | None = None) -> ValidationPlan:
    """Load a ValidationPlan from a YAML file."""
    return PlanConfigLoader(config_path, action_factories).load_plan()

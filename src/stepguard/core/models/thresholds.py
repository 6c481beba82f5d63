"""
Threshold configuration: warn/stop/notify boundaries and their actions.
"""

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, field_validator

from .severity import SEVERITY_ORDER, SeverityLevel

ThresholdValue = int | float | None
Action = Callable[..., Any]


def check_threshold_value(value: Any) -> ThresholdValue:
    """
    Validate a single threshold value.

    Floats are failing fractions and must lie in (0, 1]. Integers are
    absolute failing-row counts and must be >= 1. None disables the level.
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError(f"threshold must be a number or null, got {type(value).__name__}")
    if isinstance(value, int):
        if value < 1:
            raise ValueError(f"absolute threshold count must be >= 1, got {value}")
        return value
    if not 0.0 < value <= 1.0:
        raise ValueError(
            f"fractional threshold must lie in (0, 1], got {value}; "
            "use an integer for an absolute failing-row count"
        )
    return value


class ThresholdOverrides(BaseModel):
    """
    Per-step replacement of the run-wide threshold values.

    Only fields explicitly passed take effect; an explicit None disables
    that level for the step.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    warn_fraction: ThresholdValue = None
    stop_fraction: ThresholdValue = None
    notify_fraction: ThresholdValue = None

    @field_validator("warn_fraction", "stop_fraction", "notify_fraction", mode="before")
    @classmethod
    def validate_threshold(cls, v):
        return check_threshold_value(v)


class ThresholdConfig(BaseModel):
    """
    Run-wide threshold configuration.

    Attributes:
        warn_fraction: Failing fraction (or count) at which warn is breached
        stop_fraction: Failing fraction (or count) at which stop is breached
        notify_fraction: Failing fraction (or count) at which notify is breached
        warn_actions: Callables fired when warn is the highest level breached
        stop_actions: Callables fired when stop is the highest level breached
        notify_actions: Callables fired when notify is the highest level breached
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    warn_fraction: ThresholdValue = None
    stop_fraction: ThresholdValue = None
    notify_fraction: ThresholdValue = None
    warn_actions: tuple[Action, ...] = ()
    stop_actions: tuple[Action, ...] = ()
    notify_actions: tuple[Action, ...] = ()

    @field_validator("warn_fraction", "stop_fraction", "notify_fraction", mode="before")
    @classmethod
    def validate_threshold(cls, v):
        return check_threshold_value(v)

    @field_validator("warn_actions", "stop_actions", "notify_actions", mode="before")
    @classmethod
    def validate_actions(cls, v):
        if v is None:
            return ()
        if callable(v):
            return (v,)
        return v

    def threshold_for(self, level: SeverityLevel) -> ThresholdValue:
        return getattr(self, f"{level.value}_fraction")

    def actions_for(self, level: SeverityLevel) -> tuple[Action, ...]:
        return getattr(self, f"{level.value}_actions")

    def configured_levels(self) -> tuple[SeverityLevel, ...]:
        """Levels with a threshold set, least severe first."""
        return tuple(level for level in SEVERITY_ORDER if self.threshold_for(level) is not None)

    def with_overrides(self, overrides: ThresholdOverrides | None) -> "ThresholdConfig":
        """Return a copy with the explicitly set override fields applied."""
        if overrides is None or not overrides.model_fields_set:
            return self
        update = {name: getattr(overrides, name) for name in overrides.model_fields_set}
        return self.model_copy(update=update)

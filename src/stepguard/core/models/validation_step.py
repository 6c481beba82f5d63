"""
ValidationStep model: one immutable, declarative validation rule.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from stepguard.core.steps import StepParameters, get_step_type

from .thresholds import ThresholdOverrides


class ValidationStep(BaseModel):
    """
    One validation rule in a plan.

    Attributes:
        index: 1-based position in the plan; stable identity for reporting
        type: Registered step-type tag ("col_vals_gt", "rows_distinct", ...)
        target: Column reference(s), or None for table-level checks
        parameters: Rule-specific parameters, validated by the step type
        active: Inactive steps are skipped entirely
        threshold_overrides: Per-step replacement of the run-wide thresholds
        label: Optional free-text description
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=1)
    type: str = Field(..., min_length=1)
    target: tuple[str, ...] | None = None
    parameters: StepParameters = Field(default_factory=StepParameters)
    active: bool = True
    threshold_overrides: ThresholdOverrides | None = None
    label: str | None = None

    @field_validator("target", mode="before")
    @classmethod
    def normalize_target(cls, v):
        if isinstance(v, str):
            return (v,)
        if v is not None and len(v) == 0:
            return None
        return v

    @model_validator(mode="before")
    @classmethod
    def resolve_parameters(cls, data: Any) -> Any:
        """Validate raw parameter mappings against the step type's model."""
        if not isinstance(data, dict) or "type" not in data:
            return data
        step_type = get_step_type(data["type"])
        raw = data.get("parameters")
        if raw is None or isinstance(raw, dict):
            data = {**data, "parameters": step_type.parse_parameters(raw or {})}
        elif not isinstance(raw, step_type.parameters_model):
            raise ValueError(
                f"parameters for '{step_type.tag}' must be {step_type.parameters_model.__name__}, "
                f"got {type(raw).__name__}"
            )
        return data

    @model_validator(mode="after")
    def check_target(self):
        get_step_type(self.type).check_target(self.target)
        return self

    @property
    def column(self) -> str | None:
        """The single target column of a column-wise step."""
        return self.target[0] if self.target else None

    def describe(self) -> str:
        target = ", ".join(self.target) if self.target else "*"
        return f"#{self.index} {self.type}({target})"

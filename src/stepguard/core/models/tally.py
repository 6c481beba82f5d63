"""
Tally model: pass/fail/NA counts for one step.
"""

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class Tally(BaseModel):
    """
    Pass/fail/NA row counts for one evaluated step.

    When the evaluation itself failed, every count is None (NA) and
    evaluation_failed is True.

    Attributes:
        n: Total units evaluated
        n_pass: Units that passed
        n_fail: Units that failed
        n_na: Units classified as NA
        evaluation_failed: True when the evaluator raised
    """

    model_config = ConfigDict(frozen=True)

    n: int | None = Field(None, ge=0)
    n_pass: int | None = Field(None, ge=0)
    n_fail: int | None = Field(None, ge=0)
    n_na: int | None = Field(None, ge=0)
    evaluation_failed: bool = False

    @model_validator(mode="after")
    def check_consistency(self):
        counts = (self.n, self.n_pass, self.n_fail, self.n_na)
        if self.evaluation_failed:
            if any(c is not None for c in counts):
                raise ValueError("counts must be NA when evaluation_failed is set")
            return self
        if any(c is None for c in counts):
            raise ValueError("all counts are required when evaluation succeeded")
        if self.n_pass + self.n_fail + self.n_na != self.n:
            raise ValueError(
                f"n_pass + n_fail + n_na ({self.n_pass} + {self.n_fail} + {self.n_na}) "
                f"must equal n ({self.n})"
            )
        return self

    @computed_field
    @property
    def f_failed(self) -> float | None:
        if self.evaluation_failed:
            return None
        if self.n == 0:
            return 0.0
        return self.n_fail / self.n

    @computed_field
    @property
    def f_passed(self) -> float | None:
        if self.evaluation_failed:
            return None
        if self.n == 0:
            return 0.0
        return self.n_pass / self.n

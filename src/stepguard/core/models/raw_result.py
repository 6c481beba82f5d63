"""
Raw evaluation results handed from a table evaluator to the tally computer.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RowResults(BaseModel):
    """
    Per-row classification aligned to table row order.

    Each entry is True (pass), False (fail) or None (NA).
    """

    model_config = ConfigDict(frozen=True)

    values: tuple[bool | None, ...] = ()


class AggregateCounts(BaseModel):
    """
    Pre-aggregated counts, used when a backend computes results server side.
    """

    model_config = ConfigDict(frozen=True)

    n: int = Field(..., ge=0)
    n_fail: int = Field(..., ge=0)
    n_na: int = Field(0, ge=0)

    @model_validator(mode="after")
    def check_counts(self):
        if self.n_fail + self.n_na > self.n:
            raise ValueError(
                f"n_fail ({self.n_fail}) + n_na ({self.n_na}) exceeds n ({self.n})"
            )
        return self


RawResult = RowResults | AggregateCounts

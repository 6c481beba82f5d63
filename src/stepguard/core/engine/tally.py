"""
Tally computation: reduce raw evaluation results to pass/fail/NA counts.
"""

from stepguard.core.models import AggregateCounts, RawResult, RowResults, Tally
from stepguard.core.steps import NAPolicy


def compute_tally(raw_result: RawResult, na_policy: NAPolicy = NAPolicy.EXCLUDE) -> Tally:
    """
    Reduce a raw result to a Tally.

    Per-row results are counted directly; aggregate results take n_pass as
    the remainder. NA units are then moved according to the step type's
    NA policy.

    Args:
        raw_result: RowResults or AggregateCounts from a table evaluator
        na_policy: How the step type counts NA units

    Returns:
        Tally with n_pass + n_fail + n_na == n
    """
    if isinstance(raw_result, RowResults):
        n = len(raw_result.values)
        n_fail = sum(1 for v in raw_result.values if v is False)
        n_na = sum(1 for v in raw_result.values if v is None)
    elif isinstance(raw_result, AggregateCounts):
        n, n_fail, n_na = raw_result.n, raw_result.n_fail, raw_result.n_na
    else:
        raise TypeError(f"Unsupported raw result type: {type(raw_result).__name__}")

    if na_policy is NAPolicy.FAIL:
        n_fail, n_na = n_fail + n_na, 0
    elif na_policy is NAPolicy.PASS:
        n_na = 0

    return Tally(n=n, n_pass=n - n_fail - n_na, n_fail=n_fail, n_na=n_na)


def failed_tally() -> Tally:
    """Tally for a step whose evaluation raised: every count is NA."""
    return Tally(evaluation_failed=True)

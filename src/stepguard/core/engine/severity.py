"""
Severity evaluation: compare a tally against warn/stop/notify thresholds.
"""

from stepguard.core.models import (
    SEVERITY_ORDER,
    SeverityLevel,
    Tally,
    ThresholdConfig,
    ThresholdOverrides,
)


def resolve_thresholds(
    config: ThresholdConfig,
    overrides: ThresholdOverrides | None,
) -> ThresholdConfig:
    """Apply a step's threshold overrides to the run-wide configuration."""
    return config.with_overrides(overrides)


def is_breached(tally: Tally, threshold: int | float | None) -> bool:
    """
    Check a single threshold against a successfully evaluated tally.

    Integer thresholds compare the failing count, float thresholds the
    failing fraction; both comparisons are inclusive.
    """
    if threshold is None or tally.evaluation_failed:
        return False
    if isinstance(threshold, int):
        return tally.n_fail >= threshold
    return tally.f_failed >= threshold


def classify(
    tally: Tally,
    thresholds: ThresholdConfig,
) -> tuple[frozenset[SeverityLevel], SeverityLevel | None]:
    """
    Determine which levels a tally breaches.

    A failed evaluation implicitly breaches the most severe configured
    level, so evaluation failures always reach an action path when one
    is configured.

    Returns:
        (breached_levels, highest_breached)
    """
    configured = thresholds.configured_levels()

    if tally.evaluation_failed:
        if not configured:
            return frozenset(), None
        most_severe = configured[-1]
        return frozenset({most_severe}), most_severe

    breached = frozenset(
        level for level in configured
        if is_breached(tally, thresholds.threshold_for(level))
    )
    highest = highest_level(breached)
    return breached, highest


def highest_level(levels: frozenset[SeverityLevel]) -> SeverityLevel | None:
    for level in reversed(SEVERITY_ORDER):
        if level in levels:
            return level
    return None

"""
Severity levels, ranked least to most severe.
"""

from enum import Enum


class SeverityLevel(str, Enum):
    """Severity level a step can breach: warn < stop < notify."""

    WARN = "warn"
    STOP = "stop"
    NOTIFY = "notify"

    @property
    def rank(self) -> int:
        return SEVERITY_ORDER.index(self)

    def __str__(self) -> str:
        return self.value


SEVERITY_ORDER: tuple[SeverityLevel, ...] = (
    SeverityLevel.WARN,
    SeverityLevel.STOP,
    SeverityLevel.NOTIFY,
)

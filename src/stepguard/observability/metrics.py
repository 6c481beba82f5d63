"""
Prometheus metrics collection for stepguard

This module provides metrics instrumentation for validation runs:
steps evaluated, threshold breaches, evaluation and action failures,
and run duration.
"""
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from stepguard.core.models import RunResult, StepOutcome

# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# STEP METRICS
# =======================

steps_evaluated_total = Counter(
    name="stepguard_steps_evaluated_total",
    documentation="Total number of validation steps evaluated",
    labelnames=["step_type", "status"],  # status: passed, failed, error
    registry=REGISTRY,
)

threshold_breaches_total = Counter(
    name="stepguard_threshold_breaches_total",
    documentation="Total number of steps whose highest breached level was this level",
    labelnames=["level"],
    registry=REGISTRY,
)

evaluation_failures_total = Counter(
    name="stepguard_evaluation_failures_total",
    documentation="Total number of steps that could not be evaluated",
    labelnames=["step_type"],
    registry=REGISTRY,
)

action_failures_total = Counter(
    name="stepguard_action_failures_total",
    documentation="Total number of actions that raised while being dispatched",
    labelnames=["level"],
    registry=REGISTRY,
)

# =======================
# RUN METRICS
# =======================

runs_total = Counter(
    name="stepguard_runs_total",
    documentation="Total number of validation runs",
    labelnames=["status"],  # status: passed, failed
    registry=REGISTRY,
)

run_duration_seconds = Histogram(
    name="stepguard_run_duration_seconds",
    documentation="Time spent running a validation plan in seconds",
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0],
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    if labels:
        counter.labels(**labels).inc(value)
    else:
        counter.inc(value)


# =======================
# METRICS COLLECTOR CLASS
# =======================

class MetricsCollector:
    """
    Metrics collector for validation runs.

    The runner reports each finished step and each finished run here.
    """

    def record_step(self, outcome: StepOutcome) -> None:
        """
        Record a finished step.

        Args:
            outcome: The step's final outcome
        """
        if outcome.evaluation_failed:
            status = "error"
            increment_counter(evaluation_failures_total, step_type=outcome.step_type)
        else:
            status = "passed" if outcome.passed else "failed"
        increment_counter(steps_evaluated_total, step_type=outcome.step_type, status=status)

        if outcome.highest_breached is not None:
            increment_counter(threshold_breaches_total, level=outcome.highest_breached.value)

        for failure in outcome.action_errors:
            increment_counter(action_failures_total, level=failure.level.value)

    def record_run(self, result: RunResult) -> None:
        """
        Record a finished run.

        Args:
            result: The run result
        """
        status = "passed" if result.all_passed else "failed"
        increment_counter(runs_total, status=status)
        run_duration_seconds.observe(max(result.duration_seconds, 0.0))

    def get_metrics(self) -> bytes:
        """Prometheus text exposition of every stepguard metric."""
        return generate_metrics()

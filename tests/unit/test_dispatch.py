"""
Unit tests for action dispatch
"""

import pytest

from stepguard.core.engine import ActionDispatcher, build_context
from stepguard.core.errors import StepStopError
from stepguard.core.models import SeverityLevel, StepOutcome, Tally, ThresholdConfig


def make_outcome(breached: set[SeverityLevel], tally: Tally | None = None, error: str | None = None) -> StepOutcome:
    highest = max(breached, key=lambda level: level.rank) if breached else None
    return StepOutcome(
        step_index=2,
        step_type="col_vals_lte",
        target=("c",),
        tally=tally or Tally(n=13, n_pass=5, n_fail=8, n_na=0),
        breached_levels=frozenset(breached),
        highest_breached=highest,
        error=error,
    )


@pytest.fixture
def dispatcher() -> ActionDispatcher:
    return ActionDispatcher()


class TestActionDispatcher:
    """Tests for ActionDispatcher"""

    def test_only_highest_level_fires(self, dispatcher, recording_action_factory):
        warn_action = recording_action_factory("warn_action")
        stop_action = recording_action_factory("stop_action")
        thresholds = ThresholdConfig(
            warn_fraction=0.1,
            stop_fraction=0.25,
            warn_actions=[warn_action],
            stop_actions=[stop_action],
        )

        report = dispatcher.dispatch(make_outcome({SeverityLevel.WARN, SeverityLevel.STOP}), thresholds)

        assert report.fired == 1
        assert report.failures == ()
        assert warn_action.call_count == 0
        assert stop_action.call_count == 1

    def test_context_snapshot(self, dispatcher, recording_action_factory):
        action = recording_action_factory()
        thresholds = ThresholdConfig(warn_fraction=0.1, warn_actions=action)

        dispatcher.dispatch(make_outcome({SeverityLevel.WARN}), thresholds)

        context = action.calls[0]
        assert context.step_index == 2
        assert context.step_type == "col_vals_lte"
        assert context.target == ("c",)
        assert context.n_fail == 8
        assert context.f_failed == pytest.approx(8 / 13)
        assert context.breached_level is SeverityLevel.WARN
        assert context.threshold_value == 0.1
        assert "breached warn" in context.message()

    def test_actions_run_in_order(self, dispatcher):
        calls = []

        def first(context):
            calls.append("first")

        def second(context):
            calls.append("second")

        thresholds = ThresholdConfig(notify_fraction=0.5, notify_actions=[first, second])
        dispatcher.dispatch(make_outcome({SeverityLevel.NOTIFY}), thresholds)

        assert calls == ["first", "second"]

    def test_no_breach_fires_nothing(self, dispatcher, recording_action_factory):
        action = recording_action_factory()
        thresholds = ThresholdConfig(warn_fraction=0.9, warn_actions=[action])

        report = dispatcher.dispatch(make_outcome(set()), thresholds)

        assert report.fired == 0
        assert action.call_count == 0

    def test_breach_without_actions(self, dispatcher):
        thresholds = ThresholdConfig(warn_fraction=0.1)
        report = dispatcher.dispatch(make_outcome({SeverityLevel.WARN}), thresholds)
        assert report.fired == 0
        assert report.failures == ()

    def test_failing_action_is_recorded_and_others_run(self, dispatcher, recording_action_factory):
        def broken_action(context):
            raise RuntimeError("webhook down")

        after = recording_action_factory("after")
        thresholds = ThresholdConfig(stop_fraction=0.25, stop_actions=[broken_action, after])

        report = dispatcher.dispatch(make_outcome({SeverityLevel.STOP}), thresholds)

        assert report.fired == 2
        assert after.call_count == 1
        assert len(report.failures) == 1
        failure = report.failures[0]
        assert failure.action_name == "broken_action"
        assert failure.error_type == "RuntimeError"
        assert failure.message == "webhook down"
        assert failure.level is SeverityLevel.STOP
        assert failure.stop is False

    def test_stop_error_is_flagged(self, dispatcher):
        def halt(context):
            raise StepStopError("halt requested")

        thresholds = ThresholdConfig(stop_fraction=0.25, stop_actions=[halt])
        report = dispatcher.dispatch(make_outcome({SeverityLevel.STOP}), thresholds)

        assert report.failures[0].stop is True

    def test_evaluation_failure_context(self, dispatcher, recording_action_factory):
        action = recording_action_factory()
        thresholds = ThresholdConfig(stop_fraction=0.25, stop_actions=[action])
        outcome = make_outcome(
            {SeverityLevel.STOP},
            tally=Tally(evaluation_failed=True),
            error="KeyError: 'Column(s) not found in table: z'",
        )

        dispatcher.dispatch(outcome, thresholds)

        context = action.calls[0]
        assert context.evaluation_failed is True
        assert context.n is None
        assert context.f_failed is None
        assert "evaluation failed" in context.message()


class TestBuildContext:
    def test_threshold_value_of_highest_level(self):
        thresholds = ThresholdConfig(warn_fraction=0.1, stop_fraction=3)
        context = build_context(make_outcome({SeverityLevel.WARN, SeverityLevel.STOP}), thresholds)
        assert context.breached_level is SeverityLevel.STOP
        assert context.threshold_value == 3

"""
Unit tests for ValidationRunner

Runs complete plans against the in-memory example table.
"""

import pytest

from stepguard.core.engine import ValidationRunner
from stepguard.core.errors import ConfigurationError
from stepguard.core.models import SeverityLevel, ThresholdConfig, ThresholdOverrides, ValidationStep
from stepguard.core.plan import PlanBuilder
from stepguard.observability.metrics import REGISTRY
from stepguard.tables import MemoryTableEvaluator, RecordTable


@pytest.fixture
def level_actions(recording_action_factory):
    """One recording action per severity level"""
    return {
        "warn": recording_action_factory("warn_action"),
        "stop": recording_action_factory("stop_action"),
        "notify": recording_action_factory("notify_action"),
    }


@pytest.fixture
def thresholds(level_actions) -> ThresholdConfig:
    return ThresholdConfig(
        warn_fraction=0.1,
        stop_fraction=0.25,
        notify_fraction=0.35,
        warn_actions=[level_actions["warn"]],
        stop_actions=[level_actions["stop"]],
        notify_actions=[level_actions["notify"]],
    )


class TestRunScenarios:
    """End-to-end runs of small plans"""

    def test_highest_breached_level_fires(self, small_table, memory_evaluator, thresholds, level_actions):
        # a > 2 fails 4 of 13 rows: f_failed ~ 0.308
        plan = PlanBuilder().set_thresholds(thresholds).col_vals_gt("a", 2).build()

        result = plan.run(small_table, memory_evaluator)

        outcome = result.get_outcome(1)
        assert outcome.tally.n == 13
        assert outcome.tally.n_fail == 4
        assert outcome.tally.f_failed == pytest.approx(4 / 13)
        assert outcome.breached_levels == frozenset({SeverityLevel.WARN, SeverityLevel.STOP})
        assert outcome.highest_breached is SeverityLevel.STOP
        assert outcome.fired_actions == 1
        assert level_actions["stop"].call_count == 1
        assert level_actions["warn"].call_count == 0
        assert level_actions["notify"].call_count == 0
        assert result.warned and result.stopped and not result.notified

    def test_warn_and_stop_fire_only_stop(self, memory_evaluator, recording_action_factory):
        table = RecordTable.from_columns(
            {"d": [50.0, 3423.29, 12.5, 99.9, 283.94, 100.0, 0.0, 1035.64, 7.5, 837.93, 100.0, 108.34, 42.0]}
        )
        warn_action = recording_action_factory("warn_action")
        stop_action = recording_action_factory("stop_action")
        plan = (
            PlanBuilder()
            .thresholds(warn_fraction=0.1, stop_fraction=0.25, warn_actions=warn_action, stop_actions=stop_action)
            .col_vals_gt("d", 100.0)
            .build()
        )

        outcome = plan.run(table, memory_evaluator).get_outcome(1)

        assert outcome.tally.n_fail == 8
        assert outcome.tally.f_failed == pytest.approx(0.615, abs=1e-3)
        assert outcome.breached_levels == frozenset({SeverityLevel.WARN, SeverityLevel.STOP})
        assert outcome.highest_breached is SeverityLevel.STOP
        assert stop_action.call_count == 1
        assert warn_action.call_count == 0

    def test_missing_column_fails_evaluation(self, small_table, memory_evaluator, thresholds, level_actions):
        plan = PlanBuilder().set_thresholds(thresholds).col_vals_gt("z", 0).build()

        result = plan.run(small_table, memory_evaluator)

        outcome = result.get_outcome(1)
        assert outcome.evaluation_failed is True
        assert outcome.tally.n is None
        assert outcome.tally.n_fail is None
        assert outcome.tally.f_failed is None
        assert "KeyError" in outcome.error
        assert outcome.highest_breached is SeverityLevel.NOTIFY
        assert level_actions["notify"].call_count == 1
        assert level_actions["notify"].calls[0].evaluation_failed is True
        assert result.any_evaluation_failed

    def test_no_thresholds_fire_nothing(self, small_table, memory_evaluator):
        plan = PlanBuilder().col_vals_lte("c", 5).col_vals_gt("z", 0).build()

        result = plan.run(small_table, memory_evaluator)

        assert [o.breached_levels for o in result.outcomes] == [frozenset(), frozenset()]
        assert all(o.fired_actions == 0 for o in result.outcomes)
        assert result.get_outcome(1).tally.n_fail == 8
        assert result.get_outcome(2).evaluation_failed

    def test_inactive_step_has_no_outcome(self, small_table, memory_evaluator, thresholds, level_actions):
        plan = (
            PlanBuilder()
            .set_thresholds(thresholds)
            .col_vals_gt("z", 0, active=False)
            .col_exists("date")
            .build()
        )

        result = plan.run(small_table, memory_evaluator)

        assert [o.step_index for o in result.outcomes] == [2]
        assert result.get_outcome(2).passed
        for action in level_actions.values():
            assert action.call_count == 0

    def test_na_values_count_as_failures(self, small_table, memory_evaluator):
        result = PlanBuilder().col_vals_lte("c", 5).build().run(small_table, memory_evaluator)

        tally = result.get_outcome(1).tally
        assert tally.n_pass == 5
        assert tally.n_fail == 8
        assert tally.n_na == 0

    def test_missing_value_allowed_by_set(self, memory_evaluator):
        table = RecordTable.from_columns({"f": ["low", None, "high"]})

        result = PlanBuilder().col_vals_in_set("f", ["low", "high", None]).build().run(table, memory_evaluator)

        tally = result.get_outcome(1).tally
        assert tally.n_pass == 3
        assert tally.n_fail == 0

    def test_boolean_column_equality(self, small_table, memory_evaluator):
        result = PlanBuilder().col_vals_equal("e", True).build().run(small_table, memory_evaluator)

        outcome = result.get_outcome(1)
        assert not outcome.evaluation_failed
        assert outcome.tally.n_fail == 5

    def test_duplicate_rows(self, small_table, memory_evaluator):
        result = PlanBuilder().rows_distinct().build().run(small_table, memory_evaluator)
        assert result.get_outcome(1).tally.n_fail == 2

    def test_step_override_replaces_run_thresholds(self, small_table, memory_evaluator, thresholds, level_actions):
        plan = (
            PlanBuilder()
            .set_thresholds(thresholds)
            .col_vals_gt("a", 2, actions={"stop_fraction": 0.5, "notify_fraction": None})
            .build()
        )

        outcome = plan.run(small_table, memory_evaluator).get_outcome(1)

        assert outcome.breached_levels == frozenset({SeverityLevel.WARN})
        assert level_actions["warn"].call_count == 1

    def test_action_failure_does_not_abort_run(self, small_table, memory_evaluator):
        def broken(context):
            raise RuntimeError("boom")

        plan = (
            PlanBuilder()
            .thresholds(warn_fraction=0.1, warn_actions=[broken])
            .col_vals_gt("a", 2)
            .col_vals_lte("c", 5)
            .build()
        )

        result = plan.run(small_table, memory_evaluator)

        assert len(result.outcomes) == 2
        assert [len(o.action_errors) for o in result.outcomes] == [1, 1]
        assert result.summary()["action_failures"] == 2

    def test_stop_action_is_recorded(self, small_table, memory_evaluator):
        plan = (
            PlanBuilder()
            .thresholds(stop_fraction=0.25, stop_actions=["stop"])
            .col_vals_gt("a", 2)
            .col_exists("date")
            .build()
        )

        result = plan.run(small_table, memory_evaluator)

        failure = result.get_outcome(1).action_errors[0]
        assert failure.stop is True
        assert failure.error_type == "StepStopError"
        assert result.get_outcome(2).passed


class TestRunnerBehaviour:
    """Ordering, isolation and idempotence of runs"""

    def test_outcomes_in_index_order(self, small_table, memory_evaluator):
        steps = [
            ValidationStep(index=3, type="col_exists", target=("a",)),
            ValidationStep(index=1, type="col_exists", target=("b",)),
            ValidationStep(index=2, type="col_exists", target=("c",)),
        ]
        runner = ValidationRunner(steps, None, memory_evaluator)

        result = runner.run(small_table)

        assert [o.step_index for o in result.outcomes] == [1, 2, 3]
        assert [o.target for o in result.outcomes] == [("b",), ("c",), ("a",)]

    def test_evaluation_failure_is_isolated(self, small_table, memory_evaluator):
        def explode(row):
            raise ZeroDivisionError("division by zero")

        plan = PlanBuilder().col_exists("a").col_vals_expr(explode).col_vals_gt("a", 0).build()

        result = plan.run(small_table, memory_evaluator)

        assert [o.evaluation_failed for o in result.outcomes] == [False, True, False]
        assert result.get_outcome(2).error == "ZeroDivisionError: division by zero"
        assert result.get_outcome(3).passed

    def test_missing_handler_fails_evaluation(self, small_table):
        class NoRegexEvaluator(MemoryTableEvaluator):
            backend = "noregex"

            def default_handlers(self):
                handlers = super().default_handlers()
                del handlers["col_vals_regex"]
                return handlers

        plan = PlanBuilder().col_vals_regex("b", "^[0-9]").build()
        outcome = plan.run(small_table, NoRegexEvaluator()).get_outcome(1)

        assert outcome.evaluation_failed
        assert "No noregex handler" in outcome.error

    def test_runs_are_idempotent(self, small_table, memory_evaluator):
        plan = (
            PlanBuilder()
            .thresholds(warn_fraction=0.1, stop_fraction=3)
            .col_vals_lte("c", 5)
            .rows_distinct()
            .col_vals_gt("z", 0)
            .build()
        )

        first = plan.run(small_table, memory_evaluator)
        second = plan.run(small_table, memory_evaluator)

        assert first.outcomes == second.outcomes

    def test_empty_plan(self, small_table, memory_evaluator):
        result = ValidationRunner([], None, memory_evaluator).run(small_table)
        assert result.outcomes == ()
        assert result.all_passed

    def test_require_steps(self, memory_evaluator):
        steps = [ValidationStep(index=1, type="col_exists", target=("a",), active=False)]
        with pytest.raises(ConfigurationError):
            ValidationRunner(steps, None, memory_evaluator, require_steps=True)

    def test_duplicate_indices_rejected(self, memory_evaluator):
        steps = [
            ValidationStep(index=1, type="col_exists", target=("a",)),
            ValidationStep(index=1, type="col_exists", target=("b",)),
        ]
        with pytest.raises(ConfigurationError):
            ValidationRunner(steps, None, memory_evaluator)

    def test_invalid_thresholds_rejected(self, memory_evaluator):
        with pytest.raises(ConfigurationError):
            ValidationRunner([], {"warn_fraction": 0.1}, memory_evaluator)

    def test_invalid_evaluator_rejected(self):
        with pytest.raises(ConfigurationError):
            ValidationRunner([], None, object())

    def test_step_override_on_model(self, small_table, memory_evaluator):
        step = ValidationStep(
            index=1,
            type="col_vals_gt",
            target=("a",),
            parameters={"value": 2},
            threshold_overrides=ThresholdOverrides(warn_fraction=1),
        )
        runner = ValidationRunner([step], ThresholdConfig(warn_fraction=0.9), memory_evaluator)

        outcome = runner.run(small_table).get_outcome(1)
        assert outcome.highest_breached is SeverityLevel.WARN


class TestRunMetrics:
    """Runs are reported to the Prometheus registry"""

    def _sample(self, name: str, **labels) -> float:
        return REGISTRY.get_sample_value(name, labels) or 0.0

    def test_metrics_recorded(self, small_table, memory_evaluator):
        evaluated_before = self._sample(
            "stepguard_steps_evaluated_total", step_type="col_vals_gt", status="failed"
        )
        errors_before = self._sample("stepguard_evaluation_failures_total", step_type="col_vals_lt")
        breaches_before = self._sample("stepguard_threshold_breaches_total", level="stop")
        runs_before = self._sample("stepguard_runs_total", status="failed")

        plan = (
            PlanBuilder()
            .thresholds(stop_fraction=0.25)
            .col_vals_gt("a", 2)
            .col_vals_lt("z", 1)
            .build()
        )
        plan.run(small_table, memory_evaluator)

        assert self._sample(
            "stepguard_steps_evaluated_total", step_type="col_vals_gt", status="failed"
        ) == evaluated_before + 1
        assert self._sample("stepguard_evaluation_failures_total", step_type="col_vals_lt") == errors_before + 1
        assert self._sample("stepguard_threshold_breaches_total", level="stop") == breaches_before + 2
        assert self._sample("stepguard_runs_total", status="failed") == runs_before + 1

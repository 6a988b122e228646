"""
═══════════════════════════════════════════════════════════════════════════════
                    PROCPLAN — Schedule Optimizer Tests
═══════════════════════════════════════════════════════════════════════════════

Evaluator, bottleneck detection, the four strategies, constraints,
cancellation, scenarios and the background runner.

Run with: python -m pytest procplan/tests/test_optimizer.py -v
"""
import math
import time
from datetime import date, timedelta

import pytest

from procplan.config import OptimizationAlgorithm, OptimizerSettings
from procplan.errors import ComputationTimeout, ConfigurationError, InvalidConfiguration
from procplan.optimization import (
    AvailabilityWindow,
    BottleneckKind,
    CancellationToken,
    GreedyStrategy,
    Impact,
    OptimizationConfig,
    OptimizationConstraints,
    OptimizationMetrics,
    OptimizationObjectives,
    OptimizationResult,
    OptimizationRunner,
    OptimizationStrategy,
    Resource,
    ResourceKind,
    ScheduleOptimizer,
    StopCondition,
    StrategyOutcome,
    compare_results,
    compute_metrics,
    count_conflicts,
    detect_bottlenecks,
    find_dependency_cycles,
    fitness,
    priority_score,
    span_days,
)
from procplan.optimization.base import ScheduleConstraints
from procplan.optimization.bottlenecks import budget_bottlenecks, date_bottlenecks, resource_bottlenecks
from procplan.optimization.critical_path import critical_route, slack_days
from procplan.optimization.evaluator import efficiency_for_load, resource_assignment
from procplan.scheduling.types import Criticality
from procplan.tests.conftest import TODAY, make_item

MONDAY = date(2025, 6, 2)


@pytest.fixture
def optimizer():
    return ScheduleOptimizer(today=TODAY)


@pytest.fixture
def contended():
    """Overlapping items on two resources plus one unassigned item."""
    return [
        make_item("a", 2, 5, amount=3000.0, criticality=Criticality.HIGH, resource_id="R1"),
        make_item("b", 4, 6, amount=1500.0, resource_id="R1"),
        make_item("c", 10, 3, amount=800.0, criticality=Criticality.MEDIUM, resource_id="R2"),
        make_item("d", 12, 8, amount=500.0, resource_id="R2"),
        make_item("e", 20, 4, amount=2000.0, criticality=Criticality.CRITICAL, resource_id="R2"),
        make_item("f", 25, 10),
    ]


def dates(schedule):
    return [(i.id, i.start, i.end) for i in schedule]


# ============================================================
# EVALUATOR
# ============================================================

class TestEvaluator:

    def test_span(self):
        assert span_days([make_item("a", 0, 5), make_item("b", 3, 10)]) == 13
        assert span_days([]) == 0

    def test_conflicts_count_pairs_and_overload(self, resources):
        a = make_item("a", 0, 5, resource_id="R1")
        b = make_item("b", 3, 10, resource_id="R1")
        c = make_item("c", 20, 5, resource_id="R1")
        assert count_conflicts([a, b], resources) == 2
        assert count_conflicts([a, b, c], resources) == 3

    def test_unassigned_items_never_conflict(self, resources):
        items = [make_item("a", 0, 5), make_item("b", 0, 5)]
        assert count_conflicts(items, resources) == 0

    @pytest.mark.parametrize("load,expected", [(0, 0.0), (50, 70.0), (80, 100.0), (100, 80.0)])
    def test_efficiency_peaks_at_80(self, load, expected):
        assert efficiency_for_load(load) == pytest.approx(expected)

    def test_resource_assignment_in_pool_order(self, resources):
        assignment = resource_assignment([make_item("a", 0, 5, resource_id="R2")], resources)
        assert [a.resource_id for a in assignment] == ["R1", "R2"]
        assert assignment[1].assigned_item_ids == ["a"]
        assert assignment[1].load_percent == pytest.approx(50.0)
        assert assignment[1].efficiency == pytest.approx(70.0)

    def test_fitness(self, resources):
        items = [make_item("a", 0, 5, resource_id="R2")]
        assert fitness(items, resources, OptimizationObjectives()) == pytest.approx(200_000.0 + 35.0)
        time_only = OptimizationObjectives(maximize_efficiency=False)
        assert fitness(items, resources, time_only) == pytest.approx(200_000.0)

    def test_priority_score(self):
        item = make_item("a", 0, 5, amount=1000.0, criticality=Criticality.HIGH)
        assert priority_score(item) == pytest.approx(3 * math.log(1001.0))

    def test_metrics(self, resources):
        a = make_item("a", 0, 5, resource_id="R1")
        b = make_item("b", 3, 10, resource_id="R1")
        metrics = compute_metrics([a, b], [a, b.shifted(3)], resources)
        assert metrics.days_saved == 0
        assert metrics.conflicts_resolved == 1
        assert metrics.estimated_cost == pytest.approx(500.0)


# ============================================================
# BOTTLENECKS
# ============================================================

class TestBottlenecks:

    def test_resource_overload(self, resources):
        items = [make_item("a", 0, 5, resource_id="R1"), make_item("b", 10, 5, resource_id="R1")]
        items += [make_item(f"s{i}", 0, 5, resource_id="R2") for i in range(3)]
        found = resource_bottlenecks(items, resources)

        assert [b.impact for b in found] == [Impact.CRITICAL, Impact.HIGH]
        assert found[0].affected_item_ids == ["a", "b"]
        assert found[0].estimated_resolution_cost == pytest.approx(10_000.0)
        assert found[1].estimated_resolution_cost == pytest.approx(15_000.0)

    def test_coincident_dates(self):
        items = [make_item(f"h{i}", 0, 5, criticality=Criticality.HIGH) for i in range(3)]
        items += [make_item(f"k{i}", 2, 7, criticality=Criticality.CRITICAL) for i in range(2)]
        items += [make_item("low", 0, 5)]
        found = date_bottlenecks(items)

        assert len(found) == 1
        assert found[0].kind == BottleneckKind.DATE
        assert found[0].impact == Impact.HIGH
        assert found[0].estimated_resolution_cost == pytest.approx(30_000.0)
        assert "low" not in found[0].affected_item_ids

    def test_many_coincident_dates_are_critical(self):
        items = [make_item(f"h{i}", 0, 5, criticality=Criticality.HIGH) for i in range(5)]
        assert date_bottlenecks(items)[0].impact == Impact.CRITICAL

    def test_dependency_cycles(self):
        items = [
            make_item("a", 0, 5, depends_on=["c"]),
            make_item("b", 0, 5, depends_on=["a"]),
            make_item("c", 0, 5, depends_on=["b"]),
            make_item("d", 0, 5, depends_on=["a", "missing"]),
        ]
        cycles = find_dependency_cycles(items)
        assert len(cycles) == 1
        assert set(cycles[0]) == {"a", "b", "c"}

        found = detect_bottlenecks(items, [])
        assert [b.kind for b in found] == [BottleneckKind.DEPENDENCY]
        assert found[0].impact == Impact.CRITICAL
        assert found[0].estimated_resolution_cost == pytest.approx(45_000.0)

    def test_acyclic_graph(self):
        items = [make_item("a", 0, 5), make_item("b", 0, 5, depends_on=["a"])]
        assert find_dependency_cycles(items) == []

    def test_long_dependency_chain(self):
        items = [make_item("i0", 0, 5)]
        items += [make_item(f"i{n}", 0, 5, depends_on=[f"i{n - 1}"]) for n in range(1, 2000)]
        assert find_dependency_cycles(items) == []
        assert detect_bottlenecks(items, []) == []

        items[0] = make_item("i0", 0, 5, depends_on=["i1999"])
        cycles = find_dependency_cycles(items)
        assert len(cycles) == 1
        assert len(cycles[0]) == 2000

    def test_self_dependency_and_separate_cycles(self):
        items = [
            make_item("solo", 0, 5, depends_on=["solo"]),
            make_item("x", 0, 5, depends_on=["y"]),
            make_item("y", 0, 5, depends_on=["x"]),
            make_item("z", 0, 5, depends_on=["x"]),
        ]
        cycles = find_dependency_cycles(items)
        assert cycles[0] == ["solo"]
        assert set(cycles[1]) == {"x", "y"}
        assert len(cycles) == 2

    @pytest.mark.parametrize("cap,impact", [(2800.0, Impact.HIGH), (2000.0, Impact.CRITICAL), (0.0, Impact.CRITICAL)])
    def test_budget_cap(self, cap, impact):
        items = [make_item(f"i{n}", 0, 5) for n in range(3)]
        found = budget_bottlenecks(items, cap)
        assert found[0].impact == impact
        assert found[0].estimated_resolution_cost == pytest.approx(3000.0 - cap)

    def test_budget_within_cap_or_unset(self):
        items = [make_item("a", 0, 5)]
        assert budget_bottlenecks(items, None) == []
        assert budget_bottlenecks(items, 1000.0) == []

    def test_reported_on_every_run(self, optimizer, resources):
        items = [make_item("a", 0, 5, resource_id="R1"), make_item("b", 10, 5, resource_id="R1")]
        result = optimizer.optimize(items, resources, OptimizationConfig(algorithm="greedy"))
        assert [b.kind for b in result.bottlenecks] == [BottleneckKind.RESOURCE]
        assert "1 critical bottlenecks require immediate attention" in result.alerts
        assert "Resolve critical bottlenecks first" in result.recommendations


# ============================================================
# GREEDY
# ============================================================

class TestGreedy:

    def test_moves_to_first_business_day(self, optimizer):
        result = optimizer.optimize([make_item("a", 20, 5)], [], OptimizationConfig(algorithm="greedy"))
        moved = result.schedule[0]
        assert moved.start == MONDAY
        assert moved.duration_days == 5
        assert moved.criticality == Criticality.MEDIUM

    def test_respects_capacity(self, optimizer, resources):
        first = make_item("a", 10, 5, amount=5000.0, resource_id="R1")
        second = make_item("b", 20, 5, resource_id="R1")
        result = optimizer.optimize([second, first], resources, OptimizationConfig(algorithm="greedy"))

        assert [i.id for i in result.schedule] == ["b", "a"]
        placed = {i.id: i for i in result.schedule}
        assert placed["a"].start == MONDAY
        assert placed["b"].start == date(2025, 6, 9)

    def test_never_moves_later(self, optimizer):
        past = make_item("p", -5, 5)
        monday = make_item("m", 1, 5)
        result = optimizer.optimize([past, monday], [], OptimizationConfig(algorithm="greedy"))
        assert dates(result.schedule) == dates([past, monday])
        assert result.schedule[0].criticality == Criticality.LOW

    def test_dependency_constraint(self, optimizer):
        a = make_item("a", 2, 5)
        b = make_item("b", 20, 3, depends_on=["a"])
        free = optimizer.optimize([a, b], [], OptimizationConfig(algorithm="greedy"))
        bound = optimizer.optimize([a, b], [], OptimizationConfig(
            algorithm="greedy", constraints=OptimizationConstraints(dependency=True),
        ))
        assert free.schedule[1].start == MONDAY
        assert bound.schedule[1].start == date(2025, 6, 9)

    def test_availability_constraint(self, optimizer):
        resource = Resource(
            id="R3", name="Proveedor", kind=ResourceKind.SUPPLIER, max_capacity=3,
            availability_window=AvailabilityWindow(start=date(2025, 6, 3)),
            blackout_dates=(date(2025, 6, 3),),
        )
        item = make_item("a", 20, 5, resource_id="R3")
        result = optimizer.optimize([item], [resource], OptimizationConfig(
            algorithm="greedy", constraints=OptimizationConstraints(resource_availability=True),
        ))
        assert result.schedule[0].start == date(2025, 6, 4)

    def test_resource_available_days(self):
        resource = Resource(
            id="R3", name="Proveedor", kind=ResourceKind.SUPPLIER,
            availability_window=AvailabilityWindow(start=date(2025, 6, 3), end=date(2025, 6, 20)),
            blackout_dates=(date(2025, 6, 10),),
        )
        assert not resource.is_available(date(2025, 6, 2))
        assert resource.is_available(date(2025, 6, 3))
        assert not resource.is_available(date(2025, 6, 10))
        assert not resource.is_available(date(2025, 6, 21))

        item = make_item("a", 20, 5, resource_id="R3")
        config = OptimizationConfig(constraints=OptimizationConstraints(resource_availability=True))
        constraints = ScheduleConstraints([item], [resource], config)
        assert constraints.allows(item, date(2025, 6, 4), date(2025, 6, 9), {})
        assert not constraints.allows(item, date(2025, 6, 10), date(2025, 6, 15), {})
        assert not constraints.allows(item, date(2025, 6, 18), date(2025, 6, 23), {})

    def test_metrics(self, optimizer):
        items = [make_item("x", 1, 5), make_item("y", 30, 5)]
        result = optimizer.optimize(items, [], OptimizationConfig(algorithm="greedy"))
        assert result.metrics.days_saved == 29
        assert result.metrics.estimated_cost == pytest.approx(29_000.0)
        assert result.complete
        assert result.iterations_run == 2
        assert result.algorithm == OptimizationAlgorithm.GREEDY


# ============================================================
# CRITICAL PATH
# ============================================================

class TestCriticalPath:

    def test_route_is_top_share_of_at_risk_items(self):
        items = [make_item(f"l{i}", 0, 5) for i in range(6)]
        items += [
            make_item("h1", 0, 5, amount=100.0, criticality=Criticality.HIGH),
            make_item("h2", 0, 5, amount=900.0, criticality=Criticality.HIGH),
            make_item("c1", 0, 5, amount=500.0, criticality=Criticality.CRITICAL),
            make_item("c2", 0, 5, amount=50.0, criticality=Criticality.CRITICAL),
        ]
        assert critical_route(items) == ["h2", "c1", "h1"]

    @pytest.mark.parametrize("criticality,expected", [
        (Criticality.LOW, 14), (Criticality.MEDIUM, 7), (Criticality.HIGH, 3), (Criticality.CRITICAL, 0),
    ])
    def test_slack_by_criticality(self, criticality, expected):
        assert slack_days(make_item("x", 0, 5, criticality=criticality), set()) == expected

    def test_route_items_have_no_slack(self):
        assert slack_days(make_item("x", 0, 5), {"x"}) == 0

    def test_shift_bounded_by_slack_and_max_shift(self, optimizer):
        items = [
            make_item("low", 30, 5),
            make_item("med", 30, 5, criticality=Criticality.MEDIUM),
            make_item("crit", 30, 5, criticality=Criticality.CRITICAL),
        ]
        result = optimizer.optimize(items, [], OptimizationConfig(algorithm="critical_path", max_shift_days=10))
        starts = {i.id: i.start for i in result.schedule}
        assert starts["low"] == TODAY + timedelta(days=20)
        assert starts["med"] == TODAY + timedelta(days=23)
        assert starts["crit"] == TODAY + timedelta(days=30)

    def test_backs_off_until_capacity_fits(self, optimizer, resources):
        blocker = make_item("blocker", 0, 24, amount=9000.0, criticality=Criticality.CRITICAL, resource_id="R1")
        mover = make_item("mover", 30, 2, resource_id="R1")
        result = optimizer.optimize([blocker, mover], resources, OptimizationConfig(algorithm="critical_path"))
        assert result.schedule[0].start == blocker.start
        assert result.schedule[1].start == TODAY + timedelta(days=25)


# ============================================================
# STOCHASTIC STRATEGIES
# ============================================================

STOCHASTIC = [
    OptimizationConfig(algorithm="genetic", seed=7, iterations=15, population_size=12),
    OptimizationConfig(algorithm="simulated_annealing", seed=7),
]


class TestStochasticStrategies:

    @pytest.mark.parametrize("config", STOCHASTIC, ids=["genetic", "annealing"])
    def test_same_seed_same_schedule(self, optimizer, contended, resources, config):
        first = optimizer.optimize(contended, resources, config)
        second = optimizer.optimize(contended, resources, config)
        assert dates(first.schedule) == dates(second.schedule)

    @pytest.mark.parametrize("config", STOCHASTIC, ids=["genetic", "annealing"])
    def test_never_worse_than_input(self, optimizer, contended, resources, config):
        result = optimizer.optimize(contended, resources, config)
        assert result.fitness_after >= result.fitness_before
        assert [i.id for i in result.schedule] == [i.id for i in contended]

    @pytest.mark.parametrize("config", STOCHASTIC, ids=["genetic", "annealing"])
    def test_durations_preserved(self, optimizer, contended, resources, config):
        result = optimizer.optimize(contended, resources, config)
        assert [i.duration_days for i in result.schedule] == [i.duration_days for i in contended]

    @pytest.mark.parametrize("config", STOCHASTIC, ids=["genetic", "annealing"])
    def test_at_risk_items_never_move_later(self, optimizer, contended, resources, config):
        result = optimizer.optimize(contended, resources, config)
        for before, after in zip(contended, result.schedule):
            if before.criticality.is_critical:
                assert after.start <= before.start

    @pytest.mark.parametrize("algorithm", ["genetic", "simulated_annealing"])
    def test_deadline_constraint(self, optimizer, contended, resources, algorithm):
        config = OptimizationConfig(
            algorithm=algorithm, seed=3, iterations=10, population_size=10,
            objectives=OptimizationObjectives(respect_priority=False),
            constraints=OptimizationConstraints(deadline=True),
        )
        result = optimizer.optimize(contended, resources, config)
        for before, after in zip(contended, result.schedule):
            assert after.end <= before.end

    def test_annealing_step_count(self, optimizer, contended, resources):
        result = optimizer.optimize(contended, resources, STOCHASTIC[1])
        assert result.iterations_run == 180

    def test_annealing_single_item(self, optimizer):
        result = optimizer.optimize([make_item("a", 5, 5)], [], OptimizationConfig(algorithm="simulatedAnnealing"))
        assert result.iterations_run == 0
        assert result.algorithm == OptimizationAlgorithm.SIMULATED_ANNEALING

    def test_genetic_generations(self, optimizer, contended, resources):
        result = optimizer.optimize(contended, resources, STOCHASTIC[0])
        assert result.iterations_run == 15
        assert result.complete

    def test_genetic_empty_schedule(self, optimizer):
        result = optimizer.optimize([], [], OptimizationConfig(algorithm="genetic"))
        assert result.schedule == []


# ============================================================
# CONFIGURATION / CANCELLATION
# ============================================================

class TestConfiguration:

    def test_unknown_algorithm(self, optimizer):
        with pytest.raises(InvalidConfiguration) as exc:
            optimizer.optimize([make_item("a", 0, 5)], [], OptimizationConfig(algorithm="quantum"))
        assert "greedy" in exc.value.available

    def test_unregistered_algorithm(self):
        optimizer = ScheduleOptimizer(today=TODAY, strategies=[GreedyStrategy()])
        assert optimizer.available_algorithms == ["greedy"]
        with pytest.raises(InvalidConfiguration):
            optimizer.optimize([], [], OptimizationConfig(algorithm="genetic"))

    @pytest.mark.parametrize("changes", [
        {"mutation_rate": 1.5},
        {"cooling_rate": 1.0},
        {"population_size": 0},
        {"time_limit_sec": 0},
    ])
    def test_out_of_range_values(self, optimizer, changes):
        with pytest.raises(ConfigurationError):
            optimizer.optimize([], [], OptimizationConfig(**changes))

    def test_config_from_settings(self):
        settings = OptimizerSettings(algorithm=OptimizationAlgorithm.GENETIC, iterations=5, seed=11)
        config = OptimizationConfig.from_settings(settings, population_size=8)
        assert config.algorithm == OptimizationAlgorithm.GENETIC
        assert config.iterations == 5
        assert config.seed == 11
        assert config.population_size == 8


class TestCancellation:

    def test_stop_condition_time_limit(self):
        now = [100.0]
        stop = StopCondition(time_limit_sec=5, clock=lambda: now[0])
        assert not stop.should_stop()
        now[0] = 105.0
        assert stop.should_stop()
        assert stop.reason == "time_limit"

    def test_stop_condition_token(self):
        token = CancellationToken()
        stop = StopCondition(token)
        assert not stop.should_stop()
        token.cancel()
        assert stop.should_stop()
        assert stop.reason == "cancelled"

    @pytest.mark.parametrize("algorithm", ["greedy", "genetic", "simulated_annealing", "critical_path"])
    def test_cancelled_run_returns_partial_result(self, optimizer, contended, resources, algorithm):
        token = CancellationToken()
        token.cancel()
        config = OptimizationConfig(algorithm=algorithm, seed=1, iterations=5, population_size=4)
        result = optimizer.optimize(contended, resources, config, cancel_token=token)

        assert not result.complete
        assert result.iterations_run == 0
        assert [i.id for i in result.schedule] == [i.id for i in contended]


# ============================================================
# REPORTING / SCENARIOS
# ============================================================

class TestReporting:

    def test_alerts(self, optimizer):
        busy = Resource(id="R9", name="Eva", max_capacity=1, current_load=1)
        urgent = make_item("h", 0, 3, criticality=Criticality.HIGH)
        result = optimizer.optimize([urgent], [busy], OptimizationConfig(algorithm="greedy"))
        assert result.alerts == [
            "1 resources operating at capacity limit",
            "1 critical items due within 7 days",
        ]

    def test_low_efficiency_recommendation(self, optimizer, resources):
        result = optimizer.optimize([make_item("a", 1, 5)], resources, OptimizationConfig(algorithm="greedy"))
        assert "Consider redistributing resources to improve global efficiency" in result.recommendations

    def test_imbalance_recommendation(self, optimizer, resources):
        items = [make_item("a", 1, 5, resource_id="R1")]
        config = OptimizationConfig(algorithm="greedy", objectives=OptimizationObjectives(balance_load=True))
        result = optimizer.optimize(items, resources, config)
        assert any(r.startswith("Rebalance assignments") for r in result.recommendations)

    def test_to_dict(self, optimizer, contended, resources):
        data = optimizer.optimize(contended, resources, OptimizationConfig(algorithm="greedy")).to_dict()
        assert data["algorithm"] == "greedy"
        assert len(data["schedule"]) == len(contended)
        assert {"days_saved", "global_efficiency", "conflicts_resolved", "estimated_cost"} <= set(data["metrics"])


def result_with(days_saved, efficiency):
    return OptimizationResult(schedule=[], metrics=OptimizationMetrics(days_saved=days_saved, global_efficiency=efficiency))


class TestScenarios:

    def test_simulate_runs_every_config(self, optimizer):
        items = [make_item("x", 1, 5), make_item("y", 30, 5)]
        results = optimizer.simulate_scenarios(items, [], {
            "fast": OptimizationConfig(algorithm="greedy"),
            "path": OptimizationConfig(algorithm="critical_path"),
        })
        assert list(results) == ["fast", "path"]
        assert results["path"].algorithm == OptimizationAlgorithm.CRITICAL_PATH
        assert compare_results(results).best_time == "fast"

    def test_compare(self):
        comparison = compare_results({"quick": result_with(5, 50.0), "even": result_with(2, 90.0)})
        assert comparison.best_time == "quick"
        assert comparison.best_efficiency == "even"
        assert comparison.best_balance == "even"

    def test_ties_keep_first(self):
        comparison = compare_results({"one": result_with(1, 10.0), "two": result_with(1, 10.0)})
        assert comparison.to_dict() == {"best_time": "one", "best_efficiency": "one", "best_balance": "one"}

    def test_compare_requires_results(self):
        with pytest.raises(ValueError):
            compare_results({})


# ============================================================
# RUNNER
# ============================================================

class WaitForStop(OptimizationStrategy):
    """Spins until stopped, then hands back the input unchanged."""
    algorithm = OptimizationAlgorithm.GREEDY

    def run(self, context):
        while not context.stop.should_stop():
            time.sleep(0.01)
        return StrategyOutcome(list(context.items), complete=False, iterations_run=0)


class TestRunner:

    def test_background_result(self, contended, resources):
        with OptimizationRunner(ScheduleOptimizer(today=TODAY), settings=OptimizerSettings()) as runner:
            job = runner.submit(contended, resources, OptimizationConfig(algorithm="greedy"))
            result = job.result(timeout=30)
        assert result.complete
        assert job.done()

    def test_default_config_from_settings(self, contended, resources):
        settings = OptimizerSettings(algorithm=OptimizationAlgorithm.CRITICAL_PATH)
        with OptimizationRunner(ScheduleOptimizer(today=TODAY), settings=settings) as runner:
            result = runner.submit(contended, resources).result(timeout=30)
        assert result.algorithm == OptimizationAlgorithm.CRITICAL_PATH

    def test_timeout_cancels_and_attaches_partial_result(self, contended, resources):
        optimizer = ScheduleOptimizer(today=TODAY, strategies=[WaitForStop()])
        with OptimizationRunner(optimizer, settings=OptimizerSettings()) as runner:
            job = runner.submit(contended, resources, OptimizationConfig(algorithm="greedy"))
            with pytest.raises(ComputationTimeout) as exc:
                job.result(timeout=0.05)
        assert job.token.cancelled
        assert exc.value.partial_result is not None
        assert not exc.value.partial_result.complete

    def test_explicit_cancel(self, contended, resources):
        optimizer = ScheduleOptimizer(today=TODAY, strategies=[WaitForStop()])
        with OptimizationRunner(optimizer, settings=OptimizerSettings()) as runner:
            job = runner.submit(contended, resources, OptimizationConfig(algorithm="greedy"))
            job.cancel()
            result = job.result(timeout=5)
        assert not result.complete

"""
ProcPlan - Schedule Optimizer
=============================

Re-times schedule items across a constrained resource pool.

Uso:
    optimizer = ScheduleOptimizer(today=date(2025, 6, 1))
    result = optimizer.optimize(items, resources, OptimizationConfig(algorithm="greedy"))
    result.metrics.days_saved

Estrutura:
    1. Bottleneck detection on the input (always)
    2. Strategy run (greedy / genetic / simulated_annealing / critical_path)
    3. Criticality re-derived for moved items
    4. Metrics, resource assignment, recommendations and alerts

Inputs are never mutated; an unknown algorithm raises InvalidConfiguration.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..config import OptimizationAlgorithm
from ..errors import ConfigurationError, InvalidConfiguration
from ..scheduling.calculations import Classifier, ThresholdCriticalityClassifier
from ..scheduling.types import ScheduleItem
from .annealing import SimulatedAnnealingStrategy
from .base import (
    CancellationToken,
    OptimizationContext,
    OptimizationStrategy,
    StopCondition,
)
from .bottlenecks import detect_bottlenecks
from .critical_path import CriticalPathStrategy
from .evaluator import compute_metrics, fitness, resource_assignment
from .genetic import GeneticStrategy
from .greedy import GreedyStrategy
from .types import (
    Bottleneck,
    Impact,
    OptimizationConfig,
    OptimizationMetrics,
    OptimizationResult,
    Resource,
)

logger = logging.getLogger(__name__)


LOW_EFFICIENCY_PERCENT = 70.0
RESOURCE_ALERT_UTILIZATION = 0.9
DUE_SOON_DAYS = 7
IMBALANCE_SPREAD_PERCENT = 30.0


def default_strategies() -> List[OptimizationStrategy]:
    return [GreedyStrategy(), GeneticStrategy(), SimulatedAnnealingStrategy(), CriticalPathStrategy()]


def validate_config(config: OptimizationConfig) -> OptimizationAlgorithm:
    """
    Resolve the algorithm and check numeric ranges.

    Raises:
        InvalidConfiguration: unknown algorithm.
        ConfigurationError: out-of-range parameter.
    """
    algorithm = OptimizationAlgorithm.parse(config.algorithm)

    errors = []
    if config.iterations < 0:
        errors.append("iterations must be >= 0")
    if config.population_size < 1:
        errors.append("population_size must be >= 1")
    for name in ("mutation_rate", "crossover_rate", "initial_mutation_intensity"):
        value = getattr(config, name)
        if not 0.0 <= value <= 1.0:
            errors.append(f"{name} must lie in [0, 1]")
    if config.max_shift_days < 0:
        errors.append("max_shift_days must be >= 0")
    if not 0.0 < config.cooling_rate < 1.0:
        errors.append("cooling_rate must lie in (0, 1)")
    if config.min_temperature <= 0 or config.initial_temperature <= 0:
        errors.append("temperatures must be > 0")
    if config.time_limit_sec is not None and config.time_limit_sec <= 0:
        errors.append("time_limit_sec must be > 0")

    if errors:
        raise ConfigurationError("; ".join(errors))
    return algorithm


# ============================================================
# SCENARIOS
# ============================================================

@dataclass
class ScenarioComparison:
    """Winning scenario name per criterion."""
    best_time: str
    best_efficiency: str
    best_balance: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "best_time": self.best_time,
            "best_efficiency": self.best_efficiency,
            "best_balance": self.best_balance,
        }


def compare_results(results: Mapping[str, OptimizationResult]) -> ScenarioComparison:
    """
    Best time = most days saved; best efficiency = highest global efficiency;
    best balance = highest efficiency + days saved. Ties keep the first name.
    """
    if not results:
        raise ValueError("compare_results needs at least one result")

    names = list(results)

    def best(key) -> str:
        winner = names[0]
        for name in names[1:]:
            if key(results[name].metrics) > key(results[winner].metrics):
                winner = name
        return winner

    return ScenarioComparison(
        best_time=best(lambda m: m.days_saved),
        best_efficiency=best(lambda m: m.global_efficiency),
        best_balance=best(lambda m: m.global_efficiency + m.days_saved),
    )


# ============================================================
# OPTIMIZER
# ============================================================

class ScheduleOptimizer:
    """
    Strategy registry plus the reporting around a run.

    Args:
        classifier: Re-derives criticality for moved items
        today: Reference date (defaults to ``date.today()`` per call)
        strategies: Replaces the built-in strategies
    """

    def __init__(
        self,
        classifier: Optional[Classifier] = None,
        today: Optional[date] = None,
        strategies: Optional[Iterable[OptimizationStrategy]] = None,
    ):
        self.classifier = classifier or ThresholdCriticalityClassifier()
        self.today = today
        self._strategies: Dict[OptimizationAlgorithm, OptimizationStrategy] = {}
        for strategy in strategies if strategies is not None else default_strategies():
            self.register(strategy)

    def register(self, strategy: OptimizationStrategy) -> None:
        self._strategies[strategy.algorithm] = strategy

    @property
    def available_algorithms(self) -> List[str]:
        return [a.value for a in self._strategies]

    def _strategy_for(self, algorithm: OptimizationAlgorithm) -> OptimizationStrategy:
        try:
            return self._strategies[algorithm]
        except KeyError:
            raise InvalidConfiguration(algorithm.value, self.available_algorithms) from None

    def _reclassify(self, original: Sequence[ScheduleItem], schedule: List[ScheduleItem], today: date) -> List[ScheduleItem]:
        result = []
        for before, after in zip(original, schedule):
            if after.start != before.start or after.end != before.end:
                criticality = self.classifier.classify(after.days_remaining_at(today), after.state)
                after = after.with_criticality(criticality)
            result.append(after)
        return result

    def optimize(
        self,
        items: Sequence[ScheduleItem],
        resources: Sequence[Resource],
        config: Optional[OptimizationConfig] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> OptimizationResult:
        """
        Run the configured strategy over a copy of ``items``.

        Raises:
            InvalidConfiguration: unknown algorithm.
            ConfigurationError: out-of-range parameter.
        """
        config = config or OptimizationConfig()
        algorithm = validate_config(config)
        strategy = self._strategy_for(algorithm)

        started = time.perf_counter()
        today = self.today or date.today()
        original = tuple(items)
        pool = tuple(resources)
        bottlenecks = detect_bottlenecks(original, pool, config.constraints)

        context = OptimizationContext(
            items=original,
            resources=pool,
            config=config,
            today=today,
            stop=StopCondition(cancel_token, config.time_limit_sec),
        )
        outcome = strategy.run(context)
        schedule = self._reclassify(original, outcome.schedule, today)

        metrics = compute_metrics(original, schedule, pool)
        result = OptimizationResult(
            schedule=schedule,
            resource_assignment=resource_assignment(schedule, pool),
            metrics=metrics,
            recommendations=self.recommendations(bottlenecks, metrics, schedule, pool, config),
            alerts=self.alerts(schedule, pool, bottlenecks, today),
            bottlenecks=bottlenecks,
            algorithm=algorithm,
            complete=outcome.complete,
            iterations_run=outcome.iterations_run,
            fitness_before=fitness(original, pool, config.objectives),
            fitness_after=fitness(schedule, pool, config.objectives),
            solve_time_sec=time.perf_counter() - started,
        )

        if result.complete:
            logger.info(
                f"Optimization [{algorithm.value}] done: {len(schedule)} items, "
                f"{metrics.days_saved} days saved, {metrics.conflicts_resolved} conflicts resolved, "
                f"efficiency {metrics.global_efficiency:.1f}% in {result.solve_time_sec:.2f}s"
            )
        else:
            logger.warning(
                f"Optimization [{algorithm.value}] incomplete ({context.stop.reason}) "
                f"after {outcome.iterations_run} iterations"
            )
        return result

    # ------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------

    def recommendations(
        self,
        bottlenecks: Sequence[Bottleneck],
        metrics: OptimizationMetrics,
        schedule: Sequence[ScheduleItem],
        resources: Sequence[Resource],
        config: OptimizationConfig,
    ) -> List[str]:
        recommendations = []

        if metrics.global_efficiency < LOW_EFFICIENCY_PERCENT:
            recommendations.append("Consider redistributing resources to improve global efficiency")

        if any(b.impact == Impact.CRITICAL for b in bottlenecks):
            recommendations.append("Resolve critical bottlenecks first")

        if metrics.conflicts_resolved < len(bottlenecks) * 0.5:
            recommendations.append("Apply a more aggressive algorithm to resolve the remaining conflicts")

        if config.objectives.balance_load and resources:
            loads = [a.load_percent for a in resource_assignment(schedule, resources)]
            if max(loads) - min(loads) > IMBALANCE_SPREAD_PERCENT:
                recommendations.append(
                    f"Rebalance assignments: resource load ranges from {min(loads):.0f}% to {max(loads):.0f}%"
                )

        return recommendations

    def alerts(
        self,
        schedule: Sequence[ScheduleItem],
        resources: Sequence[Resource],
        bottlenecks: Sequence[Bottleneck],
        today: date,
    ) -> List[str]:
        alerts = []

        saturated = [r for r in resources if r.current_utilization() > RESOURCE_ALERT_UTILIZATION]
        if saturated:
            alerts.append(f"{len(saturated)} resources operating at capacity limit")

        due_soon = [
            i for i in schedule
            if i.criticality.is_critical and i.days_remaining_at(today) <= DUE_SOON_DAYS
        ]
        if due_soon:
            alerts.append(f"{len(due_soon)} critical items due within {DUE_SOON_DAYS} days")

        critical = [b for b in bottlenecks if b.impact == Impact.CRITICAL]
        if critical:
            alerts.append(f"{len(critical)} critical bottlenecks require immediate attention")
        return alerts

    # ------------------------------------------------------------
    # Scenarios
    # ------------------------------------------------------------

    def simulate_scenarios(
        self,
        items: Sequence[ScheduleItem],
        resources: Sequence[Resource],
        scenarios: Mapping[str, OptimizationConfig],
    ) -> Dict[str, OptimizationResult]:
        """Run every named config over the same inputs."""
        return {name: self.optimize(items, resources, config) for name, config in scenarios.items()}

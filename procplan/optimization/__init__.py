"""
ProcPlan - Optimization Module
==============================

Schedule optimisation across a constrained resource pool.

API de alto nível:
- ScheduleOptimizer(today=...).optimize(items, resources, config) -> OptimizationResult
- ScheduleOptimizer().simulate_scenarios(items, resources, {name: config})
- compare_results({name: result}) -> ScenarioComparison
- OptimizationRunner().submit(items, resources, config).result(timeout)
- detect_bottlenecks(items, resources, constraints) -> [Bottleneck]

Algorithms: greedy, genetic, simulated_annealing, critical_path.
"""

from .types import (
    AvailabilityWindow,
    Bottleneck,
    BottleneckKind,
    Impact,
    OptimizationConfig,
    OptimizationConstraints,
    OptimizationMetrics,
    OptimizationObjectives,
    OptimizationResult,
    Resource,
    ResourceAssignment,
    ResourceKind,
)
from .base import (
    CancellationToken,
    OptimizationContext,
    OptimizationStrategy,
    StopCondition,
    StrategyOutcome,
)
from .bottlenecks import detect_bottlenecks, find_dependency_cycles
from .evaluator import compute_metrics, count_conflicts, fitness, priority_score, span_days
from .greedy import GreedyStrategy
from .critical_path import CriticalPathStrategy
from .annealing import SimulatedAnnealingStrategy
from .genetic import GeneticStrategy
from .optimizer import ScenarioComparison, ScheduleOptimizer, compare_results
from .runner import OptimizationJob, OptimizationRunner

__all__ = [
    "AvailabilityWindow",
    "Bottleneck",
    "BottleneckKind",
    "Impact",
    "OptimizationConfig",
    "OptimizationConstraints",
    "OptimizationMetrics",
    "OptimizationObjectives",
    "OptimizationResult",
    "Resource",
    "ResourceAssignment",
    "ResourceKind",
    "CancellationToken",
    "OptimizationContext",
    "OptimizationStrategy",
    "StopCondition",
    "StrategyOutcome",
    "detect_bottlenecks",
    "find_dependency_cycles",
    "compute_metrics",
    "count_conflicts",
    "fitness",
    "priority_score",
    "span_days",
    "GreedyStrategy",
    "CriticalPathStrategy",
    "SimulatedAnnealingStrategy",
    "GeneticStrategy",
    "ScenarioComparison",
    "ScheduleOptimizer",
    "compare_results",
    "OptimizationJob",
    "OptimizationRunner",
]

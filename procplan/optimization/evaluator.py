"""
ProcPlan - Schedule Evaluator

Scoring helpers shared by every optimisation strategy:
- span (first start to last end, in days)
- per-resource load and efficiency (peak at 80 % load)
- conflict count (overlapping pairs on a resource + assignment overload)
- fitness and before/after metrics
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence

import numpy as np

from ..scheduling.types import ScheduleItem
from .types import OptimizationMetrics, OptimizationObjectives, Resource, ResourceAssignment

logger = logging.getLogger(__name__)


# ============================================================
# CONSTANTS
# ============================================================

TARGET_LOAD_PERCENT = 80.0
CONFLICT_PENALTY = 50.0
TIME_FITNESS_SCALE = 1_000_000.0
COST_PER_DAY_SAVED = 1000.0
COST_PER_CONFLICT_RESOLVED = 500.0


# ============================================================
# BASIC MEASURES
# ============================================================

def span_days(items: Sequence[ScheduleItem]) -> int:
    """Days from the earliest start to the latest end (0 for an empty schedule)."""
    if not items:
        return 0
    return (max(i.end for i in items) - min(i.start for i in items)).days


def priority_score(item: ScheduleItem) -> float:
    """weight(criticality) x ln(amount + 1); larger goes first."""
    return item.criticality.weight * math.log(max(item.amount, 0.0) + 1.0)


def items_by_resource(items: Iterable[ScheduleItem]) -> Dict[str, List[ScheduleItem]]:
    """Group items by ``resource_id``; unassigned items are left out."""
    groups: Dict[str, List[ScheduleItem]] = defaultdict(list)
    for item in items:
        if item.resource_id:
            groups[item.resource_id].append(item)
    return dict(groups)


def load_percent(assigned: int, resource: Resource) -> float:
    return min(assigned / resource.capacity * 100.0, 100.0)


def efficiency_for_load(load: float) -> float:
    if load <= 0:
        return 0.0
    return max(0.0, 100.0 - abs(load - TARGET_LOAD_PERCENT))


def resource_assignment(
    items: Sequence[ScheduleItem],
    resources: Sequence[Resource],
) -> List[ResourceAssignment]:
    """One entry per pool resource, in pool order."""
    groups = items_by_resource(items)
    assignments = []
    for resource in resources:
        assigned = [i.id for i in groups.get(resource.id, [])]
        load = load_percent(len(assigned), resource)
        assignments.append(ResourceAssignment(
            resource_id=resource.id,
            assigned_item_ids=assigned,
            load_percent=load,
            efficiency=efficiency_for_load(load),
        ))
    return assignments


def average_efficiency(items: Sequence[ScheduleItem], resources: Sequence[Resource]) -> float:
    assignments = resource_assignment(items, resources)
    if not assignments:
        return 0.0
    return float(np.mean([a.efficiency for a in assignments]))


def _overlapping_pairs(group: Sequence[ScheduleItem]) -> int:
    if len(group) < 2:
        return 0
    starts = np.array([i.start.toordinal() for i in group])
    ends = np.array([i.end.toordinal() for i in group])
    overlap = (starts[:, None] <= ends[None, :]) & (starts[None, :] <= ends[:, None])
    return int(np.triu(overlap, k=1).sum())


def count_conflicts(items: Sequence[ScheduleItem], resources: Sequence[Resource]) -> int:
    """
    Overlapping item pairs that share a resource, plus for each pool resource
    the number of assignments beyond its capacity. Unassigned items never
    conflict.
    """
    groups = items_by_resource(items)
    conflicts = sum(_overlapping_pairs(group) for group in groups.values())
    for resource in resources:
        assigned = len(groups.get(resource.id, []))
        conflicts += max(0, assigned - resource.capacity)
    return conflicts


# ============================================================
# FITNESS / METRICS
# ============================================================

def fitness(
    items: Sequence[ScheduleItem],
    resources: Sequence[Resource],
    objectives: OptimizationObjectives,
) -> float:
    """Higher is better."""
    score = 0.0
    if objectives.minimize_time:
        score += TIME_FITNESS_SCALE / max(span_days(items), 1)
    if objectives.maximize_efficiency:
        score += average_efficiency(items, resources)
    score -= CONFLICT_PENALTY * count_conflicts(items, resources)
    return score


def compute_metrics(
    original: Sequence[ScheduleItem],
    optimized: Sequence[ScheduleItem],
    resources: Sequence[Resource],
) -> OptimizationMetrics:
    days_saved = max(0, span_days(original) - span_days(optimized))
    conflicts_resolved = max(0, count_conflicts(original, resources) - count_conflicts(optimized, resources))
    return OptimizationMetrics(
        days_saved=days_saved,
        global_efficiency=average_efficiency(optimized, resources),
        conflicts_resolved=conflicts_resolved,
        estimated_cost=days_saved * COST_PER_DAY_SAVED + conflicts_resolved * COST_PER_CONFLICT_RESOLVED,
    )

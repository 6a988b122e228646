"""
ProcPlan - Bottleneck Detection

Runs before every optimisation and reports:
- resources assigned beyond capacity
- coincident due dates among high/critical items
- circular dependencies (strongly connected groups of the ``depends_on`` graph)
- total amount above the configured budget cap
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Sequence

import networkx as nx

from ..formatting import format_date, format_money
from ..scheduling.types import ScheduleItem
from .evaluator import items_by_resource
from .types import Bottleneck, BottleneckKind, Impact, OptimizationConstraints, Resource

logger = logging.getLogger(__name__)


COST_PER_OVERLOADED_ITEM = 5000.0
COST_PER_COINCIDENT_DATE = 10000.0
COST_PER_CYCLE_ITEM = 15000.0

RESOURCE_CRITICAL_RATIO = 1.5
COINCIDENT_CRITICAL_COUNT = 3
BUDGET_CRITICAL_RATIO = 1.2


def resource_bottlenecks(items: Sequence[ScheduleItem], resources: Sequence[Resource]) -> List[Bottleneck]:
    groups = items_by_resource(items)
    found = []
    for resource in resources:
        assigned = groups.get(resource.id, [])
        if len(assigned) <= resource.capacity:
            continue
        critical = len(assigned) > resource.capacity * RESOURCE_CRITICAL_RATIO
        found.append(Bottleneck(
            kind=BottleneckKind.RESOURCE,
            description=f"{resource.name} has {len(assigned)} items assigned (max {resource.capacity})",
            impact=Impact.CRITICAL if critical else Impact.HIGH,
            affected_item_ids=[i.id for i in assigned],
            proposed_fixes=[
                "Reassign items to other resources",
                "Add an additional resource",
                "Extend the schedule of non-critical items",
            ],
            estimated_resolution_cost=len(assigned) * COST_PER_OVERLOADED_ITEM,
        ))
    return found


def date_bottlenecks(items: Sequence[ScheduleItem]) -> List[Bottleneck]:
    """One aggregate bottleneck for every due date shared by several at-risk items."""
    by_end: Dict = defaultdict(list)
    for item in items:
        if item.criticality.is_critical:
            by_end[item.end].append(item)

    shared = {day: group for day, group in by_end.items() if len(group) > 1}
    if not shared:
        return []

    # Each repeat of a date beyond its first occurrence counts once
    coincident = sum(len(group) - 1 for group in shared.values())
    affected = [i.id for day in sorted(shared) for i in shared[day]]
    dates = ", ".join(format_date(day) for day in sorted(shared))

    return [Bottleneck(
        kind=BottleneckKind.DATE,
        description=f"{coincident} coincident critical dates detected ({dates})",
        impact=Impact.CRITICAL if coincident > COINCIDENT_CRITICAL_COUNT else Impact.HIGH,
        affected_item_ids=affected,
        proposed_fixes=[
            "Stagger critical deliveries",
            "Bring forward less critical items",
            "Negotiate deadline extensions",
        ],
        estimated_resolution_cost=coincident * COST_PER_COINCIDENT_DATE,
    )]


def find_dependency_cycles(items: Sequence[ScheduleItem]) -> List[List[str]]:
    """
    Cycles in the ``depends_on`` graph, each as the list of item ids on it.
    One cycle is reported per strongly connected group of items, in item
    order. Dependencies on ids outside ``items`` are ignored.
    """
    G = nx.DiGraph()
    for item in items:
        G.add_node(item.id)
    for item in items:
        for dep in item.depends_on:
            if dep in G:
                G.add_edge(item.id, dep)

    position = {item.id: n for n, item in enumerate(items)}
    cycles: List[List[str]] = []
    for component in nx.strongly_connected_components(G):
        first = min(component, key=position.__getitem__)
        if len(component) == 1 and not G.has_edge(first, first):
            continue
        edges = nx.find_cycle(G.subgraph(component), source=first)
        cycles.append([u for u, _ in edges])

    cycles.sort(key=lambda cycle: min(position[n] for n in cycle))
    return cycles


def dependency_bottlenecks(items: Sequence[ScheduleItem]) -> List[Bottleneck]:
    cycles = find_dependency_cycles(items)
    if not cycles:
        return []

    affected: List[str] = []
    for cycle in cycles:
        affected.extend(i for i in cycle if i not in affected)
    chains = "; ".join(" -> ".join(cycle + [cycle[0]]) for cycle in cycles)

    return [Bottleneck(
        kind=BottleneckKind.DEPENDENCY,
        description=f"{len(cycles)} circular dependencies detected: {chains}",
        impact=Impact.CRITICAL,
        affected_item_ids=affected,
        proposed_fixes=[
            "Redefine the dependencies",
            "Run independent items in parallel",
            "Add intermediate milestones",
        ],
        estimated_resolution_cost=len(affected) * COST_PER_CYCLE_ITEM,
    )]


def budget_bottlenecks(items: Sequence[ScheduleItem], budget_cap: Optional[float]) -> List[Bottleneck]:
    if budget_cap is None:
        return []
    total = sum(i.amount for i in items)
    if total <= budget_cap:
        return []

    excess = total - budget_cap
    critical = budget_cap <= 0 or total > budget_cap * BUDGET_CRITICAL_RATIO
    return [Bottleneck(
        kind=BottleneckKind.BUDGET,
        description=f"Scheduled amount {format_money(total)} exceeds the budget cap {format_money(budget_cap)}",
        impact=Impact.CRITICAL if critical else Impact.HIGH,
        affected_item_ids=[i.id for i in sorted(items, key=lambda i: -i.amount)],
        proposed_fixes=[
            "Defer low-priority purchases",
            "Renegotiate unit prices",
            "Request a budget extension",
        ],
        estimated_resolution_cost=excess,
    )]


def detect_bottlenecks(
    items: Sequence[ScheduleItem],
    resources: Sequence[Resource],
    constraints: Optional[OptimizationConstraints] = None,
) -> List[Bottleneck]:
    constraints = constraints or OptimizationConstraints()
    found = (
        resource_bottlenecks(items, resources)
        + date_bottlenecks(items)
        + dependency_bottlenecks(items)
        + budget_bottlenecks(items, constraints.budget_cap)
    )
    if found:
        logger.debug(f"Bottlenecks: {[b.kind.value for b in found]}")
    return found

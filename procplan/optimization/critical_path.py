"""
Critical-path advancement.

The critical route is the top 30 % (by count of the whole schedule) of the
high/critical items, largest amount first. Every other item gets a slack
from its criticality and is brought forward by up to ``min(slack,
max_shift_days)`` days, backing off a day at a time until the move keeps its
resource within capacity and satisfies the enabled constraints.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Sequence, Set

from ..config import OptimizationAlgorithm
from ..scheduling.types import Criticality, ScheduleItem
from .base import (
    OptimizationContext,
    OptimizationStrategy,
    ResourceCalendar,
    StrategyOutcome,
)

logger = logging.getLogger(__name__)

CRITICAL_ROUTE_SHARE = 0.3

SLACK_DAYS: Dict[Criticality, int] = {
    Criticality.LOW: 14,
    Criticality.MEDIUM: 7,
    Criticality.HIGH: 3,
    Criticality.CRITICAL: 0,
}


def critical_route(items: Sequence[ScheduleItem]) -> List[str]:
    limit = math.ceil(len(items) * CRITICAL_ROUTE_SHARE)
    at_risk = sorted(
        (i for i in items if i.criticality.is_critical),
        key=lambda i: (-i.amount, i.id),
    )
    return [i.id for i in at_risk[:limit]]


def slack_days(item: ScheduleItem, route: Set[str]) -> int:
    if item.id in route:
        return 0
    return SLACK_DAYS.get(item.criticality, 7)


class CriticalPathStrategy(OptimizationStrategy):
    algorithm = OptimizationAlgorithm.CRITICAL_PATH

    def run(self, context: OptimizationContext) -> StrategyOutcome:
        schedule = list(context.items)
        route = set(critical_route(schedule))
        calendar = ResourceCalendar(schedule, context.resources)
        constraints = context.constraints()
        ends = {i.id: i.end for i in schedule}

        logger.debug(f"Critical route: {sorted(route)}")

        for index, item in enumerate(schedule):
            if context.stop.should_stop():
                logger.warning(f"Critical path stopped ({context.stop.reason}) at item {index}")
                return StrategyOutcome(schedule, complete=False, iterations_run=index)

            slack = slack_days(item, route)
            if slack <= 0:
                continue

            calendar.remove(item)
            placed = item
            for shift in range(min(slack, context.config.max_shift_days), 0, -1):
                moved = item.shifted(-shift)
                if calendar.fits(item, moved.start, moved.end) and constraints.allows(
                    item, moved.start, moved.end, ends
                ):
                    placed = moved
                    break
            calendar.add(placed)
            ends[placed.id] = placed.end
            schedule[index] = placed

        return StrategyOutcome(schedule, complete=True, iterations_run=len(schedule))

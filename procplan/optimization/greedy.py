"""
Greedy earliest-slot placement.

Items are taken by descending priority (criticality weight x ln(amount + 1)).
Each one scans forward over business days from today for the first start
that keeps its resource within capacity and satisfies the enabled
constraints, and moves there only if that is earlier than where it is.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from ..config import OptimizationAlgorithm
from .base import (
    OptimizationContext,
    OptimizationStrategy,
    ResourceCalendar,
    StrategyOutcome,
)
from .evaluator import priority_score

logger = logging.getLogger(__name__)

SEARCH_HORIZON_DAYS = 365


class GreedyStrategy(OptimizationStrategy):
    algorithm = OptimizationAlgorithm.GREEDY

    def run(self, context: OptimizationContext) -> StrategyOutcome:
        schedule = list(context.items)
        position = {item.id: index for index, item in enumerate(schedule)}
        order = sorted(schedule, key=lambda i: (-priority_score(i), i.id))

        calendar = ResourceCalendar(schedule, context.resources)
        constraints = context.constraints()
        ends = {i.id: i.end for i in schedule}

        processed = 0
        for item in order:
            if context.stop.should_stop():
                logger.warning(f"Greedy stopped ({context.stop.reason}) after {processed} items")
                return StrategyOutcome(schedule, complete=False, iterations_run=processed)

            calendar.remove(item)
            placed = item
            for offset in range(SEARCH_HORIZON_DAYS):
                start = context.today + timedelta(days=offset)
                if start >= item.start:
                    break
                if start.weekday() >= 5:
                    continue
                end = start + timedelta(days=item.duration_days)
                if calendar.fits(item, start, end) and constraints.allows(item, start, end, ends):
                    placed = item.with_dates(start, end)
                    logger.debug(f"{item.id}: {item.start} -> {start}")
                    break

            calendar.add(placed)
            ends[placed.id] = placed.end
            schedule[position[item.id]] = placed
            processed += 1

        return StrategyOutcome(schedule, complete=True, iterations_run=processed)

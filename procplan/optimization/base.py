"""
ProcPlan - Optimization Strategy Interface

Design Pattern: Strategy + Registry
- Strategies implement ``OptimizationStrategy.run``
- ``ScheduleOptimizer`` selects one by ``OptimizationAlgorithm``

Also holds what the strategies share: cooperative cancellation, the
constraint checks and the per-resource daily occupancy used to keep moves
within capacity.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..config import OptimizationAlgorithm
from ..scheduling.types import ScheduleItem
from .types import OptimizationConfig, Resource

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


# ============================================================
# CANCELLATION
# ============================================================

class CancellationToken:
    """Thread-safe cancel flag shared between a caller and a running strategy."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class StopCondition:
    """Cancellation token plus an optional wall-clock limit."""

    def __init__(
        self,
        token: Optional[CancellationToken] = None,
        time_limit_sec: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.token = token
        self.clock = clock
        self.deadline = clock() + time_limit_sec if time_limit_sec is not None else None
        self.reason: Optional[str] = None

    def should_stop(self) -> bool:
        if self.token is not None and self.token.cancelled:
            self.reason = "cancelled"
        elif self.deadline is not None and self.clock() >= self.deadline:
            self.reason = "time_limit"
        return self.reason is not None


# ============================================================
# CONSTRAINTS
# ============================================================

class ScheduleConstraints:
    """
    Placement rules enabled by ``OptimizationConstraints``.

    deadline: an item may not end after its original end
    resource_availability: start and end inside the resource window, start
        not on a blackout date
    dependency: an item may not start before any dependency ends
    """

    def __init__(self, items: Sequence[ScheduleItem], resources: Sequence[Resource], config: OptimizationConfig):
        self.constraints = config.constraints
        self.original_end = {i.id: i.end for i in items}
        self.resources = {r.id: r for r in resources}

    def allows(self, item: ScheduleItem, start: date, end: date, ends: Dict[str, date]) -> bool:
        """Whether ``item`` may occupy ``start..end`` given the current ``ends`` by id."""
        if self.constraints.deadline and end > self.original_end.get(item.id, end):
            return False

        if self.constraints.resource_availability and item.resource_id in self.resources:
            resource = self.resources[item.resource_id]
            if not (resource.is_available(start) and resource.availability_window.contains(end)):
                return False

        if self.constraints.dependency:
            for dep in item.depends_on:
                if dep in ends and start < ends[dep]:
                    return False
        return True

    def schedule_allows(self, schedule: Sequence[ScheduleItem]) -> bool:
        ends = {i.id: i.end for i in schedule}
        return all(self.allows(i, i.start, i.end, ends) for i in schedule)


# ============================================================
# OCCUPANCY
# ============================================================

class ResourceCalendar:
    """
    Daily count of items held by each pool resource.

    Items on resources outside the pool are not tracked and never block.
    """

    def __init__(self, items: Sequence[ScheduleItem], resources: Sequence[Resource]):
        self.capacity = {r.id: r.capacity for r in resources}
        self._days: Dict[str, Counter] = {r.id: Counter() for r in resources}
        for item in items:
            self.add(item)

    def _each_day(self, start: date, end: date):
        day = start
        while day <= end:
            yield day
            day += ONE_DAY

    def add(self, item: ScheduleItem) -> None:
        if item.resource_id in self._days:
            self._days[item.resource_id].update(self._each_day(item.start, item.end))

    def remove(self, item: ScheduleItem) -> None:
        if item.resource_id in self._days:
            self._days[item.resource_id].subtract(self._each_day(item.start, item.end))

    def fits(self, item: ScheduleItem, start: date, end: date) -> bool:
        """True if one more item on ``item.resource_id`` stays within capacity every day."""
        if item.resource_id not in self._days:
            return True
        days = self._days[item.resource_id]
        limit = self.capacity[item.resource_id]
        return all(days[day] < limit for day in self._each_day(start, end))


# ============================================================
# STRATEGY
# ============================================================

@dataclass
class OptimizationContext:
    """Everything a strategy may read; items are frozen and never mutated."""
    items: Tuple[ScheduleItem, ...]
    resources: Tuple[Resource, ...]
    config: OptimizationConfig
    today: date
    stop: StopCondition

    def constraints(self) -> ScheduleConstraints:
        return ScheduleConstraints(self.items, self.resources, self.config)


@dataclass
class StrategyOutcome:
    schedule: List[ScheduleItem]
    complete: bool = True
    iterations_run: int = 0


class OptimizationStrategy(ABC):
    """A stateless schedule optimisation algorithm."""

    algorithm: OptimizationAlgorithm

    @abstractmethod
    def run(self, context: OptimizationContext) -> StrategyOutcome:
        """Return a schedule with the same item ids in the same order."""
        raise NotImplementedError

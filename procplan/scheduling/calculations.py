"""
ProcPlan - Schedule Calculations
================================

Pure calculators for the procurement schedule:

- back_calculate_dates: required-by date + line lead times -> (start, end)
- aggregate_amount: sum of quantity x unit price over a line collection
- ThresholdCriticalityClassifier: days remaining + state -> risk tier
- progress_for_state: order lifecycle state -> progress percent

All functions are total: malformed numerics (negative or NaN) contribute 0
and never raise.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import Iterable, NamedTuple, Optional

from ..config import ScheduleSettings
from .types import ORDER_PROGRESS, Criticality, LineItem, normalize_state

logger = logging.getLogger(__name__)


class DateRange(NamedTuple):
    start: date
    end: date


def _non_negative(value: Optional[float]) -> float:
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or number < 0:
        return 0.0
    return number


# ═══════════════════════════════════════════════════════════════════════════════
# DATES
# ═══════════════════════════════════════════════════════════════════════════════

def max_lead_time_days(
    lines: Iterable[LineItem],
    missing_lead_time_days: int = 0,
) -> int:
    """
    Longest lead time among ``lines``.

    Missing lead times use ``missing_lead_time_days``; negative ones count as 0.
    An empty collection yields 0.
    """
    longest = 0
    for line in lines:
        lead = line.lead_time_days
        if lead is None:
            lead = missing_lead_time_days
        longest = max(longest, int(_non_negative(lead)))
    return longest


def back_calculate_dates(
    required_date: date,
    lines: Iterable[LineItem],
    missing_lead_time_days: int = 0,
) -> DateRange:
    """
    Back-calculate the schedule window of a List or Order.

    ``end`` is the required-by date and ``start`` is ``end`` minus the longest
    line lead time, so ``start <= end`` always holds.
    """
    lead = max_lead_time_days(lines, missing_lead_time_days)
    return DateRange(start=required_date - timedelta(days=lead), end=required_date)


# ═══════════════════════════════════════════════════════════════════════════════
# AMOUNTS
# ═══════════════════════════════════════════════════════════════════════════════

def line_amount(line: LineItem) -> float:
    """quantity x unit price; negative factors contribute 0."""
    return _non_negative(line.line_quantity) * _non_negative(line.unit_price)


def aggregate_amount(lines: Iterable[LineItem]) -> float:
    """Projected (List) or executed (Order) amount. Empty -> 0."""
    return float(sum(line_amount(line) for line in lines))


# ═══════════════════════════════════════════════════════════════════════════════
# CRITICALITY
# ═══════════════════════════════════════════════════════════════════════════════

class Classifier(ABC):
    """Maps (days remaining, state) to a criticality tier."""

    @abstractmethod
    def classify(self, days_remaining: int, state: str) -> Criticality:
        raise NotImplementedError


class ThresholdCriticalityClassifier(Classifier):
    """
    Default classifier. First matching rule wins:

    1. terminal (rejected/cancelled) state -> critical
    2. overdue -> critical
    3. <= high_days -> high
    4. <= medium_days -> medium
    5. otherwise low
    """

    def __init__(self, settings: Optional[ScheduleSettings] = None):
        self.settings = settings or ScheduleSettings()
        self._terminal = {normalize_state(s) for s in self.settings.terminal_states}

    def classify(self, days_remaining: int, state: str) -> Criticality:
        if normalize_state(state) in self._terminal:
            return Criticality.CRITICAL
        if days_remaining < 0:
            return Criticality.CRITICAL
        if days_remaining <= self.settings.high_days:
            return Criticality.HIGH
        if days_remaining <= self.settings.medium_days:
            return Criticality.MEDIUM
        return Criticality.LOW


_default_classifier = ThresholdCriticalityClassifier()


def classify_criticality(days_remaining: int, state: str) -> Criticality:
    """Classify with the default thresholds (3 / 7 days)."""
    return _default_classifier.classify(days_remaining, state)


def progress_for_state(state: str) -> float:
    """Order progress percent by lifecycle state; unknown states -> 0."""
    return ORDER_PROGRESS.get(normalize_state(state), 0.0)

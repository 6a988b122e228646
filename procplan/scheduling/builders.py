"""
ProcPlan - Schedule Builder
===========================

Turns resolved Lists and Orders into ScheduleItems and derives the
schedule-level views built on top of them:

- ScheduleBuilder: dates + amount + criticality (+ progress for orders)
- detect_critical_dates: overdue and soon-due at-risk items
- compute_performance_metrics: execution %, deviation, temporal efficiency
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from ..config import ScheduleSettings
from ..formatting import format_percent
from .calculations import (
    Classifier,
    ThresholdCriticalityClassifier,
    aggregate_amount,
    back_calculate_dates,
    progress_for_state,
)
from .types import ItemKind, ListRecord, OrderRecord, ScheduleItem, normalize_state

logger = logging.getLogger(__name__)


class ScheduleBuilder:
    """
    Builds ScheduleItems from List and Order records.

    Uso:
        builder = ScheduleBuilder(today=date(2025, 6, 1))
        items = builder.build_list_items(lists) + builder.build_order_items(orders)
    """

    def __init__(
        self,
        classifier: Optional[Classifier] = None,
        settings: Optional[ScheduleSettings] = None,
        today: Optional[date] = None,
    ):
        self.settings = settings or ScheduleSettings()
        self.classifier = classifier or ThresholdCriticalityClassifier(self.settings)
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    def _classify(self, end: date, state: str):
        return self.classifier.classify((end - self.today).days, state)

    def build_list_item(self, record: ListRecord) -> ScheduleItem:
        start, end = back_calculate_dates(
            record.required_date, record.lines, self.settings.missing_lead_time_days
        )
        state = normalize_state(record.state)
        return ScheduleItem(
            id=record.id,
            label=record.code,
            kind=ItemKind.LIST,
            start=start,
            end=end,
            amount=aggregate_amount(record.lines),
            state=state,
            criticality=self._classify(end, state),
            required_date=record.required_date,
            project_id=record.project_id,
            resource_id=record.resource_id,
            depends_on=tuple(record.depends_on),
        )

    def build_order_item(self, record: OrderRecord) -> ScheduleItem:
        start, end = back_calculate_dates(
            record.required_date, record.lines, self.settings.missing_lead_time_days
        )
        state = normalize_state(record.state)
        return ScheduleItem(
            id=record.id,
            label=record.code,
            kind=ItemKind.ORDER,
            start=start,
            end=end,
            amount=aggregate_amount(record.lines),
            state=state,
            criticality=self._classify(end, state),
            required_date=record.required_date,
            progress_percent=progress_for_state(state),
            list_id=record.list_id,
            project_id=record.project_id,
            resource_id=record.resource_id,
            depends_on=tuple(record.depends_on),
        )

    def build_list_items(self, records: Iterable[ListRecord]) -> List[ScheduleItem]:
        items = [self.build_list_item(r) for r in records]
        logger.debug(f"Built {len(items)} list schedule items")
        return items

    def build_order_items(self, records: Iterable[OrderRecord]) -> List[ScheduleItem]:
        items = [self.build_order_item(r) for r in records]
        logger.debug(f"Built {len(items)} order schedule items")
        return items

    def reclassify(self, item: ScheduleItem) -> ScheduleItem:
        """Copy of ``item`` with criticality recomputed for its current ``end``."""
        criticality = self._classify(item.end, item.state)
        if criticality == item.criticality:
            return item
        return item.with_criticality(criticality)


# ═══════════════════════════════════════════════════════════════════════════════
# CRITICAL DATES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class CriticalDatesReport:
    critical_dates: List[date] = field(default_factory=list)
    critical_items: List[ScheduleItem] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "critical_dates": [d.isoformat() for d in self.critical_dates],
            "critical_item_ids": [i.id for i in self.critical_items],
            "recommendations": list(self.recommendations),
        }


def detect_critical_dates(
    items: Iterable[ScheduleItem],
    today: Optional[date] = None,
    horizon_days: int = 7,
) -> CriticalDatesReport:
    """
    Overdue items, plus high/critical items due within ``horizon_days``.

    Critical dates are returned once each, in first-seen order.
    """
    today = today or date.today()
    report = CriticalDatesReport()
    seen = set()

    for item in items:
        days = item.days_remaining_at(today)
        if days < 0:
            report.recommendations.append(f"{item.label}: overdue - review state and reschedule")
        elif 0 < days <= horizon_days and item.criticality.is_critical:
            report.recommendations.append(f"{item.label}: due in {days} days - prioritize")
        else:
            continue
        report.critical_items.append(item)
        if item.end not in seen:
            seen.add(item.end)
            report.critical_dates.append(item.end)

    return report


# ═══════════════════════════════════════════════════════════════════════════════
# PERFORMANCE METRICS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class PerformanceMetrics:
    """Procurement performance over a set of list and order items."""
    execution_percent: float
    average_deviation: float
    items_at_risk: int
    temporal_efficiency: float
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "execution_percent": round(self.execution_percent, 2),
            "average_deviation": round(self.average_deviation, 2),
            "items_at_risk": self.items_at_risk,
            "temporal_efficiency": round(self.temporal_efficiency, 2),
            "recommendations": list(self.recommendations),
        }


def compute_performance_metrics(
    list_items: List[ScheduleItem],
    order_items: List[ScheduleItem],
    today: Optional[date] = None,
) -> PerformanceMetrics:
    """
    Execution percent = orders / lists amount; temporal efficiency = share of
    items not overdue; average deviation = mean |orders - list| over lists
    that have at least one order.
    """
    today = today or date.today()
    lists_total = sum(i.amount for i in list_items)
    orders_total = sum(i.amount for i in order_items)
    execution = (orders_total / lists_total * 100.0) if lists_total > 0 else 0.0

    all_items = list(list_items) + list(order_items)
    on_time = sum(1 for i in all_items if i.days_remaining_at(today) >= 0)
    temporal = (on_time / len(all_items) * 100.0) if all_items else 100.0
    at_risk = sum(1 for i in all_items if i.criticality.is_critical)

    ordered_by_list: Dict[str, float] = defaultdict(float)
    for order in order_items:
        if order.list_id:
            ordered_by_list[order.list_id] += order.amount
    list_amounts = {i.id: i.amount for i in list_items}
    deviations = [
        abs(amount - list_amounts[list_id])
        for list_id, amount in ordered_by_list.items()
        if list_id in list_amounts
    ]
    average_deviation = sum(deviations) / len(deviations) if deviations else 0.0

    recommendations: List[str] = []
    if execution < 80:
        recommendations.append(
            f"Execution at {format_percent(execution)}: speed up ordering"
        )
    if temporal < 90:
        recommendations.append("Review schedule planning to reduce delays")
    if at_risk > 0:
        recommendations.append(f"Attend {at_risk} items at risk first")
    if average_deviation > lists_total * 0.1:
        recommendations.append("Review estimate accuracy in lists")

    return PerformanceMetrics(
        execution_percent=execution,
        average_deviation=average_deviation,
        items_at_risk=at_risk,
        temporal_efficiency=temporal,
        recommendations=recommendations,
    )

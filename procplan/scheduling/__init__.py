"""
ProcPlan - Scheduling Module
============================

Computes the procurement schedule from Lists and Orders:
- Date back-calculation (required-by date - max lead time)
- Amount aggregation (sum of quantity x unit price)
- Criticality classification (days remaining + state)

API de alto nível:
- ScheduleBuilder(today=...).build_list_items(lists) -> [ScheduleItem]
- ScheduleBuilder(today=...).build_order_items(orders) -> [ScheduleItem]
- detect_critical_dates(items) -> CriticalDatesReport
- compute_performance_metrics(list_items, order_items) -> PerformanceMetrics
"""

from .types import (
    CRITICALITY_WEIGHTS,
    ORDER_PROGRESS,
    Criticality,
    ItemKind,
    LineItem,
    ListLine,
    ListRecord,
    OrderLine,
    OrderRecord,
    ScheduleItem,
    normalize_state,
)
from .calculations import (
    Classifier,
    DateRange,
    ThresholdCriticalityClassifier,
    aggregate_amount,
    back_calculate_dates,
    classify_criticality,
    line_amount,
    max_lead_time_days,
    progress_for_state,
)
from .builders import (
    CriticalDatesReport,
    PerformanceMetrics,
    ScheduleBuilder,
    compute_performance_metrics,
    detect_critical_dates,
)

__all__ = [
    "CRITICALITY_WEIGHTS",
    "ORDER_PROGRESS",
    "Criticality",
    "ItemKind",
    "LineItem",
    "ListLine",
    "ListRecord",
    "OrderLine",
    "OrderRecord",
    "ScheduleItem",
    "normalize_state",
    "Classifier",
    "DateRange",
    "ThresholdCriticalityClassifier",
    "aggregate_amount",
    "back_calculate_dates",
    "classify_criticality",
    "line_amount",
    "max_lead_time_days",
    "progress_for_state",
    "CriticalDatesReport",
    "PerformanceMetrics",
    "ScheduleBuilder",
    "compute_performance_metrics",
    "detect_critical_dates",
]

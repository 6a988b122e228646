"""
ProcPlan - Coherence Validator
==============================

Reconciles a List with the Orders linked to it.

Checks:
- Amount: orders total vs list total, within ``tolerance_percent`` (default 1%)
- Quantity per line: Σ ordered quantity referencing a list line <= listed quantity
- Dates: no order required after its list

Incoherence is returned as data (alerts + recommendations), never raised.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..config import CoherenceSettings
from ..formatting import format_money, format_percent
from ..scheduling.calculations import aggregate_amount
from ..scheduling.types import ListRecord, OrderRecord

logger = logging.getLogger(__name__)


@dataclass
class LineQuantityCheck:
    line_id: str
    listed_quantity: float
    ordered_quantity: float

    @property
    def exceeds_quantity(self) -> bool:
        return self.ordered_quantity > self.listed_quantity

    @property
    def percent_executed(self) -> float:
        if self.listed_quantity <= 0:
            return 0.0
        return self.ordered_quantity / self.listed_quantity * 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line_id": self.line_id,
            "listed_quantity": self.listed_quantity,
            "ordered_quantity": self.ordered_quantity,
            "exceeds_quantity": self.exceeds_quantity,
            "percent_executed": round(self.percent_executed, 2),
        }


@dataclass
class RelatedOrder:
    order_id: str
    code: str
    amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {"order_id": self.order_id, "code": self.code, "amount": round(self.amount, 2)}


@dataclass
class CoherenceResult:
    """
    Attributes:
        list_id: Validated list
        list_amount: Σ quantity x price over list lines
        orders_amount: Σ over the linked orders' lines
        amount_deviation: orders_amount - list_amount (signed)
        deviation_percent: |amount_deviation| / list_amount x 100 (0 without list amount)
        is_coherent: deviation_percent <= tolerance
    """
    list_id: str
    list_amount: float
    orders_amount: float
    amount_deviation: float
    deviation_percent: float
    is_coherent: bool
    alerts: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    line_checks: List[LineQuantityCheck] = field(default_factory=list)
    late_order_ids: List[str] = field(default_factory=list)
    related_orders: List[RelatedOrder] = field(default_factory=list)
    list_code: str = ""
    project_id: Optional[str] = None

    @property
    def exceeded_lines(self) -> List[LineQuantityCheck]:
        return [c for c in self.line_checks if c.exceeds_quantity]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "list_id": self.list_id,
            "list_code": self.list_code,
            "project_id": self.project_id,
            "list_amount": round(self.list_amount, 2),
            "orders_amount": round(self.orders_amount, 2),
            "amount_deviation": round(self.amount_deviation, 2),
            "deviation_percent": round(self.deviation_percent, 4),
            "is_coherent": self.is_coherent,
            "alerts": list(self.alerts),
            "recommendations": list(self.recommendations),
            "line_checks": [c.to_dict() for c in self.line_checks],
            "late_order_ids": list(self.late_order_ids),
            "related_orders": [o.to_dict() for o in self.related_orders],
        }


class CoherenceValidator:
    """
    Validates List/Order coherence.

    Uso:
        validator = CoherenceValidator(tolerance_percent=1.0)
        result = validator.validate(list_record, orders)
    """

    def __init__(self, tolerance_percent: Optional[float] = None, settings: Optional[CoherenceSettings] = None):
        settings = settings or CoherenceSettings()
        self.tolerance_percent = settings.tolerance_percent if tolerance_percent is None else tolerance_percent

    def validate(self, list_record: ListRecord, orders: Iterable[OrderRecord]) -> CoherenceResult:
        orders = list(orders)
        list_amount = aggregate_amount(list_record.lines)
        related = [RelatedOrder(o.id, o.code, aggregate_amount(o.lines)) for o in orders]
        orders_amount = float(sum(o.amount for o in related))

        deviation = orders_amount - list_amount
        deviation_percent = abs(deviation) / list_amount * 100.0 if list_amount > 0 else 0.0
        is_coherent = deviation_percent <= self.tolerance_percent

        alerts: List[str] = []
        recommendations: List[str] = []

        if not is_coherent:
            if deviation > 0:
                alerts.append(f"Orders exceed list by {format_money(abs(deviation))}")
                recommendations.append("Review ordered quantities or adjust list prices")
            else:
                alerts.append(f"Orders below list by {format_money(abs(deviation))}")
                recommendations.append("Complete the missing orders to execute the whole list")

        line_checks = self._check_line_quantities(list_record, orders)
        for check in line_checks:
            if check.exceeds_quantity:
                alerts.append(
                    f"Line {check.line_id}: ordered {check.ordered_quantity:g} of "
                    f"{check.listed_quantity:g} listed ({format_percent(check.percent_executed)})"
                )
                recommendations.append(f"Reduce ordered quantity for line {check.line_id}")

        late = [o.id for o in orders if o.required_date > list_record.required_date]
        if late:
            alerts.append(f"{len(late)} orders with dates after the list")
            recommendations.append("Adjust order dates to meet the list schedule")

        if alerts:
            logger.debug(f"List {list_record.id}: {len(alerts)} coherence alerts")

        return CoherenceResult(
            list_id=list_record.id,
            list_amount=list_amount,
            orders_amount=orders_amount,
            amount_deviation=deviation,
            deviation_percent=deviation_percent,
            is_coherent=is_coherent,
            alerts=alerts,
            recommendations=recommendations,
            line_checks=line_checks,
            late_order_ids=late,
            related_orders=related,
            list_code=list_record.code,
            project_id=list_record.project_id,
        )

    def _check_line_quantities(
        self,
        list_record: ListRecord,
        orders: List[OrderRecord],
    ) -> List[LineQuantityCheck]:
        """One check per identified list line; unidentified lines cannot be referenced."""
        ordered: Dict[str, float] = defaultdict(float)
        for order in orders:
            for line in order.lines:
                if line.list_line_id:
                    ordered[line.list_line_id] += max(0.0, line.quantity_ordered)

        return [
            LineQuantityCheck(
                line_id=line.line_id,
                listed_quantity=max(0.0, line.quantity),
                ordered_quantity=ordered.get(line.line_id, 0.0),
            )
            for line in list_record.lines
            if line.line_id
        ]

    def validate_many(
        self,
        lists: Iterable[ListRecord],
        orders: Iterable[OrderRecord],
    ) -> List[CoherenceResult]:
        """Validate every list against the orders whose ``list_id`` points at it."""
        by_list: Dict[str, List[OrderRecord]] = defaultdict(list)
        for order in orders:
            if order.list_id:
                by_list[order.list_id].append(order)

        results = [self.validate(lst, by_list.get(lst.id, [])) for lst in lists]
        incoherent = sum(1 for r in results if not r.is_coherent)
        logger.info(f"Coherence validated for {len(results)} lists ({incoherent} incoherent)")
        return results

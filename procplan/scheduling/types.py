"""
ProcPlan - Scheduling Types
===========================

Common types for the procurement schedule.

Estrutura:
- ListLine / OrderLine: priced line items (closed union, one per entity kind)
- ListRecord / OrderRecord: resolved upstream entities
- ScheduleItem: computed, schedulable unit derived from a List or an Order
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class ItemKind(str, Enum):
    """Entity a schedule item was derived from."""
    LIST = "list"
    ORDER = "order"


class Criticality(str, Enum):
    """Derived risk tier of a schedule item."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def weight(self) -> int:
        return CRITICALITY_WEIGHTS[self]

    @property
    def is_critical(self) -> bool:
        """High and critical items form the at-risk set."""
        return self in (Criticality.HIGH, Criticality.CRITICAL)


CRITICALITY_WEIGHTS: Dict[Criticality, int] = {
    Criticality.LOW: 1,
    Criticality.MEDIUM: 2,
    Criticality.HIGH: 3,
    Criticality.CRITICAL: 4,
}

# Order progress by lifecycle state; unknown states count as 0
ORDER_PROGRESS: Dict[str, float] = {
    "draft": 0.0,
    "sent": 25.0,
    "attended": 50.0,
    "partial": 75.0,
    "delivered": 100.0,
    "cancelled": 0.0,
}

# Upstream (Spanish) lifecycle names accepted at the boundary
STATE_ALIASES: Dict[str, str] = {
    "borrador": "draft",
    "enviado": "sent",
    "atendido": "attended",
    "parcial": "partial",
    "entregado": "delivered",
    "cancelado": "cancelled",
    "canceled": "cancelled",
    "rechazado": "rejected",
    "aprobado": "approved",
    "por_revisar": "pending",
    "pendiente": "pending",
    "completado": "completed",
    "cerrado": "closed",
}


def normalize_state(state: Optional[str]) -> str:
    """Lower-case a lifecycle state and map known aliases."""
    if not state:
        return ""
    key = str(state).strip().lower()
    return STATE_ALIASES.get(key, key)


# ═══════════════════════════════════════════════════════════════════════════════
# LINE ITEMS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ListLine:
    """A List line: forecast quantity at the chosen price."""
    lead_time_days: Optional[int] = 0
    quantity: float = 0.0
    unit_price: float = 0.0
    line_id: Optional[str] = None

    @property
    def line_quantity(self) -> float:
        return self.quantity


@dataclass(frozen=True)
class OrderLine:
    """An Order line: ordered quantity, optionally pointing at its List line."""
    lead_time_days: Optional[int] = 0
    quantity_ordered: float = 0.0
    unit_price: float = 0.0
    list_line_id: Optional[str] = None

    @property
    def line_quantity(self) -> float:
        return self.quantity_ordered


LineItem = Union[ListLine, OrderLine]


# ═══════════════════════════════════════════════════════════════════════════════
# RESOLVED ENTITIES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ListRecord:
    """Equipment requirement forecast with a required-by date."""
    id: str
    code: str
    required_date: date
    state: str = "draft"
    lines: Tuple[ListLine, ...] = ()
    project_id: Optional[str] = None
    resource_id: Optional[str] = None
    depends_on: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OrderRecord:
    """Purchase commitment derived from one List."""
    id: str
    code: str
    required_date: date
    list_id: Optional[str] = None
    state: str = "draft"
    lines: Tuple[OrderLine, ...] = ()
    project_id: Optional[str] = None
    resource_id: Optional[str] = None
    depends_on: Tuple[str, ...] = ()


# ═══════════════════════════════════════════════════════════════════════════════
# SCHEDULE ITEM
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ScheduleItem:
    """
    Computed schedulable unit.

    ``end - start`` equals the maximum line lead time when the item is built;
    the optimizer only ever rewrites ``start``/``end``/``criticality`` in a copy.

    Attributes:
        id: Source entity id
        label: Business code
        kind: list or order
        start, end: Schedule window (dates)
        amount: Projected (list) or executed (order) amount, >= 0
        state: Business lifecycle state
        criticality: Derived risk tier (not authoritative)
        required_date: Original required-by date
        progress_percent: Orders only, from ORDER_PROGRESS
        list_id: Parent list (orders)
        project_id: Owning project
        resource_id: Resource handling the item (optimizer capacity model)
        depends_on: Ids of items that must finish first
    """
    id: str
    label: str
    kind: ItemKind
    start: date
    end: date
    amount: float
    state: str
    criticality: Criticality
    required_date: Optional[date] = None
    progress_percent: Optional[float] = None
    list_id: Optional[str] = None
    project_id: Optional[str] = None
    resource_id: Optional[str] = None
    depends_on: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def duration_days(self) -> int:
        return (self.end - self.start).days

    @property
    def days_remaining(self) -> int:
        """Days from today until ``end``; recomputed on every read."""
        return self.days_remaining_at(date.today())

    def days_remaining_at(self, today: date) -> int:
        return (self.end - today).days

    def covers(self, day: date) -> bool:
        return self.start <= day <= self.end

    def overlaps(self, other: "ScheduleItem") -> bool:
        return self.start <= other.end and other.start <= self.end

    def with_dates(self, start: date, end: date) -> "ScheduleItem":
        return replace(self, start=start, end=end)

    def shifted(self, days: int) -> "ScheduleItem":
        """Copy moved by ``days`` (negative = earlier), duration preserved."""
        delta = timedelta(days=days)
        return replace(self, start=self.start + delta, end=self.end + delta)

    def with_criticality(self, criticality: Criticality) -> "ScheduleItem":
        return replace(self, criticality=criticality)

    def to_dict(self, today: Optional[date] = None) -> Dict[str, Any]:
        today = today or date.today()
        return {
            "id": self.id,
            "label": self.label,
            "kind": self.kind.value,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "amount": round(self.amount, 2),
            "state": self.state,
            "criticality": self.criticality.value,
            "days_remaining": self.days_remaining_at(today),
            "progress_percent": self.progress_percent,
            "required_date": self.required_date.isoformat() if self.required_date else None,
            "list_id": self.list_id,
            "project_id": self.project_id,
            "resource_id": self.resource_id,
            "depends_on": list(self.depends_on),
        }

"""
════════════════════════════════════════════════════════════════════════════════
SNAPSHOTS - Pydantic Models para Validação dos Dados de Entrada
════════════════════════════════════════════════════════════════════════════════

Input snapshots are validated once here and converted to the frozen records
the calculators consume. Field names accept both snake_case and the camelCase
used by upstream payloads.

Normalização:
- negative lead time / quantity / price / amount -> 0 (logged)
- missing lead time stays None (resolved by ScheduleSettings)
- lifecycle states lower-cased, Spanish aliases mapped
- resource capacity below 1 -> 1 (logged)

Schemas:
- ListSnapshot / OrderSnapshot (+ line schemas)
- ResourceSnapshot
- ProjectSnapshot
- PlanningSnapshot: bundle of the above
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from ..optimization.types import AvailabilityWindow, Resource, ResourceKind
from ..project_planning.project_model import Project
from .types import ListLine, ListRecord, OrderLine, OrderRecord, normalize_state

logger = logging.getLogger(__name__)

RESOURCE_KIND_ALIASES: Dict[str, str] = {
    "comercial": "sales",
    "gestor": "manager",
    "coordinador": "coordinator",
    "proveedor": "supplier",
}


def _non_negative(value: Any, info: ValidationInfo) -> Any:
    if value is None:
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return value
    if math.isnan(number) or number < 0:
        logger.warning(f"Normalised {info.field_name}={value!r} to 0")
        return 0
    return value


# ═══════════════════════════════════════════════════════════════════════════════
# LINES
# ═══════════════════════════════════════════════════════════════════════════════

class ListLineSnapshot(BaseModel):
    """List line: lead time, forecast quantity, chosen unit price."""
    line_id: Optional[str] = Field(None, alias="id")
    lead_time_days: Optional[int] = Field(None, alias="leadTimeDays")
    quantity: float = Field(0.0, alias="quantity")
    unit_price: float = Field(0.0, alias="unitPrice")

    @field_validator("lead_time_days", "quantity", "unit_price", mode="before")
    @classmethod
    def clamp_negative(cls, v, info: ValidationInfo):
        return _non_negative(v, info)

    class Config:
        populate_by_name = True

    def to_line(self) -> ListLine:
        return ListLine(
            lead_time_days=self.lead_time_days,
            quantity=self.quantity,
            unit_price=self.unit_price,
            line_id=self.line_id,
        )


class OrderLineSnapshot(BaseModel):
    """Order line: lead time, ordered quantity, unit price, source list line."""
    lead_time_days: Optional[int] = Field(None, alias="leadTimeDays")
    quantity_ordered: float = Field(0.0, alias="quantityOrdered")
    unit_price: float = Field(0.0, alias="unitPrice")
    list_line_id: Optional[str] = Field(None, alias="listLineId")

    @field_validator("lead_time_days", "quantity_ordered", "unit_price", mode="before")
    @classmethod
    def clamp_negative(cls, v, info: ValidationInfo):
        return _non_negative(v, info)

    class Config:
        populate_by_name = True

    def to_line(self) -> OrderLine:
        return OrderLine(
            lead_time_days=self.lead_time_days,
            quantity_ordered=self.quantity_ordered,
            unit_price=self.unit_price,
            list_line_id=self.list_line_id,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# LISTS / ORDERS
# ═══════════════════════════════════════════════════════════════════════════════

class ListSnapshot(BaseModel):
    id: str
    code: str
    required_date: date = Field(..., alias="requiredDate")
    state: str = "draft"
    lines: List[ListLineSnapshot] = Field(default_factory=list)
    project_id: Optional[str] = Field(None, alias="projectId")
    resource_id: Optional[str] = Field(None, alias="resourceId")
    depends_on: List[str] = Field(default_factory=list, alias="dependsOn")

    @field_validator("state", mode="before")
    @classmethod
    def normalize(cls, v):
        return normalize_state(v) or "draft"

    class Config:
        populate_by_name = True

    def to_record(self) -> ListRecord:
        return ListRecord(
            id=self.id,
            code=self.code,
            required_date=self.required_date,
            state=self.state,
            lines=tuple(line.to_line() for line in self.lines),
            project_id=self.project_id,
            resource_id=self.resource_id,
            depends_on=tuple(self.depends_on),
        )


class OrderSnapshot(BaseModel):
    id: str
    code: str
    required_date: date = Field(..., alias="requiredDate")
    list_id: Optional[str] = Field(None, alias="listId")
    state: str = "draft"
    lines: List[OrderLineSnapshot] = Field(default_factory=list)
    project_id: Optional[str] = Field(None, alias="projectId")
    resource_id: Optional[str] = Field(None, alias="resourceId")
    depends_on: List[str] = Field(default_factory=list, alias="dependsOn")

    @field_validator("state", mode="before")
    @classmethod
    def normalize(cls, v):
        return normalize_state(v) or "draft"

    class Config:
        populate_by_name = True

    def to_record(self) -> OrderRecord:
        return OrderRecord(
            id=self.id,
            code=self.code,
            required_date=self.required_date,
            list_id=self.list_id,
            state=self.state,
            lines=tuple(line.to_line() for line in self.lines),
            project_id=self.project_id,
            resource_id=self.resource_id,
            depends_on=tuple(self.depends_on),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# RESOURCES / PROJECTS
# ═══════════════════════════════════════════════════════════════════════════════

class AvailabilityWindowSnapshot(BaseModel):
    start: Optional[date] = None
    end: Optional[date] = None


class ResourceSnapshot(BaseModel):
    id: str
    name: str
    kind: ResourceKind = ResourceKind.MANAGER
    max_capacity: int = Field(1, alias="maxCapacity")
    current_load: float = Field(0.0, alias="currentLoad")
    availability_window: Optional[AvailabilityWindowSnapshot] = Field(None, alias="availabilityWindow")
    blackout_dates: List[date] = Field(default_factory=list, alias="blackoutDates")

    @field_validator("kind", mode="before")
    @classmethod
    def map_kind(cls, v):
        if isinstance(v, str):
            key = v.strip().lower()
            return RESOURCE_KIND_ALIASES.get(key, key)
        return v

    @field_validator("max_capacity", mode="before")
    @classmethod
    def clamp_capacity(cls, v):
        if v is not None and int(v) < 1:
            logger.warning(f"Normalised max_capacity={v!r} to 1")
            return 1
        return v

    @field_validator("current_load", mode="before")
    @classmethod
    def clamp_load(cls, v, info: ValidationInfo):
        return _non_negative(v, info)

    class Config:
        populate_by_name = True

    def to_resource(self) -> Resource:
        window = self.availability_window or AvailabilityWindowSnapshot()
        return Resource(
            id=self.id,
            name=self.name,
            kind=self.kind,
            max_capacity=self.max_capacity,
            current_load=self.current_load,
            availability_window=AvailabilityWindow(start=window.start, end=window.end),
            blackout_dates=tuple(self.blackout_dates),
        )


class ProjectSnapshot(BaseModel):
    id: str
    name: str = ""
    code: str = ""
    status: str = "active"
    budget_amount: float = Field(0.0, alias="budgetAmount")
    executed_amount: float = Field(0.0, alias="executedAmount")
    end_date: Optional[date] = Field(None, alias="endDate")
    sales_name: Optional[str] = Field(None, alias="salesName")
    manager_name: Optional[str] = Field(None, alias="managerName")

    @field_validator("status", mode="before")
    @classmethod
    def normalize(cls, v):
        return normalize_state(v) or "active"

    @field_validator("budget_amount", "executed_amount", mode="before")
    @classmethod
    def clamp_negative(cls, v, info: ValidationInfo):
        return _non_negative(v, info)

    class Config:
        populate_by_name = True

    def to_project(self) -> Project:
        return Project(
            project_id=self.id,
            name=self.name or "Unnamed",
            code=self.code,
            status=self.status,
            budget_amount=self.budget_amount,
            executed_amount=self.executed_amount,
            end_date=self.end_date,
            sales_name=self.sales_name,
            manager_name=self.manager_name,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# BUNDLE
# ═══════════════════════════════════════════════════════════════════════════════

class PlanningSnapshot(BaseModel):
    """Everything one evaluation needs, validated in a single pass."""
    lists: List[ListSnapshot] = Field(default_factory=list)
    orders: List[OrderSnapshot] = Field(default_factory=list)
    resources: List[ResourceSnapshot] = Field(default_factory=list)
    projects: List[ProjectSnapshot] = Field(default_factory=list)

    def list_records(self) -> List[ListRecord]:
        return [s.to_record() for s in self.lists]

    def order_records(self) -> List[OrderRecord]:
        return [s.to_record() for s in self.orders]

    def resource_pool(self) -> List[Resource]:
        return [s.to_resource() for s in self.resources]

    def project_models(self) -> List[Project]:
        return [s.to_project() for s in self.projects]

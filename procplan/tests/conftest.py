"""
Fixtures comuns para os testes do procplan.

All fixtures pin ``today`` to 2025-06-01 (a Sunday) and ``now`` to 09:00 UTC
that day so date arithmetic and deduplication buckets are reproducible.
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from procplan.config import Settings
from procplan.optimization.types import Resource, ResourceKind
from procplan.project_planning.project_model import Project
from procplan.scheduling.types import (
    Criticality,
    ItemKind,
    ListLine,
    ListRecord,
    OrderLine,
    OrderRecord,
    ScheduleItem,
)

TODAY = date(2025, 6, 1)
NOW = datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)


def make_item(
    item_id,
    start_offset,
    duration,
    amount=1000.0,
    criticality=Criticality.LOW,
    resource_id=None,
    depends_on=(),
    state="draft",
    kind=ItemKind.LIST,
):
    """Schedule item whose start is ``start_offset`` days after TODAY."""
    start = TODAY + timedelta(days=start_offset)
    return ScheduleItem(
        id=item_id,
        label=item_id.upper(),
        kind=kind,
        start=start,
        end=start + timedelta(days=duration),
        amount=amount,
        state=state,
        criticality=criticality,
        resource_id=resource_id,
        depends_on=tuple(depends_on),
    )


@pytest.fixture(autouse=True)
def reset_settings():
    """Drop cached settings so environment changes never leak between tests."""
    Settings.reset()
    yield
    Settings.reset()


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def sample_list():
    """List L1: two identified lines, 1,100.00 in total, required 2025-06-30."""
    return ListRecord(
        id="L1",
        code="LST-001",
        required_date=date(2025, 6, 30),
        state="approved",
        lines=(
            ListLine(lead_time_days=30, quantity=10, unit_price=100.0, line_id="L1-1"),
            ListLine(lead_time_days=10, quantity=5, unit_price=20.0, line_id="L1-2"),
        ),
        project_id="P1",
    )


@pytest.fixture
def coherent_orders():
    """Orders covering L1 exactly."""
    return [
        OrderRecord(
            id="O1",
            code="PED-001",
            required_date=date(2025, 6, 25),
            list_id="L1",
            state="sent",
            lines=(OrderLine(lead_time_days=20, quantity_ordered=10, unit_price=100.0, list_line_id="L1-1"),),
            project_id="P1",
        ),
        OrderRecord(
            id="O2",
            code="PED-002",
            required_date=date(2025, 6, 28),
            list_id="L1",
            state="draft",
            lines=(OrderLine(lead_time_days=5, quantity_ordered=5, unit_price=20.0, list_line_id="L1-2"),),
            project_id="P1",
        ),
    ]


@pytest.fixture
def resources():
    return [
        Resource(id="R1", name="Ana", kind=ResourceKind.MANAGER, max_capacity=1),
        Resource(id="R2", name="Luis", kind=ResourceKind.SALES, max_capacity=2),
    ]


@pytest.fixture
def projects():
    return [
        Project(
            project_id="P1",
            name="Planta Norte",
            code="PRJ-001",
            budget_amount=10000.0,
            executed_amount=9000.0,
            end_date=date(2025, 12, 31),
            sales_name="Luis",
            manager_name="Ana",
        ),
        Project(
            project_id="P2",
            name="Subestacion Sur",
            code="PRJ-002",
            budget_amount=0.0,
            executed_amount=500.0,
            end_date=date(2025, 5, 1),
            manager_name="Ana",
        ),
    ]

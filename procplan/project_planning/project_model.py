"""
═══════════════════════════════════════════════════════════════════════════════════════════════════════
                    PROCPLAN — PROJECT MODEL
═══════════════════════════════════════════════════════════════════════════════════════════════════════

Engineering projects as seen by the procurement alerts.

DEFINITION
══════════

A PROJECT owns Lists and Orders and carries:
- Equipment budget (planned monetary amount)
- Executed amount (sum of its Orders)
- Contract end date
- Responsible sales and manager names (resource load)

Budget execution:
─────────────────

    E_p = executed_p / budget_p × 100        (budget_p > 0)

A project is LATE when today > end_date and its status is not terminal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from ..scheduling.types import ItemKind, ScheduleItem, normalize_state

logger = logging.getLogger(__name__)

TERMINAL_PROJECT_STATES: Tuple[str, ...] = ("completed", "closed", "cancelled")


# ════════════════════════════════════════════════════════════════════════════════════════════════════
# PROJECT DATA MODEL
# ════════════════════════════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Project:
    """
    Attributes:
        project_id: Unique identifier
        name: Human-readable name
        code: Business code
        status: Lifecycle status (normalised, lower-case)
        budget_amount: Planned equipment budget; 0 means "no budget"
        executed_amount: Sum of order amounts
        end_date: Contract end date (optional)
        sales_name: Responsible sales resource name
        manager_name: Responsible project manager name
    """
    project_id: str
    name: str
    code: str = ""
    status: str = "active"
    budget_amount: float = 0.0
    executed_amount: float = 0.0
    end_date: Optional[date] = None
    sales_name: Optional[str] = None
    manager_name: Optional[str] = None

    @property
    def has_budget(self) -> bool:
        return self.budget_amount > 0

    @property
    def execution_percent(self) -> float:
        """Executed / budget x 100; 0 without a budget."""
        if not self.has_budget:
            return 0.0
        return self.executed_amount / self.budget_amount * 100.0

    def is_terminal(self, terminal_states: Iterable[str] = TERMINAL_PROJECT_STATES) -> bool:
        return normalize_state(self.status) in {normalize_state(s) for s in terminal_states}

    def is_late(
        self,
        today: Optional[date] = None,
        terminal_states: Iterable[str] = TERMINAL_PROJECT_STATES,
    ) -> bool:
        """Past its end date without reaching a terminal status."""
        if self.end_date is None:
            return False
        if self.is_terminal(terminal_states):
            return False
        return (today or date.today()) > self.end_date

    def with_executed(self, executed_amount: float) -> "Project":
        return replace(self, executed_amount=executed_amount)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "name": self.name,
            "code": self.code,
            "status": self.status,
            "budget_amount": round(self.budget_amount, 2),
            "executed_amount": round(self.executed_amount, 2),
            "execution_percent": round(self.execution_percent, 2),
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "sales_name": self.sales_name,
            "manager_name": self.manager_name,
        }


# ════════════════════════════════════════════════════════════════════════════════════════════════════
# EXECUTED AMOUNTS
# ════════════════════════════════════════════════════════════════════════════════════════════════════

def executed_amounts_by_project(items: Iterable[ScheduleItem]) -> Dict[str, float]:
    """
    Sum order amounts per project.

    Cancelled orders do not count as executed. Items without a project are
    ignored.
    """
    rows = [
        {"project_id": i.project_id, "amount": i.amount}
        for i in items
        if i.kind == ItemKind.ORDER and i.project_id and normalize_state(i.state) != "cancelled"
    ]
    if not rows:
        return {}
    df = pd.DataFrame(rows)
    grouped = df.groupby("project_id")["amount"].sum()
    return {str(k): float(v) for k, v in grouped.items()}


def apply_executed_amounts(
    projects: Iterable[Project],
    items: Iterable[ScheduleItem],
) -> List[Project]:
    """Copies of ``projects`` with ``executed_amount`` recomputed from order items."""
    executed = executed_amounts_by_project(items)
    result = [p.with_executed(executed.get(p.project_id, 0.0)) for p in projects]
    logger.debug(f"Executed amounts applied to {len(result)} projects ({len(executed)} with orders)")
    return result

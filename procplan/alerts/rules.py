"""
ProcPlan - Alert Rules
======================

Each rule turns one class of facts into notifications:

- CriticalDateRule: high/critical items due around each lead window
- CoherenceRule: incoherent lists beyond the deviation threshold
- BudgetRule: projects crossing budget execution thresholds
- ResourceRule: resources assigned beyond capacity
- SystemRule: large working sets and overdue-project trends

Rules are stateless; thresholds, toggles and recipients come from
``AlertSettings``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Optional

from ..coherence.validator import CoherenceResult
from ..config import AlertSettings
from ..formatting import format_date, format_money, format_percent
from ..optimization.types import OptimizationResult, Resource
from ..project_planning.project_load_engine import (
    ResourceLoad,
    compute_item_resource_loads,
    compute_project_resource_loads,
    loads_from_optimization,
)
from ..project_planning.project_model import Project
from ..scheduling.types import ScheduleItem
from .models import (
    ActionKind,
    Category,
    Notification,
    NotificationAction,
    Priority,
    Severity,
    notification_id,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# FACTS / CONTEXT
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class AlertFacts:
    """
    Inputs of one alert run.

    ``resource_loads`` defaults to the loads derived from ``projects`` plus,
    when a ``resources`` pool is given, the items assigned to each resource;
    ``total_items`` defaults to ``len(items)``.
    """
    items: List[ScheduleItem] = field(default_factory=list)
    coherence_results: List[CoherenceResult] = field(default_factory=list)
    projects: List[Project] = field(default_factory=list)
    resources: List[Resource] = field(default_factory=list)
    resource_loads: Optional[List[ResourceLoad]] = None
    total_items: Optional[int] = None

    def working_set_size(self) -> int:
        return len(self.items) if self.total_items is None else self.total_items

    def loads(self, default_capacity: int) -> List[ResourceLoad]:
        if self.resource_loads is not None:
            return list(self.resource_loads)
        loads = compute_project_resource_loads(self.projects, self.resources, default_capacity=default_capacity)
        if self.resources:
            loads += compute_item_resource_loads(self.items, self.resources)
        return loads

    def with_optimization(self, result: OptimizationResult, resources: Iterable[Resource]) -> "AlertFacts":
        """Copy whose resource loads come from an optimisation result."""
        resources = list(resources)
        return AlertFacts(
            items=list(result.schedule),
            coherence_results=list(self.coherence_results),
            projects=list(self.projects),
            resources=resources,
            resource_loads=loads_from_optimization(result, resources),
            total_items=self.total_items,
        )


@dataclass(frozen=True)
class RuleContext:
    now: datetime
    today: date
    bucket: str
    settings: AlertSettings


class AlertRule(ABC):
    """One class of alerts."""

    category: Category

    @abstractmethod
    def enabled(self, settings: AlertSettings) -> bool:
        raise NotImplementedError

    @abstractmethod
    def evaluate(self, facts: AlertFacts, context: RuleContext) -> List[Notification]:
        raise NotImplementedError

    def _id(self, entity_id: Optional[str], discriminator, context: RuleContext) -> str:
        return notification_id(self.category, entity_id, discriminator, context.bucket)


# ═══════════════════════════════════════════════════════════════════════════════
# RULES
# ═══════════════════════════════════════════════════════════════════════════════

class CriticalDateRule(AlertRule):
    category = Category.CRITICAL_DATE

    def enabled(self, settings: AlertSettings) -> bool:
        return settings.critical_dates.enabled

    def evaluate(self, facts: AlertFacts, context: RuleContext) -> List[Notification]:
        config = context.settings.critical_dates
        at_risk = [i for i in facts.items if i.criticality.is_critical]
        notifications = []

        for window in config.lead_windows:
            for item in at_risk:
                days = item.days_remaining_at(context.today)
                if abs(days - window) > config.window_tolerance_days:
                    continue

                if days <= 3:
                    severity, priority = Severity.CRITICAL, Priority.CRITICAL
                elif days <= 7:
                    severity, priority = Severity.ERROR, Priority.HIGH
                else:
                    severity, priority = Severity.WARNING, Priority.MEDIUM

                notifications.append(Notification(
                    id=self._id(item.id, f"{window}d", context),
                    severity=severity,
                    category=self.category,
                    title=f"Critical date approaching: {item.label}",
                    message=f'"{item.label}" is due in {days} days ({format_date(item.end)})',
                    detail="\n".join([
                        f"Item: {item.label}",
                        f"Amount: {format_money(item.amount)}",
                        f"Due: {format_date(item.end)}",
                        f"Criticality: {item.criticality.value}",
                        f"State: {item.state}",
                    ]),
                    created_at=context.now,
                    due_at=item.end,
                    requires_action=True,
                    priority=priority,
                    recipients=list(config.recipients),
                    related_entity_id=item.id,
                    project_id=item.project_id,
                    actions=[
                        NotificationAction("view_detail", "View detail", ActionKind.LINK,
                                           target=f"/procurement/items/{item.id}"),
                        NotificationAction("reschedule", "Reschedule", ActionKind.MODAL,
                                           parameters={"item_id": item.id}),
                    ],
                    metadata={
                        "days_remaining": days,
                        "amount": item.amount,
                        "criticality": item.criticality.value,
                        "window_days": window,
                    },
                ))
        return notifications


class CoherenceRule(AlertRule):
    category = Category.COHERENCE

    def enabled(self, settings: AlertSettings) -> bool:
        return settings.coherence.enabled

    def evaluate(self, facts: AlertFacts, context: RuleContext) -> List[Notification]:
        config = context.settings.coherence
        notifications = []

        for result in facts.coherence_results:
            deviation = abs(result.deviation_percent)
            if result.is_coherent or deviation <= config.deviation_threshold_percent:
                continue

            severe = deviation > config.error_percent
            name = result.list_code or result.list_id
            related = [f"- {o.code}: {format_money(o.amount)}" for o in result.related_orders]

            notifications.append(Notification(
                id=self._id(result.list_id, "deviation", context),
                severity=Severity.ERROR if severe else Severity.WARNING,
                category=self.category,
                title="Coherence deviation detected",
                message=f"List {name} deviates {format_percent(deviation)} from its orders",
                detail="\n".join([
                    f"List: {name}",
                    f"List amount: {format_money(result.list_amount)}",
                    f"Orders amount: {format_money(result.orders_amount)}",
                    f"Deviation: {format_money(result.amount_deviation)}",
                    f"Deviation %: {format_percent(deviation, 2)}",
                    "",
                    "Related orders:",
                    *related,
                ]),
                created_at=context.now,
                requires_action=True,
                priority=Priority.HIGH if severe else Priority.MEDIUM,
                recipients=list(config.recipients),
                related_entity_id=result.list_id,
                project_id=result.project_id,
                actions=[
                    NotificationAction("review_coherence", "Review coherence", ActionKind.LINK,
                                       target=f"/procurement/coherence/{result.list_id}"),
                    NotificationAction("adjust_orders", "Adjust orders", ActionKind.MODAL,
                                       parameters={"list_id": result.list_id}),
                ],
                metadata={
                    "deviation": result.amount_deviation,
                    "deviation_percent": deviation,
                    "order_count": len(result.related_orders),
                },
            ))
        return notifications


class BudgetRule(AlertRule):
    category = Category.BUDGET

    def enabled(self, settings: AlertSettings) -> bool:
        return settings.budget.enabled

    def evaluate(self, facts: AlertFacts, context: RuleContext) -> List[Notification]:
        config = context.settings.budget
        notifications = []

        for project in facts.projects:
            if not project.has_budget:
                continue
            percent = project.execution_percent
            available = project.budget_amount - project.executed_amount

            for threshold in config.thresholds:
                if percent < threshold:
                    continue

                if percent >= config.critical_percent:
                    severity, priority = Severity.CRITICAL, Priority.CRITICAL
                elif percent >= config.error_percent:
                    severity, priority = Severity.ERROR, Priority.HIGH
                else:
                    severity, priority = Severity.WARNING, Priority.MEDIUM

                notifications.append(Notification(
                    id=self._id(project.project_id, f"{threshold:g}", context),
                    severity=severity,
                    category=self.category,
                    title=f"Budget threshold reached: {project.name}",
                    message=f'Project "{project.name}" has executed {format_percent(percent)} of its budget',
                    detail="\n".join([
                        f"Project: {project.name} ({project.code or 'no code'})",
                        f"Budget: {format_money(project.budget_amount)}",
                        f"Executed: {format_money(project.executed_amount)}",
                        f"Execution: {format_percent(percent, 2)}",
                        f"Available: {format_money(available)}",
                        "",
                        "Responsible:",
                        f"- Sales: {project.sales_name or 'unassigned'}",
                        f"- Manager: {project.manager_name or 'unassigned'}",
                    ]),
                    created_at=context.now,
                    requires_action=percent >= config.action_percent,
                    priority=priority,
                    recipients=list(config.recipients),
                    related_entity_id=project.project_id,
                    project_id=project.project_id,
                    actions=[
                        NotificationAction("view_project", "View project", ActionKind.LINK,
                                           target=f"/procurement/projects/{project.project_id}"),
                        NotificationAction("review_budget", "Review budget", ActionKind.MODAL,
                                           parameters={"project_id": project.project_id}),
                    ],
                    metadata={
                        "execution_percent": percent,
                        "available_amount": available,
                        "threshold": threshold,
                    },
                ))
        return notifications


class ResourceRule(AlertRule):
    category = Category.RESOURCE

    def enabled(self, settings: AlertSettings) -> bool:
        return settings.resources.enabled

    def evaluate(self, facts: AlertFacts, context: RuleContext) -> List[Notification]:
        config = context.settings.resources
        loads = facts.loads(config.default_capacity)

        notifications = []
        for load in loads:
            percent = load.load_percent
            if not load.is_overloaded or percent <= config.overload_percent:
                continue
            critical = percent > config.critical_percent

            notifications.append(Notification(
                id=self._id(load.resource, load.role, context),
                severity=Severity.CRITICAL if critical else Severity.WARNING,
                category=self.category,
                title=f"Resource overload: {load.resource}",
                message=(
                    f"{load.resource} is at {format_percent(percent)} load "
                    f"({load.assigned_count} assignments)"
                ),
                detail="\n".join([
                    f"Resource: {load.resource}",
                    f"Role: {load.role}",
                    f"Assigned: {load.assigned_count}",
                    f"Capacity: {load.max_capacity}",
                    f"Load: {format_percent(percent, 2)}",
                    "",
                    "Assignments:",
                    *[f"- {label}" for label in load.assigned_labels],
                ]),
                created_at=context.now,
                requires_action=True,
                priority=Priority.CRITICAL if critical else Priority.HIGH,
                recipients=list(config.recipients),
                related_entity_id=load.resource,
                actions=[
                    NotificationAction("redistribute", "Redistribute assignments", ActionKind.MODAL,
                                       parameters={"resource": load.resource,
                                                   "assigned_ids": list(load.assigned_ids)}),
                    NotificationAction("view_load", "View full load", ActionKind.LINK,
                                       target=f"/procurement/resources/{load.resource}"),
                ],
                metadata={
                    "load_percent": percent,
                    "excess": load.excess,
                    "role": load.role,
                },
            ))
        return notifications


class SystemRule(AlertRule):
    category = Category.SYSTEM

    def enabled(self, settings: AlertSettings) -> bool:
        return settings.system.enabled

    def evaluate(self, facts: AlertFacts, context: RuleContext) -> List[Notification]:
        config = context.settings.system
        notifications = []

        total = facts.working_set_size()
        if total > config.volume_threshold:
            notifications.append(Notification(
                id=self._id("working_set", "volume", context),
                severity=Severity.INFO,
                category=self.category,
                title="High data volume detected",
                message=f"Processing {total} items. Consider narrowing the filters.",
                created_at=context.now,
                requires_action=False,
                priority=Priority.LOW,
                recipients=list(config.volume_recipients),
                related_entity_id="working_set",
                metadata={"total_items": total},
            ))

        late = [
            p for p in facts.projects
            if p.is_late(context.today, config.terminal_project_states)
        ]
        if late:
            delays = [(context.today - p.end_date).days for p in late]
            notifications.append(Notification(
                id=self._id("projects", "overdue", context),
                severity=Severity.WARNING,
                category=self.category,
                title=f"{len(late)} projects behind schedule",
                message="Projects past their end date were found",
                detail="\n".join(
                    ["Overdue projects:"]
                    + [f"- {p.name}: {d} days late" for p, d in zip(late, delays)]
                ),
                created_at=context.now,
                requires_action=True,
                priority=Priority.MEDIUM,
                recipients=list(config.trend_recipients),
                related_entity_id="projects",
                actions=[
                    NotificationAction("review_delays", "Review delays", ActionKind.LINK,
                                       target="/procurement/reports/delays"),
                ],
                metadata={
                    "late_count": len(late),
                    "average_delay_days": sum(delays) / len(delays),
                    "project_ids": [p.project_id for p in late],
                },
            ))
        return notifications


def default_rules() -> List[AlertRule]:
    return [CriticalDateRule(), CoherenceRule(), BudgetRule(), ResourceRule(), SystemRule()]

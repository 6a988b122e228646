"""
ProcPlan - Alerts Module
========================

Rule-based notifications over schedule, coherence, budget, resource and
system facts, with a deduplicating store and escalation.

API de alto nível:
- AlertEngine(repository=...).generate(AlertFacts(...)) -> AlertRun
- AlertEngine().evaluate(AlertFacts(...)) -> [Notification]
- EscalationPolicy().escalate(notification, now) -> Notification
- compute_statistics(notifications) -> NotificationStatistics
"""

from .models import (
    ActionKind,
    Category,
    Notification,
    NotificationAction,
    Priority,
    Severity,
    notification_id,
    time_bucket,
)
from .repository import (
    InMemoryNotificationRepository,
    NotificationObserver,
    NotificationRepository,
)
from .rules import (
    AlertFacts,
    AlertRule,
    BudgetRule,
    CoherenceRule,
    CriticalDateRule,
    ResourceRule,
    RuleContext,
    SystemRule,
    default_rules,
)
from .escalation import EscalationPolicy
from .statistics import NotificationStatistics, compute_statistics
from .engine import AlertEngine, AlertRun

__all__ = [
    "ActionKind",
    "Category",
    "Notification",
    "NotificationAction",
    "Priority",
    "Severity",
    "notification_id",
    "time_bucket",
    "InMemoryNotificationRepository",
    "NotificationObserver",
    "NotificationRepository",
    "AlertFacts",
    "AlertRule",
    "BudgetRule",
    "CoherenceRule",
    "CriticalDateRule",
    "ResourceRule",
    "RuleContext",
    "SystemRule",
    "default_rules",
    "EscalationPolicy",
    "NotificationStatistics",
    "compute_statistics",
    "AlertEngine",
    "AlertRun",
]

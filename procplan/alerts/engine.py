"""
ProcPlan - Alert Engine
=======================

Runs the alert rules over schedule, coherence, project and resource-load
facts and keeps the notification store deduplicated.

Uso:
    engine = AlertEngine(repository=InMemoryNotificationRepository())
    run = engine.generate(AlertFacts(items=items, coherence_results=results))
    run.created  # notifications seen for the first time in this bucket

``evaluate`` is the pure variant: it only returns what the rules emit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..config import AlertSettings, Settings
from .escalation import EscalationPolicy
from .models import Notification, time_bucket
from .repository import InMemoryNotificationRepository, NotificationObserver, NotificationRepository
from .rules import AlertFacts, AlertRule, RuleContext, default_rules
from .statistics import NotificationStatistics, compute_statistics

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AlertRun:
    """Outcome of one ``generate`` call."""
    created: List[Notification] = field(default_factory=list)
    updated: List[Notification] = field(default_factory=list)

    @property
    def notifications(self) -> List[Notification]:
        return self.created + self.updated

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": [n.to_dict() for n in self.created],
            "updated": [n.to_dict() for n in self.updated],
        }


class AlertEngine:
    """
    Alert engine with an injected store and observers.

    Observers are called once per notification created by ``generate``;
    an observer failure is logged and does not stop the run.
    """

    def __init__(
        self,
        settings: Optional[AlertSettings] = None,
        repository: Optional[NotificationRepository] = None,
        observers: Sequence[NotificationObserver] = (),
        clock: Optional[Callable[[], datetime]] = None,
        rules: Optional[Sequence[AlertRule]] = None,
    ):
        self.settings = settings or Settings.get_config().alerts
        self.repository = repository or InMemoryNotificationRepository()
        self.observers = list(observers)
        self.clock = clock or _utc_now
        self.rules = list(rules) if rules is not None else default_rules()
        self.escalation = EscalationPolicy(self.settings.escalation)

    def _context(self, now: Optional[datetime], today: Optional[date]) -> RuleContext:
        now = now or self.clock()
        return RuleContext(
            now=now,
            today=today or now.date(),
            bucket=time_bucket(now, self.settings.dedup_bucket_hours),
            settings=self.settings,
        )

    def evaluate(
        self,
        facts: AlertFacts,
        now: Optional[datetime] = None,
        today: Optional[date] = None,
    ) -> List[Notification]:
        """Notifications the enabled rules emit for ``facts``; one per id."""
        context = self._context(now, today)
        by_id: Dict[str, Notification] = {}
        for rule in self.rules:
            if not rule.enabled(self.settings):
                continue
            emitted = rule.evaluate(facts, context)
            logger.debug(f"{type(rule).__name__}: {len(emitted)} notifications")
            for notification in emitted:
                by_id[notification.id] = notification
        return list(by_id.values())

    def generate(
        self,
        facts: AlertFacts,
        now: Optional[datetime] = None,
        today: Optional[date] = None,
    ) -> AlertRun:
        """Evaluate and upsert into the repository; notify observers of new ids."""
        run = AlertRun()
        for notification in self.evaluate(facts, now, today):
            stored, created = self.repository.upsert(notification)
            if created:
                run.created.append(stored)
                self._notify(stored)
            else:
                run.updated.append(stored)

        logger.info(f"Alert run: {len(run.created)} new, {len(run.updated)} refreshed")
        return run

    def _notify(self, notification: Notification) -> None:
        for observer in self.observers:
            try:
                observer.on_notification(notification)
            except Exception:
                logger.exception(f"Observer {type(observer).__name__} failed for {notification.id}")

    def escalate_pending(self, now: Optional[datetime] = None) -> List[Notification]:
        """Apply the escalation policy to unread notifications and persist changes."""
        now = now or self.clock()
        escalated = []
        for notification in self.repository.list(read=False):
            updated = self.escalation.escalate(notification, now)
            if updated is not notification:
                self.repository.save(updated)
                escalated.append(updated)
        if escalated:
            logger.info(f"Escalated {len(escalated)} notifications")
        return escalated

    def mark_read(self, notification_id: str, at: Optional[datetime] = None) -> bool:
        return self.repository.mark_read(notification_id, at or self.clock())

    def list(self, **filters) -> List[Notification]:
        return self.repository.list(**filters)

    def statistics(self, now: Optional[datetime] = None) -> NotificationStatistics:
        return compute_statistics(self.repository.list(), now or self.clock())

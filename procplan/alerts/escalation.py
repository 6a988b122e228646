"""
Escalation of unacknowledged notifications.

A notification escalates only while it is unread and requires action; its
level is the highest tier whose wait time has elapsed since creation. The
policy is a pure state transition: it returns copies and never writes.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from ..config import EscalationConfig, EscalationTier
from .models import Notification, as_utc

logger = logging.getLogger(__name__)


class EscalationPolicy:
    def __init__(self, config: Optional[EscalationConfig] = None):
        self.config = config or EscalationConfig()
        self.tiers: List[EscalationTier] = sorted(self.config.tiers, key=lambda t: t.level)

    def level_for(self, notification: Notification, now: datetime) -> int:
        """Escalation level due at ``now`` (0 = not escalated)."""
        if not self.config.enabled or notification.read or not notification.requires_action:
            return 0
        elapsed_hours = (as_utc(now) - as_utc(notification.created_at)).total_seconds() / 3600.0
        level = 0
        for tier in self.tiers:
            if elapsed_hours >= tier.wait_hours:
                level = tier.level
        return level

    def escalate(self, notification: Notification, now: datetime) -> Notification:
        """
        Copy at the due level with the recipients of every newly reached tier
        appended. Returns ``notification`` unchanged when nothing is due.
        """
        level = self.level_for(notification, now)
        if level <= notification.escalation_level:
            return notification

        recipients = list(notification.recipients)
        for tier in self.tiers:
            if notification.escalation_level < tier.level <= level:
                recipients.extend(r for r in tier.recipients if r not in recipients)

        logger.debug(f"Notification {notification.id} escalated to level {level}")
        metadata = dict(notification.metadata)
        metadata["escalated_at"] = as_utc(now).isoformat()
        return notification.copy(escalation_level=level, recipients=recipients, metadata=metadata)

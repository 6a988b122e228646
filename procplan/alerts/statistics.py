"""
Notification statistics over a store snapshot.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import Notification, Priority, as_utc


@dataclass
class NotificationStatistics:
    total: int = 0
    pending: int = 0
    critical: int = 0
    response_rate: float = 0.0
    average_response_hours: float = 0.0
    by_severity: Dict[str, int] = field(default_factory=dict)
    weekly_trend: List[Tuple[date, int]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "pending": self.pending,
            "critical": self.critical,
            "response_rate": round(self.response_rate, 2),
            "average_response_hours": round(self.average_response_hours, 2),
            "by_severity": dict(self.by_severity),
            "weekly_trend": [{"date": d.isoformat(), "count": c} for d, c in self.weekly_trend],
        }


def compute_statistics(
    notifications: Iterable[Notification],
    now: Optional[datetime] = None,
) -> NotificationStatistics:
    """
    Response rate = read / action-required notifications (percent).
    Average response time uses ``read_at - created_at`` where ``read_at`` is known.
    Weekly trend counts creations per UTC day over the last 7 days, oldest first.
    """
    notifications = list(notifications)
    now = as_utc(now or datetime.now(timezone.utc))

    actionable = [n for n in notifications if n.requires_action]
    answered = [n for n in actionable if n.read]
    response_rate = len(answered) / len(actionable) * 100.0 if actionable else 0.0

    response_hours = [
        (as_utc(n.read_at) - as_utc(n.created_at)).total_seconds() / 3600.0
        for n in answered
        if n.read_at is not None
    ]
    average_response = sum(response_hours) / len(response_hours) if response_hours else 0.0

    per_day = Counter(as_utc(n.created_at).date() for n in notifications)
    today = now.date()
    days = [today - timedelta(days=offset) for offset in range(6, -1, -1)]
    trend = [(day, per_day.get(day, 0)) for day in days]

    return NotificationStatistics(
        total=len(notifications),
        pending=sum(1 for n in notifications if not n.read),
        critical=sum(1 for n in notifications if n.priority == Priority.CRITICAL),
        response_rate=response_rate,
        average_response_hours=average_response,
        by_severity=dict(Counter(n.severity.value for n in notifications)),
        weekly_trend=trend,
    )

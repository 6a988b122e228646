"""
ProcPlan - Notification Store
=============================

Repository interface for notifications plus the in-memory implementation
used by tests and single-process deployments.

Upsert semantics (all implementations):
- new id -> stored as given
- known id -> content overwritten; ``created_at``, ``read``, ``read_at`` and
  the highest ``escalation_level`` seen are kept from the stored copy, and
  stored recipients missing from the new copy are appended
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Union

from .models import Category, Notification, Priority, as_utc

logger = logging.getLogger(__name__)


def merge_existing(existing: Optional[Notification], incoming: Notification) -> Notification:
    """Notification to store when ``incoming`` replaces ``existing``."""
    if existing is None:
        return incoming.copy()
    # Recipients added by escalation survive a regenerated base list
    recipients = list(incoming.recipients)
    recipients.extend(r for r in existing.recipients if r not in recipients)
    metadata = dict(incoming.metadata)
    if "escalated_at" in existing.metadata:
        metadata.setdefault("escalated_at", existing.metadata["escalated_at"])
    return incoming.copy(
        created_at=existing.created_at,
        read=existing.read,
        read_at=existing.read_at,
        recipients=recipients,
        metadata=metadata,
        escalation_level=max(existing.escalation_level, incoming.escalation_level),
    )


def matches_filters(
    notification: Notification,
    read: Optional[bool] = None,
    category: Optional[Union[Category, str]] = None,
    priority: Optional[Union[Priority, str]] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
) -> bool:
    if read is not None and notification.read != read:
        return False
    if category is not None and notification.category != Category(category):
        return False
    if priority is not None and notification.priority != Priority(priority):
        return False
    created = as_utc(notification.created_at)
    if since is not None and created < as_utc(since):
        return False
    if until is not None and created > as_utc(until):
        return False
    return True


class NotificationRepository(ABC):
    """Storage for notifications, keyed by their deterministic id."""

    @abstractmethod
    def upsert(self, notification: Notification) -> Tuple[Notification, bool]:
        """Store ``notification``; returns (stored copy, created)."""
        raise NotImplementedError

    @abstractmethod
    def get(self, notification_id: str) -> Optional[Notification]:
        raise NotImplementedError

    @abstractmethod
    def list(
        self,
        read: Optional[bool] = None,
        category: Optional[Union[Category, str]] = None,
        priority: Optional[Union[Priority, str]] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[Notification]:
        """Filtered notifications, newest first."""
        raise NotImplementedError

    @abstractmethod
    def mark_read(self, notification_id: str, at: Optional[datetime] = None) -> bool:
        """Flag as read; False when the id is unknown."""
        raise NotImplementedError

    def save(self, notification: Notification) -> None:
        """Overwrite a stored notification as-is (escalation updates)."""
        self.upsert(notification)

    def count(self) -> int:
        return len(self.list())


class NotificationObserver(ABC):
    """Receives newly created notifications (delivery transports plug in here)."""

    @abstractmethod
    def on_notification(self, notification: Notification) -> None:
        raise NotImplementedError


class InMemoryNotificationRepository(NotificationRepository):
    """Thread-safe dict-backed repository; returned objects are copies."""

    def __init__(self):
        self._items: Dict[str, Notification] = {}
        self._lock = threading.RLock()

    def upsert(self, notification: Notification) -> Tuple[Notification, bool]:
        with self._lock:
            existing = self._items.get(notification.id)
            stored = merge_existing(existing, notification)
            self._items[stored.id] = stored
            return stored.copy(), existing is None

    def save(self, notification: Notification) -> None:
        with self._lock:
            self._items[notification.id] = notification.copy()

    def get(self, notification_id: str) -> Optional[Notification]:
        with self._lock:
            found = self._items.get(notification_id)
            return found.copy() if found else None

    def list(
        self,
        read: Optional[bool] = None,
        category: Optional[Union[Category, str]] = None,
        priority: Optional[Union[Priority, str]] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[Notification]:
        with self._lock:
            snapshot = [n.copy() for n in self._items.values()]
        result = [n for n in snapshot if matches_filters(n, read, category, priority, since, until)]
        result.sort(key=lambda n: as_utc(n.created_at), reverse=True)
        return result

    def mark_read(self, notification_id: str, at: Optional[datetime] = None) -> bool:
        with self._lock:
            found = self._items.get(notification_id)
            if found is None:
                logger.debug(f"mark_read: unknown notification {notification_id}")
                return False
            if not found.read:
                self._items[notification_id] = found.copy(read=True, read_at=at or datetime.now(found.created_at.tzinfo))
            return True

    def count(self) -> int:
        with self._lock:
            return len(self._items)

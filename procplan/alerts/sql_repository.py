"""
════════════════════════════════════════════════════════════════════════════════════════════════════
NOTIFICATION SQL STORE - Persistência de notificações via SQLAlchemy
════════════════════════════════════════════════════════════════════════════════════════════════════

Tabelas:
- procplan_notifications: one row per notification id

Each upsert runs in its own transaction, so two engines writing the same id
never produce two rows.

Uso:
    repo = SqlNotificationRepository.from_url("sqlite:///notifications.db")
    engine = AlertEngine(repository=repo)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String, Text, create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .models import Category, Notification, NotificationAction, ActionKind, Priority, Severity, as_utc
from .repository import NotificationRepository, matches_filters, merge_existing

logger = logging.getLogger(__name__)

Base = declarative_base()


class NotificationRow(Base):
    __tablename__ = "procplan_notifications"

    id = Column(String, primary_key=True)
    severity = Column(String, nullable=False)
    category = Column(String, nullable=False, index=True)
    priority = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    detail = Column(Text, default="")
    created_at = Column(DateTime, nullable=False, index=True)
    due_at = Column(Date, nullable=True)
    read = Column(Boolean, default=False, index=True)
    read_at = Column(DateTime, nullable=True)
    requires_action = Column(Boolean, default=False)
    recipients = Column(Text, default="[]")
    related_entity_id = Column(String, nullable=True)
    project_id = Column(String, nullable=True)
    actions = Column(Text, default="[]")
    metadata_json = Column(Text, default="{}")
    escalation_level = Column(Integer, default=0)


def _to_naive_utc(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is None:
        return None
    return as_utc(moment).replace(tzinfo=None)


def _from_naive_utc(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is None:
        return None
    return moment.replace(tzinfo=timezone.utc)


def _row_to_notification(row: NotificationRow) -> Notification:
    return Notification(
        id=row.id,
        severity=Severity(row.severity),
        category=Category(row.category),
        priority=Priority(row.priority),
        title=row.title,
        message=row.message,
        detail=row.detail or "",
        created_at=_from_naive_utc(row.created_at),
        due_at=row.due_at,
        read=bool(row.read),
        read_at=_from_naive_utc(row.read_at),
        requires_action=bool(row.requires_action),
        recipients=json.loads(row.recipients or "[]"),
        related_entity_id=row.related_entity_id,
        project_id=row.project_id,
        actions=[
            NotificationAction(
                id=a["id"],
                label=a["label"],
                kind=ActionKind(a.get("kind", "link")),
                target=a.get("target"),
                parameters=a.get("parameters", {}),
            )
            for a in json.loads(row.actions or "[]")
        ],
        metadata=json.loads(row.metadata_json or "{}"),
        escalation_level=row.escalation_level or 0,
    )


def _fill_row(row: NotificationRow, notification: Notification) -> None:
    row.severity = notification.severity.value
    row.category = notification.category.value
    row.priority = notification.priority.value
    row.title = notification.title
    row.message = notification.message
    row.detail = notification.detail
    row.created_at = _to_naive_utc(notification.created_at)
    row.due_at = notification.due_at
    row.read = notification.read
    row.read_at = _to_naive_utc(notification.read_at)
    row.requires_action = notification.requires_action
    row.recipients = json.dumps(list(notification.recipients))
    row.related_entity_id = notification.related_entity_id
    row.project_id = notification.project_id
    row.actions = json.dumps([a.to_dict() for a in notification.actions])
    row.metadata_json = json.dumps(notification.metadata, default=str)
    row.escalation_level = notification.escalation_level


class SqlNotificationRepository(NotificationRepository):
    """SQLAlchemy-backed repository. Datetimes are stored as naive UTC."""

    def __init__(self, engine: Engine, create_tables: bool = True):
        self.engine = engine
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        if create_tables:
            Base.metadata.create_all(bind=engine)

    @classmethod
    def from_url(cls, database_url: str) -> "SqlNotificationRepository":
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        return cls(create_engine(database_url, connect_args=connect_args))

    def upsert(self, notification: Notification) -> Tuple[Notification, bool]:
        with self.SessionLocal.begin() as session:
            row = session.get(NotificationRow, notification.id, with_for_update=True)
            created = row is None
            existing = None if created else _row_to_notification(row)
            stored = merge_existing(existing, notification)
            if created:
                row = NotificationRow(id=stored.id)
                session.add(row)
            _fill_row(row, stored)
        return stored, created

    def save(self, notification: Notification) -> None:
        with self.SessionLocal.begin() as session:
            row = session.get(NotificationRow, notification.id)
            if row is None:
                row = NotificationRow(id=notification.id)
                session.add(row)
            _fill_row(row, notification)

    def get(self, notification_id: str) -> Optional[Notification]:
        with self.SessionLocal() as session:
            row = session.get(NotificationRow, notification_id)
            return _row_to_notification(row) if row else None

    def list(
        self,
        read: Optional[bool] = None,
        category: Optional[Union[Category, str]] = None,
        priority: Optional[Union[Priority, str]] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[Notification]:
        stmt = select(NotificationRow)
        if read is not None:
            stmt = stmt.where(NotificationRow.read == read)
        if category is not None:
            stmt = stmt.where(NotificationRow.category == Category(category).value)
        if priority is not None:
            stmt = stmt.where(NotificationRow.priority == Priority(priority).value)
        stmt = stmt.order_by(NotificationRow.created_at.desc())

        with self.SessionLocal() as session:
            rows = session.execute(stmt).scalars().all()
            notifications = [_row_to_notification(r) for r in rows]
        return [n for n in notifications if matches_filters(n, since=since, until=until)]

    def mark_read(self, notification_id: str, at: Optional[datetime] = None) -> bool:
        with self.SessionLocal.begin() as session:
            row = session.get(NotificationRow, notification_id)
            if row is None:
                logger.debug(f"mark_read: unknown notification {notification_id}")
                return False
            if not row.read:
                row.read = True
                row.read_at = _to_naive_utc(at or datetime.now(timezone.utc))
            return True

    def count(self) -> int:
        with self.SessionLocal() as session:
            return session.execute(select(func.count()).select_from(NotificationRow)).scalar_one()

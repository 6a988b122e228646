"""
ProcPlan - Notification Models
==============================

Notification shape produced by the alert engine, plus the deterministic
identity used for deduplication.

Identity:
    "{category}:{related_entity_id}:{discriminator}:{bucket}"

where ``bucket`` is the evaluation time floored to the dedup bucket size
(24h by default), so re-running the engine on the same facts inside one
bucket addresses the same notification.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class Category(str, Enum):
    CRITICAL_DATE = "critical_date"
    COHERENCE = "coherence"
    BUDGET = "budget"
    RESOURCE = "resource"
    SYSTEM = "system"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ActionKind(str, Enum):
    LINK = "link"
    MODAL = "modal"
    BUTTON = "button"


# ═══════════════════════════════════════════════════════════════════════════════
# IDENTITY
# ═══════════════════════════════════════════════════════════════════════════════

def as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def time_bucket(moment: datetime, bucket_hours: int = 24) -> str:
    """Floor ``moment`` (UTC) to a ``bucket_hours`` boundary, as YYYYmmddHH."""
    moment = as_utc(moment)
    epoch_hours = int(moment.timestamp() // 3600)
    floored = epoch_hours - epoch_hours % max(1, bucket_hours)
    start = datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(hours=floored)
    return start.strftime("%Y%m%d%H")


def notification_id(
    category: Union[Category, str],
    related_entity_id: Optional[str],
    discriminator: Any,
    bucket: str,
) -> str:
    category_value = category.value if isinstance(category, Category) else str(category)
    return f"{category_value}:{related_entity_id or '-'}:{discriminator}:{bucket}"


# ═══════════════════════════════════════════════════════════════════════════════
# DATA MODELS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class NotificationAction:
    """Suggested follow-up; ``target`` is a route or command name for the UI layer."""
    id: str
    label: str
    kind: ActionKind = ActionKind.LINK
    target: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "kind": self.kind.value,
            "target": self.target,
            "parameters": dict(self.parameters),
        }


@dataclass
class Notification:
    """Alert emitted by the engine. Only ``read``/``read_at`` change after creation."""
    id: str
    severity: Severity
    category: Category
    title: str
    message: str
    created_at: datetime
    priority: Priority
    detail: str = ""
    due_at: Optional[date] = None
    read: bool = False
    read_at: Optional[datetime] = None
    requires_action: bool = False
    recipients: List[str] = field(default_factory=list)
    related_entity_id: Optional[str] = None
    project_id: Optional[str] = None
    actions: List[NotificationAction] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    escalation_level: int = 0

    def copy(self, **changes) -> "Notification":
        """Copy with its own recipient/action/metadata containers."""
        values: Dict[str, Any] = {
            "recipients": list(self.recipients),
            "actions": list(self.actions),
            "metadata": dict(self.metadata),
        }
        values.update(changes)
        return replace(self, **values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity.value,
            "category": self.category.value,
            "title": self.title,
            "message": self.message,
            "detail": self.detail,
            "created_at": self.created_at.isoformat(),
            "due_at": self.due_at.isoformat() if self.due_at else None,
            "read": self.read,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "requires_action": self.requires_action,
            "priority": self.priority.value,
            "recipients": list(self.recipients),
            "related_entity_id": self.related_entity_id,
            "project_id": self.project_id,
            "actions": [a.to_dict() for a in self.actions],
            "metadata": dict(self.metadata),
            "escalation_level": self.escalation_level,
        }

"""
═══════════════════════════════════════════════════════════════════════════════════════════════════════
                    PROCPLAN — RESOURCE LOAD ENGINE
═══════════════════════════════════════════════════════════════════════════════════════════════════════

Computes how loaded each responsible resource is.

DEFINITIONS
═══════════

Resource Load:
──────────────
    L_r = |A(r)| / C_r × 100

where:
    A(r) = assignments of resource r (projects or schedule items)
    C_r  = max concurrent assignments of r (>= 1)

    L_r > 100 : Overloaded by |A(r)| - C_r assignments

Sources:
────────
1. Projects: each project assigns its sales and manager names
   (capacity defaults to 5 when no Resource describes the name)
2. Schedule items: items carrying a resource_id
3. Optimisation result: the resource assignment report
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..optimization.types import OptimizationResult, Resource
from ..scheduling.types import ScheduleItem
from .project_model import Project

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 5


# ════════════════════════════════════════════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ════════════════════════════════════════════════════════════════════════════════════════════════════

@dataclass
class ResourceLoad:
    """
    Load of one resource.

    Attributes:
        resource: Resource identifier (id or responsible name)
        role: sales / manager / resource kind
        assigned_ids: Projects or items assigned to it
        max_capacity: Concurrent assignment capacity
        assigned_labels: Display lines for the assignments
    """
    resource: str
    role: str
    assigned_ids: List[str] = field(default_factory=list)
    max_capacity: int = DEFAULT_CAPACITY
    assigned_labels: List[str] = field(default_factory=list)

    @property
    def assigned_count(self) -> int:
        return len(self.assigned_ids)

    @property
    def load_percent(self) -> float:
        return self.assigned_count / max(1, self.max_capacity) * 100.0

    @property
    def excess(self) -> int:
        return max(0, self.assigned_count - max(1, self.max_capacity))

    @property
    def is_overloaded(self) -> bool:
        return self.excess > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource": self.resource,
            "role": self.role,
            "assigned_ids": list(self.assigned_ids),
            "assigned_count": self.assigned_count,
            "max_capacity": self.max_capacity,
            "load_percent": round(self.load_percent, 2),
            "excess": self.excess,
        }


# ════════════════════════════════════════════════════════════════════════════════════════════════════
# LOAD COMPUTATION
# ════════════════════════════════════════════════════════════════════════════════════════════════════

def _capacity_by_name(resources: Optional[Iterable[Resource]]) -> Dict[str, int]:
    capacities: Dict[str, int] = {}
    for resource in resources or ():
        capacities[resource.name] = resource.capacity
        capacities[resource.id] = resource.capacity
    return capacities


def compute_project_resource_loads(
    projects: Iterable[Project],
    resources: Optional[Iterable[Resource]] = None,
    default_capacity: int = DEFAULT_CAPACITY,
) -> List[ResourceLoad]:
    """
    Group projects by responsible sales and manager names.

    A project without a name for a role is skipped for that role.
    """
    projects = list(projects)
    capacities = _capacity_by_name(resources)
    loads: "OrderedDict[tuple, ResourceLoad]" = OrderedDict()

    for role, attr in (("sales", "sales_name"), ("manager", "manager_name")):
        for project in projects:
            name = getattr(project, attr)
            if not name:
                continue
            key = (role, name)
            if key not in loads:
                loads[key] = ResourceLoad(
                    resource=name,
                    role=role,
                    max_capacity=capacities.get(name, default_capacity),
                )
            loads[key].assigned_ids.append(project.project_id)
            loads[key].assigned_labels.append(f"{project.name} ({project.status})")

    result = list(loads.values())
    logger.debug(f"Computed {len(result)} resource loads from projects")
    return result


def compute_item_resource_loads(
    items: Iterable[ScheduleItem],
    resources: Iterable[Resource],
) -> List[ResourceLoad]:
    """One load per resource, counting the items whose resource_id points at it."""
    resources = list(resources)
    by_id = {r.id: ResourceLoad(resource=r.id, role=r.kind.value, max_capacity=r.capacity) for r in resources}
    for item in items:
        load = by_id.get(item.resource_id) if item.resource_id else None
        if load is not None:
            load.assigned_ids.append(item.id)
            load.assigned_labels.append(f"{item.label} ({item.state})")
    return list(by_id.values())


def loads_from_optimization(
    result: OptimizationResult,
    resources: Iterable[Resource],
) -> List[ResourceLoad]:
    """Resource loads read from an optimisation result's assignment report."""
    by_id = {r.id: r for r in resources}
    labels = {item.id: f"{item.label} ({item.state})" for item in result.schedule}
    loads = []
    for assignment in result.resource_assignment:
        resource = by_id.get(assignment.resource_id)
        loads.append(ResourceLoad(
            resource=assignment.resource_id,
            role=resource.kind.value if resource else "resource",
            assigned_ids=list(assignment.assigned_item_ids),
            max_capacity=resource.capacity if resource else DEFAULT_CAPACITY,
            assigned_labels=[labels.get(i, i) for i in assignment.assigned_item_ids],
        ))
    return loads

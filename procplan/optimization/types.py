"""
ProcPlan - Optimization Types
=============================

Resource pool, run configuration and result shapes for the schedule
optimizer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from ..config import OptimizationAlgorithm, OptimizerSettings
from ..scheduling.types import ScheduleItem


# ============================================================
# RESOURCES
# ============================================================

class ResourceKind(str, Enum):
    SALES = "sales"
    MANAGER = "manager"
    COORDINATOR = "coordinator"
    SUPPLIER = "supplier"


@dataclass(frozen=True)
class AvailabilityWindow:
    """Inclusive date window; an open bound means unrestricted."""
    start: Optional[date] = None
    end: Optional[date] = None

    def contains(self, day: date) -> bool:
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


@dataclass(frozen=True)
class Resource:
    """
    A person or supplier that handles schedule items concurrently.

    ``max_capacity`` is the number of simultaneous item assignments;
    ``current_load`` is the caller-reported current count.
    """
    id: str
    name: str
    kind: ResourceKind = ResourceKind.MANAGER
    max_capacity: int = 1
    current_load: float = 0.0
    availability_window: AvailabilityWindow = field(default_factory=AvailabilityWindow)
    blackout_dates: Tuple[date, ...] = ()

    @property
    def capacity(self) -> int:
        """Capacity used in ratios; never below 1."""
        return max(1, int(self.max_capacity))

    def is_available(self, day: date) -> bool:
        return self.availability_window.contains(day) and day not in self.blackout_dates

    def current_utilization(self) -> float:
        return self.current_load / self.capacity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "max_capacity": self.max_capacity,
            "current_load": self.current_load,
            "availability_window": {
                "start": self.availability_window.start.isoformat() if self.availability_window.start else None,
                "end": self.availability_window.end.isoformat() if self.availability_window.end else None,
            },
            "blackout_dates": [d.isoformat() for d in self.blackout_dates],
        }


# ============================================================
# CONFIG
# ============================================================

@dataclass(frozen=True)
class OptimizationObjectives:
    minimize_time: bool = True
    maximize_efficiency: bool = True
    balance_load: bool = False
    respect_priority: bool = True


@dataclass(frozen=True)
class OptimizationConstraints:
    """
    deadline: no item may end after its original ``end``
    resource_availability: honour availability windows and blackout dates
    dependency: an item may not start before its dependencies end
    budget_cap: total amount ceiling, reported as a bottleneck when exceeded
    """
    deadline: bool = False
    resource_availability: bool = False
    dependency: bool = False
    budget_cap: Optional[float] = None


@dataclass
class OptimizationConfig:
    """Configuration for one optimisation run."""
    algorithm: Union[OptimizationAlgorithm, str] = OptimizationAlgorithm.GREEDY
    iterations: int = 100
    objectives: OptimizationObjectives = field(default_factory=OptimizationObjectives)
    constraints: OptimizationConstraints = field(default_factory=OptimizationConstraints)

    # Stochastic strategies
    seed: Optional[int] = None
    population_size: int = 50
    mutation_rate: float = 0.1
    crossover_rate: float = 0.8
    initial_mutation_intensity: float = 0.3
    max_shift_days: int = 7
    initial_temperature: float = 1000.0
    cooling_rate: float = 0.95
    min_temperature: float = 0.1

    # Wall-clock bound (None = iteration-bounded only)
    time_limit_sec: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: Optional[OptimizerSettings] = None, **overrides) -> "OptimizationConfig":
        settings = settings or OptimizerSettings()
        values = dict(
            algorithm=settings.algorithm,
            iterations=settings.iterations,
            population_size=settings.population_size,
            time_limit_sec=settings.time_limit_sec,
            seed=settings.seed,
        )
        values.update(overrides)
        return cls(**values)


# ============================================================
# RESULTS
# ============================================================

class BottleneckKind(str, Enum):
    RESOURCE = "resource"
    DATE = "date"
    DEPENDENCY = "dependency"
    BUDGET = "budget"


class Impact(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class Bottleneck:
    kind: BottleneckKind
    description: str
    impact: Impact
    affected_item_ids: List[str] = field(default_factory=list)
    proposed_fixes: List[str] = field(default_factory=list)
    estimated_resolution_cost: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "description": self.description,
            "impact": self.impact.value,
            "affected_item_ids": list(self.affected_item_ids),
            "proposed_fixes": list(self.proposed_fixes),
            "estimated_resolution_cost": self.estimated_resolution_cost,
        }


@dataclass
class ResourceAssignment:
    resource_id: str
    assigned_item_ids: List[str]
    load_percent: float
    efficiency: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource_id": self.resource_id,
            "assigned_item_ids": list(self.assigned_item_ids),
            "load_percent": round(self.load_percent, 2),
            "efficiency": round(self.efficiency, 2),
        }


@dataclass
class OptimizationMetrics:
    days_saved: int = 0
    global_efficiency: float = 0.0
    conflicts_resolved: int = 0
    estimated_cost: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "days_saved": self.days_saved,
            "global_efficiency": round(self.global_efficiency, 2),
            "conflicts_resolved": self.conflicts_resolved,
            "estimated_cost": self.estimated_cost,
        }


@dataclass
class OptimizationResult:
    """Result of an optimisation run; ``complete`` is False when it was cut short."""
    schedule: List[ScheduleItem]
    resource_assignment: List[ResourceAssignment] = field(default_factory=list)
    metrics: OptimizationMetrics = field(default_factory=OptimizationMetrics)
    recommendations: List[str] = field(default_factory=list)
    alerts: List[str] = field(default_factory=list)
    bottlenecks: List[Bottleneck] = field(default_factory=list)
    algorithm: Optional[OptimizationAlgorithm] = None
    complete: bool = True
    iterations_run: int = 0
    fitness_before: float = 0.0
    fitness_after: float = 0.0
    solve_time_sec: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schedule": [item.to_dict() for item in self.schedule],
            "resource_assignment": [a.to_dict() for a in self.resource_assignment],
            "metrics": self.metrics.to_dict(),
            "recommendations": list(self.recommendations),
            "alerts": list(self.alerts),
            "bottlenecks": [b.to_dict() for b in self.bottlenecks],
            "algorithm": self.algorithm.value if self.algorithm else None,
            "complete": self.complete,
            "iterations_run": self.iterations_run,
            "fitness_before": round(self.fitness_before, 4),
            "fitness_after": round(self.fitness_after, 4),
            "solve_time_sec": round(self.solve_time_sec, 4),
        }

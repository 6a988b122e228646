"""
═══════════════════════════════════════════════════════════════════════════════════════════════════════
                    PROCPLAN — PROJECT PLANNING MODULE
═══════════════════════════════════════════════════════════════════════════════════════════════════════

Project-level view used by the budget, resource and trend alerts.

This module provides:
1. Project data model and executed-amount aggregation
2. Resource load computation (from projects, items or an optimisation result)
"""

from .project_model import (
    TERMINAL_PROJECT_STATES,
    Project,
    apply_executed_amounts,
    executed_amounts_by_project,
)
from .project_load_engine import (
    DEFAULT_CAPACITY,
    ResourceLoad,
    compute_item_resource_loads,
    compute_project_resource_loads,
    loads_from_optimization,
)

__all__ = [
    "TERMINAL_PROJECT_STATES",
    "Project",
    "apply_executed_amounts",
    "executed_amounts_by_project",
    "DEFAULT_CAPACITY",
    "ResourceLoad",
    "compute_item_resource_loads",
    "compute_project_resource_loads",
    "loads_from_optimization",
]

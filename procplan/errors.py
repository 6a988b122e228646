"""
ProcPlan - Error taxonomy
=========================

Exceptions raised by the procurement core.

Business-rule violations (incoherent amounts, overloaded resources, overdue
items) are never raised: they are returned as data inside results. Only
programmer errors and bounded-run interruptions surface as exceptions.

Malformed numeric input (negative lead time, quantity or price) is normalised
to 0 at the snapshot boundary and again inside the calculators, so that date
and amount computations stay total functions.
"""

from __future__ import annotations

from typing import Any, Optional


class ProcPlanError(Exception):
    """Base class for all procplan errors."""
    pass


class ConfigurationError(ProcPlanError):
    """Raised when a configuration value is invalid or inconsistent."""
    pass


class InvalidConfiguration(ConfigurationError):
    """Raised when an optimisation run is requested with an unknown algorithm."""

    def __init__(self, algorithm: Any, available: Optional[list] = None):
        self.algorithm = algorithm
        self.available = list(available or [])
        message = f"Unknown optimization algorithm: {algorithm!r}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class NotFoundError(ProcPlanError):
    """
    A referenced List, Order, Resource or Project is absent.

    Raised by the caller's data-access layer. The core accepts pre-resolved
    entities only and never raises this itself.
    """

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ComputationTimeout(ProcPlanError):
    """
    A bounded optimisation run was cancelled or exceeded its time limit.

    The best interim result is attached as ``partial_result`` (its
    ``complete`` flag is False).
    """

    def __init__(self, message: str, partial_result: Any = None):
        super().__init__(message)
        self.partial_result = partial_result

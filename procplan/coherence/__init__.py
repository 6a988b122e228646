"""
ProcPlan - Coherence Module
===========================

List vs Orders reconciliation (amounts, per-line quantities, dates).
"""

from .validator import CoherenceResult, CoherenceValidator, LineQuantityCheck, RelatedOrder

__all__ = ["CoherenceResult", "CoherenceValidator", "LineQuantityCheck", "RelatedOrder"]

"""
Simulated annealing over time-slot swaps.

A neighbour exchanges the start dates of two items (each keeps its own
duration). Improving neighbours are always accepted, worse ones with
probability ``exp(delta / T)``; T starts at ``initial_temperature`` and is
multiplied by ``cooling_rate`` after every step until it reaches
``min_temperature``. The best schedule seen is returned.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional

import numpy as np

from ..config import OptimizationAlgorithm
from ..scheduling.types import ScheduleItem
from .base import OptimizationContext, OptimizationStrategy, ScheduleConstraints, StrategyOutcome
from .evaluator import fitness

logger = logging.getLogger(__name__)


class SimulatedAnnealingStrategy(OptimizationStrategy):
    algorithm = OptimizationAlgorithm.SIMULATED_ANNEALING

    def _neighbour(
        self,
        current: List[ScheduleItem],
        rng: np.random.Generator,
        context: OptimizationContext,
        constraints: ScheduleConstraints,
    ) -> Optional[List[ScheduleItem]]:
        i, j = rng.choice(len(current), size=2, replace=False)
        a, b = current[i], current[j]
        if a.start == b.start:
            return None

        moved_a = a.with_dates(b.start, b.start + (a.end - a.start))
        moved_b = b.with_dates(a.start, a.start + (b.end - b.start))

        if context.config.objectives.respect_priority:
            for before, after in ((a, moved_a), (b, moved_b)):
                if before.criticality.is_critical and after.start > before.start:
                    return None

        neighbour = list(current)
        neighbour[i], neighbour[j] = moved_a, moved_b
        if not constraints.schedule_allows(neighbour):
            return None
        return neighbour

    def run(self, context: OptimizationContext) -> StrategyOutcome:
        config = context.config
        current = list(context.items)
        if len(current) < 2:
            return StrategyOutcome(current, complete=True, iterations_run=0)

        rng = np.random.default_rng(config.seed)
        constraints = context.constraints()
        resources = context.resources
        objectives = config.objectives

        current_fitness = fitness(current, resources, objectives)
        best, best_fitness = current, current_fitness
        temperature = config.initial_temperature
        steps = 0

        while temperature > config.min_temperature:
            if context.stop.should_stop():
                logger.warning(f"Annealing stopped ({context.stop.reason}) after {steps} steps")
                return StrategyOutcome(best, complete=False, iterations_run=steps)

            candidate = self._neighbour(current, rng, context, constraints)
            if candidate is not None:
                candidate_fitness = fitness(candidate, resources, objectives)
                delta = candidate_fitness - current_fitness
                draw = rng.random()
                if delta > 0 or draw < math.exp(delta / temperature):
                    current, current_fitness = candidate, candidate_fitness
                    if current_fitness > best_fitness:
                        best, best_fitness = current, current_fitness

            temperature *= config.cooling_rate
            steps += 1

        logger.debug(f"Annealing finished after {steps} steps, best fitness {best_fitness:.2f}")
        return StrategyOutcome(best, complete=True, iterations_run=steps)

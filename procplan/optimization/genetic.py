"""
Genetic search over per-item day shifts.

An individual is an integer vector of day offsets, one per item, applied to
the input schedule. The first individual is the unmodified input; the rest
start as mutated copies (each gene shifted with probability
``initial_mutation_intensity`` by up to ``max_shift_days``). Each generation
keeps the best individual and fills the population with tournament-selected
parents, single-point crossover and mutation. Offspring that break an
enabled constraint are replaced by their first parent.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

import numpy as np

from ..config import OptimizationAlgorithm
from ..scheduling.types import ScheduleItem
from .base import OptimizationContext, OptimizationStrategy, ScheduleConstraints, StrategyOutcome
from .evaluator import fitness

logger = logging.getLogger(__name__)

TOURNAMENT_SIZE = 2
GENE_MUTATION_PROBABILITY = 0.1


class GeneticStrategy(OptimizationStrategy):
    algorithm = OptimizationAlgorithm.GENETIC

    @staticmethod
    def decode(items: Tuple[ScheduleItem, ...], genes: np.ndarray) -> List[ScheduleItem]:
        return [item.shifted(int(g)) if g else item for item, g in zip(items, genes)]

    def _mutate(
        self,
        genes: np.ndarray,
        probability: float,
        rng: np.random.Generator,
        context: OptimizationContext,
        locked_later: np.ndarray,
    ) -> np.ndarray:
        shift = context.config.max_shift_days
        mask = rng.random(len(genes)) < probability
        deltas = rng.integers(-shift, shift + 1, size=len(genes))
        mutated = genes + np.where(mask, deltas, 0)
        # High/critical items may only move earlier when priority is respected
        return np.where(locked_later, np.minimum(mutated, 0), mutated)

    def _tournament(self, scores: np.ndarray, rng: np.random.Generator) -> int:
        contenders = rng.integers(0, len(scores), size=TOURNAMENT_SIZE)
        return int(contenders[np.argmax(scores[contenders])])

    def run(self, context: OptimizationContext) -> StrategyOutcome:
        config = context.config
        items = tuple(context.items)
        n = len(items)
        if n == 0:
            return StrategyOutcome([], complete=True, iterations_run=0)

        rng = np.random.default_rng(config.seed)
        constraints: ScheduleConstraints = context.constraints()
        resources, objectives = context.resources, config.objectives

        if config.objectives.respect_priority:
            locked_later = np.array([i.criticality.is_critical for i in items])
        else:
            locked_later = np.zeros(n, dtype=bool)

        def score(genes: np.ndarray) -> float:
            return fitness(self.decode(items, genes), resources, objectives)

        def feasible(genes: np.ndarray) -> bool:
            return constraints.schedule_allows(self.decode(items, genes))

        population = [np.zeros(n, dtype=int)]
        while len(population) < config.population_size:
            candidate = self._mutate(
                np.zeros(n, dtype=int), config.initial_mutation_intensity, rng, context, locked_later
            )
            population.append(candidate if feasible(candidate) else np.zeros(n, dtype=int))

        best = population[0]
        best_score = score(best)
        for generation in range(config.iterations):
            if context.stop.should_stop():
                logger.warning(f"Genetic search stopped ({context.stop.reason}) at generation {generation}")
                return StrategyOutcome(self.decode(items, best), complete=False, iterations_run=generation)

            scores = np.array([score(genes) for genes in population])
            leader = int(np.argmax(scores))
            if scores[leader] > best_score:
                best, best_score = population[leader].copy(), float(scores[leader])

            offspring = [population[leader].copy()]
            while len(offspring) < config.population_size:
                first = population[self._tournament(scores, rng)]
                second = population[self._tournament(scores, rng)]

                if n > 1 and rng.random() < config.crossover_rate:
                    point = int(rng.integers(1, n))
                    child = np.concatenate([first[:point], second[point:]])
                else:
                    child = first.copy()

                if rng.random() < config.mutation_rate:
                    child = self._mutate(child, GENE_MUTATION_PROBABILITY, rng, context, locked_later)

                offspring.append(child if feasible(child) else first.copy())
            population = offspring
        generation = config.iterations

        final_scores = [score(genes) for genes in population]
        leader = int(np.argmax(final_scores))
        if final_scores[leader] > best_score:
            best, best_score = population[leader], final_scores[leader]

        logger.debug(f"Genetic search finished after {generation} generations, best fitness {best_score:.2f}")
        return StrategyOutcome(self.decode(items, best), complete=True, iterations_run=generation)

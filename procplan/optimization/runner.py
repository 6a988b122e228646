"""
Background execution of optimisation runs.

``OptimizationRunner`` submits runs to a thread pool so callers never block
on a long genetic or annealing search; each submission returns an
``OptimizationJob`` holding the future and its cancellation token.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Optional, Sequence

from ..config import OptimizerSettings, Settings
from ..errors import ComputationTimeout
from ..scheduling.types import ScheduleItem
from .base import CancellationToken
from .optimizer import ScheduleOptimizer
from .types import OptimizationConfig, OptimizationResult, Resource

logger = logging.getLogger(__name__)

CANCEL_GRACE_SEC = 5.0


class OptimizationJob:
    def __init__(self, future: Future, token: CancellationToken, algorithm: str):
        self.future = future
        self.token = token
        self.algorithm = algorithm

    def cancel(self) -> None:
        self.token.cancel()

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: Optional[float] = None) -> OptimizationResult:
        """
        Wait for the run.

        On timeout the run is cancelled and ``ComputationTimeout`` is raised
        carrying the best interim result, if the run yields one within the
        grace period.
        """
        try:
            return self.future.result(timeout=timeout)
        except FutureTimeout:
            self.token.cancel()
            logger.warning(f"Optimization [{self.algorithm}] timed out after {timeout}s, cancelling")

        partial = None
        try:
            partial = self.future.result(timeout=CANCEL_GRACE_SEC)
        except FutureTimeout:
            logger.error(f"Optimization [{self.algorithm}] did not stop within {CANCEL_GRACE_SEC}s")
        raise ComputationTimeout(
            f"Optimization [{self.algorithm}] exceeded {timeout}s",
            partial_result=partial,
        )


class OptimizationRunner:
    """
    Uso:
        with OptimizationRunner(optimizer) as runner:
            job = runner.submit(items, resources, config)
            result = job.result(timeout=30)
    """

    def __init__(
        self,
        optimizer: Optional[ScheduleOptimizer] = None,
        settings: Optional[OptimizerSettings] = None,
    ):
        self.optimizer = optimizer or ScheduleOptimizer()
        self.settings = settings or Settings.get_config().optimizer
        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.max_workers,
            thread_name_prefix="procplan-optimizer",
        )

    def submit(
        self,
        items: Sequence[ScheduleItem],
        resources: Sequence[Resource],
        config: Optional[OptimizationConfig] = None,
    ) -> OptimizationJob:
        config = config or OptimizationConfig.from_settings(self.settings)
        token = CancellationToken()
        # Snapshot the inputs so later caller changes do not leak into the run
        future = self._executor.submit(self.optimizer.optimize, tuple(items), tuple(resources), config, token)
        algorithm = getattr(config.algorithm, "value", config.algorithm)
        logger.debug(f"Submitted optimization [{algorithm}] for {len(items)} items")
        return OptimizationJob(future, token, str(algorithm))

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "OptimizationRunner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

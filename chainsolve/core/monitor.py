# core/monitor.py
from __future__ import annotations

from typing import Iterable, List, Optional

import numpy as np

from .config import StopCriteriaConfig
from .criteria import StopCriterion, create_default_stop_criteria
from .status import IterationStatus


class Iterator:
    """
    Convergence monitor shared by the solvers of a chain.

    Solvers call check() once per iteration with the current iterate and its
    residual r = b - A x. The first criterion returning a verdict other than
    CONTINUE decides `status`; later checks are ignored until reset().

    The monitor is reset (not recreated) between attempts, so its criteria and
    their limits persist across a whole chain.
    """

    def __init__(self, criteria: Optional[Iterable[StopCriterion]] = None):
        if criteria is None:
            criteria = create_default_stop_criteria()
        self.criteria: List[StopCriterion] = list(criteria)
        self._status = IterationStatus.CONTINUE
        self._iterations = 0
        self._residual_history: List[float] = []

    @classmethod
    def from_config(cls, cfg: StopCriteriaConfig) -> "Iterator":
        return cls(
            create_default_stop_criteria(
                max_iterations=cfg.max_iterations,
                residual_tol=cfg.residual_tol,
                divergence_increase=cfg.divergence_increase,
                divergence_window=cfg.divergence_window,
            )
        )

    @property
    def status(self) -> IterationStatus:
        return self._status

    @property
    def iterations(self) -> int:
        return self._iterations

    @property
    def residual_history(self) -> List[float]:
        return list(self._residual_history)

    def check(
        self,
        iteration: int,
        solution: np.ndarray,
        rhs: np.ndarray,
        residual: np.ndarray,
    ) -> IterationStatus:
        if self._status.finished:
            return self._status

        self._iterations = int(iteration)
        self._residual_history.append(float(np.linalg.norm(residual)))

        for criterion in self.criteria:
            status = criterion.determine_status(iteration, solution, rhs, residual)
            if status.finished:
                self._status = status
                break
        return self._status

    def cancel(self) -> None:
        """Make the running attempt end with CANCELLED at its next check."""
        self._status = IterationStatus.CANCELLED

    def stop_without_convergence(self) -> IterationStatus:
        """
        End the running attempt as STOPPED_WITHOUT_CONVERGENCE, e.g. when a
        solver exhausted its own iteration budget. An earlier verdict is kept.
        """
        if not self._status.finished:
            self._status = IterationStatus.STOPPED_WITHOUT_CONVERGENCE
        return self._status

    def reset(self) -> None:
        self._status = IterationStatus.CONTINUE
        self._iterations = 0
        self._residual_history = []
        for criterion in self.criteria:
            criterion.reset()

    def clone(self) -> "Iterator":
        return Iterator(c.clone() for c in self.criteria)

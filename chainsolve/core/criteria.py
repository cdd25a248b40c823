# core/criteria.py
from __future__ import annotations

import copy
from typing import List, Optional

import numpy as np

from .status import IterationStatus


class StopCriterion:
    """
    Base class for stop criteria used by the convergence monitor.

    A criterion inspects the state of an iterative solve after each iteration
    and returns CONTINUE or a final verdict. Criteria may keep history, which
    reset() must clear.
    """

    def determine_status(
        self,
        iteration: int,
        solution: np.ndarray,
        rhs: np.ndarray,
        residual: np.ndarray,
    ) -> IterationStatus:
        raise NotImplementedError("Stop criteria must implement determine_status!")

    def reset(self) -> None:
        pass

    def clone(self) -> "StopCriterion":
        out = copy.deepcopy(self)
        out.reset()
        return out


class IterationCountStopCriterion(StopCriterion):
    """Stop (without convergence) once a maximum number of iterations is reached."""

    def __init__(self, maximum_iterations: int = 1000):
        if int(maximum_iterations) < 1:
            raise ValueError("maximum_iterations must be >= 1")
        self.maximum_iterations = int(maximum_iterations)

    def determine_status(self, iteration, solution, rhs, residual) -> IterationStatus:
        if iteration >= self.maximum_iterations:
            return IterationStatus.STOPPED_WITHOUT_CONVERGENCE
        return IterationStatus.CONTINUE


class ResidualStopCriterion(StopCriterion):
    """
    Converged when the residual is small relative to the right-hand side:

        ||r||_2 <= maximum * ||b||_2      (or <= maximum when b == 0)

    The condition must hold for more than `minimum_iterations_below_maximum`
    consecutive checks. A non-finite residual is reported as divergence.
    """

    def __init__(self, maximum: float = 1e-12, minimum_iterations_below_maximum: int = 0):
        if float(maximum) < 0.0:
            raise ValueError("maximum must be >= 0")
        if int(minimum_iterations_below_maximum) < 0:
            raise ValueError("minimum_iterations_below_maximum must be >= 0")
        self.maximum = float(maximum)
        self.minimum_iterations_below_maximum = int(minimum_iterations_below_maximum)
        self._below = 0

    def determine_status(self, iteration, solution, rhs, residual) -> IterationStatus:
        r_norm = float(np.linalg.norm(residual))
        if not np.isfinite(r_norm):
            return IterationStatus.DIVERGED

        b_norm = float(np.linalg.norm(rhs))
        threshold = self.maximum * b_norm if b_norm > 0.0 else self.maximum

        if r_norm <= threshold:
            self._below += 1
            if self._below > self.minimum_iterations_below_maximum:
                return IterationStatus.CONVERGED
        else:
            self._below = 0
        return IterationStatus.CONTINUE

    def reset(self) -> None:
        self._below = 0


class DivergenceStopCriterion(StopCriterion):
    """
    Diverged when the residual norm grew at every one of the last
    `minimum_iterations` checks and by more than `maximum_relative_increase`
    over that window.
    """

    def __init__(self, maximum_relative_increase: float = 0.08, minimum_iterations: int = 10):
        if float(maximum_relative_increase) <= 0.0:
            raise ValueError("maximum_relative_increase must be > 0")
        if int(minimum_iterations) < 1:
            raise ValueError("minimum_iterations must be >= 1")
        self.maximum_relative_increase = float(maximum_relative_increase)
        self.minimum_iterations = int(minimum_iterations)
        self._history: List[float] = []

    def determine_status(self, iteration, solution, rhs, residual) -> IterationStatus:
        self._history.append(float(np.linalg.norm(residual)))
        window = self._history[-(self.minimum_iterations + 1):]
        if len(window) <= self.minimum_iterations:
            return IterationStatus.CONTINUE

        growing = all(b > a for a, b in zip(window[:-1], window[1:]))
        if growing and window[-1] > (1.0 + self.maximum_relative_increase) * window[0]:
            return IterationStatus.DIVERGED
        return IterationStatus.CONTINUE

    def reset(self) -> None:
        self._history = []


class FailureStopCriterion(StopCriterion):
    """Failure when the solution or the residual contains NaN/inf."""

    def determine_status(self, iteration, solution, rhs, residual) -> IterationStatus:
        if not np.all(np.isfinite(solution)) or not np.all(np.isfinite(residual)):
            return IterationStatus.FAILURE
        return IterationStatus.CONTINUE


def create_default_stop_criteria(
    max_iterations: int = 1000,
    residual_tol: float = 1e-12,
    divergence_increase: float = 0.08,
    divergence_window: int = 10,
    minimum_iterations_below_maximum: Optional[int] = None,
) -> List[StopCriterion]:
    """
    Default criteria, in order of precedence:
    failure, divergence, residual, iteration count.
    """
    return [
        FailureStopCriterion(),
        DivergenceStopCriterion(divergence_increase, divergence_window),
        ResidualStopCriterion(residual_tol, minimum_iterations_below_maximum or 0),
        IterationCountStopCriterion(max_iterations),
    ]

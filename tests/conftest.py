from __future__ import annotations

from typing import Any, Dict, List, Optional

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from chainsolve.core.errors import BreakdownError
from chainsolve.core.monitor import Iterator
from chainsolve.core.status import IterationStatus
from chainsolve.operators.solvers import IterativeSolver


class ScriptedMonitor:
    """Monitor double: the stub solvers write `status` directly."""

    def __init__(self) -> None:
        self.status = IterationStatus.CONTINUE
        self.iterations = 0
        self.residual_history: List[float] = []
        self.resets = 0

    def reset(self) -> None:
        self.resets += 1
        self.status = IterationStatus.CONTINUE
        self.iterations = 0
        self.residual_history = []


class CountingIterator(Iterator):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.resets = 0

    def reset(self) -> None:
        self.resets += 1
        super().reset()


class StubSolver(IterativeSolver):
    """
    Records what it was called with, writes `output` into the result and sets
    the monitor status. With breakdown=True it scribbles on its inputs first
    and then raises BreakdownError.
    """

    def __init__(
        self,
        status: IterationStatus = IterationStatus.CONVERGED,
        output: Optional[np.ndarray] = None,
        breakdown: bool = False,
        name: str = "stub",
    ) -> None:
        self.status = status
        self.output = None if output is None else np.asarray(output, dtype=float)
        self.breakdown = breakdown
        self.name = name
        self.calls: List[Dict[str, Any]] = []

    def solve(self, matrix, rhs, result, iterator, preconditioner) -> None:
        self.calls.append({"rhs": rhs.copy(), "x0": result.copy(), "preconditioner": preconditioner})
        if self.breakdown:
            rhs *= -3.0
            result[...] = -1.0
            raise BreakdownError(f"{self.name}: zero pivot")
        if self.output is not None:
            result[...] = self.output
        iterator.iterations = 1
        iterator.status = self.status


class StubSetup:
    def __init__(self, solver: IterativeSolver, preconditioner=None) -> None:
        self.solver = solver
        self.preconditioner = preconditioner

    def create_solver(self) -> IterativeSolver:
        return self.solver

    def create_preconditioner(self):
        return self.preconditioner


@pytest.fixture
def monitor() -> ScriptedMonitor:
    return ScriptedMonitor()

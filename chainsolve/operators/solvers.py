# operators/solvers.py
from __future__ import annotations

import logging
import warnings
from typing import Any, Callable, Optional, Tuple

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from ..core.errors import BreakdownError
from ..core.monitor import Iterator
from .preconditioners import Preconditioner
from .solve import compute_residual, require_square

logger = logging.getLogger(__name__)


class IterativeSolver:
    """
    Solves A x = b in place: `result` holds the initial guess on entry and the
    final iterate on exit. Progress is reported to the shared Iterator, whose
    status is the verdict of the attempt. Numerical breakdown raises
    BreakdownError.
    """

    name = "solver"

    def solve(
        self,
        matrix,
        rhs: np.ndarray,
        result: np.ndarray,
        iterator: Iterator,
        preconditioner: Preconditioner,
    ) -> None:
        raise NotImplementedError("Solvers must implement solve!")

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class _MonitorStop(Exception):
    """Raised from a scipy callback once the monitor reached a verdict."""

    def __init__(self, x: np.ndarray):
        super().__init__("monitor stop")
        self.x = x


class _MonitorCallback:
    """
    Per-iteration scipy callback: computes the true residual of the iterate and
    feeds it to the monitor.
    """

    def __init__(self, matrix, rhs: np.ndarray, iterator: Iterator):
        self.matrix = matrix
        self.rhs = rhs
        self.iterator = iterator
        self.iteration = 0

    def __call__(self, xk: np.ndarray) -> None:
        self.iteration += 1
        x = np.array(xk, copy=True).reshape(-1)
        r = compute_residual(self.matrix, x, self.rhs)
        status = self.iterator.check(self.iteration, x, self.rhs, r)
        if status.finished:
            raise _MonitorStop(x)


class ScipyKrylovSolver(IterativeSolver):
    """
    Adapter over a scipy.sparse.linalg Krylov routine.

    scipy's own stopping tolerances are disabled (rtol=0, atol=tiny); the
    monitor alone decides when the attempt ends. `max_iterations` caps the
    scipy loop; running into that cap before the monitor reached a verdict
    ends the attempt as STOPPED_WITHOUT_CONVERGENCE.
    """

    def __init__(self, max_iterations: Optional[int] = None):
        self.max_iterations = None if max_iterations is None else int(max_iterations)

    def _routine(
        self,
        matrix,
        rhs: np.ndarray,
        x0: np.ndarray,
        M: Optional[spla.LinearOperator],
        maxiter: int,
        callback: Callable[[np.ndarray], None],
    ) -> Tuple[np.ndarray, int]:
        raise NotImplementedError

    def _maxiter(self, n: int) -> int:
        if self.max_iterations is not None:
            return self.max_iterations
        return max(10 * n, 10_000)

    def solve(self, matrix, rhs, result, iterator, preconditioner) -> None:
        n = require_square(matrix)
        preconditioner.initialize(matrix)
        M = preconditioner.as_linear_operator()

        callback = _MonitorCallback(matrix, rhs, iterator)
        try:
            x, info = self._routine(matrix, rhs, result.copy(), M, self._maxiter(n), callback)
        except _MonitorStop as stop:
            x, info = stop.x, 0
        else:
            if info < 0:
                raise BreakdownError(f"{self.name}: scipy reported breakdown (info={info}).")
            # scipy returned on its own (exact zero residual or iteration cap)
            status = iterator.check(max(callback.iteration, 1), x, rhs, compute_residual(matrix, x, rhs))
            if info > 0 and not status.finished:
                iterator.stop_without_convergence()

        logger.debug(
            "%s: %d iterations, info=%d, status=%s",
            self.name, callback.iteration, info, iterator.status.value,
        )
        result[...] = np.asarray(x).reshape(result.shape)


_TINY = float(np.finfo(float).tiny)


class CGSolver(ScipyKrylovSolver):
    """Conjugate gradient (symmetric positive definite systems)."""

    name = "cg"

    def _routine(self, matrix, rhs, x0, M, maxiter, callback):
        return spla.cg(matrix, rhs, x0=x0, rtol=0.0, atol=_TINY, maxiter=maxiter, M=M, callback=callback)


class BiCGStabSolver(ScipyKrylovSolver):
    """Biconjugate gradient stabilized (general nonsymmetric systems)."""

    name = "bicgstab"

    def _routine(self, matrix, rhs, x0, M, maxiter, callback):
        return spla.bicgstab(matrix, rhs, x0=x0, rtol=0.0, atol=_TINY, maxiter=maxiter, M=M, callback=callback)


class GMRESSolver(ScipyKrylovSolver):
    """
    Restarted GMRES. The monitor is consulted once per restart cycle, so
    iteration counts are restart cycles.
    """

    name = "gmres"

    def __init__(self, restart: int = 20, max_iterations: Optional[int] = None):
        super().__init__(max_iterations=max_iterations)
        if int(restart) < 1:
            raise ValueError("restart must be >= 1")
        self.restart = int(restart)

    def _routine(self, matrix, rhs, x0, M, maxiter, callback):
        return spla.gmres(
            matrix, rhs, x0=x0, rtol=0.0, atol=_TINY, restart=self.restart,
            maxiter=maxiter, M=M, callback=callback, callback_type="x",
        )

    def __repr__(self) -> str:
        return f"GMRESSolver(restart={self.restart})"


class DirectSolver(IterativeSolver):
    """
    Sparse/dense direct solve wrapped as a one-iteration solver. The
    preconditioner is ignored; the monitor gets a single check.
    """

    name = "direct"

    def solve(self, matrix, rhs, result, iterator, preconditioner) -> None:
        require_square(matrix)
        x = self._direct(matrix, rhs)
        if not np.all(np.isfinite(x)):
            raise BreakdownError("direct: solution is not finite (singular matrix?).")

        result[...] = np.asarray(x).reshape(result.shape)
        iterator.check(1, result, rhs, compute_residual(matrix, result, rhs))

    @staticmethod
    def _direct(matrix, rhs: np.ndarray) -> Any:
        if sp.issparse(matrix):
            with warnings.catch_warnings():
                warnings.simplefilter("error", spla.MatrixRankWarning)
                try:
                    return spla.spsolve(sp.csc_matrix(matrix), rhs)
                except spla.MatrixRankWarning as exc:
                    raise BreakdownError(f"direct: {exc}") from exc
        try:
            return np.linalg.solve(np.asarray(matrix), rhs)
        except np.linalg.LinAlgError as exc:
            raise BreakdownError(f"direct: {exc}") from exc

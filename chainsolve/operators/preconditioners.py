# operators/preconditioners.py
from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from ..core.errors import BreakdownError
from .solve import require_square

logger = logging.getLogger(__name__)


class Preconditioner:
    """
    Approximates M^{-1} r for a matrix A given to initialize().

    Solvers only see the preconditioner through approximate() or the scipy
    LinearOperator returned by as_linear_operator().
    """

    name = "preconditioner"

    def __init__(self) -> None:
        self._n: Optional[int] = None
        self._dtype = np.float64

    def initialize(self, matrix) -> None:
        self._n = require_square(matrix)
        self._dtype = np.result_type(matrix.dtype, np.float64)

    def approximate(self, rhs: np.ndarray) -> np.ndarray:
        raise NotImplementedError("Preconditioners must implement approximate!")

    def as_linear_operator(self) -> Optional[spla.LinearOperator]:
        if self._n is None:
            raise RuntimeError(f"{type(self).__name__} used before initialize().")
        n = self._n
        return spla.LinearOperator((n, n), matvec=self.approximate, dtype=self._dtype)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class UnitPreconditioner(Preconditioner):
    """Identity preconditioner: M = I."""

    name = "unit"

    def approximate(self, rhs: np.ndarray) -> np.ndarray:
        return np.array(rhs, copy=True)

    def as_linear_operator(self) -> Optional[spla.LinearOperator]:
        # scipy treats M=None as the identity
        return None


class DiagonalPreconditioner(Preconditioner):
    """Jacobi preconditioner: M = diag(A)."""

    name = "diagonal"

    def __init__(self) -> None:
        super().__init__()
        self._inv_diag: Optional[np.ndarray] = None

    def initialize(self, matrix) -> None:
        super().initialize(matrix)
        d = matrix.diagonal() if sp.issparse(matrix) else np.diag(np.asarray(matrix))
        d = np.asarray(d)
        zero = np.flatnonzero(d == 0)
        if zero.size:
            raise BreakdownError(f"Diagonal preconditioner: zero diagonal entry at row {int(zero[0])}.")
        self._inv_diag = 1.0 / d

    def approximate(self, rhs: np.ndarray) -> np.ndarray:
        if self._inv_diag is None:
            raise RuntimeError("DiagonalPreconditioner used before initialize().")
        return self._inv_diag * np.asarray(rhs).reshape(-1)


class ILUPreconditioner(Preconditioner):
    """Incomplete LU preconditioner (scipy spilu / SuperLU)."""

    name = "ilu"

    def __init__(self, drop_tol: float = 1e-4, fill_factor: float = 10.0) -> None:
        super().__init__()
        self.drop_tol = float(drop_tol)
        self.fill_factor = float(fill_factor)
        self._ilu = None

    def initialize(self, matrix) -> None:
        super().initialize(matrix)
        A = sp.csc_matrix(matrix)
        try:
            self._ilu = spla.spilu(A, drop_tol=self.drop_tol, fill_factor=self.fill_factor)
        except RuntimeError as exc:
            # SuperLU reports singular factors as RuntimeError
            raise BreakdownError(f"ILU factorization failed: {exc}") from exc
        logger.debug("ILU: n=%d nnz(A)=%d nnz(L+U)=%d", A.shape[0], A.nnz, self._ilu.nnz)

    def approximate(self, rhs: np.ndarray) -> np.ndarray:
        if self._ilu is None:
            raise RuntimeError("ILUPreconditioner used before initialize().")
        return self._ilu.solve(np.asarray(rhs).reshape(-1))

    def __repr__(self) -> str:
        return f"ILUPreconditioner(drop_tol={self.drop_tol}, fill_factor={self.fill_factor})"

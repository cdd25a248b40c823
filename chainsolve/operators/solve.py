# operators/solve.py
from __future__ import annotations

from typing import Dict, Tuple

import numpy as np
import scipy.sparse as sp

from ..core.errors import InvalidShapeError


def matrix_shape(A) -> Tuple[int, int]:
    shape = getattr(A, "shape", None)
    if shape is None or len(shape) != 2:
        raise InvalidShapeError("matrix must be 2D")
    return int(shape[0]), int(shape[1])


def require_square(A) -> int:
    n, m = matrix_shape(A)
    if n != m:
        raise InvalidShapeError(f"Matrix must be square; got shape {(n, m)}.")
    return n


def as_vector(v, name: str = "vector") -> np.ndarray:
    """
    Accept a 1D array or a sparse/dense (N,1) column and return a 1D ndarray.
    """
    if sp.issparse(v):
        v = v.toarray()
    arr = np.asarray(v)
    if arr.ndim == 2 and arr.shape[1] == 1:
        arr = arr[:, 0]
    if arr.ndim != 1:
        raise InvalidShapeError(f"{name} must be 1D; got ndim={arr.ndim}")
    return arr


def compute_residual(A, u: np.ndarray, f: np.ndarray) -> np.ndarray:
    """
    r = f - A u
    """
    return f - np.asarray(A @ u).reshape(f.shape)


def residual_norms(A, u: np.ndarray, f: np.ndarray) -> Dict[str, float]:
    """
    Common residual diagnostics.
    """
    r = compute_residual(A, u, f)
    fn = float(np.linalg.norm(f))
    rn = float(np.linalg.norm(r))
    return {
        "||r||2": rn,
        "||f||2": fn,
        "||r||2/||f||2": rn / fn if fn > 0 else np.nan,
        "||u||2": float(np.linalg.norm(u)),
        "||r||inf": float(np.max(np.abs(r))) if r.size else 0.0,
    }

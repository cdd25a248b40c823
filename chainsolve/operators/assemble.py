# operators/assemble.py
from __future__ import annotations

import numpy as np
import scipy.sparse as sp

from ..core.grid import Grid2D, idx


def assemble_poisson_matrix(grid: Grid2D, shift: float = 0.0) -> sp.csr_matrix:
    """
    Assemble the sparse 5-point operator for the 2D model problem:
        -Δu + shift * u = f

    Baseline BC: homogeneous Dirichlet (u=0) on boundary nodes.

    Parameters
    ----------
    grid : Grid2D
    shift : float
        Added to the interior diagonal. shift >= 0 keeps the matrix SPD;
        a negative shift gives an indefinite (Helmholtz-like) operator.

    Returns
    -------
    A : scipy.sparse.csr_matrix (N,N), real-valued
    """
    nx, ny = grid.nx, grid.ny
    N = grid.size

    inv_hx2 = 1.0 / (grid.hx * grid.hx)
    inv_hy2 = 1.0 / (grid.hy * grid.hy)

    rows: list[int] = []
    cols: list[int] = []
    data: list[float] = []

    def add(p: int, q: int, val: float) -> None:
        rows.append(p)
        cols.append(q)
        data.append(val)

    for i in range(nx):
        for j in range(ny):
            p = idx(i, j, ny)

            on_boundary = (i == 0) or (i == nx - 1) or (j == 0) or (j == ny - 1)
            if on_boundary:
                # Enforce u=0 by setting u_p = 0 (identity row)
                add(p, p, 1.0)
                continue

            add(p, p, 2.0 * inv_hx2 + 2.0 * inv_hy2 + float(shift))

            # Neighbors; couplings to boundary nodes are dropped so the
            # interior block stays symmetric
            for (ii, jj, w) in ((i - 1, j, inv_hx2), (i + 1, j, inv_hx2),
                                (i, j - 1, inv_hy2), (i, j + 1, inv_hy2)):
                if 0 < ii < nx - 1 and 0 < jj < ny - 1:
                    add(p, idx(ii, jj, ny), -w)

    return sp.coo_matrix((data, (rows, cols)), shape=(N, N)).tocsr()


def point_source_rhs(grid: Grid2D, amplitude: float = 1.0) -> np.ndarray:
    """
    Right-hand side with a single point source at the center of the domain,
    consistent with the Dirichlet identity rows (zero on the boundary).
    """
    f = np.zeros((grid.nx, grid.ny), dtype=float)
    f[grid.nx // 2, grid.ny // 2] = float(amplitude)
    f[grid.boundary_mask()] = 0.0
    return f.reshape(-1)

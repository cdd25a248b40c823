# core/grid.py
from __future__ import annotations

from dataclasses import dataclass
import numpy as np


def idx(i: int, j: int, ny: int) -> int:
    return i * ny + j


@dataclass(frozen=True)
class Grid2D:
    """
    A simple 2D tensor-product grid of nodal points on [0, lx] x [0, ly].

    Unknowns are numbered row-major: p = i * ny + j.
    """
    nx: int
    ny: int
    lx: float = 1.0
    ly: float = 1.0

    def __post_init__(self) -> None:
        if int(self.nx) < 3 or int(self.ny) < 3:
            raise ValueError("Grid2D requires nx, ny >= 3 (at least one interior node).")
        if float(self.lx) <= 0.0 or float(self.ly) <= 0.0:
            raise ValueError("Grid2D requires lx, ly > 0.")

    @property
    def hx(self) -> float:
        return float(self.lx) / float(self.nx - 1)

    @property
    def hy(self) -> float:
        return float(self.ly) / float(self.ny - 1)

    @property
    def size(self) -> int:
        return int(self.nx) * int(self.ny)

    def boundary_mask(self) -> np.ndarray:
        """Boolean (nx, ny) mask of boundary nodes."""
        mask = np.zeros((self.nx, self.ny), dtype=bool)
        mask[0, :] = True
        mask[-1, :] = True
        mask[:, 0] = True
        mask[:, -1] = True
        return mask

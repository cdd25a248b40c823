"""
Fallback-chained iterative linear solvers.

We keep three sibling subpackages:
- core: iteration status, stop criteria, convergence monitor, configs, grids
- operators: assembly, preconditioners, scipy solver adapters, solver setups
- algorithm: the composite (fallback-chained) solver
"""

from .algorithm import CompositeSolver, ChainReport
from .core import Iterator, IterationStatus, InvalidShapeError, BreakdownError
from .operators import SolverSetup

__version__ = "0.1.0"

__all__ = [
    "core",
    "operators",
    "algorithm",
    "CompositeSolver",
    "ChainReport",
    "Iterator",
    "IterationStatus",
    "InvalidShapeError",
    "BreakdownError",
    "SolverSetup",
]

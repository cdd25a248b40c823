"""
Operators: model-problem assembly + residuals + preconditioners + solvers.

Public API:
- assemble_poisson_matrix, point_source_rhs
- compute_residual, residual_norms
- preconditioners: UnitPreconditioner, DiagonalPreconditioner, ILUPreconditioner
- solvers: CGSolver, BiCGStabSolver, GMRESSolver, DirectSolver
- SolverSetup, default_setups
"""

# Assembly
from .assemble import assemble_poisson_matrix, point_source_rhs

# Residuals
from .solve import compute_residual, residual_norms

# Preconditioners
from .preconditioners import (
    Preconditioner,
    UnitPreconditioner,
    DiagonalPreconditioner,
    ILUPreconditioner,
)

# Solvers (scipy adapters)
from .solvers import (
    IterativeSolver,
    CGSolver,
    BiCGStabSolver,
    GMRESSolver,
    DirectSolver,
)

# Chain entries
from .setups import SolverSetup, default_setups, SOLVER_TYPES, PRECONDITIONER_TYPES

__all__ = [
    # Assembly
    "assemble_poisson_matrix",
    "point_source_rhs",

    # Residuals
    "compute_residual",
    "residual_norms",

    # Preconditioners
    "Preconditioner",
    "UnitPreconditioner",
    "DiagonalPreconditioner",
    "ILUPreconditioner",

    # Solvers
    "IterativeSolver",
    "CGSolver",
    "BiCGStabSolver",
    "GMRESSolver",
    "DirectSolver",

    # Setups
    "SolverSetup",
    "default_setups",
    "SOLVER_TYPES",
    "PRECONDITIONER_TYPES",
]

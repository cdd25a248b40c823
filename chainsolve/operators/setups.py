# operators/setups.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from .preconditioners import DiagonalPreconditioner, ILUPreconditioner, Preconditioner, UnitPreconditioner
from .solvers import BiCGStabSolver, CGSolver, DirectSolver, GMRESSolver, IterativeSolver


SOLVER_TYPES: Dict[str, Callable[..., IterativeSolver]] = {
    "cg": CGSolver,
    "bicgstab": BiCGStabSolver,
    "gmres": GMRESSolver,
    "direct": DirectSolver,
}

PRECONDITIONER_TYPES: Dict[str, Callable[..., Preconditioner]] = {
    "unit": UnitPreconditioner,
    "identity": UnitPreconditioner,
    "diagonal": DiagonalPreconditioner,
    "jacobi": DiagonalPreconditioner,
    "ilu": ILUPreconditioner,
}


def _normalize(name: str) -> str:
    return str(name).strip().lower().replace("-", "").replace("_", "")


@dataclass(frozen=True)
class SolverSetup:
    """
    Descriptor of one chain entry: which solver to build and which
    preconditioner to pair it with (None = let the chain pick the identity).
    """
    solver: str
    preconditioner: Optional[str] = None
    solver_options: Mapping[str, Any] = field(default_factory=dict)
    preconditioner_options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if _normalize(self.solver) not in SOLVER_TYPES:
            raise ValueError(f"Unknown solver: {self.solver!r} (known: {sorted(SOLVER_TYPES)})")
        if self.preconditioner is not None and _normalize(self.preconditioner) not in PRECONDITIONER_TYPES:
            raise ValueError(
                f"Unknown preconditioner: {self.preconditioner!r} (known: {sorted(PRECONDITIONER_TYPES)})"
            )

    def create_solver(self) -> IterativeSolver:
        return SOLVER_TYPES[_normalize(self.solver)](**dict(self.solver_options))

    def create_preconditioner(self) -> Optional[Preconditioner]:
        if self.preconditioner is None:
            return None
        return PRECONDITIONER_TYPES[_normalize(self.preconditioner)](**dict(self.preconditioner_options))

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "SolverSetup":
        unknown = set(d) - {"solver", "preconditioner", "solver_options", "preconditioner_options"}
        if unknown:
            raise ValueError(f"Unknown solver setup keys: {sorted(unknown)}")
        return cls(
            solver=str(d["solver"]),
            preconditioner=d.get("preconditioner"),
            solver_options=dict(d.get("solver_options", {})),
            preconditioner_options=dict(d.get("preconditioner_options", {})),
        )


def default_setups() -> List[SolverSetup]:
    """
    A general-purpose fallback order: cheap nonsymmetric Krylov first,
    stronger preconditioning next, CG for SPD systems, direct solve last.
    """
    return [
        SolverSetup("bicgstab", "diagonal"),
        SolverSetup("gmres", "ilu"),
        SolverSetup("cg"),
        SolverSetup("direct"),
    ]

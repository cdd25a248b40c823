# algorithm/composite.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import scipy.sparse as sp

from ..core.config import ChainConfig, StopCriteriaConfig
from ..core.errors import InvalidShapeError, dimensions_dont_match
from ..core.monitor import Iterator
from ..core.status import IterationStatus
from ..operators.preconditioners import Preconditioner, UnitPreconditioner
from ..operators.setups import SolverSetup
from ..operators.solve import as_vector, matrix_shape, require_square
from ..operators.solvers import IterativeSolver

logger = logging.getLogger(__name__)

# Raised by an attempt, these mean "this solver/preconditioner pair broke
# down"; anything else is a bug and propagates.
_BREAKDOWN_ERRORS = (ArithmeticError, np.linalg.LinAlgError)


class AttemptOutcome(Enum):
    CONVERGED = "converged"
    STOPPED_WITHOUT_CONVERGENCE = "stopped_without_convergence"
    DISCARDED = "discarded"     # diverged, failed, cancelled or unknown status
    BREAKDOWN = "breakdown"


def _classify(status: IterationStatus) -> AttemptOutcome:
    if status is IterationStatus.CONVERGED:
        return AttemptOutcome.CONVERGED
    if status is IterationStatus.STOPPED_WITHOUT_CONVERGENCE:
        return AttemptOutcome.STOPPED_WITHOUT_CONVERGENCE
    return AttemptOutcome.DISCARDED


@dataclass
class AttemptRecord:
    index: int
    solver: str
    preconditioner: str
    outcome: AttemptOutcome
    status: Optional[IterationStatus]
    iterations: int
    residual_history: List[float] = field(default_factory=list)
    message: Optional[str] = None


@dataclass
class ChainReport:
    """
    What happened during one vector solve. `status` is the monitor status after
    the last attempt (CONTINUE if no attempt ran).
    """
    attempts: List[AttemptRecord] = field(default_factory=list)
    status: IterationStatus = IterationStatus.CONTINUE

    @property
    def last_index(self) -> Optional[int]:
        return self.attempts[-1].index if self.attempts else None

    @property
    def converged(self) -> bool:
        return bool(self.attempts) and self.attempts[-1].outcome is AttemptOutcome.CONVERGED

    @property
    def exhausted(self) -> bool:
        """True if the chain ran out of solvers without converging."""
        return not self.converged


def _name(obj: Any) -> str:
    return str(getattr(obj, "name", type(obj).__name__))


class CompositeSolver:
    """
    A composite solver built from a sequence of (solver, preconditioner) pairs.

    The pairs are tried in order against the same system. After each attempt
    the shared monitor's status decides what happens next:

    - CONVERGED: the iterate is copied into the result, the chain stops.
    - STOPPED_WITHOUT_CONVERGENCE: the iterate is copied into the result and
      the next solver continues from it.
    - anything else, or a numerical breakdown: the result is left untouched
      and the right-hand side is restored from the original. The next solver
      starts from whatever iterate the failed attempt left behind.

    Breakdown means the attempt raised an ArithmeticError (BreakdownError
    included) or numpy.linalg.LinAlgError. Custom solvers must signal
    breakdown that way; any other exception propagates out of the chain.

    Breakdown and non-convergence never reach the caller as errors; inspect the
    returned ChainReport (or the monitor's status) to tell a converged solve
    from an exhausted chain.

    Based on: S. Bhowmick, P. Raghavan, L. McInnes, B. Norris,
    "Faster PDE-based simulations using robust composite linear solvers",
    Future Generation Computer Systems 20 (2004) 373-387.
    """

    def __init__(
        self,
        setups: Iterable[Any],
        stop_criteria: Optional[StopCriteriaConfig] = None,
    ):
        pairs: List[Tuple[IterativeSolver, Preconditioner]] = []
        for setup in setups:
            preconditioner = setup.create_preconditioner()
            pairs.append((setup.create_solver(), preconditioner if preconditioner is not None else UnitPreconditioner()))
        self._solvers: Tuple[Tuple[IterativeSolver, Preconditioner], ...] = tuple(pairs)
        self.stop_criteria = stop_criteria

    @classmethod
    def from_config(cls, cfg: ChainConfig) -> "CompositeSolver":
        return cls((SolverSetup.from_dict(d) for d in cfg.setups), stop_criteria=cfg.stop)

    @property
    def solvers(self) -> Tuple[Tuple[IterativeSolver, Preconditioner], ...]:
        return self._solvers

    def __len__(self) -> int:
        return len(self._solvers)

    def __repr__(self) -> str:
        chain = ", ".join(f"{_name(s)}+{_name(p)}" for s, p in self._solvers)
        return f"CompositeSolver([{chain}])"

    def _default_iterator(self) -> Iterator:
        if self.stop_criteria is not None:
            return Iterator.from_config(self.stop_criteria)
        return Iterator()

    # ============================
    # Vector right-hand side
    # ============================

    def solve_vector(
        self,
        matrix,
        input: np.ndarray,
        result: np.ndarray,
        iterator: Optional[Iterator] = None,
        preconditioner: Optional[Preconditioner] = None,
    ) -> ChainReport:
        """
        Solve A x = b, writing x into `result` (which also holds the initial guess).

        `preconditioner` is accepted for interface compatibility; every attempt
        uses the preconditioner paired with its solver.
        """
        n = require_square(matrix)
        b = as_vector(input, "input")
        if not isinstance(result, np.ndarray) or result.ndim != 1 or result.shape[0] != b.shape[0]:
            raise InvalidShapeError(
                f"All vectors must have the same length: input {b.shape}, result {np.shape(result)}."
            )
        if b.shape[0] != n:
            raise dimensions_dont_match(matrix_shape(matrix), b.shape, result.shape)

        if iterator is None:
            iterator = self._default_iterator()

        dtype = np.result_type(matrix.dtype, b.dtype, result.dtype, np.float64)
        b_work = b.astype(dtype, copy=True)
        x_work = result.astype(dtype, copy=True)

        report = ChainReport()
        for index, (solver, paired) in enumerate(self._solvers):
            record = self._attempt(index, solver, paired, matrix, b_work, x_work, iterator)
            report.attempts.append(record)

            if record.outcome is AttemptOutcome.CONVERGED:
                result[...] = x_work
                break

            if record.outcome is AttemptOutcome.STOPPED_WITHOUT_CONVERGENCE:
                # keep the progress and refine it with the next solver
                result[...] = x_work
                continue

            # breakdown / diverged / failed / unknown: restore the right-hand side
            b_work[...] = b

        report.status = iterator.status
        if report.attempts and not report.converged:
            logger.info(
                "Solver chain exhausted without convergence after %d attempt(s); last status=%s",
                len(report.attempts), report.status.value,
            )
        return report

    def _attempt(
        self,
        index: int,
        solver: IterativeSolver,
        preconditioner: Preconditioner,
        matrix,
        b_work: np.ndarray,
        x_work: np.ndarray,
        iterator: Iterator,
    ) -> AttemptRecord:
        iterator.reset()
        try:
            solver.solve(matrix, b_work, x_work, iterator, preconditioner)
        except _BREAKDOWN_ERRORS as exc:
            logger.warning("Attempt %d (%s+%s) broke down: %s", index, _name(solver), _name(preconditioner), exc)
            return AttemptRecord(
                index=index,
                solver=_name(solver),
                preconditioner=_name(preconditioner),
                outcome=AttemptOutcome.BREAKDOWN,
                status=None,
                iterations=iterator.iterations,
                residual_history=iterator.residual_history,
                message=str(exc),
            )

        status = iterator.status
        outcome = _classify(status)
        logger.debug(
            "Attempt %d (%s+%s): status=%s after %d iterations",
            index, _name(solver), _name(preconditioner), status.value, iterator.iterations,
        )
        return AttemptRecord(
            index=index,
            solver=_name(solver),
            preconditioner=_name(preconditioner),
            outcome=outcome,
            status=status,
            iterations=iterator.iterations,
            residual_history=iterator.residual_history,
        )

    # ============================
    # Matrix right-hand side
    # ============================

    def solve_matrix(
        self,
        matrix,
        input,
        result: np.ndarray,
        iterator: Optional[Iterator] = None,
        preconditioner: Optional[Preconditioner] = None,
    ) -> List[ChainReport]:
        """
        Solve A X = B column by column. Each column runs the full chain on its
        own (fresh working copies, zero initial guess, own monitor resets).
        Only nonzero entries of each column solution are written into `result`,
        so `result` should start zeroed.
        """
        a_shape = matrix_shape(matrix)
        b_shape = matrix_shape(input)
        x_shape = tuple(np.shape(result))
        if (
            not isinstance(result, np.ndarray)
            or len(x_shape) != 2
            or a_shape[0] != b_shape[0]
            or b_shape[0] != x_shape[0]
            or b_shape[1] != x_shape[1]
        ):
            raise dimensions_dont_match(a_shape, b_shape, x_shape)

        if iterator is None:
            iterator = self._default_iterator()
        if preconditioner is None:
            preconditioner = UnitPreconditioner()

        if sp.issparse(input):
            input = sp.csc_matrix(input)

        reports: List[ChainReport] = []
        for column in range(b_shape[1]):
            solution, report = self._solve_vector_new(matrix, as_vector(input[:, column], "input"), iterator, preconditioner)
            nz = np.flatnonzero(solution)
            result[nz, column] = solution[nz]
            reports.append(report)
        return reports

    # ============================
    # Allocating variants
    # ============================

    def _solve_vector_new(self, matrix, b, iterator, preconditioner) -> Tuple[np.ndarray, ChainReport]:
        n = matrix_shape(matrix)[0]
        x = np.zeros(n, dtype=np.result_type(matrix.dtype, b.dtype, np.float64))
        report = self.solve_vector(matrix, b, x, iterator, preconditioner)
        return x, report

    def solve_with_report(
        self,
        matrix,
        input,
        iterator: Optional[Iterator] = None,
        preconditioner: Optional[Preconditioner] = None,
    ) -> Tuple[np.ndarray, Union[ChainReport, List[ChainReport]]]:
        """
        Allocate a zero result shaped like the right-hand side, solve into it and
        return (result, report). Matrix right-hand sides give one report per column.
        """
        if sp.issparse(input) or np.ndim(input) == 2:
            shape = matrix_shape(input)
            X = np.zeros(shape, dtype=np.result_type(matrix.dtype, input.dtype, np.float64))
            reports = self.solve_matrix(matrix, input, X, iterator, preconditioner)
            return X, reports
        return self._solve_vector_new(matrix, as_vector(input, "input"), iterator, preconditioner)

    def solve(
        self,
        matrix,
        input,
        iterator: Optional[Iterator] = None,
        preconditioner: Optional[Preconditioner] = None,
    ) -> np.ndarray:
        """Solve A x = b (or A X = B) into a newly allocated zero-initialized result."""
        result, _ = self.solve_with_report(matrix, input, iterator, preconditioner)
        return result


def chain_summary(reports: Sequence[ChainReport]) -> dict:
    """Compact counts over one or many chain reports (e.g. per-column reports)."""
    attempts = [a for r in reports for a in r.attempts]
    return {
        "solves": len(reports),
        "converged": sum(1 for r in reports if r.converged),
        "attempts": len(attempts),
        "breakdowns": sum(1 for a in attempts if a.outcome is AttemptOutcome.BREAKDOWN),
        "iterations": sum(a.iterations for a in attempts),
    }

import numpy as np
import pytest
import scipy.sparse as sp
import scipy.sparse.linalg as spla
from numpy.testing import assert_allclose

from chainsolve.algorithm import AttemptOutcome, CompositeSolver
from chainsolve.core import BreakdownError, Grid2D, IterationStatus, Iterator, create_default_stop_criteria
from chainsolve.operators import (
    BiCGStabSolver,
    CGSolver,
    DiagonalPreconditioner,
    DirectSolver,
    GMRESSolver,
    ILUPreconditioner,
    SolverSetup,
    UnitPreconditioner,
    assemble_poisson_matrix,
    compute_residual,
    point_source_rhs,
)

S = IterationStatus


@pytest.fixture
def poisson():
    grid = Grid2D(nx=12, ny=12)
    A = assemble_poisson_matrix(grid)
    f = point_source_rhs(grid, amplitude=100.0)
    return A, f


def _monitor(max_iterations=500, tol=1e-8):
    return Iterator(create_default_stop_criteria(max_iterations=max_iterations, residual_tol=tol))


@pytest.mark.parametrize(
    "solver, preconditioner",
    [
        (CGSolver(), UnitPreconditioner()),
        (CGSolver(), DiagonalPreconditioner()),
        (BiCGStabSolver(), DiagonalPreconditioner()),
        (GMRESSolver(restart=30), ILUPreconditioner()),
        (DirectSolver(), UnitPreconditioner()),
    ],
)
def test_solvers_converge_on_poisson(poisson, solver, preconditioner):
    A, f = poisson
    it = _monitor()
    x = np.zeros_like(f)
    solver.solve(A, f, x, it, preconditioner)

    assert it.status is S.CONVERGED
    assert np.linalg.norm(compute_residual(A, x, f)) <= 1e-8 * np.linalg.norm(f)
    assert it.iterations >= 1


def test_iteration_cap_stops_without_convergence(poisson):
    A, f = poisson
    it = _monitor(max_iterations=2)
    x = np.zeros_like(f)
    CGSolver().solve(A, f, x, it, UnitPreconditioner())

    assert it.status is S.STOPPED_WITHOUT_CONVERGENCE
    assert it.iterations == 2
    assert np.linalg.norm(x) > 0.0


def test_zero_rhs_converges_immediately():
    A = sp.identity(3, format="csr")
    it = Iterator()
    x = np.zeros(3)
    CGSolver().solve(A, np.zeros(3), x, it, UnitPreconditioner())
    assert it.status is S.CONVERGED
    assert_allclose(x, 0.0)


def test_diagonal_preconditioner_breaks_down_on_zero_diagonal():
    A = np.array([[0.0, 1.0], [1.0, 0.0]])
    with pytest.raises(BreakdownError):
        BiCGStabSolver().solve(A, np.ones(2), np.zeros(2), Iterator(), DiagonalPreconditioner())


def test_direct_solver_breaks_down_on_singular_matrix():
    with pytest.raises(BreakdownError):
        DirectSolver().solve(np.zeros((2, 2)), np.ones(2), np.zeros(2), Iterator(), UnitPreconditioner())


def test_preconditioner_apply():
    A = sp.diags([2.0, 4.0]).tocsr()
    p = DiagonalPreconditioner()
    p.initialize(A)
    assert_allclose(p.approximate(np.array([2.0, 2.0])), [1.0, 0.5])

    u = UnitPreconditioner()
    u.initialize(A)
    assert u.as_linear_operator() is None
    assert_allclose(u.approximate(np.array([3.0, 1.0])), [3.0, 1.0])


def test_ilu_matches_exact_inverse_on_diagonal():
    A = sp.diags([2.0, 5.0, 10.0]).tocsc()
    p = ILUPreconditioner()
    p.initialize(A)
    M = p.as_linear_operator()
    assert_allclose(M.matvec(np.array([2.0, 5.0, 10.0])), [1.0, 1.0, 1.0])


def test_preconditioner_requires_initialize():
    with pytest.raises(RuntimeError):
        DiagonalPreconditioner().approximate(np.ones(2))


def test_chain_falls_through_breakdown_to_direct():
    A = np.array([[0.0, 1.0], [1.0, 0.0]])
    b = np.array([2.0, 3.0])
    chain = CompositeSolver([SolverSetup("bicgstab", "diagonal"), SolverSetup("direct")])
    x, report = chain.solve_with_report(A, b)

    assert_allclose(x, [3.0, 2.0])
    assert [a.outcome for a in report.attempts] == [AttemptOutcome.BREAKDOWN, AttemptOutcome.CONVERGED]
    assert [a.solver for a in report.attempts] == ["bicgstab", "direct"]


def test_chain_refines_partial_result(poisson):
    A, f = poisson
    chain = CompositeSolver([SolverSetup("cg", solver_options={"max_iterations": 3}), SolverSetup("cg", "diagonal")])
    it = _monitor(max_iterations=3)
    x = np.zeros_like(f)
    report = chain.solve_vector(A, f, x, it)

    assert [a.outcome for a in report.attempts] == [AttemptOutcome.STOPPED_WITHOUT_CONVERGENCE] * 2
    assert report.status is S.STOPPED_WITHOUT_CONVERGENCE

    # CG reduces the energy norm of the error at every step, so continuing
    # from the first attempt must beat the first attempt alone
    x_first = np.zeros_like(f)
    CGSolver(max_iterations=3).solve(A, f, x_first, _monitor(max_iterations=3), UnitPreconditioner())
    x_exact = spla.spsolve(A.tocsc(), f)

    def energy_error(v):
        e = v - x_exact
        return float(e @ (A @ e))

    assert energy_error(x) < energy_error(x_first)


def test_solver_iteration_cap_keeps_partial_result(poisson):
    A, f = poisson
    chain = CompositeSolver([SolverSetup("cg", solver_options={"max_iterations": 3})])
    it = Iterator()
    x = np.zeros_like(f)
    report = chain.solve_vector(A, f, x, it)

    assert report.attempts[0].outcome is AttemptOutcome.STOPPED_WITHOUT_CONVERGENCE
    assert report.status is S.STOPPED_WITHOUT_CONVERGENCE
    assert it.iterations == 3
    assert np.linalg.norm(x) > 0.0

    # three CG steps from zero: strictly closer to the solution in the energy norm
    e = x - spla.spsolve(A.tocsc(), f)
    e0 = spla.spsolve(A.tocsc(), f)
    assert float(e @ (A @ e)) < float(e0 @ (A @ e0))


def test_default_chain_solves_indefinite_system():
    grid = Grid2D(nx=15, ny=15)
    A = assemble_poisson_matrix(grid, shift=-300.0)
    f = point_source_rhs(grid)
    chain = CompositeSolver([SolverSetup("cg"), SolverSetup("gmres", "ilu"), SolverSetup("direct")])
    x, report = chain.solve_with_report(A, f, _monitor(max_iterations=200, tol=1e-10))

    assert report.converged
    assert np.linalg.norm(compute_residual(A, x, f)) <= 1e-9 * np.linalg.norm(f)

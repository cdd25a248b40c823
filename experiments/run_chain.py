from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

from chainsolve.algorithm import CompositeSolver, chain_summary
from chainsolve.core import Grid2D, Iterator, StopCriteriaConfig, ChainConfig, load_chain_config
from chainsolve.diagnostics import plot_residual_history, save_chain_report, save_npz
from chainsolve.operators import assemble_poisson_matrix, point_source_rhs, residual_norms, default_setups

logger = logging.getLogger("run_chain")


def run_case(cfg: ChainConfig, grid: Grid2D, shift: float, outdir: Path) -> dict[str, float]:
    A = assemble_poisson_matrix(grid, shift=shift)
    f = point_source_rhs(grid)

    chain = CompositeSolver.from_config(cfg) if cfg.setups else CompositeSolver(default_setups(), cfg.stop)
    monitor = Iterator.from_config(cfg.stop)
    logger.info("Running %r on n=%d (shift=%g)", chain, A.shape[0], shift)

    u = np.zeros(A.shape[0])
    report = chain.solve_vector(A, f, u, monitor)
    norms = residual_norms(A, u, f)

    metrics = {
        "converged": float(report.converged),
        "last_index": float(-1 if report.last_index is None else report.last_index),
        "rel_residual": float(norms["||r||2/||f||2"]),
        **{k: float(v) for k, v in chain_summary([report]).items()},
    }

    save_chain_report(outdir / "fields" / "chain_report.npz", report, x=u)
    plot_residual_history(report, title=f"shift={shift:g}", path=outdir / "figs" / "residual_history.png")
    save_npz(outdir / "metrics.npz", **{k: np.array(v) for k, v in metrics.items()})
    return metrics


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run a fallback solver chain on the 2D Poisson model problem.")
    parser.add_argument("--config", type=Path, default=None, help="JSON chain config (default: built-in chain)")
    parser.add_argument("--n", type=int, default=41, help="grid points per direction")
    parser.add_argument("--shift", type=float, nargs="+", default=[0.0, -200.0], help="diagonal shift(s)")
    parser.add_argument("--out", type=Path, default=Path("outputs"))
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        stream=sys.stdout,
    )

    cfg = load_chain_config(args.config) if args.config is not None else ChainConfig(stop=StopCriteriaConfig())
    grid = Grid2D(nx=args.n, ny=args.n)

    for shift in args.shift:
        outdir = args.out / f"n_{grid.nx}" / f"shift_{shift:g}"
        metrics = run_case(cfg, grid, shift, outdir)
        logger.info("shift=%g %s", shift, metrics)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

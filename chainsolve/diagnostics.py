# diagnostics.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np
import matplotlib.pyplot as plt

from .algorithm.composite import ChainReport


# -----------------------------
# I/O helpers
# -----------------------------

def save_npz(path: Path, **arrays: np.ndarray) -> None:
    """Save compressed .npz (creates parent dirs)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(path, **arrays)


def report_to_dict(report: ChainReport) -> dict:
    """JSON-friendly view of a chain report."""
    return {
        "status": report.status.value,
        "converged": report.converged,
        "last_index": report.last_index,
        "attempts": [
            {
                "index": a.index,
                "solver": a.solver,
                "preconditioner": a.preconditioner,
                "outcome": a.outcome.value,
                "status": None if a.status is None else a.status.value,
                "iterations": a.iterations,
                "message": a.message,
            }
            for a in report.attempts
        ],
    }


def save_chain_report(path: Path, report: ChainReport, x: Optional[np.ndarray] = None) -> None:
    """
    Store per-attempt residual histories (res_<k>) plus the report metadata as
    a JSON string (meta_json). The solution is stored as `x` if given.
    """
    arrays = {
        f"res_{a.index}": np.asarray(a.residual_history, dtype=float)
        for a in report.attempts
    }
    arrays["meta_json"] = np.array([json.dumps(report_to_dict(report))])
    if x is not None:
        arrays["x"] = np.asarray(x)
    save_npz(path, **arrays)


# -----------------------------
# Plotting
# -----------------------------

def plot_residual_history(
    report: Union[ChainReport, Sequence[ChainReport]],
    *,
    title: str = "",
    path: Optional[Path] = None,
    show: bool = False,
    close: bool = True,
):
    """
    Semilog plot of ||r||_2 per iteration, one line per attempt, with attempts
    laid end to end on a global iteration axis.

    Parameters
    ----------
    path:
        If provided, saves the figure to this path (parent dirs created).
    show:
        If True, calls plt.show().
    close:
        If True, closes the figure and returns None; otherwise returns it.
    """
    reports = [report] if isinstance(report, ChainReport) else list(report)

    fig, ax = plt.subplots(figsize=(6, 4))
    offset = 0
    for r_idx, rep in enumerate(reports):
        for a in rep.attempts:
            hist = np.asarray(a.residual_history, dtype=float)
            label = f"{a.solver}+{a.preconditioner} ({a.outcome.value})"
            if len(reports) > 1:
                label = f"col {r_idx}: {label}"
            if hist.size:
                its = offset + np.arange(1, hist.size + 1)
                ax.semilogy(its, np.maximum(hist, 1e-300), marker=".", label=label)
            else:
                ax.axvline(offset + 0.5, ls="--", lw=1, color="gray")
            offset += max(hist.size, 1)

    ax.set_xlabel("iteration (cumulative)")
    ax.set_ylabel("||r||_2")
    ax.set_title(title or "solver chain residual history")
    if ax.get_legend_handles_labels()[0]:
        ax.legend(fontsize="small")
    fig.tight_layout()

    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, dpi=200)

    if show:
        plt.show()

    if close:
        plt.close(fig)
        return None
    return fig

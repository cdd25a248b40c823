# core/status.py
from __future__ import annotations

from enum import Enum


class IterationStatus(Enum):
    """Verdict of a convergence monitor after a solve attempt."""

    CONTINUE = "continue"
    CONVERGED = "converged"
    STOPPED_WITHOUT_CONVERGENCE = "stopped_without_convergence"
    DIVERGED = "diverged"
    FAILURE = "failure"
    CANCELLED = "cancelled"

    @property
    def finished(self) -> bool:
        return self is not IterationStatus.CONTINUE

"""
Algorithms: the composite (fallback-chained) solver and its reports.
"""

from .composite import (
    CompositeSolver,
    ChainReport,
    AttemptRecord,
    AttemptOutcome,
    chain_summary,
)

__all__ = [
    "CompositeSolver",
    "ChainReport",
    "AttemptRecord",
    "AttemptOutcome",
    "chain_summary",
]

"""
Core: iteration status, stop criteria, convergence monitor, configs, grids.
"""

from .status import IterationStatus
from .errors import ChainSolveError, InvalidShapeError, BreakdownError
from .criteria import (
    StopCriterion,
    IterationCountStopCriterion,
    ResidualStopCriterion,
    DivergenceStopCriterion,
    FailureStopCriterion,
    create_default_stop_criteria,
)
from .config import StopCriteriaConfig, ChainConfig, chain_config_from_dict, load_chain_config
from .monitor import Iterator
from .grid import Grid2D

__all__ = [
    "IterationStatus",
    "ChainSolveError",
    "InvalidShapeError",
    "BreakdownError",
    "StopCriterion",
    "IterationCountStopCriterion",
    "ResidualStopCriterion",
    "DivergenceStopCriterion",
    "FailureStopCriterion",
    "create_default_stop_criteria",
    "StopCriteriaConfig",
    "ChainConfig",
    "chain_config_from_dict",
    "load_chain_config",
    "Iterator",
    "Grid2D",
]

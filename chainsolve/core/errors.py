# core/errors.py
from __future__ import annotations

from typing import Sequence, Tuple


class ChainSolveError(Exception):
    """Base class for errors raised by this package."""


class InvalidShapeError(ChainSolveError, ValueError):
    """Operand shapes violate a solve precondition."""


class BreakdownError(ChainSolveError, ArithmeticError):
    """A solver or preconditioner hit a numerical breakdown."""


def dimensions_dont_match(*shapes: Tuple[int, ...], names: Sequence[str] = ("matrix", "input", "result")) -> InvalidShapeError:
    parts = [f"{name} {tuple(shape)}" for name, shape in zip(names, shapes)]
    return InvalidShapeError("Matrix dimensions must agree: " + ", ".join(parts) + ".")

# core/config.py
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple, Union


@dataclass(frozen=True)
class StopCriteriaConfig:
    max_iterations: int = 1000
    residual_tol: float = 1e-12
    divergence_increase: float = 0.08   # relative residual growth over the window
    divergence_window: int = 10

    def __post_init__(self) -> None:
        if int(self.max_iterations) < 1:
            raise ValueError("StopCriteriaConfig requires max_iterations >= 1.")
        if float(self.residual_tol) < 0.0:
            raise ValueError("StopCriteriaConfig requires residual_tol >= 0.")
        if float(self.divergence_increase) <= 0.0:
            raise ValueError("StopCriteriaConfig requires divergence_increase > 0.")
        if int(self.divergence_window) < 1:
            raise ValueError("StopCriteriaConfig requires divergence_window >= 1.")


@dataclass(frozen=True)
class ChainConfig:
    """
    Ordered solver setups (plain mappings, see operators.setups.SolverSetup.from_dict)
    plus the stop criteria of the shared monitor.
    """
    setups: Tuple[Mapping[str, Any], ...] = ()
    stop: StopCriteriaConfig = field(default_factory=StopCriteriaConfig)


def chain_config_from_dict(d: Mapping[str, Any]) -> ChainConfig:
    """
    Accept:
      {"stop_criteria": {...}, "chain": [{"solver": "gmres", "preconditioner": "ilu", ...}, ...]}
    """
    if not isinstance(d, Mapping):
        raise ValueError("chain config must be a mapping")

    unknown = set(d) - {"stop_criteria", "chain"}
    if unknown:
        raise ValueError(f"Unknown chain config keys: {sorted(unknown)}")

    chain = d.get("chain", [])
    if not isinstance(chain, (list, tuple)):
        raise ValueError("'chain' must be a list of solver setups")
    for k, entry in enumerate(chain):
        if not isinstance(entry, Mapping) or "solver" not in entry:
            raise ValueError(f"chain[{k}] must be a mapping with a 'solver' key")

    stop = StopCriteriaConfig(**dict(d.get("stop_criteria", {})))
    return ChainConfig(setups=tuple(dict(e) for e in chain), stop=stop)


def load_chain_config(path: Union[str, Path]) -> ChainConfig:
    """Read a JSON chain config file."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        raw: Dict[str, Any] = json.load(f)
    return chain_config_from_dict(raw)

"""Estimator configuration."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional

from .histogram import DEFAULT_SAMPLING_FRACTION
from .newton import DEFAULT_MAX_ITERATIONS, DEFAULT_TOLERANCE


@dataclass
class RiskConfig:
    include_snb_model: bool = False  # compare Zayatz with SNB when pi > 0.1
    pi_default: float = DEFAULT_SAMPLING_FRACTION  # substituted for pi outside (0, 1]
    tolerance: float = DEFAULT_TOLERANCE
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    time_budget: Optional[float] = None  # seconds per Newton solve

    def __post_init__(self):
        if not (0.0 < float(self.pi_default) <= 1.0):
            raise ValueError("pi_default must be in (0, 1]")
        if float(self.tolerance) <= 0:
            raise ValueError("tolerance must be positive")
        if int(self.max_iterations) < 1:
            raise ValueError("max_iterations must be >= 1")
        if self.time_budget is not None and float(self.time_budget) <= 0:
            raise ValueError("time_budget must be positive when given")
        self.include_snb_model = bool(self.include_snb_model)
        self.pi_default = float(self.pi_default)
        self.tolerance = float(self.tolerance)
        self.max_iterations = int(self.max_iterations)

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "RiskConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {unknown}")
        return cls(**dict(values))

    def solver_options(self) -> Dict[str, Any]:
        return {
            'tolerance': self.tolerance,
            'max_iterations': self.max_iterations,
            'time_budget': self.time_budget,
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(config_file: str) -> RiskConfig:
    """Load configuration from JSON file."""
    with open(config_file, 'r') as f:
        return RiskConfig.from_dict(json.load(f))

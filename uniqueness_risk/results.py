"""Model results: a risk value, or an explicit "undefined" with its reason."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional


class UndefinedModelError(ArithmeticError):
    """A model's formula has no value for the given data."""


@dataclass(frozen=True)
class ModelResult:
    model: str
    value: Optional[float] = None
    reason: Optional[str] = None

    @classmethod
    def of(cls, model: str, value: float) -> "ModelResult":
        return cls(model=model, value=float(value))

    @classmethod
    def undefined(cls, model: str, reason: str) -> "ModelResult":
        return cls(model=model, value=None, reason=reason)

    @property
    def defined(self) -> bool:
        return self.value is not None

    def as_float(self) -> float:
        return self.value if self.value is not None else math.nan


def risk_result(model: str, uniques_total: float, population_size: float) -> ModelResult:
    """Turn an estimated number of population uniques into a risk in [0, 1]."""
    if not math.isfinite(uniques_total):
        return ModelResult.undefined(model, "estimated number of population uniques is not finite")
    risk = uniques_total / population_size
    if not (0.0 <= risk <= 1.0):
        return ModelResult.undefined(model, f"estimated risk {risk:.6g} is outside [0, 1]")
    return ModelResult.of(model, risk)

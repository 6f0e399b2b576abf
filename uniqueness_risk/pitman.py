"""Maximum-likelihood fit of the Pitman two-parameter sampling model.

See Hoshino (2001), "Applying Pitman's sampling formula to microdata
disclosure risk assessment". The sample is modelled by Pitman's formula with
parameters (theta, alpha); the score equations are solved by Newton-Raphson
and the fitted parameters are extrapolated to the population size N = n / pi.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

import numpy as np
from scipy.special import gammaln

from .histogram import SampleStats, as_histogram
from .newton import DEFAULT_MAX_ITERATIONS, DEFAULT_TOLERANCE, SolverError, newton_raphson
from .results import ModelResult, UndefinedModelError, risk_result

logger = logging.getLogger(__name__)

MODEL_NAME = "pitman"
LOG_FLOAT_MAX = math.log(np.finfo(float).max)


@dataclass(frozen=True)
class PitmanFit:
    theta: float
    alpha: float
    iterations: int


def pitman_initial_guess(stats: SampleStats) -> Tuple[float, float]:
    """Closed-form starting point (theta, alpha) for the Newton iteration."""
    n, u, c1, c2 = float(stats.n), float(stats.u), float(stats.c1), float(stats.c2)
    if c2 == 0:
        raise UndefinedModelError("no equivalence classes of size two")
    c = c1 * (c1 - 1) / c2
    denominator = 2 * c1 * u + c1 * c - n * c
    if denominator == 0:
        raise UndefinedModelError("initial guess for theta divides by zero")
    theta = (n * u * c - c1 * (n - 1) * (2 * u + c)) / denominator
    alpha = (theta * (c1 - n) + (n - 1) * c1) / (n * u)
    if not (math.isfinite(theta) and math.isfinite(alpha)):
        raise UndefinedModelError("initial guess is not finite")
    return theta, alpha


class _PitmanEquations:
    """Score vector and Jacobian of the Pitman log-likelihood for one histogram."""

    def __init__(self, histogram: Mapping[int, int]):
        h = as_histogram(histogram)
        self.i_u = np.arange(1, h.u, dtype=float)
        self.i_n = np.arange(1, h.n, dtype=float)
        # classes of size k contribute sum_{j=1}^{k-1} terms
        self.sizes = np.array([k for k in h if k > 1], dtype=int)
        self.freqs = np.array([h[k] for k in h if k > 1], dtype=float)
        self.j = np.arange(1, max(h.largest_class_size, 1), dtype=float)

    def _partial_sums(self, values: np.ndarray) -> np.ndarray:
        if self.sizes.size == 0:
            return np.zeros(0)
        return np.cumsum(values)[self.sizes - 2]

    def score(self, params: np.ndarray) -> np.ndarray:
        theta, alpha = params
        inv = 1.0 / (theta + self.i_u * alpha)
        f_theta = np.sum(inv) - np.sum(1.0 / (theta + self.i_n))
        f_alpha = np.sum(self.i_u * inv) - np.sum(self.freqs * self._partial_sums(1.0 / (self.j - alpha)))
        return np.array([f_theta, f_alpha])

    def jacobian(self, params: np.ndarray) -> np.ndarray:
        theta, alpha = params
        inv_sq = 1.0 / (theta + self.i_u * alpha) ** 2
        d_tt = np.sum(1.0 / (theta + self.i_n) ** 2) - np.sum(inv_sq)
        d_aa = -np.sum(self.i_u ** 2 * inv_sq) - np.sum(self.freqs * self._partial_sums(1.0 / (self.j - alpha) ** 2))
        d_ta = -np.sum(self.i_u * inv_sq)
        return np.array([[d_tt, d_ta], [d_ta, d_aa]])


def pitman_score(params, histogram: Mapping[int, int]) -> np.ndarray:
    """(dL/dtheta, dL/dalpha) at ``params`` = (theta, alpha)."""
    return _PitmanEquations(histogram).score(np.asarray(params, dtype=float))


def pitman_jacobian(params, histogram: Mapping[int, int]) -> np.ndarray:
    return _PitmanEquations(histogram).jacobian(np.asarray(params, dtype=float))


def fit_pitman(
    histogram: Mapping[int, int],
    pi: float,
    tolerance: float = DEFAULT_TOLERANCE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    time_budget: Optional[float] = None,
    stats: Optional[SampleStats] = None,
) -> PitmanFit:
    """Maximum-likelihood (theta, alpha).

    Raises:
        UndefinedModelError: no initial guess can be derived
        SolverError: the Newton iteration failed
    """
    h = as_histogram(histogram)
    stats = stats or SampleStats.from_histogram(h, pi)
    guess = pitman_initial_guess(stats)
    equations = _PitmanEquations(h)
    solution = newton_raphson(
        equations.score,
        equations.jacobian,
        guess,
        tolerance=tolerance,
        max_iterations=max_iterations,
        time_budget=time_budget,
    )
    theta, alpha = (float(v) for v in solution.x)
    logger.debug("pitman fit: theta=%.6g alpha=%.6g after %d iterations", theta, alpha, solution.iterations)
    return PitmanFit(theta=theta, alpha=alpha, iterations=solution.iterations)


def _outside_gamma_domain(theta: float, alpha: float) -> bool:
    # log Gamma is only taken at positive arguments
    return theta + 1 <= 0 or theta + alpha <= 0


def pitman_log_uniques_total(theta: float, alpha: float, population_size: float) -> float:
    """log(Gamma(theta + 1) / Gamma(theta + alpha) * N^alpha), NaN outside the model."""
    if alpha == 0 or _outside_gamma_domain(theta, alpha) or not population_size > 0:
        return math.nan
    return float(gammaln(theta + 1) - gammaln(theta + alpha) + alpha * math.log(population_size))


def pitman_uniques_total(theta: float, alpha: float, population_size: float) -> float:
    """Expected number of population uniques, NaN where the formula is undefined or overflows."""
    log_total = pitman_log_uniques_total(theta, alpha, population_size)
    if not log_total < LOG_FLOAT_MAX:
        return math.nan
    return math.exp(log_total)


def pitman_risk_from_parameters(theta: float, alpha: float, stats: SampleStats) -> ModelResult:
    if alpha == 0:
        return ModelResult.undefined(MODEL_NAME, "alpha is zero; number of population uniques is undefined")
    if _outside_gamma_domain(theta, alpha):
        return ModelResult.undefined(
            MODEL_NAME, f"theta={theta:.6g}, alpha={alpha:.6g} is outside the domain of the gamma function")
    log_total = pitman_log_uniques_total(theta, alpha, stats.population_size)
    if math.isnan(log_total):
        return ModelResult.undefined(MODEL_NAME, "number of population uniques is not a number")
    if log_total >= LOG_FLOAT_MAX:
        return ModelResult.undefined(MODEL_NAME, f"number of population uniques overflows (log = {log_total:.6g})")
    return risk_result(MODEL_NAME, math.exp(log_total), stats.population_size)


def pitman_risk(
    histogram: Mapping[int, int],
    pi: float,
    tolerance: float = DEFAULT_TOLERANCE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    time_budget: Optional[float] = None,
    stats: Optional[SampleStats] = None,
) -> ModelResult:
    """Population-uniqueness risk under the Pitman model; never raises on numerical failure."""
    h = as_histogram(histogram)
    stats = stats or SampleStats.from_histogram(h, pi)
    try:
        fit = fit_pitman(h, pi, tolerance=tolerance, max_iterations=max_iterations,
                         time_budget=time_budget, stats=stats)
    except (UndefinedModelError, SolverError) as e:
        logger.debug("pitman model undefined: %s", e)
        return ModelResult.undefined(MODEL_NAME, str(e))
    return pitman_risk_from_parameters(fit.theta, fit.alpha, stats)

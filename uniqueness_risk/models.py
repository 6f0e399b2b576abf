"""Closed-form and moment-based population models used alongside the Pitman fit."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Optional

import numpy as np
from scipy.special import expit, logit
from scipy.stats import hypergeom

from .histogram import SampleStats, as_histogram
from .newton import DEFAULT_MAX_ITERATIONS, DEFAULT_TOLERANCE, SolverError, newton_raphson, numerical_jacobian
from .results import ModelResult, UndefinedModelError, risk_result

logger = logging.getLogger(__name__)

ZAYATZ = "zayatz"
SNB = "snb"

SNB_INITIAL_SHAPE = 1.0
SNB_MAX_INITIAL_RATIO = 0.9


# ============================ Sample-only measures ============================

def equivalence_class_risk(histogram: Mapping[int, int]) -> float:
    """Average re-identification risk of a record, u / n (journalist risk, file level)."""
    h = as_histogram(histogram)
    if h.n == 0:
        return math.nan
    return h.u / h.n


def highest_individual_risk(histogram: Mapping[int, int]) -> float:
    """Risk of the records in the smallest equivalence class, 1 / size."""
    h = as_histogram(histogram)
    if h.smallest_class_size == 0:
        return math.nan
    return 1.0 / h.smallest_class_size


def highest_risk_affected(histogram: Mapping[int, int]) -> float:
    """Number of equivalence classes carrying the highest individual risk."""
    h = as_histogram(histogram)
    if h.smallest_class_size == 0:
        return math.nan
    return float(h.frequency(h.smallest_class_size))


# ================================ Zayatz (1991) ===============================

def zayatz_risk(histogram: Mapping[int, int], pi: float, stats: Optional[SampleStats] = None) -> ModelResult:
    """Population-uniqueness risk after Zayatz.

    The probability that a sample unique is a population unique is estimated
    from hypergeometric probabilities of drawing exactly one record of a
    class, weighted by the observed class-size distribution.
    """
    h = as_histogram(histogram)
    stats = stats or SampleStats.from_histogram(h, pi)
    if h.u == 0:
        return ModelResult.undefined(ZAYATZ, "histogram is empty")
    population = max(int(round(stats.population_size)), h.n)
    sizes = h.sizes().astype(int)
    weights = h.frequencies() / h.u
    probs = hypergeom.pmf(1, population, sizes, h.n)
    denominator = float(np.sum(probs * weights))
    if not denominator > 0:
        return ModelResult.undefined(ZAYATZ, "no class size can produce a sample unique")
    numerator = float(hypergeom.pmf(1, population, 1, h.n)) * h.c1 / h.u
    conditional = numerator / denominator
    return risk_result(ZAYATZ, h.c1 * conditional, stats.population_size)


# ================== Shifted negative binomial (Chen & Keller-McNulty) ==================

@dataclass(frozen=True)
class SnbFit:
    a: float
    p: float
    iterations: int


def _snb_sample_probabilities(a: float, p: float, pi: float):
    """P(f=0), P(f=1), P(f=2) for a class of size 1 + NegBin(a, p) under Bernoulli(pi) sampling."""
    q = 1.0 - p
    t = 1.0 - pi
    base = 1.0 - q * t
    r = q * pi / base
    scale = (p / base) ** a
    p0 = scale * t
    p1 = scale * (t * a * r + pi)
    p2 = scale * (t * a * (a + 1.0) / 2.0 * r ** 2 + pi * a * r)
    return p0, p1, p2


def _snb_success_probability(r: float, pi: float) -> float:
    """Invert r = q * pi / (1 - q * (1 - pi)) for p = 1 - q."""
    return 1.0 - r / (pi + r * (1.0 - pi))


def snb_initial_guess(stats: SampleStats):
    """Starting point (log a, logit r) with a = 1.

    For a = 1 the pair-to-unique ratio P(f=2) / P(f=1) equals r, so c2 / c1
    solves the second moment equation exactly.
    """
    r = min(stats.c2 / stats.c1, SNB_MAX_INITIAL_RATIO)
    return math.log(SNB_INITIAL_SHAPE), float(logit(r))


def fit_snb(
    histogram: Mapping[int, int],
    pi: float,
    tolerance: float = DEFAULT_TOLERANCE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    time_budget: Optional[float] = None,
    stats: Optional[SampleStats] = None,
) -> SnbFit:
    """Fit (a, p) to the observed share of sample uniques among classes (c1 / u)
    and the ratio of pairs to uniques (c2 / c1).

    Newton-Raphson runs on (log a, logit r) so every iterate maps back into
    a > 0 and 0 < p < 1.

    Raises:
        UndefinedModelError: the sample has no uniques or no pairs
        SolverError: the Newton iteration failed
    """
    h = as_histogram(histogram)
    stats = stats or SampleStats.from_histogram(h, pi)
    if stats.c1 == 0 or stats.c2 == 0:
        raise UndefinedModelError("needs classes of size one and two")

    unique_share = stats.c1 / stats.u
    pair_ratio = stats.c2 / stats.c1

    def parameters(y: np.ndarray):
        return np.exp(y[0]), _snb_success_probability(expit(y[1]), stats.pi)

    def objective(y: np.ndarray) -> np.ndarray:
        p0, p1, p2 = _snb_sample_probabilities(*parameters(y), stats.pi)
        return np.array([p1 / (1.0 - p0) - unique_share, p2 / p1 - pair_ratio])

    def jacobian(y: np.ndarray) -> np.ndarray:
        return numerical_jacobian(objective, y)

    solution = newton_raphson(
        objective, jacobian, snb_initial_guess(stats),
        tolerance=tolerance, max_iterations=max_iterations, time_budget=time_budget,
    )
    a, p = (float(v) for v in parameters(solution.x))
    if not (a > 0 and 0 < p < 1):
        raise UndefinedModelError(f"fitted parameters a={a:.6g}, p={p:.6g} are outside the model domain")
    logger.debug("snb fit: a=%.6g p=%.6g after %d iterations", a, p, solution.iterations)
    return SnbFit(a=a, p=p, iterations=solution.iterations)


def snb_risk(
    histogram: Mapping[int, int],
    pi: float,
    tolerance: float = DEFAULT_TOLERANCE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    time_budget: Optional[float] = None,
    stats: Optional[SampleStats] = None,
) -> ModelResult:
    """Population-uniqueness risk under the shifted negative binomial model.

    The number of population classes follows from u = K * (1 - P(f=0)) and
    each of them is unique with probability p^a.
    """
    h = as_histogram(histogram)
    stats = stats or SampleStats.from_histogram(h, pi)
    try:
        fit = fit_snb(h, pi, tolerance=tolerance, max_iterations=max_iterations,
                      time_budget=time_budget, stats=stats)
    except (UndefinedModelError, SolverError) as e:
        logger.debug("snb model undefined: %s", e)
        return ModelResult.undefined(SNB, str(e))
    p0, _, _ = _snb_sample_probabilities(fit.a, fit.p, stats.pi)
    classes = stats.u / (1.0 - p0)
    return risk_result(SNB, classes * fit.p ** fit.a, stats.population_size)

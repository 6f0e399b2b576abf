"""Choice of population model for the population-uniqueness risk.

Selection rule after Dankar et al. (2012), "Estimating the re-identification
risk of clinical data sets", BMC Medical Informatics and Decision Making 12:66.
"""

from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from .config import RiskConfig
from .histogram import SampleStats, as_histogram, coerce_sampling_fraction
from .models import snb_risk, zayatz_risk
from .pitman import pitman_risk
from .results import ModelResult

logger = logging.getLogger(__name__)

PITMAN_THRESHOLD: float = 0.1


class InsufficientUniquesWarning(UserWarning):
    """The sample has no unique records, so population uniques cannot be estimated."""


@dataclass(frozen=True)
class PopulationUniquesEstimate:
    risk: float
    model: Optional[str]
    sampling_fraction: float
    attempts: Tuple[ModelResult, ...] = ()
    reason: Optional[str] = None

    @property
    def defined(self) -> bool:
        return self.model is not None


def estimate_population_uniques(
    pi: float,
    histogram: Mapping[int, int],
    config: Optional[RiskConfig] = None,
) -> PopulationUniquesEstimate:
    """Estimate the share of population uniques and report which model produced it.

    1. Sample uniques but no pairs: Zayatz (Pitman's guess needs pairs).
    2. No sample uniques: InsufficientUniquesWarning, NaN.
    3. pi <= 0.1: Pitman, falling back to Zayatz.
       pi > 0.1: Zayatz, falling back to Pitman. With ``include_snb_model``
       Zayatz and SNB are both computed and the smaller defined value wins;
       Pitman is used only if neither is defined.
    """
    config = config or RiskConfig()
    h = as_histogram(histogram)
    pi = coerce_sampling_fraction(pi, config.pi_default)
    stats = SampleStats.from_histogram(h, pi)
    solver = dict(config.solver_options(), stats=stats)
    attempts: List[ModelResult] = []

    def run(result: ModelResult) -> ModelResult:
        attempts.append(result)
        if not result.defined:
            logger.debug("%s model undefined: %s", result.model, result.reason)
        return result

    def finish(result: Optional[ModelResult], reason: Optional[str] = None) -> PopulationUniquesEstimate:
        if result is None or not result.defined:
            return PopulationUniquesEstimate(
                risk=math.nan, model=None, sampling_fraction=pi, attempts=tuple(attempts),
                reason=reason or "no population model is defined for this histogram",
            )
        return PopulationUniquesEstimate(risk=result.value, model=result.model, sampling_fraction=pi,
                                         attempts=tuple(attempts))

    if h.c1 > 0 and h.c2 == 0:
        return finish(run(zayatz_risk(h, pi, stats=stats)))

    if h.c1 == 0:
        msg = "The data set does not contain any sample uniques; population uniques cannot be estimated."
        warnings.warn(msg, InsufficientUniquesWarning, stacklevel=2)
        return finish(None, reason=msg)

    if pi <= PITMAN_THRESHOLD:
        result = run(pitman_risk(h, pi, **solver))
        if not result.defined:
            result = run(zayatz_risk(h, pi, stats=stats))
        return finish(result)

    if not config.include_snb_model:
        result = run(zayatz_risk(h, pi, stats=stats))
        if not result.defined:
            result = run(pitman_risk(h, pi, **solver))
        return finish(result)

    zayatz = run(zayatz_risk(h, pi, stats=stats))
    snb = run(snb_risk(h, pi, **solver))
    if zayatz.defined and snb.defined:
        return finish(zayatz if snb.value > zayatz.value else snb)
    if zayatz.defined or snb.defined:
        return finish(zayatz if zayatz.defined else snb)
    return finish(run(pitman_risk(h, pi, **solver)))


def compute_population_uniques_risk(
    pi: float,
    histogram: Mapping[int, int],
    config: Optional[RiskConfig] = None,
) -> float:
    """Estimated share of population uniques in [0, 1], NaN if no model applies."""
    return estimate_population_uniques(pi, histogram, config).risk

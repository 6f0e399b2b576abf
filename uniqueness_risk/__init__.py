"""uniqueness-risk - population-uniqueness and re-identification risk estimation.

Estimates, from a sample's equivalence-class histogram and its sampling
fraction, the share of records that are unique in the full population.
"""

from .config import RiskConfig, load_config
from .histogram import EquivalenceClassHistogram, SampleStats, coerce_sampling_fraction
from .newton import (
    NewtonSolution,
    NonConvergenceError,
    NonFiniteEvaluationError,
    SingularJacobianError,
    SolverError,
    SolverTimeoutError,
    newton_raphson,
)
from .results import ModelResult
from .selector import (
    InsufficientUniquesWarning,
    PopulationUniquesEstimate,
    compute_population_uniques_risk,
    estimate_population_uniques,
)
from .risk import DisclosureRiskAnalyzer

__version__ = "1.0.0"
__all__ = [
    "RiskConfig",
    "load_config",
    "EquivalenceClassHistogram",
    "SampleStats",
    "coerce_sampling_fraction",
    "NewtonSolution",
    "SolverError",
    "NonConvergenceError",
    "SingularJacobianError",
    "NonFiniteEvaluationError",
    "SolverTimeoutError",
    "newton_raphson",
    "ModelResult",
    "InsufficientUniquesWarning",
    "PopulationUniquesEstimate",
    "compute_population_uniques_risk",
    "estimate_population_uniques",
    "DisclosureRiskAnalyzer",
]

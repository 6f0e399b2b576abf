"""High-level analyzer bundling the disclosure-risk measures for one data set."""

from typing import Any, Dict, List, Mapping, Optional
import pandas as pd
import numpy as np

from .config import RiskConfig
from .histogram import EquivalenceClassHistogram, as_histogram, class_sizes, coerce_sampling_fraction
from .models import equivalence_class_risk, highest_individual_risk, highest_risk_affected
from .selector import PopulationUniquesEstimate, estimate_population_uniques


class DisclosureRiskAnalyzer:
    """Disclosure-risk measures for a sample, from a DataFrame or a ready histogram."""

    def __init__(self, pi: float = 0.1, config: Optional[RiskConfig] = None):
        """Initialize the analyzer.

        Args:
            pi: Sampling fraction (sample size / population size). Values
                outside (0, 1] are replaced by ``config.pi_default``.
            config: Estimator configuration (default RiskConfig())
        """
        self.config = config or RiskConfig()
        self.pi = coerce_sampling_fraction(pi, self.config.pi_default)
        self.histogram_: Optional[EquivalenceClassHistogram] = None
        self.qi_columns: Optional[List[str]] = None
        self._data: Optional[pd.DataFrame] = None

    @classmethod
    def from_histogram(
        cls,
        histogram: Mapping[int, int],
        pi: float = 0.1,
        config: Optional[RiskConfig] = None,
    ) -> "DisclosureRiskAnalyzer":
        analyzer = cls(pi=pi, config=config)
        analyzer.histogram_ = as_histogram(histogram)
        return analyzer

    def fit(self, X: pd.DataFrame, qi_columns: List[str]):
        """Build the equivalence-class histogram over the quasi-identifying columns."""
        self.histogram_ = EquivalenceClassHistogram.from_dataframe(X, qi_columns)
        self.qi_columns = list(qi_columns)
        self._data = X
        return self

    def _require_histogram(self) -> EquivalenceClassHistogram:
        if self.histogram_ is None:
            raise ValueError("Analyzer must be fitted (or built from a histogram) first")
        return self.histogram_

    def equivalence_class_risk(self) -> float:
        return equivalence_class_risk(self._require_histogram())

    def highest_individual_risk(self) -> float:
        return highest_individual_risk(self._require_histogram())

    def highest_risk_affected(self) -> float:
        return highest_risk_affected(self._require_histogram())

    def population_uniques_estimate(self) -> PopulationUniquesEstimate:
        return estimate_population_uniques(self.pi, self._require_histogram(), self.config)

    def population_uniques_risk(self) -> float:
        return self.population_uniques_estimate().risk

    def mark_high_risk_records(self) -> pd.Series:
        """True for every record in an equivalence class of the smallest size."""
        if self._data is None:
            raise ValueError("Marking records requires the data; call fit() first")
        sizes = class_sizes(self._data, self.qi_columns)
        return sizes == self._require_histogram().smallest_class_size

    def risk_report(self) -> Dict[str, Any]:
        h = self._require_histogram()
        estimate = self.population_uniques_estimate()
        return {
            'sampling_fraction': self.pi,
            'n_records': h.n,
            'n_equivalence_classes': h.u,
            'sample_uniques': h.c1,
            'histogram': {str(k): v for k, v in h.items()},
            'equivalence_class_risk': self.equivalence_class_risk(),
            'highest_individual_risk': self.highest_individual_risk(),
            'highest_risk_affected': self.highest_risk_affected(),
            'population_uniques_risk': None if np.isnan(estimate.risk) else estimate.risk,
            'population_model': estimate.model,
            'population_model_reason': estimate.reason,
            'models_tried': [
                {'model': r.model, 'value': r.value, 'reason': r.reason}
                for r in estimate.attempts
            ],
            'include_snb_model': self.config.include_snb_model,
        }


def print_risk_report(report: Dict[str, Any]) -> None:
    """Print a formatted disclosure-risk report."""
    print("=" * 80)
    print("Disclosure Risk Report")
    print("=" * 80)

    print(f"\nSample Summary:")
    print(f"  Records: {report.get('n_records', 0):,}")
    print(f"  Equivalence classes: {report.get('n_equivalence_classes', 0):,}")
    print(f"  Sample uniques: {report.get('sample_uniques', 0):,}")
    print(f"  Sampling fraction: {report.get('sampling_fraction', 0):.4f}")

    print(f"\nSample Risk:")
    print(f"  Average (equivalence class) risk: {report.get('equivalence_class_risk', float('nan')):.4f}")
    print(f"  Highest individual risk: {report.get('highest_individual_risk', float('nan')):.4f}")
    print(f"  Classes at highest risk: {report.get('highest_risk_affected', float('nan')):.0f}")

    print(f"\nPopulation Uniqueness:")
    risk = report.get('population_uniques_risk')
    if risk is None:
        print(f"  Not estimable: {report.get('population_model_reason')}")
    else:
        print(f"  Estimated population uniques: {risk:.4%}")
        print(f"  Model: {report.get('population_model')}")
    for attempt in report.get('models_tried', []):
        if attempt['value'] is None:
            print(f"    {attempt['model']}: undefined ({attempt['reason']})")
        else:
            print(f"    {attempt['model']}: {attempt['value']:.6f}")

    print("\n" + "=" * 80)

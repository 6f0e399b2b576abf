#!/usr/bin/env python3
"""Estimate population uniqueness for a few histograms and a synthetic sample."""

import numpy as np
import pandas as pd
from uniqueness_risk import (
    DisclosureRiskAnalyzer,
    RiskConfig,
    estimate_population_uniques,
)
from uniqueness_risk.risk import print_risk_report


def show_selection():
    print("=" * 80)
    print("Model Selection")
    print("=" * 80)
    print()

    cases = [
        ("uniques only", {1: 3}, 0.05),
        ("uniques and pairs, small sample", {1: 5, 2: 1}, 0.05),
        ("long tail, small sample", {1: 400, 2: 150, 3: 70, 4: 40, 5: 20, 6: 10, 8: 5}, 0.05),
        ("long tail, large sample", {1: 400, 2: 150, 3: 70, 4: 40, 5: 20, 6: 10, 8: 5}, 0.3),
    ]
    for config in (RiskConfig(), RiskConfig(include_snb_model=True)):
        print(f"include_snb_model={config.include_snb_model}")
        for name, histogram, pi in cases:
            estimate = estimate_population_uniques(pi, histogram, config)
            tried = ", ".join(
                f"{a.model}={a.value:.5f}" if a.defined else f"{a.model}=undefined"
                for a in estimate.attempts
            )
            print(f"  {name:35s} pi={pi:<5} risk={estimate.risk:.5f} model={estimate.model} [{tried}]")
        print()


def show_dataframe():
    np.random.seed(42)
    n = 2000
    data = pd.DataFrame({
        'age': np.random.randint(18, 90, n),
        'sex': np.random.choice(['F', 'M'], n),
        'zip3': np.random.choice([f"{z:03d}" for z in range(40)], n),
    })
    analyzer = DisclosureRiskAnalyzer(pi=0.02).fit(data, ['age', 'sex', 'zip3'])
    print_risk_report(analyzer.risk_report())
    marked = analyzer.mark_high_risk_records()
    print(f"Records in the highest-risk classes: {int(marked.sum())} of {len(data)}")


if __name__ == "__main__":
    show_selection()
    show_dataframe()

"""Shared test fixtures for uniqueness-risk tests."""

import pytest
import pandas as pd
import numpy as np
from uniqueness_risk.histogram import EquivalenceClassHistogram


@pytest.fixture
def small_histogram():
    """Five sample uniques and one pair."""
    return EquivalenceClassHistogram({1: 5, 2: 1})


@pytest.fixture
def uniques_only_histogram():
    """Only sample uniques, no pairs."""
    return EquivalenceClassHistogram({1: 3})


@pytest.fixture
def no_uniques_histogram():
    """No sample uniques at all."""
    return EquivalenceClassHistogram({2: 4, 3: 2})


@pytest.fixture
def realistic_histogram():
    """Long-tailed histogram similar to a census extract."""
    return EquivalenceClassHistogram({1: 400, 2: 150, 3: 70, 4: 40, 5: 20, 6: 10, 8: 5, 12: 2, 20: 1})


@pytest.fixture
def qi_data():
    """Create small dataset with known equivalence classes on (age, zip)."""
    return pd.DataFrame({
        'age': [30, 30, 30, 41, 41, 52, 63, 74],
        'zip': ['111', '111', '111', '222', '222', '333', '444', '555'],
        'income': [10, 20, 30, 40, 50, 60, 70, 80],
    })


@pytest.fixture
def sample_data():
    """Create random dataset for end-to-end tests."""
    np.random.seed(42)
    n = 500
    data = pd.DataFrame({
        'age': np.random.randint(18, 80, n),
        'sex': np.random.choice(['F', 'M'], n),
        'state': np.random.choice(['CA', 'NY', 'TX', 'FL', 'IL'], n),
        'income': np.random.normal(50000, 20000, n).clip(0),
    })
    return data


@pytest.fixture
def pitman_histogram():
    """Heavy-tailed histogram shaped like a Pitman sample with alpha near 0.5."""
    return EquivalenceClassHistogram({
        1: 500, 2: 125, 3: 62, 4: 39, 5: 27, 6: 21, 7: 16, 8: 14,
        10: 30, 20: 35, 40: 30, 80: 25, 150: 20, 300: 15, 600: 12,
        1200: 10, 2500: 8, 5000: 6, 10000: 3, 20000: 1, 40000: 1,
    })

"""Equivalence-class histograms and the sample statistics derived from them."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

DEFAULT_SAMPLING_FRACTION: float = 0.1


class EquivalenceClassHistogram(Mapping[int, int]):
    """Immutable mapping of class size -> number of classes of that size.

    e.g. ``{1: 5, 2: 1}`` means five sample-unique records and one pair.
    Entries with frequency zero are dropped, so a size is present only when
    classes of that size exist.
    """

    __slots__ = ("_counts", "_n", "_u")

    def __init__(self, counts: Mapping[int, int] = None):
        clean: Dict[int, int] = {}
        for size, freq in dict(counts or {}).items():
            if isinstance(size, bool) or int(size) != size or size < 1:
                raise ValueError(f"Class sizes must be integers >= 1, got {size!r}")
            if isinstance(freq, bool) or int(freq) != freq or freq < 0:
                raise ValueError(f"Frequency for class size {size} must be a non-negative integer, got {freq!r}")
            if freq > 0:
                clean[int(size)] = int(freq)
        self._counts = dict(sorted(clean.items()))
        self._n = sum(size * freq for size, freq in self._counts.items())
        self._u = sum(self._counts.values())

    @classmethod
    def from_array(cls, frequencies: Sequence[int]) -> "EquivalenceClassHistogram":
        """Build from an array whose position i holds the frequency of size i+1."""
        return cls({i + 1: int(f) for i, f in enumerate(frequencies)})

    @classmethod
    def from_dataframe(cls, data: pd.DataFrame, qi_columns: List[str]) -> "EquivalenceClassHistogram":
        """Group records by their quasi-identifiers and count classes per size."""
        sizes = _group_sizes(data, qi_columns)
        counts = sizes.value_counts()
        return cls({int(size): int(freq) for size, freq in counts.items()})

    def __getitem__(self, size: int) -> int:
        return self._counts[size]

    def __iter__(self) -> Iterator[int]:
        return iter(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __repr__(self) -> str:
        return f"EquivalenceClassHistogram({self._counts!r})"

    def __hash__(self) -> int:
        return hash(tuple(self._counts.items()))

    def frequency(self, size: int) -> int:
        return self._counts.get(size, 0)

    @property
    def n(self) -> int:
        """Number of records in the sample."""
        return self._n

    @property
    def u(self) -> int:
        """Number of distinct equivalence classes in the sample."""
        return self._u

    @property
    def c1(self) -> int:
        return self.frequency(1)

    @property
    def c2(self) -> int:
        return self.frequency(2)

    @property
    def smallest_class_size(self) -> int:
        return min(self._counts) if self._counts else 0

    @property
    def largest_class_size(self) -> int:
        return max(self._counts) if self._counts else 0

    def sizes(self) -> np.ndarray:
        return np.fromiter(self._counts.keys(), dtype=float, count=len(self._counts))

    def frequencies(self) -> np.ndarray:
        return np.fromiter(self._counts.values(), dtype=float, count=len(self._counts))


def as_histogram(histogram: Mapping[int, int]) -> EquivalenceClassHistogram:
    if isinstance(histogram, EquivalenceClassHistogram):
        return histogram
    return EquivalenceClassHistogram(histogram)


def _qi_groups(data: pd.DataFrame, qi_columns: List[str]):
    """Group records by their quasi-identifiers; missing values form their own class."""
    if not qi_columns:
        raise ValueError("At least one quasi-identifying column is required.")
    missing = [c for c in qi_columns if c not in data.columns]
    if missing:
        raise ValueError(f"Quasi-identifying columns not found in data: {missing}")
    if len(data) < 2:
        raise ValueError("At least two records are required to build an equivalence-class histogram.")
    return data.groupby(list(qi_columns), dropna=False, sort=False, observed=True)


def _group_sizes(data: pd.DataFrame, qi_columns: List[str]) -> pd.Series:
    return _qi_groups(data, qi_columns).size()


def class_sizes(data: pd.DataFrame, qi_columns: List[str]) -> pd.Series:
    """Size of the equivalence class each record belongs to, aligned with ``data``."""
    labels = _qi_groups(data, qi_columns).ngroup()
    return labels.map(labels.value_counts()).astype(int)


def coerce_sampling_fraction(pi: float, default: float = DEFAULT_SAMPLING_FRACTION) -> float:
    """Return ``pi`` if it lies in (0, 1], otherwise ``default``."""
    try:
        value = float(pi)
    except (TypeError, ValueError):
        value = math.nan
    if not (0.0 < value <= 1.0):
        logger.debug("Sampling fraction %r outside (0, 1]; using %s", pi, default)
        return float(default)
    return value


@dataclass(frozen=True)
class SampleStats:
    """Sample quantities shared by every population model."""
    pi: float
    n: int
    u: int
    c1: int
    c2: int

    @classmethod
    def from_histogram(cls, histogram: Mapping[int, int], pi: float) -> "SampleStats":
        if not (0.0 < float(pi) <= 1.0):
            raise ValueError(f"Sampling fraction must be in (0, 1], got {pi!r}")
        h = as_histogram(histogram)
        return cls(pi=float(pi), n=h.n, u=h.u, c1=h.c1, c2=h.c2)

    @property
    def population_size(self) -> float:
        """Estimated population size N = n / pi (not integral in general)."""
        return self.n / self.pi

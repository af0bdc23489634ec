"""
Numeric primitives for comparing a current value against its history.

All functions are pure. Degenerate baselines (zero spread, zero mean)
yield ``0`` instead of raising, so "no signal" never looks like an
anomaly.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence


class EmptyInputError(ValueError):
    """Raised when a statistic is requested over an empty sequence."""


@dataclass(frozen=True)
class ComparisonStats:
    """Profile of *current* relative to a window of historical values."""

    mean: float
    variance: float
    std_dev: float
    z_score: float
    percentage_change: float


def mean(values: Sequence[float]) -> float:
    if not values:
        raise EmptyInputError("mean() requires at least one value")
    return sum(values) / len(values)


def variance(values: Sequence[float], mean: float) -> float:
    """Population variance of *values* around a precomputed *mean*."""
    if not values:
        raise EmptyInputError("variance() requires at least one value")
    return sum((v - mean) ** 2 for v in values) / len(values)


def z_score(current: float, mean: float, std_dev: float) -> float:
    if std_dev == 0:
        return 0.0
    return (current - mean) / std_dev


def percentage_change(current: float, mean: float) -> float:
    # no positive baseline (nothing billed, or a credit such as a discount)
    if mean <= 0:
        return 0.0
    return (current - mean) / mean * 100


def compare(current: float, historical_values: Sequence[float]) -> ComparisonStats:
    """
    Compute the full statistical profile used by category anomaly checks.

    Parameters
    ----------
    current:
        The value observed in the period under analysis.
    historical_values:
        One value per historical period. Must not be empty.
    """

    avg = mean(historical_values)
    var = variance(historical_values, avg)
    std = math.sqrt(var)
    return ComparisonStats(
        mean=avg,
        variance=var,
        std_dev=std,
        z_score=z_score(current, avg, std),
        percentage_change=percentage_change(current, avg),
    )

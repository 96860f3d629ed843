"""
Random draws for the replenishment simulator.

Demand and lead times are Normal(mean, std_dev) variates floored at zero.
All randomness flows through an explicit numpy Generator so seeded runs are
reproducible and parallel workers can own independent streams.
"""
from typing import Optional, Union

import numpy as np

from ..utils.numeric import round_half_up

RandomSource = Union[None, int, np.random.SeedSequence, np.random.Generator]


def make_rng(source: RandomSource = None) -> np.random.Generator:
    """
    Return a Generator for *source*.

    None draws fresh OS entropy, an int or SeedSequence seeds a new PCG64
    stream, and an existing Generator is returned unchanged.
    """
    return np.random.default_rng(source)


def sample_demand(
    rng: np.random.Generator,
    mean: float,
    std_dev: float,
    size: Optional[int] = None,
):
    """
    Draw daily demand from Normal(mean, std_dev), clamped to be non-negative.

    Args:
        rng: Random generator (consumed, no other side effects)
        mean: Expected demand (>= 0)
        std_dev: Demand standard deviation (>= 0)
        size: Number of draws; None returns a single float

    Returns:
        float, or ndarray of shape (size,) when size is given

    Examples:
        >>> rng = make_rng(42)
        >>> sample_demand(rng, 10.0, 0.0)
        10.0
    """
    if mean < 0:
        raise ValueError(f"mean must be >= 0, got {mean}")
    if std_dev < 0:
        raise ValueError(f"std_dev must be >= 0, got {std_dev}")

    draws = rng.normal(mean, std_dev, size=size)
    if size is None:
        return max(0.0, float(draws))
    return np.maximum(draws, 0.0)


def sample_lead_time(rng: np.random.Generator, mean_days: float, std_dev_days: float) -> int:
    """Draw a whole-day lead time: round(max(0, Normal(mean_days, std_dev_days)))."""
    return round_half_up(sample_demand(rng, mean_days, std_dev_days))

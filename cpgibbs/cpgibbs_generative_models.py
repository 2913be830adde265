"""
Module for generating sample data from the single Poisson changepoint model.
Useful for testing the Gibbs sampler on data with a known changepoint.
"""

from typing import NamedTuple

import numpy as np

from .cpgibbs import GammaPriors
from .cpgibbs_types import IntArray, SeedLike


class SyntheticData(NamedTuple):
    """Observations together with the parameters they were generated from."""

    observations: IntArray
    change_point: int
    rate_before: float
    rate_after: float


def generate_data(
    n: int,
    change_point: int,
    rate_before: float,
    rate_after: float,
    seed: SeedLike = None,
) -> SyntheticData:
    """Generate a count time series with a single changepoint.

    The first `change_point` observations are drawn from `Poisson(rate_before)`,
    the remaining `n - change_point` observations from `Poisson(rate_after)`.

    Args:
        n (int): The length of the wanted time series. Must be positive.
        change_point (int): Number of observations before the change. Must be in `[1, n]`.
        rate_before (float): Poisson rate up to and including the changepoint. Must be nonnegative.
        rate_after (float): Poisson rate after the changepoint. Must be nonnegative.
        seed (SeedLike, optional): Seed of the random number generator. Defaults to `None`.

    Returns:
        SyntheticData: (observations, change_point, rate_before, rate_after)
    """
    if n <= 0:
        raise ValueError(f"`n` must be a positive integer, but got {n}.")
    if change_point < 1 or change_point > n:
        raise ValueError(
            f"`change_point` must be in [1, {n}], but got {change_point}."
        )
    if rate_before < 0 or rate_after < 0:
        raise ValueError(
            f"Rates must be nonnegative, but got {rate_before} and {rate_after}."
        )

    rng = np.random.default_rng(seed)
    observations = np.concatenate(
        (
            rng.poisson(rate_before, change_point),
            rng.poisson(rate_after, n - change_point),
        )
    ).astype(np.int64)
    return SyntheticData(observations, change_point, rate_before, rate_after)


def sample_from_prior(
    n: int, priors: GammaPriors, seed: SeedLike = None
) -> SyntheticData:
    """Generate a count time series whose parameters are drawn from the model's prior.

    Both rates are drawn from their Gamma priors (`scale = 1 / rate`) and the changepoint is drawn
    uniformly from `1, ..., n`.

    Args:
        n (int): The length of the wanted time series. Must be positive.
        priors (GammaPriors): Hyperparameters of the Gamma priors of both rates.
        seed (SeedLike, optional): Seed of the random number generator. Defaults to `None`.
    """
    if n <= 0:
        raise ValueError(f"`n` must be a positive integer, but got {n}.")
    rng = np.random.default_rng(seed)
    rate_before = float(rng.gamma(priors.a, 1.0 / priors.b))
    rate_after = float(rng.gamma(priors.c, 1.0 / priors.d))
    change_point = int(rng.integers(1, n, endpoint=True))
    return generate_data(n, change_point, rate_before, rate_after, seed=rng)

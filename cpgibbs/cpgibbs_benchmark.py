"""
Timing of the changepoint weight computation.

The Gibbs sampler needs the sum of the first `k` observations for every candidate `k`
in every cycle. Summing from scratch costs `O(n)` per candidate, looking the sums up in
a table of cumulative sums computed once costs `O(1)`. This module measures the difference;
both variants compute identical weights.
"""

import time
from typing import NamedTuple

import numpy as np

from .cpgibbs import change_point_log_weights, change_point_log_weights_naive
from .cpgibbs_types import IntArray
from .cpgibbs_utils import prefix_sums


class WeightTimings(NamedTuple):
    """Mean wall-clock seconds per weight computation."""

    naive: float
    prefix: float

    @property
    def speedup(self) -> float:
        return self.naive / self.prefix


def time_log_weights(
    observations: IntArray,
    rate_before: float = 3.0,
    rate_after: float = 1.0,
    repeats: int = 100,
) -> WeightTimings:
    """Times the naive and the prefix-table weight computation for all candidates `1, ..., n`.

    The prefix table is built once outside of the timed loop, as it is in the sampler.

    Args:
        observations (IntArray): The counts `x_{1}, ..., x_{n}`.
        rate_before (float, optional): Rate before the changepoint. Defaults to 3.0.
        rate_after (float, optional): Rate after the changepoint. Defaults to 1.0.
        repeats (int, optional): Number of timed computations per variant. Defaults to 100.
    """
    if repeats <= 0:
        raise ValueError(f"`repeats` must be a positive integer, but got {repeats}.")
    observations = np.asarray(observations, dtype=np.int64)
    candidates = np.arange(1, len(observations) + 1)
    prefix = prefix_sums(observations)

    start = time.perf_counter()
    for _ in range(repeats):
        change_point_log_weights_naive(candidates, observations, rate_before, rate_after)
    naive = (time.perf_counter() - start) / repeats

    start = time.perf_counter()
    for _ in range(repeats):
        change_point_log_weights(candidates, prefix, rate_before, rate_after)
    prefix_time = (time.perf_counter() - start) / repeats

    return WeightTimings(naive=naive, prefix=prefix_time)

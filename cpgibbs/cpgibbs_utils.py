import numpy as np
from scipy.special import logsumexp

from cpgibbs.cpgibbs_types import FloatArray, IntArray


def stable_log_sum_exp(values: FloatArray) -> float:
    """Computes `log(sum(exp(values)))` without overflow or underflow.

    The maximum `m` of `values` is factored out first, i.e. the result is computed as
    `m + log(sum(exp(values - m)))`, so every exponentiated term is at most `1.0`
    and at least one term equals `1.0`. This keeps the result finite for finite inputs
    far outside the range of `exp`, e.g. `[1000.0, 1000.0]` or `[-1000.0, -1001.0]`.

    A single value is returned unchanged.

    Args:
        values (FloatArray): Non-empty sequence of reals.

    Returns:
        float: `log(sum(exp(values)))`.
    """
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        raise ValueError("`values` must not be empty.")
    return float(logsumexp(values))


def prefix_sums(observations: IntArray) -> IntArray:
    """Cumulative sums of `observations` with a leading zero.

    `prefix[k]` is the sum of the first `k` observations, so `prefix[0] = 0` and
    `prefix[n] = sum(observations)` for `n = len(observations)`.
    """
    prefix = np.zeros(len(observations) + 1, dtype=np.int64)
    np.cumsum(observations, out=prefix[1:])
    return prefix


def sample_index(probabilities: FloatArray, rng: np.random.Generator) -> int:
    """Draws a position from a discrete distribution by inverse-CDF sampling.

    Exactly one uniform number is consumed from `rng`. The returned position is the
    first one whose cumulative probability exceeds the uniform draw. If rounding makes
    the total fall short of the draw, the last position with non-zero probability wins.

    Args:
        probabilities (FloatArray): Probabilities of each position (should add up to 1.0,
            although this is not checked).
        rng (np.random.Generator): Source of the uniform draw.

    Returns:
        int: A position in `[0, len(probabilities))`.
    """
    cdf = np.cumsum(probabilities)
    u = rng.random()
    idx = int(np.searchsorted(cdf, u, side="right"))
    if idx >= len(cdf):
        idx = int(np.flatnonzero(probabilities > 0.0)[-1])
    return idx

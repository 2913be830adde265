"""
Gibbs sampling for a single Poisson changepoint

This module implements a Gibbs sampler for the classic *single changepoint* model of a count time series
`x_{1}, ..., x_{n}`: the observations up to and including the changepoint `k` are iid
`Poisson(rate_before)`, the observations after it are iid `Poisson(rate_after)`:

    x_{t} ~ Poisson(rate_before)    for t = 1, ..., k
    x_{t} ~ Poisson(rate_after)     for t = k + 1, ..., n

The rates have conjugate Gamma priors (shape/**rate** parameterization throughout),
`rate_before ~ Gamma(a, b)` and `rate_after ~ Gamma(c, d)`, and the changepoint has a discrete-uniform prior
over a set of candidate indices within `1, ..., n`. A changepoint `k = n` means that the segment after
the changepoint is empty.

The full conditionals are

    p(rate_before|k, x) = Gamma(a + S_{k}, b + k)
    p(rate_after|k, x)  = Gamma(c + S_{n} - S_{k}, d + n - k)
    p(k|rate_before, rate_after, x) ∝ exp(k * (rate_after - rate_before)) * (rate_before / rate_after) ** S_{k}

where `S_{k}` is the sum of the first `k` observations. The sampler alternately draws from them.

The main class is `PoissonChangepointGibbs`, which contains the relevant documentation.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, Literal, NamedTuple

import numpy as np

from .cpgibbs_types import FloatArray, IntArray, SeedLike
from .cpgibbs_utils import prefix_sums, sample_index, stable_log_sum_exp

logger = logging.getLogger(__name__)

_TINY = np.finfo(np.float64).tiny

"""
How the changepoint weights are computed in each cycle.

`"prefix"` looks up segment sums in a table that is computed once before sampling.
`"naive"` recomputes every segment sum from the observations in every cycle. Both consume
the random number generator identically and produce bit-identical chains; `"naive"` only
exists to measure what the prefix table saves.
"""
WeightMethod = Literal["prefix", "naive"]


@dataclass(frozen=True)
class GammaPriors:
    """Hyperparameters of the Gamma priors of both Poisson rates.

    Both priors use the shape/rate parameterization, i.e. `Gamma(shape, rate)` has mean `shape / rate`.

    Attributes:
        a (float): Shape of the prior of the rate before the changepoint.
        b (float): Rate of the prior of the rate before the changepoint.
        c (float): Shape of the prior of the rate after the changepoint.
        d (float): Rate of the prior of the rate after the changepoint.
    """

    a: float
    b: float
    c: float
    d: float

    def __post_init__(self) -> None:
        for name in ("a", "b", "c", "d"):
            value = getattr(self, name)
            if not np.isfinite(value) or value <= 0:
                raise ValueError(
                    f"`{name}` must be a positive real number, but got {value}."
                )


class ChainSample(NamedTuple):
    """A single state of the chain."""

    rate_before: float
    rate_after: float
    change_point: int


@dataclass(frozen=True)
class GibbsChain:
    """The samples of a completed run, stored column-wise.

    Behaves like an ordered, read-only sequence of `ChainSample` triples: `len(chain)` is the number
    of cycles and `chain[i]` is the state after cycle `i + 1`.
    """

    rate_before: FloatArray
    rate_after: FloatArray
    change_point: IntArray

    def __post_init__(self) -> None:
        if not (len(self.rate_before) == len(self.rate_after) == len(self.change_point)):
            raise ValueError("All columns of a chain must have the same length.")
        for column in (self.rate_before, self.rate_after, self.change_point):
            column.flags.writeable = False

    def __len__(self) -> int:
        return len(self.change_point)

    def __getitem__(self, i: int) -> ChainSample:
        return ChainSample(
            float(self.rate_before[i]),
            float(self.rate_after[i]),
            int(self.change_point[i]),
        )

    def __iter__(self) -> Iterator[ChainSample]:
        for i in range(len(self)):
            yield self[i]

    def discard(self, burn_in: int) -> "GibbsChain":
        """Returns a new chain without the first `burn_in` samples.

        Args:
            burn_in (int): Number of leading samples to drop. Must leave at least one sample.
        """
        if burn_in < 0 or burn_in >= len(self):
            raise ValueError(
                f"`burn_in` must be in [0, {len(self)}), but got {burn_in}."
            )
        return GibbsChain(
            self.rate_before[burn_in:].copy(),
            self.rate_after[burn_in:].copy(),
            self.change_point[burn_in:].copy(),
        )


@dataclass(frozen=True)
class ChainSummary:
    """Point estimates derived from a chain.

    Attributes:
        median_change_point (float): Posterior median of the changepoint.
        mean_rate_before (float): Posterior mean of the rate before the changepoint.
        mean_rate_after (float): Posterior mean of the rate after the changepoint.
        change_points (IntArray): Distinct sampled changepoints in ascending order.
        change_point_probs (FloatArray): Fraction of samples at each of `change_points`.
    """

    median_change_point: float
    mean_rate_before: float
    mean_rate_after: float
    change_points: IntArray = field(repr=False)
    change_point_probs: FloatArray = field(repr=False)


class PoissonChangepointGibbs:
    """Gibbs sampler for the joint posterior `p(rate_before, rate_after, k|x_{1:n})`.

    See the module documentation for the model. The observations, the priors and the candidate
    changepoints are fixed on construction; the sums `S_{0}, ..., S_{n}` of the first `k` observations
    are computed once and shared by all runs.

    Each call to `run()` produces an independent chain. In each cycle the sampler draws, in this order,

        1. `rate_before` given the current `k`,
        2. `rate_after` given the current `k`,
        3. `k` given the `rate_before` and `rate_after` drawn in steps 1 and 2,

    and stores the resulting triple. The order of the draws is also the order in which the random
    number generator is consumed (gamma, gamma, uniform), so a run is bit-for-bit reproducible
    given its seed.

    Usage:
        ```python

        counts = coal_mining_disasters()
        sampler = PoissonChangepointGibbs(counts, GammaPriors(a=4, b=1, c=1, d=2))
        chain = sampler.run(10000, initial_rate_after=1.0, initial_change_point=40, seed=42)
        k_median = posterior_median_change_point(chain)

        ```
    """

    def __init__(
        self,
        observations: IntArray,
        priors: GammaPriors,
        candidate_indices: IntArray | None = None,
    ) -> None:
        """Ctor

        Args:
            observations (IntArray): The counts `x_{1}, ..., x_{n}`. Must be non-empty and non-negative integers.
            priors (GammaPriors): Hyperparameters of the Gamma priors of both rates.
            candidate_indices (IntArray | None, optional): Strictly increasing changepoint candidates within
            `[1, n]`, over which the prior of `k` is uniform. Defaults to `None`, which means `1, ..., n`.
        """
        self._observations: IntArray = _validated_observations(observations)
        self._n: int = len(self._observations)
        self._priors: GammaPriors = priors
        if candidate_indices is None:
            self._candidate_indices: IntArray = np.arange(1, self._n + 1)
        else:
            self._candidate_indices = _validated_candidates(candidate_indices, self._n)
        self._candidate_indices.flags.writeable = False
        self._prefix: IntArray = prefix_sums(self._observations)
        self._prefix.flags.writeable = False
        self._total: int = int(self._prefix[-1])

    @property
    def n(self) -> int:
        """Number of observations."""
        return self._n

    @property
    def observations(self) -> IntArray:
        return self._observations

    @property
    def candidate_indices(self) -> IntArray:
        return self._candidate_indices

    @property
    def prefix(self) -> IntArray:
        """`prefix[k]` is the sum of the first `k` observations, `k = 0, ..., n`."""
        return self._prefix

    def run(
        self,
        nsim: int,
        initial_rate_after: float,
        initial_change_point: int,
        seed: SeedLike = None,
        method: WeightMethod = "prefix",
    ) -> GibbsChain:
        """Runs the sampler for `nsim` cycles.

        All arguments are validated before the first draw, so either a complete chain is
        returned or nothing at all.

        Args:
            nsim (int): Number of cycles. Must be positive.
            initial_rate_after (float): Initial `rate_after`. Must be positive. As the first cycle
            draws both rates given the initial changepoint, this value never enters a draw.
            initial_change_point (int): Initial changepoint `k`. Must be in `[1, n]`.
            seed (SeedLike, optional): Seed of the random number generator, or a `np.random.Generator`
            that is used (and advanced) as is. Defaults to `None` (fresh entropy).
            method (WeightMethod, optional): How the changepoint weights are computed. Defaults to `"prefix"`.

        Returns:
            GibbsChain: The `nsim` sampled triples `(rate_before, rate_after, change_point)`.
        """
        if isinstance(nsim, bool) or not isinstance(nsim, (int, np.integer)) or nsim <= 0:
            raise ValueError(f"`nsim` must be a positive integer, but got {nsim}.")
        if not np.isfinite(initial_rate_after) or initial_rate_after <= 0:
            raise ValueError(
                f"`initial_rate_after` must be a positive real number, but got {initial_rate_after}."
            )
        if not isinstance(initial_change_point, (int, np.integer)) or not (
            1 <= initial_change_point <= self._n
        ):
            raise ValueError(
                f"`initial_change_point` must be an integer in [1, {self._n}], but got {initial_change_point}."
            )
        if method not in ("prefix", "naive"):
            raise ValueError(
                f"`method` must be 'prefix' or 'naive', but got {method!r}."
            )

        logger.debug(
            "Running %d cycles on %d observations (method=%s, priors=%s).",
            nsim,
            self._n,
            method,
            self._priors,
        )

        rng = np.random.default_rng(seed)
        a, b, c, d = self._priors.a, self._priors.b, self._priors.c, self._priors.d
        n, total = self._n, self._total

        rate_before_samples = np.empty(nsim, dtype=np.float64)
        rate_after_samples = np.empty(nsim, dtype=np.float64)
        change_point_samples = np.empty(nsim, dtype=np.int64)

        k = int(initial_change_point)
        rate_after = float(initial_rate_after)
        for i in range(nsim):
            s_k = self._segment_sum(k, method)
            rate_before = _draw_gamma(rng, a + s_k, b + k)
            rate_after = _draw_gamma(rng, c + total - s_k, d + n - k)
            if method == "naive":
                log_w = change_point_log_weights_naive(
                    self._candidate_indices, self._observations, rate_before, rate_after
                )
            else:
                log_w = change_point_log_weights(
                    self._candidate_indices, self._prefix, rate_before, rate_after
                )
            k = int(self._candidate_indices[sample_index(_normalize(log_w), rng)])

            rate_before_samples[i] = rate_before
            rate_after_samples[i] = rate_after
            change_point_samples[i] = k

        chain = GibbsChain(rate_before_samples, rate_after_samples, change_point_samples)
        if logger.isEnabledFor(logging.INFO):
            logger.info(
                "Finished %d cycles, posterior median changepoint: %s.",
                nsim,
                posterior_median_change_point(chain),
            )
        return chain

    def _segment_sum(self, k: int, method: WeightMethod) -> int:
        if method == "naive":
            return _naive_sum(self._observations, k)
        return int(self._prefix[k])


def run_sampler(
    nsim: int,
    observations: IntArray,
    a: float,
    b: float,
    c: float,
    d: float,
    candidate_indices: IntArray | None,
    initial_rate_after: float,
    initial_change_point: int,
    seed: SeedLike = None,
    method: WeightMethod = "prefix",
) -> GibbsChain:
    """Convenience function which runs a `PoissonChangepointGibbs` sampler once.

    See `PoissonChangepointGibbs` and `PoissonChangepointGibbs.run()` for the arguments.
    """
    sampler = PoissonChangepointGibbs(
        observations, GammaPriors(a, b, c, d), candidate_indices
    )
    return sampler.run(
        nsim, initial_rate_after, initial_change_point, seed=seed, method=method
    )


def change_point_log_weights(
    candidate_indices: IntArray,
    prefix: IntArray,
    rate_before: float,
    rate_after: float,
) -> FloatArray:
    """Unnormalized log-probabilities `log p(k|rate_before, rate_after, x)` of each candidate `k`.

    `log_w[j] = k_j * (rate_after - rate_before) + S_{k_j} * log(rate_before / rate_after)`,
    which is the log-likelihood of the data given a changepoint at `k_j` up to a constant
    that does not depend on `k_j`.

    Args:
        candidate_indices (IntArray): Candidate changepoints `k_j` within `[1, n]`.
        prefix (IntArray): `prefix[k]` is the sum of the first `k` observations (see `prefix_sums()`).
        rate_before (float): Rate before the changepoint. Must be positive.
        rate_after (float): Rate after the changepoint. Must be positive.

    Returns:
        FloatArray: One log-weight per candidate.
    """
    _check_rates(rate_before, rate_after)
    candidate_indices = np.asarray(candidate_indices)
    prefix = np.asarray(prefix)
    log_ratio = _log_ratio(rate_before, rate_after)
    return candidate_indices * (rate_after - rate_before) + prefix[candidate_indices] * log_ratio


def change_point_log_weights_naive(
    candidate_indices: IntArray,
    observations: IntArray,
    rate_before: float,
    rate_after: float,
) -> FloatArray:
    """Same as `change_point_log_weights()`, but recomputes each segment sum `S_{k_j}` from the observations.

    Costs `O(n)` per candidate instead of a table lookup. The per-candidate arithmetic is identical,
    so the result is bit-identical to `change_point_log_weights()` with `prefix = prefix_sums(observations)`.
    """
    _check_rates(rate_before, rate_after)
    log_ratio = _log_ratio(rate_before, rate_after)
    log_w = np.empty(len(candidate_indices), dtype=np.float64)
    for j, k in enumerate(candidate_indices):
        log_w[j] = k * (rate_after - rate_before) + _naive_sum(observations, k) * log_ratio
    return log_w


def change_point_probabilities(
    candidate_indices: IntArray,
    prefix: IntArray,
    rate_before: float,
    rate_after: float,
) -> FloatArray:
    """Full conditional `p(k|rate_before, rate_after, x)` over the candidates.

    See `change_point_log_weights()` for the arguments.

    Returns:
        FloatArray: Probability of each candidate; adds up to 1.0.
    """
    return _normalize(
        change_point_log_weights(candidate_indices, prefix, rate_before, rate_after)
    )


def sample_change_point(
    candidate_indices: IntArray,
    prefix: IntArray,
    rate_before: float,
    rate_after: float,
    rng: np.random.Generator,
) -> int:
    """Draws a changepoint from `p(k|rate_before, rate_after, x)` by inverse-CDF sampling.

    Consumes exactly one uniform number from `rng`. See `change_point_log_weights()` for the other arguments.
    """
    probs = change_point_probabilities(candidate_indices, prefix, rate_before, rate_after)
    return int(candidate_indices[sample_index(probs, rng)])


def posterior_median_change_point(chain: GibbsChain) -> float:
    """Median of the sampled changepoints.

    For an even number of samples, this is the mean of the two central values.
    """
    if len(chain) == 0:
        raise ValueError("`chain` must not be empty.")
    return float(np.median(chain.change_point))


def summarize_chain(chain: GibbsChain, burn_in: int = 0) -> ChainSummary:
    """Summarizes the posterior represented by `chain`.

    Args:
        chain (GibbsChain): A completed chain.
        burn_in (int, optional): Number of leading samples to ignore. Defaults to 0.

    Returns:
        ChainSummary: Posterior median changepoint, posterior mean rates and the
        empirical distribution of the changepoint.
    """
    if burn_in:
        chain = chain.discard(burn_in)
    change_points, counts = np.unique(chain.change_point, return_counts=True)
    return ChainSummary(
        median_change_point=posterior_median_change_point(chain),
        mean_rate_before=float(np.mean(chain.rate_before)),
        mean_rate_after=float(np.mean(chain.rate_after)),
        change_points=change_points,
        change_point_probs=counts / len(chain),
    )


def _normalize(log_w: FloatArray) -> FloatArray:
    return np.exp(log_w - stable_log_sum_exp(log_w))


def _draw_gamma(rng: np.random.Generator, shape: float, rate: float) -> float:
    # numpy's gamma is parameterized by scale = 1 / rate. Small shapes can underflow
    # to 0.0, which is not a valid rate.
    return max(float(rng.gamma(shape, 1.0 / rate)), _TINY)


def _log_ratio(rate_before: float, rate_after: float) -> float:
    # Difference of logs, as `rate_before / rate_after` can underflow for extreme rates.
    return float(np.log(rate_before) - np.log(rate_after))


def _naive_sum(observations: IntArray, k: int) -> int:
    segment_sum = 0
    for x in observations[:k]:
        segment_sum += int(x)
    return segment_sum


def _check_rates(rate_before: float, rate_after: float) -> None:
    if not np.isfinite(rate_before) or rate_before <= 0:
        raise ValueError(
            f"`rate_before` must be a positive real number, but got {rate_before}."
        )
    if not np.isfinite(rate_after) or rate_after <= 0:
        raise ValueError(
            f"`rate_after` must be a positive real number, but got {rate_after}."
        )


def _validated_observations(observations: IntArray) -> IntArray:
    x = np.asarray(observations)
    if x.ndim != 1 or x.size == 0:
        raise ValueError(
            f"`observations` must be a non-empty one-dimensional sequence, but got shape {x.shape}."
        )
    if not np.issubdtype(x.dtype, np.integer):
        if not np.issubdtype(x.dtype, np.floating) or not np.all(
            np.isfinite(x) & (x == np.floor(x))
        ):
            raise ValueError("`observations` must be integer counts.")
    if np.any(x < 0):
        raise ValueError("`observations` must be non-negative.")
    x = x.astype(np.int64)
    x.flags.writeable = False
    return x


def _validated_candidates(candidate_indices: IntArray, n: int) -> IntArray:
    k = np.asarray(candidate_indices)
    if k.ndim != 1 or k.size == 0 or not np.issubdtype(k.dtype, np.integer):
        raise ValueError(
            "`candidate_indices` must be a non-empty one-dimensional sequence of integers."
        )
    if k[0] < 1 or k[-1] > n or np.any(np.diff(k) <= 0):
        raise ValueError(
            f"`candidate_indices` must be strictly increasing within [1, {n}]."
        )
    return k.astype(np.int64)

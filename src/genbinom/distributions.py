import math
import warnings
from dataclasses import dataclass

import numpy as np
import pandas as pd  # type: ignore
from numpy.typing import ArrayLike, NDArray
from scipy import stats  # type: ignore

from .models.stats import (
    BinomialDistribution,
    GeneralizedBinomialDistribution,
    SamplerConfig,
    is_integral,
)

__all__ = [
    "Binomial",
    "GoodnessOfFit",
    "cdf",
    "fail_prob",
    "frequency_table",
    "goodness_of_fit",
    "log_pmf",
    "make_binomial",
    "mean",
    "num_trials",
    "pmf",
    "sample",
    "sample_many",
    "succ_prob",
    "variance",
]

Binomial = BinomialDistribution | GeneralizedBinomialDistribution


def make_binomial(n: float, p: float, *, check_args: bool = True) -> Binomial:
    """Build a binomial distribution for a possibly non-integral trial count.

    Args:
        n: Number of trials (n >= 0).
        p: Success probability (0 <= p <= 1).
        check_args: Validate the parameters.

    Returns:
        ``BinomialDistribution`` when ``n`` is a whole number, otherwise
        ``GeneralizedBinomialDistribution``.

    Raises:
        DomainError: If the parameters are invalid and ``check_args`` is set.

    Examples:
        >>> make_binomial(10, 0.5)
        BinomialDistribution(n=10, p=0.5)
        >>> make_binomial(7.2, 0.9)
        GeneralizedBinomialDistribution(n=7.2, p=0.9)
    """
    if is_integral(n):
        return BinomialDistribution(n, p, check_args=check_args)
    return GeneralizedBinomialDistribution(n, p, check_args=check_args)


def mean(d: Binomial) -> float:
    return d.mean


def variance(d: Binomial) -> float:
    return d.variance


def num_trials(d: Binomial) -> float:
    return d.num_trials


def succ_prob(d: Binomial) -> float:
    return d.succ_prob


def fail_prob(d: Binomial) -> float:
    return d.fail_prob


def log_pmf(d: Binomial, k: ArrayLike) -> NDArray:
    """Log probability of observing ``k``; ``-inf`` outside the support.

    Examples:
        >>> d = make_binomial(5.7, 0.3)
        >>> float(log_pmf(d, 6))
        -inf
    """
    return d.log_pmf(k)


def pmf(d: Binomial, k: ArrayLike) -> NDArray:
    return d.pmf(k)


def cdf(d: Binomial, k: ArrayLike) -> NDArray:
    return d.cdf(k)


def sample(rng: np.random.Generator, d: Binomial) -> int:
    """Draw a single value in ``[0, floor(n)]``.

    Examples:
        >>> rng = np.random.default_rng(0)
        >>> sample(rng, make_binomial(0.0, 0.5))
        0
        >>> 0 <= sample(rng, make_binomial(5.7, 0.3)) <= 5
        True
    """
    return int(d.sample(1, rng=rng)[0])


def sample_many(
    rng: np.random.Generator,
    d: Binomial,
    n_samples: int,
    *,
    config: SamplerConfig | None = None,
) -> NDArray:
    """Draw ``n_samples`` values, optionally with custom sampler tunables.

    ``config`` only affects the generalized distribution; the standard
    binomial never needs the rejection sampler.
    """
    if config is not None and isinstance(d, GeneralizedBinomialDistribution):
        return d.sample(n_samples, rng=rng, config=config)
    return d.sample(n_samples, rng=rng)


def frequency_table(samples: ArrayLike, d: Binomial) -> pd.DataFrame:
    """Tabulate observed and expected counts over the support of ``d``.

    Args:
        samples: Integer draws, all within ``[0, floor(n)]``.
        d: Distribution the draws are compared against.

    Returns:
        DataFrame with columns:
            - 'value': Support point
            - 'count': Number of draws equal to the value
            - 'expected': Expected number of draws under ``d``

    Raises:
        ValueError: If a draw falls outside the support.

    Examples:
        >>> d = make_binomial(2.5, 0.5)
        >>> table = frequency_table(np.array([0, 1, 1, 2]), d)
        >>> table["value"].tolist()
        [0, 1, 2]
        >>> table["count"].tolist()
        [1, 2, 1]
        >>> bool(np.isclose(table["expected"].sum(), 4.0))
        True
    """
    draws = np.asarray(samples, dtype=np.int64)
    m = math.floor(d.num_trials)

    values, counts = np.unique(draws, return_counts=True)
    if values.size and (values[0] < 0 or values[-1] > m):
        raise ValueError(f"Samples must lie in [0, {m}]")

    support = np.arange(m + 1)
    observed = np.zeros(m + 1, dtype=np.int64)
    observed[values] = counts

    return pd.DataFrame(
        {
            "value": support,
            "count": observed,
            "expected": observed.sum() * d.pmf(support),
        }
    )


@dataclass(frozen=True, slots=True)
class GoodnessOfFit:
    """Result of a chi-square goodness-of-fit test.

    Attributes:
        statistic: Chi-square statistic.
        pvalue: P-value of the test.
        n_bins: Number of bins after pooling sparse tails.
    """

    statistic: float
    pvalue: float
    n_bins: int


def goodness_of_fit(
    samples: ArrayLike, d: Binomial, *, min_expected: float = 5.0
) -> GoodnessOfFit:
    """Chi-square test of draws against the distribution they came from.

    Support points in either tail whose expected count is below
    ``min_expected`` are pooled into the nearest well-populated bin.

    Args:
        samples: Integer draws.
        d: Distribution under the null hypothesis.
        min_expected: Smallest expected count a bin should have.

    Returns:
        GoodnessOfFit with the statistic, p-value and number of bins.

    Raises:
        ValueError: If fewer than two bins reach ``min_expected``.

    Examples:
        >>> d = make_binomial(10, 0.5)
        >>> draws = d.sample(20_000, seed=1)
        >>> goodness_of_fit(draws, d).n_bins
        11
    """
    table = frequency_table(samples, d)
    observed = table["count"].to_numpy(dtype=float)
    expected = table["expected"].to_numpy(dtype=float)

    populated = np.flatnonzero(expected >= min_expected)
    if populated.size < 2:
        raise ValueError(
            f"Need at least two bins with expected count >= {min_expected}, "
            f"got {populated.size}"
        )

    lo, hi = populated[0], populated[-1]
    obs = observed[lo : hi + 1].copy()
    exp = expected[lo : hi + 1].copy()
    obs[0] += observed[:lo].sum()
    obs[-1] += observed[hi + 1 :].sum()
    exp[0] += expected[:lo].sum()
    exp[-1] += expected[hi + 1 :].sum()

    if np.any(exp < min_expected):
        msg = "Some interior bins are sparse; the chi-square approximation may be poor"
        warnings.warn(msg, RuntimeWarning, stacklevel=2)

    exp *= obs.sum() / exp.sum()
    result = stats.chisquare(obs, exp)
    return GoodnessOfFit(
        statistic=float(result.statistic), pvalue=float(result.pvalue), n_bins=obs.size
    )

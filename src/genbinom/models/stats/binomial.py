from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy import stats  # type: ignore

from ._generics import CountDistribution, CountParams, DomainError


@dataclass(frozen=True)
class BinomialParams(CountParams):
    """Parameters for binomial distributions.

    Attributes:
        n: Number of trials (n >= 0). Integral for the standard binomial,
            any non-negative real for the generalized one.
        p: Success probability (0 <= p <= 1).
    """

    n: float
    p: float


def is_integral(n: float) -> bool:
    """Whether a trial count is a whole number.

    Examples:
        >>> is_integral(10)
        True
        >>> is_integral(10.0)
        True
        >>> is_integral(7.2)
        False
    """
    return float(n).is_integer()


def validate_binomial_params(n: float, p: float) -> None:
    """Check that ``(n, p)`` lie in the binomial parameter domain.

    Args:
        n: Number of trials.
        p: Success probability.

    Raises:
        DomainError: If ``n`` is negative or not finite, or ``p`` is
            outside ``[0, 1]``.

    Examples:
        >>> validate_binomial_params(5.7, 0.3)
        >>> try:
        ...     validate_binomial_params(5.7, 1.5)
        ... except DomainError as err:
        ...     print(err)
        p must lie in [0, 1], got 1.5
    """
    if not np.isfinite(n) or n < 0:
        raise DomainError(f"n must be a finite non-negative number, got {n}")
    if not 0 <= p <= 1:
        raise DomainError(f"p must lie in [0, 1], got {p}")


class BinomialDistribution(CountDistribution[BinomialParams]):
    """Standard binomial distribution with an integral number of trials.

    Passing a non-integral ``n`` does not fail: the constructor hands back a
    ``GeneralizedBinomialDistribution`` instead, so code written against the
    standard binomial keeps working when fed continuous-valued trial counts.

    Examples:
        >>> dist = BinomialDistribution(n=10, p=0.5)
        >>> dist.n
        10
        >>> dist.mean
        5.0
        >>> type(BinomialDistribution(7.2, 0.9)).__name__
        'GeneralizedBinomialDistribution'
    """

    def __new__(cls, n: float = 1, p: float = 0.5, *, check_args: bool = True) -> Any:
        if not is_integral(n):
            from .generalized_binomial import GeneralizedBinomialDistribution

            return GeneralizedBinomialDistribution(n, p, check_args=check_args)
        return super().__new__(cls)

    def __init__(self, n: float = 1, p: float = 0.5, *, check_args: bool = True) -> None:
        """Initialize binomial distribution.

        Args:
            n: Number of trials (integral, n >= 0).
            p: Success probability (0 <= p <= 1).
            check_args: Validate the parameters. Hot loops that validated
                once up front can switch this off.

        Raises:
            DomainError: If the parameters are invalid and ``check_args`` is set.
        """
        if check_args:
            validate_binomial_params(n, p)
        self._params = BinomialParams(n=int(round(n)), p=float(p))

    @property
    def params(self) -> BinomialParams:
        """Distribution parameters, read-only."""
        return self._params

    def __repr__(self) -> str:
        return f"BinomialDistribution(n={self.params.n}, p={round(self.params.p, 4)})"

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.params == other.params

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.params))

    @property
    def n(self) -> int:
        """Number of trials."""
        return int(self.params.n)

    @property
    def p(self) -> float:
        """Success probability."""
        return self.params.p

    @property
    def support_max(self) -> int:
        """Largest value in the support."""
        return self.n

    @property
    def num_trials(self) -> int:
        return self.n

    @property
    def succ_prob(self) -> float:
        return self.params.p

    @property
    def fail_prob(self) -> float:
        return 1.0 - self.params.p

    @property
    def mean(self) -> float:
        return self.n * self.params.p

    @property
    def variance(self) -> float:
        return self.n * self.params.p * (1.0 - self.params.p)

    def log_pmf(self, x: ArrayLike) -> NDArray:
        """Compute binomial log probability mass function.

        Examples:
            >>> dist = BinomialDistribution(n=2, p=0.5)
            >>> bool(np.isclose(dist.log_pmf(1), np.log(0.5)))
            True
            >>> float(dist.log_pmf(3))
            -inf
        """
        return stats.binom.logpmf(x, self.n, self.params.p)

    def pmf(self, x: ArrayLike) -> NDArray:
        """Compute binomial probability mass function.

        Examples:
            >>> dist = BinomialDistribution(n=4, p=0.5)
            >>> probs = dist.pmf(np.arange(5))
            >>> np.allclose(probs, [0.0625, 0.25, 0.375, 0.25, 0.0625])
            True
        """
        return stats.binom.pmf(x, self.n, self.params.p)

    def cdf(self, x: ArrayLike) -> NDArray:
        return stats.binom.cdf(x, self.n, self.params.p)

    def sample(
        self,
        n_samples: int,
        *,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
    ) -> NDArray:
        """Generate samples from binomial distribution.

        Degenerate success probabilities (0 or 1) are answered without
        touching the random number generator.

        Args:
            n_samples: Number of samples to generate.
            rng: Random number generator for reproducible sampling.
            seed: Random seed (used only if rng is None).

        Returns:
            Array of binomial samples.

        Raises:
            ValueError: If n_samples is negative.

        Examples:
            >>> dist = BinomialDistribution(n=10, p=0.3)
            >>> samples = dist.sample(10, seed=42)
            >>> len(samples)
            10
            >>> bool(np.all((samples >= 0) & (samples <= 10)))
            True
        """
        if n_samples < 0:
            raise ValueError("n_samples must be non-negative")

        p = self.params.p
        if p == 0.0 or p == 1.0:
            return np.full(n_samples, 0 if p == 0.0 else self.n, dtype=np.int64)

        if rng is None:
            rng = np.random.default_rng(seed)
        return rng.binomial(self.n, p, n_samples)

from dataclasses import dataclass
from typing import Protocol, TypeVar

import numpy as np
from numpy.typing import ArrayLike, NDArray


class DomainError(ValueError):
    """Raised when distribution parameters fall outside their domain."""


@dataclass(frozen=True)
class CountParams:
    """Base class for count distribution parameters."""

    ...


CountParams_ = TypeVar("CountParams_", bound=CountParams)


class CountDistribution(Protocol[CountParams_]):  # pragma: no cover
    """Protocol for discrete count distributions.

    This protocol defines the interface shared by the standard and the
    generalized binomial distributions, so that simulation and likelihood
    code can use either one without branching on the number of trials.
    """

    @property
    def params(self) -> CountParams_:
        """Distribution parameters."""
        ...

    @property
    def mean(self) -> float:
        """Expected value of the distribution."""
        ...

    @property
    def variance(self) -> float:
        """Variance of the distribution."""
        ...

    def log_pmf(self, x: ArrayLike) -> NDArray:
        """Compute the log probability mass function.

        Args:
            x: Integer counts. Values outside the support map to ``-inf``.

        Returns:
            Log probability mass values corresponding to input data.
        """
        ...

    def pmf(self, x: ArrayLike) -> NDArray:
        """Compute probability mass function.

        Args:
            x: Integer counts. Values outside the support map to ``0``.

        Returns:
            Probability mass values corresponding to input data.

        Examples:
            >>> # This is a protocol, so we can't instantiate it directly
            >>> # but implementations would work like:
            >>> # dist.pmf(np.array([0, 1, 2, 3]))
        """
        ...

    def cdf(self, x: ArrayLike) -> NDArray:
        """Compute the cumulative distribution function.

        Args:
            x: Counts at which to evaluate ``P(X <= x)``.

        Returns:
            Cumulative probabilities corresponding to input data.
        """
        ...

    def sample(
        self,
        n_samples: int,
        *,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
    ) -> NDArray:
        """Generate random samples from the distribution.

        Args:
            n_samples: Number of samples to generate.
            rng: Random number generator for reproducible sampling.
            seed: Random seed (used only if rng is None).

        Returns:
            Array of randomly generated samples from the distribution.

        Examples:
            >>> # This is a protocol, so we can't instantiate it directly
            >>> # but implementations would work like:
            >>> # samples = dist.sample(100, seed=42)
        """
        ...

import logging
import math
from functools import cached_property

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy import special  # type: ignore

from ._generics import CountDistribution
from .binomial import (
    BinomialDistribution,
    BinomialParams,
    is_integral,
    validate_binomial_params,
)
from .fallback import DEFAULT_SAMPLER_CONFIG, SamplerConfig, draw_fallback, select_tier

__all__ = ["GeneralizedBinomialDistribution"]

logger = logging.getLogger(__name__)

# Standard deviations below the mean summed into the normalising constant.
# The truncated tail is below double precision once ``floor(n)`` sits this
# far above the mean.
_NORMALIZER_WIDTH = 40.0

# Below this argument the Stirling error is taken directly from ``gammaln``.
_STIRLING_CUTOFF = 15.0
_HALF_LOG_2PI = 0.5 * math.log(2.0 * math.pi)


def _stirling_error(x: NDArray) -> NDArray:
    """``ln Γ(x + 1) - (x + 1/2) ln x + x - ln(2π) / 2`` for ``x > 0``."""
    small = x < _STIRLING_CUTOFF
    xs = np.where(small, x, 1.0)
    direct = special.gammaln(xs + 1.0) - (xs + 0.5) * np.log(xs) + xs - _HALF_LOG_2PI

    xl = np.where(small, _STIRLING_CUTOFF, x)
    x2 = xl * xl
    series = 1.0 / 1680 - 1.0 / (1188 * x2)
    for coef in (1.0 / 1260, 1.0 / 360, 1.0 / 12):
        series = coef - series / x2
    return np.where(small, direct, series / xl)


def _deviance(x: NDArray, expected: NDArray) -> NDArray:
    """``x ln(x / expected) + expected - x``, stable near ``x = expected``."""
    t = (x - expected) / expected
    return expected * ((1.0 + t) * np.log1p(t) - t)


def _log_binomial_term(k: NDArray, n: float, p: float) -> NDArray:
    """``ln C(n, k) + k ln p + (n - k) ln(1 - p)`` for ``0 <= k <= n``, ``0 < p < 1``.

    Saddle-point form (Loader, 2000): every term stays of order one, so the
    result keeps full precision when ``n`` is too large for a difference of
    ``gammaln`` values.
    """
    edge = np.where(k == 0, n * np.log1p(-p), n * np.log(p))
    interior = (k > 0) & (k < n)
    if not interior.any():
        return edge

    x = np.where(interior, k, 0.5 * n)
    y = n - x
    inner = (
        _stirling_error(np.float64(n))
        - _stirling_error(x)
        - _stirling_error(y)
        - _deviance(x, n * p)
        - _deviance(y, n * (1.0 - p))
        - _HALF_LOG_2PI
        - 0.5 * (np.log(x) + np.log(y) - math.log(n))
    )
    return np.where(interior, inner, edge)


class GeneralizedBinomialDistribution(CountDistribution[BinomialParams]):
    """Binomial distribution with a real-valued number of trials.

    The binomial coefficient is extended to real ``n`` through the Gamma
    function, giving the kernel

        f(k) = Γ(n+1) / (Γ(k+1) Γ(n-k+1)) · p^k (1-p)^(n-k)

    on the support ``k = 0, 1, ..., floor(n)``. The kernel is normalised over
    that support; for integral ``n`` the normaliser is one and the
    distribution coincides with ``Binomial(n, p)``.

    Sampling uses acceptance-rejection against an ordinary binomial envelope
    with ``floor(n) + 1`` trials. Draws that are still rejected after
    ``SamplerConfig.max_iters`` attempts are passed to the fallback ladder in
    ``fallback.py``.

    Examples:
        >>> dist = GeneralizedBinomialDistribution(n=5.7, p=0.3)
        >>> dist.support_max
        5
        >>> round(dist.mean, 2)
        1.71
        >>> float(dist.log_pmf(6))
        -inf
    """

    def __init__(self, n: float = 1.0, p: float = 0.5, *, check_args: bool = True) -> None:
        """Initialize generalized binomial distribution.

        Args:
            n: Number of trials (real, n >= 0).
            p: Success probability (0 <= p <= 1).
            check_args: Validate the parameters. Hot loops that validated
                once up front can switch this off.

        Raises:
            DomainError: If the parameters are invalid and ``check_args`` is set.
        """
        if check_args:
            validate_binomial_params(n, p)
        self._params = BinomialParams(n=float(n), p=float(p))

    @property
    def params(self) -> BinomialParams:
        """Distribution parameters, read-only."""
        return self._params

    def __repr__(self) -> str:
        return (
            "GeneralizedBinomialDistribution("
            f"n={round(self.params.n, 4)}, p={round(self.params.p, 4)})"
        )

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.params == other.params

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.params))

    @property
    def n(self) -> float:
        """Number of trials."""
        return self.params.n

    @property
    def p(self) -> float:
        """Success probability."""
        return self.params.p

    @property
    def support_max(self) -> int:
        """Largest value in the support, ``floor(n)``."""
        return math.floor(self.params.n)

    @property
    def num_trials(self) -> float:
        return self.params.n

    @property
    def succ_prob(self) -> float:
        return self.params.p

    @property
    def fail_prob(self) -> float:
        return 1.0 - self.params.p

    @property
    def mean(self) -> float:
        return self.params.n * self.params.p

    @property
    def variance(self) -> float:
        return self.params.n * self.params.p * (1.0 - self.params.p)

    # ------------------------------------------------------------------
    # Density
    # ------------------------------------------------------------------

    def log_kernel(self, x: ArrayLike) -> NDArray:
        """Unnormalised log mass ``ln f(k)``; ``-inf`` off the support.

        Examples:
            >>> dist = GeneralizedBinomialDistribution(n=2.0, p=0.5)
            >>> bool(np.isclose(dist.log_kernel(1), np.log(0.5)))
            True
        """
        n, p = self.params.n, self.params.p
        m = self.support_max
        k = np.asarray(x, dtype=float)

        in_support = (k >= 0) & (k <= m) & (k == np.floor(k))
        ks = np.where(in_support, k, 0.0)

        if p == 0.0:
            out = np.where(ks == 0, 0.0, -np.inf)
        elif p == 1.0:
            out = np.where(ks == m, 0.0, -np.inf)
        else:
            out = _log_binomial_term(ks, n, p)

        return np.where(in_support, out, -np.inf)[()]

    @cached_property
    def log_normalizer(self) -> float:
        """Log of the kernel's total mass over ``0..floor(n)``.

        Zero for integral ``n`` and for degenerate ``p``. Otherwise slightly
        below zero, because truncating the generalized binomial series at
        ``floor(n)`` drops a small tail.
        """
        n, p = self.params.n, self.params.p
        if is_integral(n) or p == 0.0 or p == 1.0:
            return 0.0

        m = self.support_max
        sd = math.sqrt(self.variance)
        if m - self.mean > _NORMALIZER_WIDTH * sd + 1:
            return 0.0

        # past the check n * (1 - p), and with it sd, is small, so the window
        # anchored at floor(n) stays short however large n is
        lo = max(0, math.floor(self.mean - _NORMALIZER_WIDTH * sd) - 1)
        return float(special.logsumexp(self.log_kernel(np.arange(lo, m + 1))))

    def log_pmf(self, x: ArrayLike) -> NDArray:
        """Compute the log probability mass function.

        Args:
            x: Integer counts. Negative, non-integral or ``> floor(n)``
                values give ``-inf``.

        Returns:
            Log probability mass values, a numpy scalar for scalar input.

        Examples:
            >>> dist = GeneralizedBinomialDistribution(n=5.7, p=0.3)
            >>> bool(np.all(np.isfinite(dist.log_pmf(np.arange(6)))))
            True
            >>> float(dist.log_pmf(-1))
            -inf
        """
        return self.log_kernel(x) - self.log_normalizer

    def pmf(self, x: ArrayLike) -> NDArray:
        """Compute the probability mass function.

        Examples:
            >>> dist = GeneralizedBinomialDistribution(n=5.7, p=0.3)
            >>> bool(np.isclose(dist.pmf(np.arange(6)).sum(), 1.0))
            True
        """
        return np.exp(self.log_pmf(x))

    def cdf(self, x: ArrayLike) -> NDArray:
        """Compute the cumulative distribution function.

        Uses the incomplete beta identity ``P(X <= k) = 1 - I_p(k+1, n-k)``,
        which holds exactly for integral ``n`` and extends it to real ``n``.

        Examples:
            >>> dist = GeneralizedBinomialDistribution(n=5.7, p=0.3)
            >>> float(dist.cdf(-1)), float(dist.cdf(5))
            (0.0, 1.0)
            >>> values = dist.cdf(np.arange(-1, 7))
            >>> bool(np.all(np.diff(values) >= 0))
            True
        """
        n, p = self.params.n, self.params.p
        m = self.support_max
        k = np.floor(np.asarray(x, dtype=float))

        inner = (k >= 0) & (k < m)
        ks = np.where(inner, k, 0.0)
        upper_tail = special.betainc(ks + 1, np.where(inner, n - ks, 1.0), p)

        out = np.where(k < 0, 0.0, np.where(k >= m, 1.0, 1.0 - upper_tail))
        return np.where(np.isnan(k), np.nan, out)[()]

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    @cached_property
    def envelope(self) -> tuple[BinomialDistribution, bool]:
        """Integer-trial proposal distribution and whether it is mirrored.

        For ``p > 0.5`` the proposal draws failures from
        ``Binomial(floor(n) + 1, 1 - p)`` and the sampler reflects them.
        """
        m_prop = self.support_max + 1
        flip = self.params.p > 0.5
        p_prop = 1.0 - self.params.p if flip else self.params.p
        return BinomialDistribution(m_prop, p_prop, check_args=False), flip

    @cached_property
    def envelope_log_bound(self) -> float:
        """``ln M`` with ``M = max_k f(k) / g(k)`` over the support.

        The kernel-to-envelope ratio is decreasing in ``k``, so the maximum
        sits at ``k = 0`` where it equals ``(1 - p)^(n - floor(n) - 1)``.
        """
        delta = self.params.n - self.support_max
        return float((delta - 1.0) * np.log1p(-self.params.p))

    @property
    def acceptance_rate(self) -> float:
        """Expected probability that a single rejection attempt is accepted.

        Examples:
            >>> dist = GeneralizedBinomialDistribution(n=10.4, p=0.3)
            >>> 0.5 < dist.acceptance_rate <= 1.0
            True
        """
        return math.exp(self.log_normalizer - self.envelope_log_bound)

    def sample(
        self,
        n_samples: int,
        *,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
        config: SamplerConfig | None = None,
    ) -> NDArray:
        """Generate samples from the generalized binomial distribution.

        Degenerate probabilities are answered without consuming randomness,
        integral ``n`` goes straight to numpy's binomial sampler, and the
        remaining cases use rejection sampling with the fallback ladder
        behind it.

        Args:
            n_samples: Number of samples to generate.
            rng: Random number generator for reproducible sampling.
            seed: Random seed (used only if rng is None).
            config: Sampler tunables, ``DEFAULT_SAMPLER_CONFIG`` if None.

        Returns:
            Integer array with values in ``[0, floor(n)]``.

        Raises:
            ValueError: If n_samples is negative.

        Examples:
            >>> dist = GeneralizedBinomialDistribution(n=7.2, p=0.9)
            >>> samples = dist.sample(100, seed=42)
            >>> len(samples)
            100
            >>> bool(np.all((samples >= 0) & (samples <= 7)))
            True
            >>> GeneralizedBinomialDistribution(n=3.5, p=1.0).sample(3).tolist()
            [3, 3, 3]
        """
        if n_samples < 0:
            raise ValueError("n_samples must be non-negative")
        if config is None:
            config = DEFAULT_SAMPLER_CONFIG

        n, p = self.params.n, self.params.p
        m = self.support_max

        if p == 0.0 or p == 1.0:
            return np.full(n_samples, 0 if p == 0.0 else m, dtype=np.int64)

        if rng is None:
            rng = np.random.default_rng(seed)

        if is_integral(n):
            return rng.binomial(m, p, n_samples)

        out = np.empty(n_samples, dtype=np.int64)
        pending = self._sample_rejection(out, rng, config.max_iters)

        if pending.size:
            tier = select_tier(n, p, config)
            logger.debug(
                "%d of %d draws from %r escalated to %s",
                pending.size,
                n_samples,
                self,
                tier.name,
            )
            out[pending] = draw_fallback(tier, self, pending.size, rng)

        return out

    def _sample_rejection(
        self, out: NDArray, rng: np.random.Generator, max_iters: int
    ) -> NDArray:
        """Fill ``out`` by acceptance-rejection; return indices still unfilled.

        Each round gives every pending draw one more attempt, so no draw
        gets more than ``max_iters`` attempts.
        """
        m = self.support_max
        envelope, flip = self.envelope
        m_prop = envelope.n
        log_bound = self.envelope_log_bound

        pending = np.arange(out.size)
        for _ in range(max_iters):
            if pending.size == 0:
                break

            k_prop = envelope.sample(pending.size, rng=rng)
            k = m_prop - k_prop if flip else k_prop

            log_ratio = np.full(pending.size, -np.inf)
            inside = k <= m
            if inside.any():
                log_ratio[inside] = (
                    self.log_kernel(k[inside])
                    - envelope.log_pmf(k_prop[inside])
                    - log_bound
                )

            # uniform on (0, 1], so the log is always finite
            log_u = np.log(1.0 - rng.random(pending.size))
            accepted = log_u < log_ratio

            out[pending[accepted]] = k[accepted]
            pending = pending[~accepted]

        return pending

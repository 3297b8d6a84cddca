"""Approximate samplers used when exact rejection runs out of attempts.

The ladder is walked in a fixed order and the first tier whose entry
condition holds is used for every draw that escalated:

    EXACT_REJECTION -> SMALL_SUPPORT_INVERSION -> POISSON_APPROX -> NORMAL_APPROX

Each tier consumes a bounded amount of randomness per draw, so escalation
always terminates.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:  # pragma: no cover
    from .generalized_binomial import GeneralizedBinomialDistribution

__all__ = [
    "DEFAULT_SAMPLER_CONFIG",
    "FallbackTier",
    "SamplerConfig",
    "draw_fallback",
    "entry_condition",
    "select_tier",
]


class FallbackTier(Enum):
    EXACT_REJECTION = "exact_rejection"
    SMALL_SUPPORT_INVERSION = "small_support_inversion"
    POISSON_APPROX = "poisson_approx"
    NORMAL_APPROX = "normal_approx"


@dataclass(frozen=True, slots=True)
class SamplerConfig:
    """Tunables of the generalized binomial sampler.

    Attributes:
        max_iters: Rejection attempts per draw before escalating. Zero sends
            every draw straight to the fallback ladder.
        small_support_limit: Largest ``floor(n)`` handled by exact inversion.
        poisson_max_p: Success probability below which the Poisson tier applies.
        poisson_max_rate: Mean ``n * p`` below which the Poisson tier applies.

    Examples:
        >>> config = SamplerConfig()
        >>> config.max_iters
        128
        >>> SamplerConfig(max_iters=1).small_support_limit
        1000
    """

    max_iters: int = 128
    small_support_limit: int = 1000
    poisson_max_p: float = 0.10
    poisson_max_rate: float = 30.0

    def __post_init__(self) -> None:
        if self.max_iters < 0:
            raise ValueError(f"max_iters must be non-negative, got {self.max_iters}")
        if self.small_support_limit < 0:
            raise ValueError(
                "small_support_limit must be non-negative, "
                f"got {self.small_support_limit}"
            )


DEFAULT_SAMPLER_CONFIG = SamplerConfig()

_LADDER = (
    FallbackTier.SMALL_SUPPORT_INVERSION,
    FallbackTier.POISSON_APPROX,
    FallbackTier.NORMAL_APPROX,
)


def entry_condition(
    tier: FallbackTier, n: float, p: float, config: SamplerConfig = DEFAULT_SAMPLER_CONFIG
) -> bool:
    """Whether a fallback tier may serve draws for ``(n, p)``.

    Examples:
        >>> entry_condition(FallbackTier.SMALL_SUPPORT_INVERSION, 10.5, 0.3)
        True
        >>> entry_condition(FallbackTier.POISSON_APPROX, 5000.5, 0.001)
        True
        >>> entry_condition(FallbackTier.POISSON_APPROX, 5000.5, 0.5)
        False
    """
    m = math.floor(n)
    if tier is FallbackTier.SMALL_SUPPORT_INVERSION:
        return m <= config.small_support_limit
    if tier is FallbackTier.POISSON_APPROX:
        return (
            m > config.small_support_limit
            and p < config.poisson_max_p
            and n * p < config.poisson_max_rate
        )
    if tier is FallbackTier.NORMAL_APPROX:
        return True
    # exact rejection is the starting state and is never re-entered
    return False


def select_tier(
    n: float, p: float, config: SamplerConfig = DEFAULT_SAMPLER_CONFIG
) -> FallbackTier:
    """Walk the ladder and return the first tier that accepts ``(n, p)``.

    Examples:
        >>> select_tier(10.5, 0.3)
        <FallbackTier.SMALL_SUPPORT_INVERSION: 'small_support_inversion'>
        >>> select_tier(1000.5, 0.5).name
        'SMALL_SUPPORT_INVERSION'
        >>> select_tier(5000.5, 0.002).name
        'POISSON_APPROX'
        >>> select_tier(5000.5, 0.5).name
        'NORMAL_APPROX'
    """
    for tier in _LADDER:
        if entry_condition(tier, n, p, config):
            return tier
    raise AssertionError("normal approximation accepts every parameter pair")


def _draw_inversion(
    dist: "GeneralizedBinomialDistribution", size: int, rng: np.random.Generator
) -> NDArray:
    m = dist.support_max
    cumulative = np.cumsum(dist.pmf(np.arange(m + 1)))
    # first k whose cumulative mass reaches the uniform draw
    k = np.searchsorted(cumulative, rng.random(size), side="left")
    return np.minimum(k, m).astype(np.int64)


def _draw_poisson(
    dist: "GeneralizedBinomialDistribution", size: int, rng: np.random.Generator
) -> NDArray:
    return np.clip(rng.poisson(dist.mean, size), 0, dist.support_max).astype(np.int64)


def _draw_normal(
    dist: "GeneralizedBinomialDistribution", size: int, rng: np.random.Generator
) -> NDArray:
    draws = np.rint(rng.normal(dist.mean, math.sqrt(dist.variance), size))
    return np.clip(draws, 0, dist.support_max).astype(np.int64)


_DRAWERS: dict[
    FallbackTier,
    Callable[["GeneralizedBinomialDistribution", int, np.random.Generator], NDArray],
] = {
    FallbackTier.SMALL_SUPPORT_INVERSION: _draw_inversion,
    FallbackTier.POISSON_APPROX: _draw_poisson,
    FallbackTier.NORMAL_APPROX: _draw_normal,
}


def draw_fallback(
    tier: FallbackTier,
    dist: "GeneralizedBinomialDistribution",
    size: int,
    rng: np.random.Generator,
) -> NDArray:
    """Draw ``size`` values in ``[0, floor(n)]`` using one fallback tier.

    Args:
        tier: Tier to draw from, usually the result of ``select_tier``.
        dist: Distribution being sampled.
        size: Number of draws.
        rng: Random number generator.

    Returns:
        Integer array of length ``size``.

    Raises:
        ValueError: If ``tier`` is ``EXACT_REJECTION``, which has no
            fallback sampler.
    """
    try:
        drawer = _DRAWERS[tier]
    except KeyError:
        raise ValueError(f"{tier.name} is not a fallback tier") from None
    return drawer(dist, size, rng)

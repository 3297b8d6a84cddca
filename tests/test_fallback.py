import numpy as np
import pytest

from genbinom import goodness_of_fit
from genbinom.models.stats import GeneralizedBinomialDistribution
from genbinom.models.stats.fallback import (
    FallbackTier,
    SamplerConfig,
    draw_fallback,
    entry_condition,
    select_tier,
)


@pytest.mark.parametrize(
    "n, p, tier",
    [
        (0.5, 0.5, FallbackTier.SMALL_SUPPORT_INVERSION),
        (1000.9, 0.5, FallbackTier.SMALL_SUPPORT_INVERSION),
        (1000.5, 0.01, FallbackTier.SMALL_SUPPORT_INVERSION),
        (1001.5, 0.02, FallbackTier.POISSON_APPROX),
        (1001.5, 0.05, FallbackTier.NORMAL_APPROX),  # rate above 30
        (1001.5, 0.10, FallbackTier.NORMAL_APPROX),  # p not below 0.10
        (5000.5, 0.5, FallbackTier.NORMAL_APPROX),
    ],
)
def test_select_tier_thresholds(n, p, tier):
    assert select_tier(n, p) is tier


def test_custom_thresholds():
    config = SamplerConfig(small_support_limit=10, poisson_max_rate=2.0)
    assert select_tier(10.5, 0.3, config) is FallbackTier.SMALL_SUPPORT_INVERSION
    assert select_tier(20.5, 0.05, config) is FallbackTier.POISSON_APPROX
    assert select_tier(60.5, 0.05, config) is FallbackTier.NORMAL_APPROX


def test_exact_rejection_is_never_reentered():
    assert not entry_condition(FallbackTier.EXACT_REJECTION, 10.5, 0.3)
    with pytest.raises(ValueError, match="not a fallback tier"):
        draw_fallback(
            FallbackTier.EXACT_REJECTION,
            GeneralizedBinomialDistribution(10.5, 0.3),
            10,
            np.random.default_rng(0),
        )


def test_normal_tier_always_enters():
    assert entry_condition(FallbackTier.NORMAL_APPROX, 0.5, 0.5)


@pytest.mark.parametrize("field", ["max_iters", "small_support_limit"])
def test_config_rejects_negative_values(field):
    with pytest.raises(ValueError, match=field):
        SamplerConfig(**{field: -1})


def test_config_is_frozen():
    with pytest.raises(AttributeError):
        SamplerConfig().max_iters = 3


def test_inversion_tier(fractional, rng):
    draws = draw_fallback(FallbackTier.SMALL_SUPPORT_INVERSION, fractional, 100_000, rng)
    assert draws.min() >= 0
    assert draws.max() <= fractional.support_max
    assert goodness_of_fit(draws, fractional).pvalue > 1e-4


def test_poisson_tier(rng):
    dist = GeneralizedBinomialDistribution(5000.5, 0.002)
    draws = draw_fallback(FallbackTier.POISSON_APPROX, dist, 100_000, rng)
    assert draws.min() >= 0
    assert draws.max() <= 5000
    assert draws.mean() == pytest.approx(dist.mean, abs=0.1)


def test_normal_tier(rng):
    dist = GeneralizedBinomialDistribution(5000.5, 0.5)
    draws = draw_fallback(FallbackTier.NORMAL_APPROX, dist, 100_000, rng)
    assert draws.dtype == np.int64
    assert draws.mean() == pytest.approx(dist.mean, abs=1.0)
    assert draws.std() == pytest.approx(np.sqrt(dist.variance), rel=0.05)


def test_normal_tier_is_clamped(rng):
    dist = GeneralizedBinomialDistribution(1500.5, 0.9999)
    draws = draw_fallback(FallbackTier.NORMAL_APPROX, dist, 10_000, rng)
    assert draws.max() <= 1500
    assert draws.min() >= 1498

import logging
import warnings
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest
from scipy import stats

from genbinom import goodness_of_fit, make_binomial
from genbinom.models.stats import GeneralizedBinomialDistribution, SamplerConfig

SUPPORT_GRID = [
    (0.3, 0.5),
    (0.999, 0.999),
    (2.5, 0.01),
    (5.7, 0.3),
    (7.2, 0.9),
    (10.4, 0.5),
    (37.9, 0.99),
    (1000.5, 0.05),
]


def exact_moments(dist):
    k = np.arange(dist.support_max + 1)
    probs = dist.pmf(k)
    mu = np.sum(k * probs)
    return mu, np.sum((k - mu) ** 2 * probs)


@pytest.mark.parametrize("n, p", SUPPORT_GRID)
@pytest.mark.parametrize("seed", [0, 1, 2])
def test_support_containment(n, p, seed):
    dist = make_binomial(n, p)
    samples = dist.sample(20_000, seed=seed)
    assert samples.dtype.kind == "i"
    assert samples.min() >= 0
    assert samples.max() <= np.floor(n)


def test_integer_n_chi_square(rng):
    dist = make_binomial(10, 0.5)
    samples = dist.sample(100_000, rng=rng)
    observed = np.bincount(samples, minlength=11)
    expected = 100_000 * stats.binom.pmf(np.arange(11), 10, 0.5)
    result = stats.chisquare(observed, expected * observed.sum() / expected.sum())
    assert result.pvalue > 0.01


def test_integral_generalized_uses_standard_sampler():
    generalized = GeneralizedBinomialDistribution(10.0, 0.3)
    standard = make_binomial(10, 0.3)
    np.testing.assert_array_equal(
        generalized.sample(1000, seed=3), standard.sample(1000, seed=3)
    )


@pytest.mark.parametrize("n, p", [(10.4, 0.3), (7.2, 0.9), (5.7, 0.5), (2.5, 0.7)])
def test_fractional_goodness_of_fit(n, p):
    dist = make_binomial(n, p)
    samples = dist.sample(100_000, seed=11)
    assert goodness_of_fit(samples, dist).pvalue > 1e-4


def test_flipped_path_goodness_of_fit(fractional_flipped):
    assert fractional_flipped.envelope[1] is True
    samples = fractional_flipped.sample(100_000, seed=5)
    assert goodness_of_fit(samples, fractional_flipped).pvalue > 1e-4


def test_moment_convergence(fractional):
    n_samples = 200_000
    samples = fractional.sample(n_samples, seed=2024)
    mu, var = exact_moments(fractional)
    assert abs(samples.mean() - mu) < 5 * np.sqrt(var / n_samples)
    assert samples.var() == pytest.approx(var, rel=0.02)
    assert mu == pytest.approx(fractional.mean, abs=1e-3)
    assert var == pytest.approx(fractional.variance, abs=1e-2)


def test_large_fractional_mean():
    dist = make_binomial(1000.5, 0.05)
    samples = dist.sample(1_000_000, seed=99)
    assert samples.mean() == pytest.approx(50.025, rel=1e-3)


def test_zero_trials(rng):
    dist = make_binomial(0.0, 0.5)
    assert np.all(dist.sample(1000, rng=rng) == 0)
    assert np.all(GeneralizedBinomialDistribution(0.6, 0.5).sample(1000, rng=rng) == 0)


@pytest.mark.parametrize("n, p, expected", [(3.0, 1.0, 3), (3.5, 1.0, 3), (3.5, 0.0, 0)])
def test_degenerate_probability_consumes_no_randomness(rng, n, p, expected):
    state = rng.bit_generator.state
    samples = make_binomial(n, p).sample(1000, rng=rng)
    assert np.all(samples == expected)
    assert rng.bit_generator.state == state


def test_reproducible_with_seed(fractional):
    np.testing.assert_array_equal(
        fractional.sample(500, seed=8), fractional.sample(500, seed=8)
    )


def test_zero_samples(fractional):
    assert fractional.sample(0, seed=1).shape == (0,)


def test_negative_sample_count(fractional):
    with pytest.raises(ValueError, match="non-negative"):
        fractional.sample(-5)


class TestDegradation:
    @pytest.mark.parametrize("max_iters", [0, 1])
    @pytest.mark.parametrize(
        "n, p", [(10.4, 0.3), (7.2, 0.9), (5000.5, 0.002), (5000.5, 0.5), (1500.5, 0.9999)]
    )
    def test_reduced_budget_stays_in_support(self, max_iters, n, p):
        dist = make_binomial(n, p)
        config = SamplerConfig(max_iters=max_iters)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            samples = dist.sample(5000, seed=17, config=config)
        assert samples.shape == (5000,)
        assert samples.min() >= 0
        assert samples.max() <= np.floor(n)

    def test_inversion_fallback_is_exact(self, fractional):
        samples = fractional.sample(100_000, seed=23, config=SamplerConfig(max_iters=0))
        assert goodness_of_fit(samples, fractional).pvalue > 1e-4

    def test_escalation_is_logged_at_debug(self, fractional, caplog):
        caplog.set_level(
            logging.DEBUG, logger="genbinom.models.stats.generalized_binomial"
        )
        fractional.sample(10, seed=1, config=SamplerConfig(max_iters=0))
        assert "escalated to SMALL_SUPPORT_INVERSION" in caplog.text
        assert all(record.levelno == logging.DEBUG for record in caplog.records)

    def test_no_escalation_with_default_budget(self, fractional, caplog):
        caplog.set_level(
            logging.DEBUG, logger="genbinom.models.stats.generalized_binomial"
        )
        fractional.sample(1000, seed=1)
        assert "escalated" not in caplog.text


def test_independent_streams_across_threads():
    dist = make_binomial(10.4, 0.3)
    seeds = np.random.SeedSequence(12345).spawn(8)

    def draw(seed_seq):
        return dist.sample(2000, rng=np.random.default_rng(seed_seq))

    with ThreadPoolExecutor(max_workers=4) as pool:
        threaded = list(pool.map(draw, seeds))
    sequential = [draw(seed_seq) for seed_seq in seeds]

    for a, b in zip(threaded, sequential):
        np.testing.assert_array_equal(a, b)

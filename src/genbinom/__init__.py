from .distributions import (
    Binomial,
    cdf,
    fail_prob,
    goodness_of_fit,
    log_pmf,
    make_binomial,
    mean,
    num_trials,
    pmf,
    sample,
    sample_many,
    succ_prob,
    variance,
)
from .models.stats import (
    BinomialDistribution,
    DomainError,
    GeneralizedBinomialDistribution,
    SamplerConfig,
)

__version__ = "0.1.0"

__all__ = [
    "Binomial",
    "BinomialDistribution",
    "DomainError",
    "GeneralizedBinomialDistribution",
    "SamplerConfig",
    "cdf",
    "fail_prob",
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

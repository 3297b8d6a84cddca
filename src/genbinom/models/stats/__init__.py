from ._generics import CountDistribution, CountParams, DomainError
from .binomial import BinomialDistribution, BinomialParams, is_integral
from .fallback import DEFAULT_SAMPLER_CONFIG, FallbackTier, SamplerConfig
from .generalized_binomial import GeneralizedBinomialDistribution

__all__ = [
    "DEFAULT_SAMPLER_CONFIG",
    "BinomialDistribution",
    "BinomialParams",
    "CountDistribution",
    "CountParams",
    "DomainError",
    "FallbackTier",
    "GeneralizedBinomialDistribution",
    "SamplerConfig",
    "is_integral",
]

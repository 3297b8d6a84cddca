from .sir_map import SIRMapParams, solve_map
from .stats.binomial import BinomialDistribution
from .stats.generalized_binomial import GeneralizedBinomialDistribution

__all__ = [
    "BinomialDistribution",
    "GeneralizedBinomialDistribution",
    "SIRMapParams",
    "solve_map",
]

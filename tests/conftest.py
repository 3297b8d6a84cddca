import numpy as np
import pytest

from genbinom import make_binomial


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def fractional():
    return make_binomial(10.4, 0.3)


@pytest.fixture
def fractional_flipped():
    return make_binomial(7.2, 0.9)

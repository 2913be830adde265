import numpy as np
import pytest

from cpgibbs.cpgibbs import GammaPriors
from cpgibbs.cpgibbs_datasets import coal_mining_disasters
from cpgibbs.cpgibbs_types import IntArray


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(43)


@pytest.fixture
def coal() -> IntArray:
    return coal_mining_disasters()


@pytest.fixture
def priors() -> GammaPriors:
    """The priors used for the coal-mining disaster data."""
    return GammaPriors(a=4, b=1, c=1, d=2)

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from echostate import PREDICTION_DEFAULTS, EchoStateNetwork, ESNConfig, LinearAlgebra


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def smallNetwork():
    return EchoStateNetwork(inputSize=1, outputSize=1, reservoirSize=10, connectivity=0.8,
                            spectralRadius=0.8, randomSeed=7).init()


@pytest.fixture
def feedbackNetwork():
    config = ESNConfig(**PREDICTION_DEFAULTS).replace(reservoirSize=10, connectivity=0.8, randomSeed=11)
    return EchoStateNetwork(config).init()


class FailingLinearAlgebra(LinearAlgebra):
    def invert(self, matrix):
        return None, False

    def eigenvalues(self, matrix):
        return None, False


@pytest.fixture
def failingLinearAlgebra():
    return FailingLinearAlgebra()

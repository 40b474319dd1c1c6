import numpy as np
import pytest

from echostate import GenerationFailure, PreconditionViolation, ReservoirBuilder
from echostate.core.linalg import LinearAlgebra, spectralRadius
from echostate.core.reservoir import JAEGER_INPUT_WEIGHT


def radiusOf(weights):
    values, _ = LinearAlgebra().eigenvalues(weights)
    return spectralRadius(values)


def test_random_reservoir_is_normalized():
    builder = ReservoirBuilder(rng=0)
    weights = builder.generate(10, 0.8, 0.8)
    assert weights.shape == (10, 10)
    assert weights.dtype == np.float32
    assert abs(radiusOf(weights) - 0.8) < 1e-3


def test_random_reservoir_connection_count():
    weights = ReservoirBuilder(rng=1).generate(20, 0.25, 0.9)
    assert np.count_nonzero(weights) == 100


def test_generate_rejects_bad_arguments():
    builder = ReservoirBuilder(rng=0)
    with pytest.raises(PreconditionViolation):
        builder.generate(1, 0.5, 0.8)
    with pytest.raises(PreconditionViolation):
        builder.generate(10, 1.5, 0.8)


def test_empty_reservoir_cannot_be_normalized():
    builder = ReservoirBuilder(rng=0, maxRetries=3)
    with pytest.warns(UserWarning):
        with pytest.raises(GenerationFailure):
            builder.generate(10, 0.0, 0.8)


def test_eigen_failure_gives_up_after_retries(failingLinearAlgebra):
    builder = ReservoirBuilder(rng=0, linearAlgebra=failingLinearAlgebra, maxRetries=2)
    with pytest.warns(UserWarning):
        with pytest.raises(GenerationFailure):
            builder.generate(10, 0.5, 0.8)


def test_balanced_reservoir_signs_and_radius():
    # K = 5, N_E = 70, N_I = 30
    weights = ReservoirBuilder(rng=3).generate(100, 0.05, 0.9, excitatoryRatio=0.7, mode="balanced")
    assert abs(radiusOf(weights) - 0.9) < 1e-3
    assert np.all(weights[:, :70] >= 0)
    assert np.all(weights[:, 70:] <= 0)
    assert np.count_nonzero(weights) > 0


def test_balanced_reservoir_needs_sparse_large_network():
    builder = ReservoirBuilder(rng=0)
    with pytest.raises(PreconditionViolation):
        builder.generate(10, 0.8, 0.8, mode="balanced")
    with pytest.raises(PreconditionViolation):
        builder.createBalancedNetwork(100, 0.05, 1.0)


def test_random_matrix_bounds():
    weights = ReservoirBuilder(rng=5).randomMatrix((6, 4), 0.5)
    assert np.count_nonzero(weights) == 12
    assert np.all(np.abs(weights) <= 1.0)


def test_jaeger_matrix_values():
    weights = ReservoirBuilder(rng=2).jaegerMatrix((50, 3))
    magnitudes = np.abs(weights[weights != 0])
    assert magnitudes.size > 0
    assert np.allclose(magnitudes, JAEGER_INPUT_WEIGHT)

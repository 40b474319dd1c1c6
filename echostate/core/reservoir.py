# core/reservoir.py
# this module builds the weight matrices of the network and normalizes the reservoir to a target spectral radius

import logging
import warnings
from enum import Enum

import numpy as np

from echostate.utils.general import create_rng
from .errors import ConfigurationError, GenerationFailure, PreconditionViolation
from .linalg import LinearAlgebra, spectralRadius

logger = logging.getLogger(__name__)

WEIGHT_DTYPE = np.float32

# Van Vreeswijk & Sompolinsky (1998), J[target][source]; eq. 2.6 and Fig. 17
J_EE = 1.0
J_EI = -2.0
J_IE = 1.0
J_II = -1.8

# "a << b" is read as b / a > MUCH_SMALLER_RATIO
MUCH_SMALLER_RATIO = 1.5

JAEGER_INPUT_WEIGHT = 0.14


class ReservoirMode(str, Enum):
    RANDOM = "random"
    BALANCED = "balanced"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(f"Unknown reservoir mode '{value}'. Use 'random' or 'balanced'.")


def much_smaller(small, big):
    return big / small > MUCH_SMALLER_RATIO


class ReservoirBuilder:
    """
    Generates sparse random weight matrices. Reservoir matrices are rescaled so that
    the modulus of their dominant eigenvalue equals the requested spectral radius;
    a draw whose eigenvalues do not converge (or are all zero) is thrown away and
    redrawn, at most maxRetries times.
    """

    def __init__(self, rng=None, linearAlgebra=None, maxRetries=50):
        if maxRetries < 1:
            raise ConfigurationError(f"ReservoirBuilder: maxRetries must be >= 1, got {maxRetries}.")
        self.rng = create_rng(rng)
        self.linearAlgebra = linearAlgebra if linearAlgebra is not None else LinearAlgebra()
        self.maxRetries = maxRetries

    # - reservoir -
    def generate(self, size, connectivity, spectralRadiusTarget, excitatoryRatio=0.7, mode=ReservoirMode.RANDOM):
        if size <= 1:
            # a 1x1 reservoir never normalizes
            raise PreconditionViolation(f"generate: reservoir size must be > 1, got {size}.")
        if not 0.0 <= connectivity <= 1.0:
            raise PreconditionViolation(f"generate: connectivity must lie in [0, 1], got {connectivity}.")
        mode = ReservoirMode.parse(mode)

        for attempt in range(1, self.maxRetries + 1):
            if mode is ReservoirMode.BALANCED:
                candidate = self.createBalancedNetwork(size, connectivity, excitatoryRatio)
            else:
                candidate = self.randomMatrix((size, size), connectivity)

            okay, weights = self.normalizeSpectrum(candidate, spectralRadiusTarget)
            if okay:
                logger.info("Spectral radius becomes: %s (attempt %d)", spectralRadiusTarget, attempt)
                return weights

            warnings.warn(f"Spectral normalization failed on attempt {attempt}/{self.maxRetries}, redrawing reservoir.")

        raise GenerationFailure(
            f"generate: could not normalize a {mode.value} reservoir (size={size}, connectivity={connectivity}) "
            f"to spectral radius {spectralRadiusTarget} after {self.maxRetries} attempts."
        )

    def normalizeSpectrum(self, weights, spectralRadiusTarget):
        eigenvalues, converged = self.linearAlgebra.eigenvalues(weights)
        if not converged:
            return False, weights
        currentRadius = spectralRadius(eigenvalues)
        if currentRadius == 0:
            return False, weights

        scaled = np.asarray(weights, dtype=np.float64) * (spectralRadiusTarget / currentRadius)
        return True, scaled.astype(WEIGHT_DTYPE)

    # - random subset with uniform weights, used for every matrix -
    def randomMatrix(self, shape, connectivity, low=-1.0, high=1.0):
        if not 0.0 <= connectivity <= 1.0:
            raise PreconditionViolation(f"randomMatrix: connectivity must lie in [0, 1], got {connectivity}.")

        weights = np.zeros(int(np.prod(shape)), dtype=WEIGHT_DTYPE)
        numConnections = int(round(weights.size * connectivity))
        if numConnections > 0:
            cells = self.rng.permutation(weights.size)[:numConnections]
            weights[cells] = self.rng.uniform(low, high, numConnections)
        return weights.reshape(shape)

    def jaegerMatrix(self, shape):
        # 0 with probability 0.5, otherwise +/-0.14 (Jaeger 2001, erratum 2010)
        connected = self.rng.random(shape) >= 0.5
        signs = self.rng.integers(0, 2, size=shape) * 2 - 1
        return np.where(connected, JAEGER_INPUT_WEIGHT * signs, 0.0).astype(WEIGHT_DTYPE)

    # - excitatory / inhibitory balanced network -
    def createBalancedNetwork(self, size, connectivity, excitatoryRatio):
        numExcitatory = int(round(excitatoryRatio * size))
        numInhibitory = size - numExcitatory
        K = connectivity * size

        logger.info("K (connectivity index): %s", K)
        logger.info("N_E=%d and N_I=%d", numExcitatory, numInhibitory)

        if numExcitatory == 0 or numInhibitory == 0:
            raise PreconditionViolation(
                f"createBalancedNetwork: excitatoryRatio={excitatoryRatio} leaves an empty block (N_E={numExcitatory}, N_I={numInhibitory})."
            )
        # 1 << K << N_E and 1 << K << N_I, else the mean-field picture does not hold
        if not (much_smaller(1.0, K) and much_smaller(K, numInhibitory) and much_smaller(K, numExcitatory)):
            raise PreconditionViolation(
                f"createBalancedNetwork: need 1 << K << N_E, N_I but K={K}, N_E={numExcitatory}, N_I={numInhibitory} "
                f"(size={size}, connectivity={connectivity}); increase the reservoir size."
            )

        scale = 1.0 / np.sqrt(K)
        blocks = [(slice(0, numExcitatory), numExcitatory), (slice(numExcitatory, size), numInhibitory)]
        couplings = [[J_EE, J_EI], [J_IE, J_II]]

        weights = np.zeros((size, size), dtype=np.float64)
        for targetIdx, (targetSlice, targetCount) in enumerate(blocks):
            for sourceIdx, (sourceSlice, sourceCount) in enumerate(blocks):
                connect = self.rng.random((targetCount, sourceCount)) <= K / sourceCount
                weights[targetSlice, sourceSlice] = np.where(connect, couplings[targetIdx][sourceIdx] * scale, 0.0)

        self._logBalancedStats(weights, numExcitatory, K)
        return weights.astype(WEIGHT_DTYPE)

    def _logBalancedStats(self, weights, numExcitatory, K):
        avg_E = (J_EE + J_EI) * K / np.sqrt(K)
        avg_I = (J_IE + J_II) * K / np.sqrt(K)
        logger.info("All inputs activated for excitatory neurons: %.4f", avg_E)
        logger.info("All inputs activated for inhibitory neurons: %.4f", avg_I)

        degrees = np.count_nonzero(weights, axis=1)
        logger.info("Average degree is %.3f (should be 2*K)", degrees.mean())

        activity = weights.sum(axis=1)
        logger.info("Average input activity for excitatory neurons: %.4f", activity[:numExcitatory].mean())
        logger.info("Average input activity for inhibitory neurons: %.4f", activity[numExcitatory:].mean())
        logger.info("Average for whatever neuron: %.4f", activity.mean())

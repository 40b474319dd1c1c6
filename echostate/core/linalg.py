# core/linalg.py
# this module wraps scipy.linalg behind the two operations the reservoir and the trainer need

import logging

import numpy as np
from scipy import linalg

logger = logging.getLogger(__name__)


class LinearAlgebra:
    """
    Dense inverse and eigenvalue routines. Both report failure through a flag
    instead of raising, so callers decide whether to retry or abort.
    """

    def invert(self, matrix):
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            return None, False
        try:
            inverse = linalg.inv(matrix, check_finite=True)
        except (linalg.LinAlgError, ValueError) as err:
            logger.debug("Matrix inversion failed: %s", err)
            return None, False

        if not np.all(np.isfinite(inverse)):
            return None, False
        return inverse, True

    def eigenvalues(self, matrix):
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            return None, False
        try:
            values = linalg.eigvals(matrix, check_finite=True)
        except (linalg.LinAlgError, ValueError) as err:
            logger.debug("Eigenvalue computation did not converge: %s", err)
            return None, False
        return values, True


def spectralRadius(eigenvalues):
    if eigenvalues is None or len(eigenvalues) == 0:
        return 0.0
    # |lambda| = sqrt(re^2 + im^2)
    return float(np.max(np.sqrt(np.real(eigenvalues) ** 2 + np.imag(eigenvalues) ** 2)))

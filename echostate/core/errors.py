# core/errors.py
# this module defines the failures raised by reservoir generation, simulation, training and checkpointing

import numpy as np


class ESNError(Exception):
    pass


# - fatal, never recovered silently -
class PreconditionViolation(ESNError, ValueError):
    pass


# - spectral normalization kept failing after the retry cap -
class GenerationFailure(ESNError, RuntimeError):
    pass


# - ridge regression could not invert (A'A + lambda*I) -
class SingularMatrixError(ESNError, np.linalg.LinAlgError):
    pass


# - training aborted, existing network state is untouched -
class ConfigurationError(ESNError, ValueError):
    pass


# - checkpoint could not be written or read back -
class CheckpointError(ESNError, IOError):
    pass

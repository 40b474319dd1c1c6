# echostate
# echo state networks with ridge regression readout training

from .core.activations import ActivationKind
from .core.config import ESNConfig, PREDICTION_DEFAULTS
from .core.errors import (
    CheckpointError,
    ConfigurationError,
    ESNError,
    GenerationFailure,
    PreconditionViolation,
    SingularMatrixError,
)
from .core.linalg import LinearAlgebra
from .core.models import EchoStateNetwork, SimulationType, Trial
from .core.reservoir import ReservoirBuilder, ReservoirMode
from .core.training import Trainer, TrialStore

__version__ = "0.1.0"

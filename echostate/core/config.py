# core/config.py
# this module holds the hyper-parameters of the echo state network and their validation

from dataclasses import dataclass, fields

import numpy as np

from .activations import ActivationKind
from .errors import ConfigurationError
from .reservoir import ReservoirMode

INPUT_MODES = ("uniform", "jaeger")

# fields stored as float32, the precision of the checkpoint format
FLOAT_FIELDS = (
    "connectivity", "inputConnectivity", "feedbackConnectivity", "spectralRadius",
    "inputScale", "feedbackScale", "inputShift", "feedbackShift",
    "timeConstant", "decayRate", "excitatoryRatio", "thresholdValue", "stateNoise",
)


def asWeight(value):
    return float(np.float32(value))


@dataclass
class ESNConfig:
    """
    Network parameters. Changing them has no effect on an existing network until
    its next init().

    timeConstant * decayRate = 1 means no leftover of the previous state; the
    default of 1 for both gives a plain (non-leaky) ESN.
    """

    inputSize: int = 2
    outputSize: int = 2
    reservoirSize: int = 10
    connectivity: float = 0.8
    inputConnectivity: float = 1.0
    feedbackConnectivity: float = 0.0
    spectralRadius: float = 0.8
    inputScale: float = 1.0
    feedbackScale: float = 1.0
    inputShift: float = 0.0
    feedbackShift: float = 0.0
    reservoirActivation: ActivationKind = ActivationKind.TANH
    outputActivation: ActivationKind = ActivationKind.IDENTITY
    timeConstant: float = 1.0
    decayRate: float = 1.0
    excitatoryRatio: float = 0.7
    reservoirMode: ReservoirMode = ReservoirMode.RANDOM
    inputMode: str = "uniform"
    thresholdValue: float = 0.0
    stateNoise: float = 0.0
    randomSeed: object = None

    def __post_init__(self):
        for name in FLOAT_FIELDS:
            setattr(self, name, asWeight(getattr(self, name)))
        for name in ("inputSize", "outputSize", "reservoirSize"):
            setattr(self, name, int(getattr(self, name)))
        self.reservoirActivation = ActivationKind.parse(self.reservoirActivation)
        self.outputActivation = ActivationKind.parse(self.outputActivation)
        self.reservoirMode = ReservoirMode.parse(self.reservoirMode)
        self.validate()

    def validate(self):
        if self.inputSize < 1 or self.outputSize < 1:
            raise ConfigurationError(f"ESNConfig: inputSize and outputSize must be >= 1, got {self.inputSize}, {self.outputSize}.")
        for name in ("connectivity", "inputConnectivity", "feedbackConnectivity", "excitatoryRatio"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"ESNConfig: {name} must lie in [0, 1], got {value}.")
        if self.inputMode not in INPUT_MODES:
            raise ConfigurationError(f"ESNConfig: inputMode must be one of {INPUT_MODES}, got '{self.inputMode}'.")
        if not self.outputActivation.invertible:
            raise ConfigurationError("ESNConfig: heaviside can only be used as reservoir activation.")
        if self.stateNoise < 0:
            raise ConfigurationError(f"ESNConfig: stateNoise must be >= 0, got {self.stateNoise}.")

    @classmethod
    def fieldNames(cls):
        return [f.name for f in fields(cls)]

    @classmethod
    def from_dict(cls, params):
        unknown = sorted(set(params) - set(cls.fieldNames()))
        if unknown:
            raise ConfigurationError(f"ESNConfig: unknown parameter(s) {unknown}.")
        return cls(**params)

    def to_dict(self):
        # shallow, a Generator passed as randomSeed stays the caller's object
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def replace(self, **params):
        merged = self.to_dict()
        merged.update(params)
        return ESNConfig.from_dict(merged)


# what the trainer configures when it builds its own single-input/single-output predictor
PREDICTION_DEFAULTS = {
    "inputSize": 1,
    "outputSize": 1,
    "feedbackConnectivity": 1.0,
    "feedbackScale": 0.56,
    "inputScale": 1.0,
    "decayRate": 0.9,
    "timeConstant": 0.44,
    "spectralRadius": 0.79,
}

RIDGE_LAMBDA = 0.2

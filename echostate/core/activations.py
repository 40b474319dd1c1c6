# core/activations.py
# this module defines the activation kinds available to reservoir and output neurons

from enum import IntEnum

import numpy as np

from .errors import ConfigurationError


class ActivationKind(IntEnum):
    # values are the ones written into checkpoints
    IDENTITY = 0
    TANH = 1
    LOGISTIC = 2
    HEAVISIDE = 3

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ConfigurationError(f"Unknown activation '{value}'. Use one of {[k.name.lower() for k in cls]}.")
        try:
            return cls(int(value))
        except ValueError:
            raise ConfigurationError(f"Unknown activation kind {value!r}.")

    @property
    def invertible(self):
        return self is not ActivationKind.HEAVISIDE

    def forward(self, x):
        if self is ActivationKind.IDENTITY:
            return x
        if self is ActivationKind.TANH:
            return np.tanh(x)
        if self is ActivationKind.LOGISTIC:
            # 1/(1+e^x), not the usual 1/(1+e^-x); inverseLogistic and trained weights rely on it
            return 1.0 / (1.0 + np.exp(x))
        return np.where(np.asarray(x) > 0, 1.0, 0.0)

    def inverse(self, y):
        if self is ActivationKind.IDENTITY:
            return y
        if self is ActivationKind.TANH:
            return np.arctanh(y)
        if self is ActivationKind.LOGISTIC:
            return np.log(1.0 / y - 1.0)
        raise ConfigurationError("The heaviside activation has no inverse; it is only valid inside the reservoir.")

    def __call__(self, x):
        return self.forward(x)

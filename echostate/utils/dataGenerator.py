# utils/dataGenerator.py
# this module generates benchmark time series for prediction experiments

import numpy as np


def mackeyGlassDerivative(x_t, x_tau, a=0.2, b=0.1, n=10):
    return -b * x_t + a * x_tau / (1 + x_tau**n)


def mackeyGlassGenerator(length, tau=17, delta_t=0.1, a=0.2, b=0.1, n=10, x0=1.2):
    """
    Generate a Mackey-Glass time series with 4th order Runge-Kutta integration.
    The delayed term is read from a history of tau/delta_t steps that starts at zero,
    it is held constant over one integration step.
    """
    if length < 1:
        raise ValueError(f"mackeyGlassGenerator: length must be >= 1, got {length}.")

    historyLength = int(np.floor(tau / delta_t))
    history = np.zeros(historyLength)
    index = 0

    x = np.zeros(length)
    x_t = x0
    for i in range(length):
        x[i] = x_t
        x_tau = history[index] if historyLength > 0 else 0.0

        k1 = delta_t * mackeyGlassDerivative(x_t, x_tau, a, b, n)
        k2 = delta_t * mackeyGlassDerivative(x_t + 0.5 * k1, x_tau, a, b, n)
        k3 = delta_t * mackeyGlassDerivative(x_t + 0.5 * k2, x_tau, a, b, n)
        k4 = delta_t * mackeyGlassDerivative(x_t + k3, x_tau, a, b, n)
        x_next = x_t + k1 / 6 + k2 / 3 + k3 / 3 + k4 / 6

        if historyLength > 0:
            history[index] = x_next
            index = (index + 1) % historyLength
        x_t = x_next
    return x


def squashSeries(series, downSample=10, offset=1.0):
    # keep every downSample-th value and map it to (-1, 1)
    series = np.asarray(series, dtype=np.float64)
    return np.tanh(series[::downSample] - offset)

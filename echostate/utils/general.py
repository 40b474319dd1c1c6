# utils/general.py
# this module provides the random source shared by reservoir generation and trial partitioning

import numpy as np


def create_rng(seed=None):
    """
    Returns a numpy Generator. An existing Generator is passed through untouched
    so callers can share one stream; an int (or None) seeds a fresh one.
    """
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)

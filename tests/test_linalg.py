import numpy as np

from echostate import LinearAlgebra
from echostate.core.linalg import spectralRadius


def test_invert():
    la = LinearAlgebra()
    inverse, ok = la.invert(np.array([[2.0, 0.0], [0.0, 4.0]]))
    assert ok
    assert np.allclose(inverse, [[0.5, 0.0], [0.0, 0.25]])


def test_invert_reports_singular_and_non_square():
    la = LinearAlgebra()
    assert la.invert(np.zeros((3, 3))) == (None, False)
    assert la.invert(np.ones((2, 3))) == (None, False)


def test_spectral_radius_uses_modulus():
    # rotation by 90 degrees scaled by 2 has eigenvalues +/-2i
    values, converged = LinearAlgebra().eigenvalues(np.array([[0.0, -2.0], [2.0, 0.0]]))
    assert converged
    assert np.isclose(spectralRadius(values), 2.0)
    assert spectralRadius(np.array([])) == 0.0

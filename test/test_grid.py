import numpy as np
import pytest
from hypothesis import given
import hypothesis.strategies as st

import strategies as temsim_st
from temsim import config
from temsim.core.grid import FrequencyGrid, invert2d, spatial_frequencies


@given(n=st.integers(min_value=1, max_value=64), extent=temsim_st.sensible_floats(min_value=.5, max_value=20.))
def test_spatial_frequencies_order(n, extent):
    k = spatial_frequencies(n, extent, dtype=np.float64)

    assert k.shape == (n,)
    assert k[0] == 0.
    assert np.allclose(k[: n // 2 + 1], np.arange(n // 2 + 1) / extent)
    assert np.allclose(k[n // 2 + 1:], (np.arange(n // 2 + 1, n) - n) / extent)


def test_spatial_frequencies_nyquist_positive():
    k = spatial_frequencies(8, 4., dtype=np.float64)
    assert np.allclose(k, [0., .25, .5, .75, 1., -.75, -.5, -.25])

    k = spatial_frequencies(5, 5., dtype=np.float64)
    assert np.allclose(k, [0., .2, .4, -.4, -.2])


def test_spatial_frequencies_raises():
    with pytest.raises(ValueError):
        spatial_frequencies(0, 1.)

    with pytest.raises(ValueError):
        spatial_frequencies(4, 0.)


def test_frequency_grid():
    grid = FrequencyGrid(6, 3.)

    assert len(grid) == grid.n == 6
    assert grid.extent == 3.
    assert np.isclose(grid.sampling, 1 / 3.)
    assert grid.k.dtype == np.float32
    assert np.allclose(grid.k2, grid.k ** 2)
    assert np.isclose(grid.k2max, 1.)

    k, k2 = grid.half()
    assert np.allclose(k, [0., 1 / 3., 2 / 3., 1.])
    assert len(k2) == 4


def test_frequency_grid_is_immutable():
    grid = FrequencyGrid(4, 1.)
    with pytest.raises(ValueError):
        grid.k[0] = 1.


def test_frequency_grid_is_cached():
    assert FrequencyGrid.compute(16, 2.) is FrequencyGrid.compute(16, 2.)
    assert FrequencyGrid.compute(16, 2.) is not FrequencyGrid.compute(16, 3.)

    with config.set({"precision": "float64"}):
        grid = FrequencyGrid.compute(16, 2.)

    assert grid.k.dtype == np.float64
    assert grid is not FrequencyGrid.compute(16, 2.)


def test_invert2d():
    array = np.zeros((4, 6))
    array[0, 0] = 1.
    inverted = invert2d(array)

    assert inverted[2, 3] == 1.
    assert inverted.sum() == 1.
    assert np.all(inverted == np.fft.fftshift(array))

import numpy as np
import pytest
from hypothesis import given

import strategies as temsim_st
from strategies import CARBON, SILICON
from temsim.atoms import AtomRecords
from temsim.core.energy import potential_scale
from temsim.core.errors import DimensionMismatchError
from temsim.core.grid import FrequencyGrid
from temsim.fft import TransformBuffer
from temsim.potentials import ScatteringParameters, project_potential, scattering_factor


@pytest.fixture
def parameters():
    return temsim_st.scattering_parameters()


def _buffer(nx, ny):
    buffer = TransformBuffer(nx, ny)
    buffer.init(mode="estimate")
    return buffer


def test_zero_occupancy_gives_zero(parameters):
    kx = FrequencyGrid.compute(4, 4.)
    ky = FrequencyGrid.compute(4, 4.)
    buffer = _buffer(4, 4)
    buffer.complex[...] = 1.

    atoms = AtomRecords([[0., 0.]], [6], [0.])
    diagnostics = project_potential(buffer, atoms, kx, ky, 100e3, parameters, return_diagnostics=True)

    assert np.all(buffer.complex == 0.)
    assert diagnostics.num_coefficients == 0
    assert diagnostics.total_phase == 0.


def test_single_atom_peaks_at_origin(parameters):
    kx = FrequencyGrid.compute(4, 4.)
    ky = FrequencyGrid.compute(4, 4.)
    buffer = _buffer(4, 4)

    atoms = AtomRecords([[0., 0.]], [6], [1.])
    diagnostics = project_potential(buffer, atoms, kx, ky, 100e3, parameters, return_diagnostics=True)

    assert np.any(buffer.complex != 0.)
    assert np.allclose(buffer.complex.imag, 0.)
    assert diagnostics.num_coefficients == buffer.complex.size
    assert diagnostics.total_phase > 0.

    buffer.inverse()
    assert np.unravel_index(np.argmax(buffer.real), buffer.real.shape) == (0, 0)


def test_coefficients_match_scattering_factor(parameters):
    kx = FrequencyGrid.compute(6, 3.)
    ky = FrequencyGrid.compute(8, 4.)
    buffer = _buffer(6, 8)

    position = np.array([1.1, .7])
    atoms = AtomRecords([position], [14], [.5], dtype=np.float64)
    energy = 200e3
    project_potential(buffer, atoms, kx, ky, energy, parameters)

    k_x = kx.k.astype(np.float64)[:, None]
    k_y = ky.k.astype(np.float64)[None, :5]
    f = scattering_factor(k_x ** 2 + k_y ** 2, 14, parameters)
    phase = 2 * np.pi * (k_x * position[0] + k_y * position[1])
    scale = potential_scale(energy) * 6 * 8 / (3. * 4.)
    expected = .5 * scale * f * np.exp(-1.j * phase)

    assert np.allclose(buffer.complex, expected, rtol=1e-4, atol=1e-4 * np.abs(expected).max())


@given(atoms=temsim_st.atom_records())
def test_superposition(atoms):
    parameters = temsim_st.scattering_parameters()
    kx = FrequencyGrid.compute(8, 5.)
    ky = FrequencyGrid.compute(6, 5.)

    total = np.zeros((8, 4), dtype=np.complex64)
    project_potential(total, atoms, kx, ky, 100e3, parameters)

    summed = np.zeros((8, 4), dtype=np.complex128)
    for i in range(len(atoms)):
        part = np.zeros((8, 4), dtype=np.complex64)
        project_potential(part, AtomRecords.from_records(atoms.records[i:i + 1]), kx, ky, 100e3, parameters)
        summed += part

    assert np.allclose(total, summed, rtol=1e-3, atol=1e-3 * max(np.abs(summed).max(), 1e-6))


def test_full_width_array(parameters):
    kx = FrequencyGrid.compute(4, 2.)
    ky = FrequencyGrid.compute(6, 3.)
    atoms = AtomRecords([[.5, .5]], [6])

    full = np.zeros((4, 6), dtype=np.complex64)
    project_potential(full, atoms, kx, ky, 100e3, parameters)

    half = np.zeros((4, 4), dtype=np.complex64)
    project_potential(half, atoms, kx, ky, 100e3, parameters)

    assert np.allclose(full[:, :4], half)


def test_mismatched_dimensions_raise(parameters):
    kx = FrequencyGrid.compute(4, 2.)
    ky = FrequencyGrid.compute(4, 2.)
    atoms = AtomRecords([[.5, .5]], [6])

    with pytest.raises(DimensionMismatchError):
        project_potential(_buffer(4, 6), atoms, kx, ky, 100e3, parameters)

    with pytest.raises(DimensionMismatchError):
        project_potential(np.zeros((4, 5), dtype=np.complex64), atoms, kx, ky, 100e3, parameters)


def test_missing_parameters_raise(parameters):
    kx = FrequencyGrid.compute(4, 2.)
    atoms = AtomRecords([[.5, .5]], [79])

    with pytest.raises(KeyError):
        project_potential(_buffer(4, 4), atoms, kx, kx, 100e3, parameters)


def test_invalid_energy_raises(parameters):
    kx = FrequencyGrid.compute(4, 2.)
    atoms = AtomRecords([[.5, .5]], [6])

    with pytest.raises(ValueError):
        project_potential(_buffer(4, 4), atoms, kx, kx, -1., parameters)


def test_scattering_parameters():
    parameters = ScatteringParameters({"C": CARBON, 14: SILICON})

    assert parameters.numbers == (6, 14)
    assert 6 in parameters and 7 not in parameters
    assert parameters.table.shape == (15, 12)

    f = parameters.scattering_factor([0., 1., 4.], 6)
    assert np.all(np.diff(f) < 0.)
    assert np.all(parameters.projected_potential([.5, 1., 2.], 14) > 0.)

    with pytest.raises(ValueError):
        ScatteringParameters({6: CARBON[:6]})

    with pytest.raises(ValueError):
        ScatteringParameters({})

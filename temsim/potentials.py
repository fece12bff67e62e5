"""Module for calculating the projected atomic potential of a slice in reciprocal space."""

from __future__ import annotations

from typing import Mapping, NamedTuple, Sequence, Union

import numpy as np
from ase import units
from ase.data import atomic_numbers
from scipy.special import kn  # type: ignore

from temsim.atoms import AtomRecords
from temsim.core.backend import (
    copy_to_device,
    device_name_from_array_module,
    get_array_module,
    get_kernel,
)
from temsim.core.energy import potential_scale, validate_energy
from temsim.core.errors import DimensionMismatchError
from temsim.core.grid import FrequencyGrid
from temsim.fft import TransformBuffer

NUM_PARAMETERS = 12


class ScatteringParameters:
    """
    Table of electron scattering factor parameters in the Kirkland form,

        f(k) = sum_i a_i / (k^2 + b_i) + sum_i c_i exp(-d_i k^2),

    with three Lorentzian and three Gaussian terms.

    Parameters
    ----------
    parameters : mapping
        Maps atomic numbers (or chemical symbols) to the 12 parameters
        ``a1, b1, a2, b2, a3, b3, c1, d1, c2, d2, c3, d3`` with ``k`` in 1 / Å
        and ``f`` in Å.
    """

    def __init__(self, parameters: Mapping[Union[int, str], Sequence[float]]):
        if len(parameters) == 0:
            raise ValueError("no scattering parameters given")

        values = {}
        for key, value in parameters.items():
            number = atomic_numbers[key] if isinstance(key, str) else int(key)
            value = np.asarray(value, dtype=np.float64).ravel()
            if value.shape != (NUM_PARAMETERS,):
                raise ValueError(
                    f"expected {NUM_PARAMETERS} scattering parameters for element "
                    f"{number}, got {value.size}"
                )
            values[number] = value

        table = np.zeros((max(values) + 1, NUM_PARAMETERS), dtype=np.float64)
        for number, value in values.items():
            table[number] = value

        table.setflags(write=False)
        self._table = table
        self._numbers = tuple(sorted(values))

    @property
    def table(self) -> np.ndarray:
        """Parameters as a 2d array, row ``Z`` holds the parameters of element ``Z``."""
        return self._table

    @property
    def numbers(self) -> tuple[int, ...]:
        """Atomic numbers with parameters."""
        return self._numbers

    def __contains__(self, number: int) -> bool:
        return number in self._numbers

    def check(self, numbers: Sequence[int]):
        """Raise a KeyError if any of the atomic numbers has no parameters."""
        missing = sorted(set(int(n) for n in numbers) - set(self._numbers))
        if missing:
            raise KeyError(f"no scattering parameters for atomic numbers {missing}")

    def scattering_factor(self, k2, number: int) -> np.ndarray:
        """
        The electron scattering factor [Å] of an element.

        Parameters
        ----------
        k2 : float or array of float
            Squared spatial frequency [1 / Å^2].
        number : int
            Atomic number.
        """
        self.check((number,))
        a, b, c, d = self._split(number)
        k2 = np.asarray(k2, dtype=np.float64)[..., None]
        return (a / (k2 + b)).sum(-1) + (c * np.exp(-d * k2)).sum(-1)

    def projected_potential(self, r, number: int) -> np.ndarray:
        """
        The real space projected potential [V Å] of an element.

        Parameters
        ----------
        r : float or array of float
            Radial distance [Å], must be positive.
        number : int
            Atomic number.
        """
        self.check((number,))
        a, b, c, d = self._split(number)
        r = np.asarray(r, dtype=np.float64)[..., None]
        a0e = units.Bohr * units.Hartree * units.Bohr
        return 4 * np.pi**2 * a0e * (a * kn(0, 2 * np.pi * r * np.sqrt(b))).sum(
            -1
        ) + 2 * np.pi**2 * a0e * (c / d * np.exp(-(np.pi**2) * r**2 / d)).sum(-1)

    def _split(self, number: int):
        p = self._table[number]
        return p[0:6:2], p[1:6:2], p[6:12:2], p[7:12:2]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(numbers={self._numbers})"


def scattering_factor(k2, number: int, parameters: ScatteringParameters):
    """The electron scattering factor [Å] of an element, see :class:`ScatteringParameters`."""
    return parameters.scattering_factor(k2, number)


class PotentialDiagnostics(NamedTuple):
    total_phase: float
    """Sum of the magnitudes of the phase shift coefficients [rad]."""

    num_coefficients: int
    """Number of non-zero Fourier coefficients."""


def project_potential(
    potential: TransformBuffer | np.ndarray,
    atoms: AtomRecords,
    kx: FrequencyGrid,
    ky: FrequencyGrid,
    energy: float,
    parameters: ScatteringParameters,
    return_diagnostics: bool = False,
):
    """
    Calculate the Fourier coefficients of the phase shift of a slice.

    Every coefficient sums the scattering factors of all atoms, scaled by their
    occupancy, at its spatial frequency. The coefficients are scaled by ``nx * ny``
    so that the inverse transform of a :class:`TransformBuffer`, which divides by
    ``nx * ny``, gives the phase shift in radians. No bandwidth limit is applied.

    Parameters
    ----------
    potential : TransformBuffer or 2d array of complex
        Output. For a buffer the coefficients are written to its complex array, of
        shape ``(nx, ny // 2 + 1)``. An array may also span all ``(nx, ny)``
        frequencies.
    atoms : AtomRecords
        The atoms of the slice.
    kx, ky : FrequencyGrid
        Spatial frequencies of the two real space axes; their extents are the
        dimensions of the slice [Å].
    energy : float
        Electron energy [eV].
    parameters : ScatteringParameters
        Scattering factor parameters for every element of ``atoms``.
    return_diagnostics : bool
        If True, also return the summed phase shift magnitude and the number of
        non-zero coefficients.

    Returns
    -------
    PotentialDiagnostics, optional
    """
    energy = validate_energy(energy)

    if isinstance(potential, TransformBuffer):
        if potential.shape != (kx.n, ky.n):
            raise DimensionMismatchError(
                f"buffer of size {potential.nx} x {potential.ny} does not match "
                f"frequency grids of size {kx.n} x {ky.n}"
            )
        array = potential.complex
    else:
        array = potential

    nx, nc = array.shape
    if nx != kx.n or nc not in (ky.n, ky.n // 2 + 1):
        raise DimensionMismatchError(
            f"array of shape {array.shape} does not match frequency grids of size "
            f"{kx.n} x {ky.n}"
        )

    parameters.check(np.unique(atoms.numbers))

    xp = get_array_module(array)
    device = device_name_from_array_module(xp)

    kx_k, kx_k2 = kx.to_device(device)
    ky_k = copy_to_device(ky.k[:nc], device)
    ky_k2 = copy_to_device(ky.k2[:nc], device)
    records = copy_to_device(atoms.records, device)
    table = copy_to_device(parameters.table, device)

    scale = potential_scale(energy) * kx.n * ky.n / (kx.extent * ky.extent)

    get_kernel("atomic_potential_fourier", xp)(
        array, records, kx_k, ky_k, kx_k2, ky_k2, table, scale
    )

    if return_diagnostics:
        normalization = 1.0 / (kx.n * ky.n)
        return PotentialDiagnostics(
            total_phase=float(xp.abs(array).sum()) * normalization,
            num_coefficients=int(xp.count_nonzero(array)),
        )

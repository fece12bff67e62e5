"""Module to describe the effect of temperature on the atomic positions."""

from __future__ import annotations

from numbers import Number
from typing import Dict, Sequence, Union

import numpy as np
from ase import data

from temsim.atoms import AtomRecords
from temsim.core.errors import DimensionMismatchError
from temsim.rng import RNGEngine

Sigmas = Union[float, Dict[Union[str, int], float], Sequence[float], np.ndarray]


def validate_sigmas(numbers: np.ndarray, sigmas: Sigmas) -> np.ndarray:
    """
    Convert thermal displacement amplitudes to one value per atom.

    Parameters
    ----------
    numbers : 1d array of int
        Atomic numbers of the atoms.
    sigmas : float, dict or sequence of float
        Standard deviation of the displacement along x and y [Å], either one value
        for all atoms, a mapping from chemical symbol (or atomic number) to value, or
        one value per atom.

    Returns
    -------
    1d array of float64
    """
    numbers = np.asarray(numbers, dtype=int)

    if isinstance(sigmas, Number):
        sigmas = np.full(len(numbers), float(sigmas), dtype=np.float64)

    elif isinstance(sigmas, dict):
        by_number = {
            data.atomic_numbers[key] if isinstance(key, str) else int(key): float(value)
            for key, value in sigmas.items()
        }

        missing = set(np.unique(numbers)) - set(by_number)
        if missing:
            symbols = [data.chemical_symbols[number] for number in sorted(missing)]
            raise RuntimeError(f"displacement amplitude not provided for {symbols}")

        sigmas = np.array([by_number[number] for number in numbers], dtype=np.float64)

    else:
        sigmas = np.asarray(sigmas, dtype=np.float64)
        if sigmas.shape != (len(numbers),):
            raise DimensionMismatchError(
                f"got {sigmas.size} displacement amplitudes for {len(numbers)} atoms"
            )

    if np.any(sigmas < 0.0):
        raise ValueError("displacement amplitudes must be non-negative")

    return sigmas


def thermal_displacements(n: int, sigmas: Sigmas, rng: RNGEngine) -> np.ndarray:
    """
    Draw random Gaussian displacements of ``n`` atoms.

    The variates are drawn per atom, first x then y, so displacing the same atoms
    with engines of equal seed gives identical configurations.

    Parameters
    ----------
    n : int
        Number of atoms.
    sigmas : float or 1d array of float
        Standard deviation of the displacement [Å], one value or one per atom.
    rng : RNGEngine
        Source of the Gaussian variates.

    Returns
    -------
    2d array of float64
        Displacements of shape ``(n, 2)`` [Å].
    """
    if n < 0:
        raise ValueError("number of atoms must be non-negative")

    sigmas = np.broadcast_to(np.asarray(sigmas, dtype=np.float64), (n,))
    r = rng.rangauss_array(2 * n).reshape((n, 2))
    return r * sigmas[:, None]


def displace_atoms(atoms: AtomRecords, sigmas: Sigmas, rng: RNGEngine) -> AtomRecords:
    """
    Create one frozen phonon configuration by randomly displacing the atoms.

    Parameters
    ----------
    atoms : AtomRecords
        The undisplaced atoms; they are not modified.
    sigmas : float, dict or sequence of float
        Standard deviation of the displacement along x and y [Å], see
        :func:`validate_sigmas`.
    rng : RNGEngine
        Source of the Gaussian variates.

    Returns
    -------
    AtomRecords
        New records with displaced positions.
    """
    sigmas = validate_sigmas(atoms.numbers, sigmas)
    positions = atoms.positions.astype(np.float64)
    positions += thermal_displacements(len(atoms), sigmas, rng)
    return atoms.with_positions(positions)

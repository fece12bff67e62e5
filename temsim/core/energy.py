"""Module for the electron energy dependent constants of the kernels."""

from __future__ import annotations

import numpy as np
from ase import units


def relativistic_mass_correction(energy: float) -> float:
    """The ratio of the relativistic electron mass to the rest mass at ``energy`` [eV]."""
    return 1 + units._e * energy / (units._me * units._c**2)


def energy2wavelength(energy: float) -> float:
    """
    The relativistic electron wavelength [Å].

    Parameters
    ----------
    energy : float
        Electron energy [eV].
    """
    return (
        units._hplanck
        * units._c
        / np.sqrt(energy * (2 * units._me * units._c**2 / units._e + energy))
        / units._e
        * 1.0e10
    )


def potential_scale(energy: float) -> float:
    """
    Factor converting an electron scattering factor [Å] into a phase shift per unit
    area, the product of the wavelength and the relativistic mass correction.

    Parameters
    ----------
    energy: float
        Energy [eV].

    Returns
    -------
    float
        Scale factor [Å].
    """
    return energy2wavelength(energy) * relativistic_mass_correction(energy)


def angle2k2(angle: float, energy: float) -> float:
    """
    Convert a scattering angle to a squared spatial frequency.

    Parameters
    ----------
    angle: float
        Scattering angle [mrad].
    energy: float
        Energy [eV].

    Returns
    -------
    float
        Squared spatial frequency [1 / Å^2].
    """
    k = angle * 1e-3 / energy2wavelength(energy)
    return k**2


def validate_energy(energy: float | None) -> float:
    if energy is None:
        raise RuntimeError("energy is not defined")

    if energy <= 0:
        raise ValueError(f"energy must be positive, not {energy}")

    return float(energy)

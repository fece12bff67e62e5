"""Module for integrating diffraction intensities over detector regions."""

from __future__ import annotations

from enum import IntEnum
from typing import Union

import numpy as np

from temsim import cpu_kernels
from temsim.core.backend import (
    asnumpy,
    device_name_from_array_module,
    get_array_module,
    get_kernel,
)
from temsim.core.energy import angle2k2
from temsim.core.errors import DimensionMismatchError
from temsim.core.grid import FrequencyGrid


class CollectorMode(IntEnum):
    """Acceptance test and weight applied by a detector."""

    ANNULAR = cpu_kernels.ANNULAR
    SEGMENTED = cpu_kernels.SEGMENTED
    COM_X = cpu_kernels.COM_X
    COM_Y = cpu_kernels.COM_Y


def _validate_mode(mode: Union[CollectorMode, str, int]) -> CollectorMode:
    if isinstance(mode, str):
        try:
            return CollectorMode[mode.upper()]
        except KeyError:
            raise ValueError(f"unknown collector mode {mode}")

    return CollectorMode(mode)


class DetectorGeometry:
    """
    The acceptance region of a detector in reciprocal space.

    A sample at ``(kx, ky)`` is accepted when ``k2min <= kx^2 + ky^2 <= k2max`` and,
    in segmented mode, its azimuth ``arctan2(ky, kx)`` lies in ``[phimin, phimax]``.

    Parameters
    ----------
    k2min, k2max : float
        Radial acceptance as squared spatial frequencies [1 / Å^2].
    phimin, phimax : float
        Azimuthal acceptance [rad], only used in segmented mode.
    mode : CollectorMode or str
        Annular (radial only), segmented (radial and azimuthal), or the x or y
        center of mass, which weights the intensity by ``kx`` or ``ky``.
    """

    def __init__(
        self,
        k2min: float,
        k2max: float,
        phimin: float = -np.pi,
        phimax: float = np.pi,
        mode: Union[CollectorMode, str, int] = CollectorMode.ANNULAR,
    ):
        if k2min < 0.0:
            raise ValueError("k2min must be non-negative")

        if k2max < k2min:
            raise ValueError("k2max must be greater than or equal to k2min")

        if phimax < phimin:
            raise ValueError("phimax must be greater than or equal to phimin")

        self._k2min = float(k2min)
        self._k2max = float(k2max)
        self._phimin = float(phimin)
        self._phimax = float(phimax)
        self._mode = _validate_mode(mode)

    @classmethod
    def from_angles(
        cls,
        inner: float,
        outer: float,
        energy: float,
        phimin: float = -np.pi,
        phimax: float = np.pi,
        mode: Union[CollectorMode, str, int] = CollectorMode.ANNULAR,
    ) -> DetectorGeometry:
        """
        Detector geometry from scattering angles.

        Parameters
        ----------
        inner, outer : float
            Inner and outer scattering angle [mrad].
        energy : float
            Electron energy [eV].
        """
        return cls(
            k2min=angle2k2(inner, energy),
            k2max=angle2k2(outer, energy),
            phimin=phimin,
            phimax=phimax,
            mode=mode,
        )

    @property
    def k2min(self) -> float:
        return self._k2min

    @property
    def k2max(self) -> float:
        return self._k2max

    @property
    def phimin(self) -> float:
        return self._phimin

    @property
    def phimax(self) -> float:
        return self._phimax

    @property
    def mode(self) -> CollectorMode:
        return self._mode

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(k2min={self._k2min}, k2max={self._k2max}, "
            f"phimin={self._phimin}, phimax={self._phimax}, mode={self._mode.name})"
        )


def integrate_columns(
    intensity,
    geometry: DetectorGeometry,
    kx: FrequencyGrid,
    ky: FrequencyGrid,
    sums=None,
):
    """
    Sum the intensity inside the detector region along the second axis.

    Every first axis index is reduced by one execution unit into its own partial
    sum; the partial sums stay on the device of the intensity.

    Parameters
    ----------
    intensity : 2d array of float
        Diffraction intensity of shape ``(nx, ny)`` in unshifted frequency order.
    geometry : DetectorGeometry
        The detector region.
    kx, ky : FrequencyGrid
        Spatial frequencies of the two axes.
    sums : 1d array of float64, optional
        Output of length ``nx``. A new array is created if not given.

    Returns
    -------
    1d array of float64
        Partial sums, one per first axis index.
    """
    if intensity.shape != (kx.n, ky.n):
        raise DimensionMismatchError(
            f"intensity of shape {intensity.shape} does not match frequency grids of "
            f"size {kx.n} x {ky.n}"
        )

    xp = get_array_module(intensity)
    device = device_name_from_array_module(xp)

    if sums is None:
        sums = xp.zeros(kx.n, dtype=np.float64)
    elif sums.shape != (kx.n,):
        raise DimensionMismatchError(
            f"partial sums of shape {sums.shape} do not match {kx.n} columns"
        )

    kx_k, kx_k2 = kx.to_device(device)
    ky_k, ky_k2 = ky.to_device(device)

    get_kernel("integrate_columns", xp)(
        sums,
        intensity,
        int(geometry.mode),
        kx_k,
        ky_k,
        kx_k2,
        ky_k2,
        geometry.k2min,
        geometry.k2max,
        geometry.phimin,
        geometry.phimax,
    )
    return sums


def integrate_detector(
    intensity, geometry: DetectorGeometry, kx: FrequencyGrid, ky: FrequencyGrid
) -> float:
    """
    Total detector signal of a diffraction intensity.

    The partial sums of :func:`integrate_columns` are copied to host memory and
    reduced sequentially.

    Parameters
    ----------
    intensity : 2d array of float
        Diffraction intensity of shape ``(nx, ny)`` in unshifted frequency order.
    geometry : DetectorGeometry
        The detector region.
    kx, ky : FrequencyGrid
        Spatial frequencies of the two axes.

    Returns
    -------
    float
    """
    sums = asnumpy(integrate_columns(intensity, geometry, kx, ky))

    total = 0.0
    for value in sums:
        total += float(value)
    return total


def zero_array(array):
    """Set every element of a 1d array to zero, in place."""
    xp = get_array_module(array)

    if xp is np:
        cpu_kernels.zero_array(array)
    else:
        array.fill(0.0)
    return array


def detector_region(geometry: DetectorGeometry, kx: FrequencyGrid, ky: FrequencyGrid):
    """
    The weights applied to every sample by a detector.

    Parameters
    ----------
    geometry : DetectorGeometry
        The detector region.
    kx, ky : FrequencyGrid
        Spatial frequencies of the two axes.

    Returns
    -------
    2d array of float64
        One for accepted samples in annular or segmented mode, ``kx`` or ``ky`` in
        center of mass mode, zero elsewhere.
    """
    kx_k = kx.k.astype(np.float64)[:, None]
    ky_k = ky.k.astype(np.float64)[None]
    k2 = kx.k2[:, None] + ky.k2[None]

    accepted = (k2 >= geometry.k2min) & (k2 <= geometry.k2max)

    if geometry.mode == CollectorMode.SEGMENTED:
        phi = np.arctan2(ky_k, kx_k)
        accepted &= (phi >= geometry.phimin) & (phi <= geometry.phimax)

    weights = accepted.astype(np.float64)

    if geometry.mode == CollectorMode.COM_X:
        weights = weights * kx_k
    elif geometry.mode == CollectorMode.COM_Y:
        weights = weights * ky_k

    return weights

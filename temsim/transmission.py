"""Module for turning the projected potential of a slice into a transmission function."""

from __future__ import annotations

from typing import Optional, Union

import numpy as np

from temsim.atoms import AtomRecords
from temsim.core.backend import (
    copy_to_device,
    device_name_from_array_module,
    get_array_module,
    get_kernel,
)
from temsim.core.errors import AllocationError, DimensionMismatchError
from temsim.core.grid import FrequencyGrid
from temsim.fft import ComplexTransformBuffer, TransformBuffer
from temsim.potentials import ScatteringParameters, project_potential

FrequenciesLike = Union[FrequencyGrid, np.ndarray]


def _squared_frequencies(k: FrequenciesLike, n: int, xp):
    k2 = k.k2 if isinstance(k, FrequencyGrid) else k
    return copy_to_device(k2[:n], device_name_from_array_module(xp))


def bandwidth_limit(
    array: ComplexTransformBuffer | TransformBuffer | np.ndarray,
    kx: FrequenciesLike,
    ky: FrequenciesLike,
    k2max: float,
    scale: Optional[float] = None,
):
    """
    Zero every reciprocal space sample with ``kx^2 + ky^2 > k2max`` and multiply
    the remaining samples by ``scale``, in place.

    Applying the limit twice with the same ``k2max`` zeroes the same samples.

    Parameters
    ----------
    array : ComplexTransformBuffer, TransformBuffer or 2d array of complex
        Reciprocal space samples. For a :class:`TransformBuffer` the complex array
        is limited.
    kx, ky : FrequencyGrid or 1d array of float
        Frequency grids, or squared spatial frequencies [1 / Å^2] of the two axes.
        ``ky`` is truncated to the second dimension of the samples.
    k2max : float
        Squared bandwidth limit [1 / Å^2].
    scale : float, optional
        Factor applied to the retained samples. Default is the forward transform
        normalization ``1 / (nx * ny)``, with ``ny`` taken from the buffer or from
        ``ky``. Required for a raw array when ``ky`` is not a :class:`FrequencyGrid`.
    """
    normalization = None
    if isinstance(array, ComplexTransformBuffer):
        normalization = array.normalization
        array = array.array
    elif isinstance(array, TransformBuffer):
        normalization = array.normalization
        array = array.complex
    elif isinstance(ky, FrequencyGrid):
        normalization = 1.0 / (array.shape[0] * ky.n)

    xp = get_array_module(array)
    nx, ny = array.shape

    kx2 = _squared_frequencies(kx, nx, xp)
    ky2 = _squared_frequencies(ky, ny, xp)

    if len(kx2) != nx or len(ky2) != ny:
        raise DimensionMismatchError(
            f"frequencies of length {len(kx2)} and {len(ky2)} do not match samples "
            f"of shape {array.shape}"
        )

    if scale is None:
        if normalization is None:
            raise ValueError(
                "scale must be given when the samples are a raw array and ky is not "
                "a FrequencyGrid"
            )
        scale = normalization

    get_kernel("bandwidth_limit", xp)(array, kx2, ky2, float(k2max), float(scale))


def phase_grating(
    potential: TransformBuffer | np.ndarray,
    transmission: ComplexTransformBuffer | np.ndarray,
):
    """
    Write the phase grating ``exp(i * potential)`` of a real space phase shift.

    Parameters
    ----------
    potential : TransformBuffer or 2d array of float
        The phase shift [rad], the real array of a buffer after the inverse
        transform.
    transmission : ComplexTransformBuffer or 2d array of complex
        Output of the same shape.
    """
    if isinstance(potential, TransformBuffer):
        potential = potential.real

    if isinstance(transmission, ComplexTransformBuffer):
        transmission = transmission.array

    if potential.shape != transmission.shape:
        raise DimensionMismatchError(
            f"potential of shape {potential.shape} does not match transmission "
            f"function of shape {transmission.shape}"
        )

    get_kernel("phase_grating", get_array_module(transmission))(potential, transmission)


def transmission_function(
    atoms: AtomRecords,
    kx: FrequencyGrid,
    ky: FrequencyGrid,
    energy: float,
    parameters: ScatteringParameters,
    k2max: float,
    potential: Optional[TransformBuffer] = None,
    transmission: Optional[ComplexTransformBuffer] = None,
    real_space: bool = True,
) -> ComplexTransformBuffer:
    """
    Calculate the bandwidth limited transmission function of one slice.

    The stages run in order: potential coefficients, inverse transform, phase
    grating, forward transform, bandwidth limit and, if ``real_space``, the
    inverse transform back to real space.

    Parameters
    ----------
    atoms : AtomRecords
        The atoms of the slice.
    kx, ky : FrequencyGrid
        Spatial frequencies of the two real space axes.
    energy : float
        Electron energy [eV].
    parameters : ScatteringParameters
        Scattering factor parameters.
    k2max : float
        Squared bandwidth limit [1 / Å^2].
    potential : TransformBuffer, optional
        Work buffer for the potential. Resized and initialized as needed.
    transmission : ComplexTransformBuffer, optional
        Output buffer. Resized and initialized as needed.
    real_space : bool
        If False, the transmission function is returned in reciprocal space.

    Returns
    -------
    ComplexTransformBuffer
    """
    nx, ny = kx.n, ky.n

    if potential is None:
        potential = TransformBuffer()

    if transmission is None:
        transmission = ComplexTransformBuffer()

    for buffer in (potential, transmission):
        if not buffer.resize(nx, ny):
            raise AllocationError(f"could not allocate {nx} x {ny} buffer")
        if buffer.init_level is None:
            buffer.init()

    project_potential(potential, atoms, kx, ky, energy, parameters)
    potential.inverse()
    phase_grating(potential, transmission)
    transmission.forward()
    bandwidth_limit(transmission, kx, ky, k2max)

    if real_space:
        transmission.inverse()

    return transmission

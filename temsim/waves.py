"""Module for operations on probe wave functions."""

from __future__ import annotations

from typing import Optional, Union

import numpy as np

from temsim.core.backend import (
    copy_to_device,
    device_name_from_array_module,
    get_array_module,
    get_kernel,
)
from temsim.core.errors import DimensionMismatchError
from temsim.core.grid import FrequencyGrid
from temsim.core.utils import real_dtype_of
from temsim.fft import ComplexTransformBuffer

ComplexLike = Union[ComplexTransformBuffer, np.ndarray]


def _as_array(x):
    if isinstance(x, ComplexTransformBuffer):
        return x.array
    return x


def pixel_multiply(
    probe: ComplexLike, transmission: ComplexLike, ixoff: int = 0, iyoff: int = 0
):
    """
    Multiply a probe in place by a window of a transmission function.

    The probe sample ``(ix, iy)`` is multiplied by the transmission sample
    ``((ix + ixoff) % nx, (iy + iyoff) % ny)``, so a window reaching past the edge of
    the transmission function wraps around to the opposite edge.

    Parameters
    ----------
    probe : ComplexTransformBuffer or 2d array of complex
        Probe wave function, no larger than the transmission function.
    transmission : ComplexTransformBuffer or 2d array of complex
        Transmission function of shape ``(nx, ny)``.
    ixoff, iyoff : int
        Position of the probe window inside the transmission function [pixels].
    """
    probe = _as_array(probe)
    transmission = _as_array(transmission)

    if (probe.shape[0] > transmission.shape[0]) or (
        probe.shape[1] > transmission.shape[1]
    ):
        raise DimensionMismatchError(
            f"probe of shape {probe.shape} is larger than the transmission function "
            f"of shape {transmission.shape}"
        )

    get_kernel("pixel_multiply", get_array_module(probe))(
        probe, transmission, int(ixoff), int(iyoff)
    )


def vector_multiply(a, b, out=None):
    """
    Elementwise complex product of two arrays of equal length.

    Parameters
    ----------
    a, b : 1d arrays of complex
        Factors.
    out : 1d array of complex, optional
        Output, may be one of the factors. A new array is created if not given.
    """
    if a.shape != b.shape or a.ndim != 1:
        raise DimensionMismatchError(
            f"vector multiply requires two 1d arrays of equal length, got {a.shape} "
            f"and {b.shape}"
        )

    xp = get_array_module(a)

    if out is None:
        out = xp.empty_like(a)
    elif out.shape != a.shape:
        raise DimensionMismatchError(
            f"output of shape {out.shape} does not match inputs of shape {a.shape}"
        )

    get_kernel("vector_multiply", xp)(a, b, out)
    return out


def probe_shift(
    probe: ComplexLike,
    xs: float,
    ys: float,
    kx: FrequencyGrid,
    ky: FrequencyGrid,
    out: Optional[ComplexLike] = None,
):
    """
    Translate a probe by multiplying its reciprocal space samples with the phase
    ramp ``exp(2 pi i (xs kx + ys ky))``.

    Parameters
    ----------
    probe : ComplexTransformBuffer or 2d array of complex
        Probe wave function in reciprocal space.
    xs, ys : float
        Translation [Å].
    kx, ky : FrequencyGrid
        Spatial frequencies of the two axes.
    out : ComplexTransformBuffer or 2d array of complex, optional
        Output; a new array is created if not given.

    Returns
    -------
    2d array of complex
        The shifted probe.
    """
    probe = _as_array(probe)
    xp = get_array_module(probe)

    if probe.shape != (kx.n, ky.n):
        raise DimensionMismatchError(
            f"probe of shape {probe.shape} does not match frequency grids of size "
            f"{kx.n} x {ky.n}"
        )

    if out is None:
        out = xp.empty_like(probe)
    else:
        out = _as_array(out)
        if out.shape != probe.shape:
            raise DimensionMismatchError(
                f"output of shape {out.shape} does not match probe of shape "
                f"{probe.shape}"
            )

    device = device_name_from_array_module(xp)
    get_kernel("probe_shift", xp)(
        out,
        probe,
        float(xs),
        float(ys),
        copy_to_device(kx.k, device),
        copy_to_device(ky.k, device),
    )
    return out


def abs2(array: ComplexLike, out=None):
    """
    The squared magnitude of every sample of a complex array.

    Parameters
    ----------
    array : ComplexTransformBuffer or 2d array of complex
        The complex samples.
    out : 2d array of float, optional
        Output; a new array is created if not given.
    """
    array = _as_array(array)
    xp = get_array_module(array)

    if xp is not np:
        result = get_kernel("abs2", xp)(array)
        if out is None:
            return result
        out[...] = result
        return out

    if out is None:
        out = np.empty(array.shape, dtype=real_dtype_of(array.dtype))
    elif out.shape != array.shape:
        raise DimensionMismatchError(
            f"output of shape {out.shape} does not match input of shape {array.shape}"
        )

    get_kernel("abs2", np)(array, out)
    return out

"""Module for the CPU kernels of the slice pipeline using numba.

Every kernel loops over its output index space with ``prange`` over the first
axis, and every output element is written by exactly one iteration.
"""

import numpy as np
from numba import jit, prange

ANNULAR = 0
SEGMENTED = 1
COM_X = 2
COM_Y = 3


@jit(nopython=True, nogil=True)
def kirkland_scattering_factor(k2, p):
    """
    Electron scattering factor as a sum of three Lorentzians and three Gaussians.

    Parameters
    ----------
    k2 : float
        Squared spatial frequency [1 / Å^2].
    p : array of 12 float
        The parameters ``a1, b1, a2, b2, a3, b3, c1, d1, c2, d2, c3, d3``.
    """
    return (
        p[0] / (k2 + p[1])
        + p[2] / (k2 + p[3])
        + p[4] / (k2 + p[5])
        + p[6] * np.exp(-p[7] * k2)
        + p[8] * np.exp(-p[9] * k2)
        + p[10] * np.exp(-p[11] * k2)
    )


@jit(nopython=True, nogil=True, parallel=True)
def atomic_potential_fourier(potential, records, kx, ky, kx2, ky2, parameters, scale):
    """
    Sum the Fourier coefficients of the projected potential of all atoms.

    Parameters
    ----------
    potential : 2d array of complex
        Output, one coefficient per ``(kx, ky)`` sample.
    records : 2d array of float
        Atom records ``x, y, occupancy, atomic number``.
    kx, ky, kx2, ky2 : 1d arrays of float
        Spatial frequencies and their squares matching the axes of ``potential``.
    parameters : 2d array of float
        Scattering factor parameters, row ``Z`` holds the parameters of element ``Z``.
    scale : float
        Factor applied to every coefficient.
    """
    nx, ny = potential.shape
    natoms = records.shape[0]
    tpi = 2.0 * np.pi

    for ix in prange(nx):
        for iy in range(ny):
            k2 = kx2[ix] + ky2[iy]
            real = 0.0
            imag = 0.0
            for i in range(natoms):
                occupancy = records[i, 2]
                if occupancy == 0.0:
                    continue

                z = int(records[i, 3])
                f = kirkland_scattering_factor(k2, parameters[z]) * occupancy
                phase = tpi * (kx[ix] * records[i, 0] + ky[iy] * records[i, 1])
                real += f * np.cos(phase)
                imag -= f * np.sin(phase)

            potential[ix, iy] = complex(scale * real, scale * imag)


@jit(nopython=True, nogil=True, parallel=True)
def bandwidth_limit(array, kx2, ky2, k2max, scale):
    nx, ny = array.shape
    for ix in prange(nx):
        for iy in range(ny):
            if kx2[ix] + ky2[iy] > k2max:
                array[ix, iy] = 0.0
            else:
                array[ix, iy] = array[ix, iy] * scale


@jit(nopython=True, nogil=True, parallel=True)
def phase_grating(potential, transmission):
    nx, ny = potential.shape
    for ix in prange(nx):
        for iy in range(ny):
            v = potential[ix, iy]
            transmission[ix, iy] = complex(np.cos(v), np.sin(v))


@jit(nopython=True, nogil=True, parallel=True)
def pixel_multiply(probe, transmission, ixoff, iyoff):
    """
    Multiply ``probe`` in place by the window of ``transmission`` starting at
    ``(ixoff, iyoff)``, wrapping around the edges of ``transmission``.
    """
    nxp, nyp = probe.shape
    nx, ny = transmission.shape
    for ix in prange(nxp):
        ixt = (ix + ixoff) % nx
        for iy in range(nyp):
            iyt = (iy + iyoff) % ny
            probe[ix, iy] = probe[ix, iy] * transmission[ixt, iyt]


@jit(nopython=True, nogil=True, parallel=True)
def vector_multiply(a, b, c):
    for i in prange(a.shape[0]):
        c[i] = a[i] * b[i]


@jit(nopython=True, nogil=True, parallel=True)
def probe_shift(shifted, probe, xs, ys, kx, ky):
    nx, ny = probe.shape
    tpi = 2.0 * np.pi
    for ix in prange(nx):
        for iy in range(ny):
            phase = tpi * (xs * kx[ix] + ys * ky[iy])
            shifted[ix, iy] = probe[ix, iy] * complex(np.cos(phase), np.sin(phase))


@jit(nopython=True, nogil=True, parallel=True)
def abs2(array, out):
    nx, ny = array.shape
    for ix in prange(nx):
        for iy in range(ny):
            c = array[ix, iy]
            out[ix, iy] = c.real * c.real + c.imag * c.imag


@jit(nopython=True, nogil=True, parallel=True)
def integrate_columns(
    sums, intensity, mode, kx, ky, kx2, ky2, k2min, k2max, phimin, phimax
):
    """
    Sum the intensity inside the detector region along the second axis, one
    partial sum per first axis index.
    """
    nx, ny = intensity.shape
    for ix in prange(nx):
        total = 0.0
        for iy in range(ny):
            k2 = kx2[ix] + ky2[iy]
            if (k2 < k2min) or (k2 > k2max):
                continue

            if mode == ANNULAR:
                total += intensity[ix, iy]
            elif mode == SEGMENTED:
                phi = np.arctan2(ky[iy], kx[ix])
                if (phi >= phimin) and (phi <= phimax):
                    total += intensity[ix, iy]
            elif mode == COM_X:
                total += kx[ix] * intensity[ix, iy]
            elif mode == COM_Y:
                total += ky[iy] * intensity[ix, iy]
        sums[ix] = total


@jit(nopython=True, nogil=True, parallel=True)
def zero_array(a):
    for i in prange(a.shape[0]):
        a[i] = 0.0

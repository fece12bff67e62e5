"""Module for the GPU kernels of the slice pipeline using numba and CuPy.

One CUDA thread computes one output element; no two threads write the same
element.
"""

import math

import cupy as cp
from numba import cuda

from temsim.core import config
from temsim.cpu_kernels import ANNULAR, COM_X, COM_Y, SEGMENTED


def _blocks_2d(shape):
    threads = config.get("kernels.threads_per_block")
    threadsperblock = (1, threads)
    blockspergrid = (
        math.ceil(shape[0] / threadsperblock[0]),
        math.ceil(shape[1] / threadsperblock[1]),
    )
    return blockspergrid, threadsperblock


def _blocks_1d(n):
    threads = config.get("kernels.threads_per_block")
    return (math.ceil(n / threads),), (threads,)


@cuda.jit(device=True)
def _kirkland_scattering_factor(k2, p):
    return (
        p[0] / (k2 + p[1])
        + p[2] / (k2 + p[3])
        + p[4] / (k2 + p[5])
        + p[6] * math.exp(-p[7] * k2)
        + p[8] * math.exp(-p[9] * k2)
        + p[10] * math.exp(-p[11] * k2)
    )


@cuda.jit
def _atomic_potential_fourier(potential, records, kx, ky, kx2, ky2, parameters, scale):
    ix, iy = cuda.grid(2)
    if (ix < potential.shape[0]) & (iy < potential.shape[1]):
        k2 = kx2[ix] + ky2[iy]
        real = 0.0
        imag = 0.0
        for i in range(records.shape[0]):
            occupancy = records[i, 2]
            if occupancy == 0.0:
                continue
            z = int(records[i, 3])
            f = _kirkland_scattering_factor(k2, parameters[z]) * occupancy
            phase = 2.0 * math.pi * (kx[ix] * records[i, 0] + ky[iy] * records[i, 1])
            real += f * math.cos(phase)
            imag -= f * math.sin(phase)
        potential[ix, iy] = complex(scale * real, scale * imag)


def launch_atomic_potential_fourier(
    potential, records, kx, ky, kx2, ky2, parameters, scale
):
    blockspergrid, threadsperblock = _blocks_2d(potential.shape)
    _atomic_potential_fourier[blockspergrid, threadsperblock](
        potential, records, kx, ky, kx2, ky2, parameters, scale
    )


@cuda.jit
def _bandwidth_limit(array, kx2, ky2, k2max, scale):
    ix, iy = cuda.grid(2)
    if (ix < array.shape[0]) & (iy < array.shape[1]):
        if kx2[ix] + ky2[iy] > k2max:
            array[ix, iy] = 0.0
        else:
            array[ix, iy] = array[ix, iy] * scale


def launch_bandwidth_limit(array, kx2, ky2, k2max, scale):
    blockspergrid, threadsperblock = _blocks_2d(array.shape)
    _bandwidth_limit[blockspergrid, threadsperblock](array, kx2, ky2, k2max, scale)


@cuda.jit
def _phase_grating(potential, transmission):
    ix, iy = cuda.grid(2)
    if (ix < potential.shape[0]) & (iy < potential.shape[1]):
        v = potential[ix, iy]
        transmission[ix, iy] = complex(math.cos(v), math.sin(v))


def launch_phase_grating(potential, transmission):
    blockspergrid, threadsperblock = _blocks_2d(potential.shape)
    _phase_grating[blockspergrid, threadsperblock](potential, transmission)


@cuda.jit
def _pixel_multiply(probe, transmission, ixoff, iyoff):
    ix, iy = cuda.grid(2)
    if (ix < probe.shape[0]) & (iy < probe.shape[1]):
        ixt = (ix + ixoff) % transmission.shape[0]
        iyt = (iy + iyoff) % transmission.shape[1]
        probe[ix, iy] = probe[ix, iy] * transmission[ixt, iyt]


def launch_pixel_multiply(probe, transmission, ixoff, iyoff):
    blockspergrid, threadsperblock = _blocks_2d(probe.shape)
    _pixel_multiply[blockspergrid, threadsperblock](probe, transmission, ixoff, iyoff)


@cuda.jit
def _vector_multiply(a, b, c):
    i = cuda.grid(1)
    if i < a.shape[0]:
        c[i] = a[i] * b[i]


def launch_vector_multiply(a, b, c):
    blockspergrid, threadsperblock = _blocks_1d(a.shape[0])
    _vector_multiply[blockspergrid, threadsperblock](a, b, c)


@cuda.jit
def _probe_shift(shifted, probe, xs, ys, kx, ky):
    ix, iy = cuda.grid(2)
    if (ix < probe.shape[0]) & (iy < probe.shape[1]):
        phase = 2.0 * math.pi * (xs * kx[ix] + ys * ky[iy])
        shifted[ix, iy] = probe[ix, iy] * complex(math.cos(phase), math.sin(phase))


def launch_probe_shift(shifted, probe, xs, ys, kx, ky):
    blockspergrid, threadsperblock = _blocks_2d(probe.shape)
    _probe_shift[blockspergrid, threadsperblock](shifted, probe, xs, ys, kx, ky)


def abs2(array):
    return cp.abs(array) ** 2


@cuda.jit
def _integrate_columns(
    sums, intensity, mode, kx, ky, kx2, ky2, k2min, k2max, phimin, phimax
):
    ix = cuda.grid(1)
    if ix < intensity.shape[0]:
        total = 0.0
        for iy in range(intensity.shape[1]):
            k2 = kx2[ix] + ky2[iy]
            if (k2 < k2min) or (k2 > k2max):
                continue

            if mode == ANNULAR:
                total += intensity[ix, iy]
            elif mode == SEGMENTED:
                phi = math.atan2(ky[iy], kx[ix])
                if (phi >= phimin) and (phi <= phimax):
                    total += intensity[ix, iy]
            elif mode == COM_X:
                total += kx[ix] * intensity[ix, iy]
            elif mode == COM_Y:
                total += ky[iy] * intensity[ix, iy]
        sums[ix] = total


def launch_integrate_columns(
    sums, intensity, mode, kx, ky, kx2, ky2, k2min, k2max, phimin, phimax
):
    blockspergrid, threadsperblock = _blocks_1d(intensity.shape[0])
    _integrate_columns[blockspergrid, threadsperblock](
        sums, intensity, mode, kx, ky, kx2, ky2, k2min, k2max, phimin, phimax
    )

"""Module for handling the array backend (NumPy or CuPy) of the kernel pipeline."""

from __future__ import annotations

import warnings
from numbers import Number
from types import ModuleType
from typing import Union

import numpy as np

from temsim.core import config

try:
    import cupy as cp  # type: ignore
except ModuleNotFoundError:
    cp = None
except ImportError:
    if config.get("device") == "gpu":
        warnings.warn(
            "CuPy is installed but could not be imported, the GPU kernels are "
            "disabled. Check the installation or set the device to 'cpu'."
        )
    cp = None


ArrayModule = Union[ModuleType, str]

_DEVICE_NAMES = {"cpu": "cpu", "numpy": "cpu", "gpu": "gpu", "cupy": "gpu"}


def check_cupy_is_installed():
    """Raise a RuntimeError if the GPU backend is unavailable."""
    if cp is None:
        raise RuntimeError("CuPy is not installed, GPU calculations disabled")


def get_array_module(x=None) -> ModuleType:
    """
    The array module (NumPy or CuPy) of an array, or named by a device string.

    Parameters
    ----------
    x : numpy.ndarray, cupy.ndarray, module, str or None
        An array, an array module, 'cpu'/'numpy' or 'gpu'/'cupy'. If None, the
        'device' configuration is used.
    """
    if x is None:
        x = config.get("device")

    if isinstance(x, str):
        name = _DEVICE_NAMES.get(x.lower())
        if name == "cpu":
            return np
        if name == "gpu":
            check_cupy_is_installed()
            return cp

    elif x is np or isinstance(x, (np.ndarray, Number)):
        return np

    elif cp is not None and (x is cp or isinstance(x, cp.ndarray)):
        return cp

    raise ValueError(f"array module specification {x} not recognized")


def device_name_from_array_module(xp: ArrayModule) -> str:
    """The device ('cpu' or 'gpu') of an array module."""
    if xp is np:
        return "cpu"

    if cp is not None and xp is cp:
        return "gpu"

    raise ValueError(f"array module must be NumPy or CuPy, not {xp}")


def asnumpy(array) -> np.ndarray:
    """Copy an array to host memory. NumPy arrays are returned unchanged."""
    if cp is not None and isinstance(array, cp.ndarray):
        return cp.asnumpy(array)

    return np.asarray(array)


def copy_to_device(array, device: ArrayModule | None = None):
    """
    Copy an array to the device of the given array module or device name. Arrays
    already on that device are returned unchanged.
    """
    xp = get_array_module(device)

    if get_array_module(array) is xp:
        return array

    if xp is np:
        return cp.asnumpy(array)

    return cp.asarray(array)


def get_kernel(name: str, xp: ModuleType):
    """
    The kernel called ``name`` for an array module: the numba CPU kernel for NumPy,
    the launcher of the CUDA kernel for CuPy.
    """
    if xp is np:
        from temsim import cpu_kernels

        return getattr(cpu_kernels, name)

    if cp is not None and xp is cp:
        from temsim import cuda_kernels

        return getattr(cuda_kernels, f"launch_{name}", None) or getattr(
            cuda_kernels, name
        )

    raise ValueError(f"array module must be NumPy or CuPy, not {xp}")

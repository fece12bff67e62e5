"""Module for various convenient utilities."""

from __future__ import annotations

import numpy as np

from temsim.core import config


def get_dtype(complex: bool = False) -> np.dtype:
    """
    Get the numpy dtype from the config precision setting.

    Parameters
    ----------
    complex : bool, optional
        If True, return a complex dtype. Defaults to False.
    """
    dtype = config.get("precision")

    if dtype == "float32" and complex:
        dtype = np.complex64
    elif dtype == "float32":
        dtype = np.float32
    elif dtype == "float64" and complex:
        dtype = np.complex128
    elif dtype == "float64":
        dtype = np.float64
    else:
        raise RuntimeError(f"Invalid dtype: {dtype}")

    return dtype


def real_dtype_of(dtype) -> np.dtype:
    """The real dtype with the same precision as a (possibly complex) dtype."""
    if np.dtype(dtype) in (np.complex64, np.float32):
        return np.float32
    return np.float64


def complex_dtype_of(dtype) -> np.dtype:
    """The complex dtype with the same precision as a (possibly real) dtype."""
    if np.dtype(dtype) in (np.complex64, np.float32):
        return np.complex64
    return np.complex128

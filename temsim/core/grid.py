"""Module for the spatial frequencies of a sampled axis."""

from __future__ import annotations

from functools import lru_cache

import numpy as np

from temsim.core.backend import copy_to_device, get_array_module
from temsim.core.utils import get_dtype


def spatial_frequencies(n: int, extent: float, dtype=None) -> np.ndarray:
    """
    Return the spatial frequencies of an axis in FFT order.

    The non-negative frequencies ``0, 1, ..., n // 2`` come first, followed by the
    negative frequencies. For even ``n`` the Nyquist frequency is positive, unlike
    :func:`numpy.fft.fftfreq`.

    Parameters
    ----------
    n : int
        Number of samples along the axis.
    extent : float
        Physical length of the axis [Å].
    dtype : numpy dtype, optional
        Output dtype. Defaults to the real dtype of the configured precision.

    Returns
    -------
    np.ndarray
        Spatial frequencies [1 / Å].
    """
    if n < 1:
        raise ValueError(f"number of samples must be positive, not {n}")

    if extent <= 0.0:
        raise ValueError(f"extent must be positive, not {extent}")

    if dtype is None:
        dtype = get_dtype(complex=False)

    i = np.arange(n, dtype=np.float64)
    k = np.where(i > n // 2, i - n, i) / extent
    return k.astype(dtype)


class FrequencyGrid:
    """
    Spatial frequencies ``k`` and their squares ``k2`` of one sampled axis.

    Instances are immutable and may be shared between every kernel working on an
    axis with the same number of samples and extent. Use :meth:`compute` to get a
    cached instance.

    Parameters
    ----------
    n : int
        Number of samples along the axis.
    extent : float
        Physical length of the axis [Å].
    dtype : numpy dtype, optional
        Dtype of the frequency arrays.
    """

    def __init__(self, n: int, extent: float, dtype=None):
        k = spatial_frequencies(n, extent, dtype=dtype)
        k2 = k * k
        k.setflags(write=False)
        k2.setflags(write=False)

        self._n = int(n)
        self._extent = float(extent)
        self._k = k
        self._k2 = k2

    @classmethod
    def compute(cls, n: int, extent: float, dtype=None) -> FrequencyGrid:
        """Return the (cached) frequency grid for ``n`` samples over ``extent``."""
        if dtype is None:
            dtype = get_dtype(complex=False)
        return _cached_grid(cls, int(n), float(extent), np.dtype(dtype).str)

    @property
    def n(self) -> int:
        """Number of samples."""
        return self._n

    @property
    def extent(self) -> float:
        """Physical length of the axis [Å]."""
        return self._extent

    @property
    def sampling(self) -> float:
        """Reciprocal space sampling [1 / Å]."""
        return 1.0 / self._extent

    @property
    def k(self) -> np.ndarray:
        """Spatial frequencies [1 / Å]."""
        return self._k

    @property
    def k2(self) -> np.ndarray:
        """Squared spatial frequencies [1 / Å^2]."""
        return self._k2

    @property
    def k2max(self) -> float:
        """The largest squared spatial frequency on the axis."""
        return float(self._k2.max())

    def half(self) -> tuple[np.ndarray, np.ndarray]:
        """
        The first ``n // 2 + 1`` frequencies, matching the compressed axis of a
        real-to-complex transform.
        """
        nc = self._n // 2 + 1
        return self._k[:nc], self._k2[:nc]

    def to_device(self, device: str = "cpu") -> tuple:
        """The frequency arrays ``(k, k2)`` copied to a device."""
        return copy_to_device(self._k, device), copy_to_device(self._k2, device)

    def __len__(self) -> int:
        return self._n

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(n={self._n}, extent={self._extent})"


@lru_cache(maxsize=64)
def _cached_grid(cls, n: int, extent: float, dtype: str) -> FrequencyGrid:
    return cls(n, extent, dtype=np.dtype(dtype))


def invert2d(array):
    """
    Swap the quadrants of a 2d array so that the zero frequency moves to the center.
    Operates on the last two axes and returns a new array.
    """
    xp = get_array_module(array)
    nx, ny = array.shape[-2:]
    return xp.roll(array, (nx // 2, ny // 2), axis=(-2, -1))

"""Module for applying counting noise to measurements."""

from __future__ import annotations

import numpy as np

from temsim.core.backend import asnumpy
from temsim.rng import RNGEngine


def poisson_noise(signal, dose: float, rng: RNGEngine) -> np.ndarray:
    """
    Replace every expected count of a signal with a Poisson distributed count.

    Parameters
    ----------
    signal : array of float
        Normalized signal, e.g. detector totals per probe position.
    dose : float
        Number of electrons per unit of signal. The expected count of each sample is
        ``signal * dose``; samples with a non-positive expectation become zero.
    rng : RNGEngine
        Source of the Poisson variates, drawn in C order.

    Returns
    -------
    array of int64
        The counts, same shape as ``signal``.
    """
    if not dose >= 0.0:
        raise ValueError("dose must be non-negative")

    expected = np.asarray(asnumpy(signal), dtype=np.float64) * float(dose)
    if not np.all(np.isfinite(expected)):
        raise ValueError("signal and dose must be finite")

    expected = np.clip(expected, a_min=0.0, a_max=None)
    return rng.ranpoisson_array(expected)

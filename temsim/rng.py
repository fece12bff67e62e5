"""Module for the random number generators used for thermal vibrations and counting noise.

The uniform generator is a 64-bit xorshift* generator, see

    S. Vigna, ACM Transactions on Mathematical Software 42, 30 (2016)

Gaussian variates use the Box-Muller method and Poisson variates the methods PM
(mean < 30) and PA (mean >= 30) of

    A. C. Atkinson, Journal of the Royal Statistical Society C 28, 29 (1979)
"""

from __future__ import annotations

import math
import time
from typing import Literal, Optional

import numpy as np
from numba import jit

from temsim.core import config
from temsim.core.errors import TemsimDegradedWarning, message

_MASK = 0xFFFFFFFFFFFFFFFF
_MULTIPLIER = 2685821657736338717
_SCALE = 5.42101086242752217e-20
_TPI = 2.0 * 3.141592654
_TINY = 1.0e-30
_POISSON_SMALL_MEAN = 30.0

_MULTIPLIER_U64 = np.uint64(_MULTIPLIER)
_SHIFT_A = np.uint64(12)
_SHIFT_B = np.uint64(25)
_SHIFT_C = np.uint64(27)


def _log_factorial_table(n: int = 256) -> np.ndarray:
    lnf = np.zeros(n, dtype=np.float64)
    for i in range(2, n):
        lnf[i] = lnf[i - 1] + math.log(i)
    lnf.setflags(write=False)
    return lnf


_LNF = _log_factorial_table()

RNGStatus = Literal["ok", "degraded"]


class RNGEngine:
    """
    A random number generator with a private 64-bit state.

    One engine is one stream of random numbers. It is not safe to share an engine
    between threads; independent streams (one per frozen phonon configuration or
    worker) should each construct their own engine with a distinct seed.

    Parameters
    ----------
    seed : int, optional
        Initial seed, a positive integer below 2**64. If not given (or zero) the
        seed is taken from the system clock, giving a different sequence on every
        run.
    """

    def __init__(self, seed: Optional[int] = None):
        self._status: RNGStatus = "ok"

        if seed is None or seed == 0:
            seed = self._seed_from_clock()
        else:
            seed = _validate_seed(seed)

        self._init_seed = seed
        self._seed = seed

        self._poisson_mean: Optional[float] = None
        self._emean = 0.0
        self._alpha = 0.0
        self._beta = 0.0
        self._k = 0.0

    def _seed_from_clock(self) -> int:
        seed = int(time.time())

        if seed <= 0:
            seed = int(config.get("rng.fallback_seed"))
            self._status = "degraded"
            message(
                "could not derive a random number seed from the system clock, using "
                f"the fixed seed {seed}; every run will give the same sequence",
                level=1,
                category=TemsimDegradedWarning,
            )

        return seed

    @property
    def init_seed(self) -> int:
        """The seed the engine was constructed with (or derived from the clock)."""
        return self._init_seed

    @property
    def status(self) -> RNGStatus:
        """'ok', or 'degraded' if the seed fell back to a fixed value."""
        return self._status

    def reset_seed(self, seed: int):
        """
        Overwrite the current state.

        For diagnostics only, the sequence no longer follows from ``init_seed``.
        """
        self._seed = _validate_seed(seed)

    def ranflat(self) -> float:
        """
        Return a uniformly distributed random number in the range (0, 1).
        """
        s = self._seed
        s ^= s >> 12
        s ^= (s << 25) & _MASK
        s ^= s >> 27
        self._seed = s
        return _SCALE * float((_MULTIPLIER * s) & _MASK)

    def rangauss(self) -> float:
        """
        Return a normally distributed random number with zero mean and unit
        variance.
        """
        while True:
            x1 = self.ranflat()
            x2 = self.ranflat()
            if (x1 >= _TINY) and (x2 >= _TINY):
                break

        return math.sqrt(-2.0 * math.log(x1)) * math.cos(_TPI * x2)

    def ranpoisson(self, mean: float) -> int:
        """
        Return a Poisson distributed random integer.

        Parameters
        ----------
        mean : float
            Mean of the distribution, may be fractional. A mean that is not
            positive gives 0.
        """
        if not math.isfinite(mean):
            raise ValueError(f"Poisson mean must be finite, not {mean}")

        if mean <= 0:
            return 0

        if mean < _POISSON_SMALL_MEAN:
            if self._poisson_mean != mean:
                self._poisson_mean = mean
                self._emean = math.exp(-mean)

            n = -1
            s = 1.0
            while True:
                n += 1
                s *= self.ranflat()
                if s < self._emean:
                    return n

        if self._poisson_mean != mean:
            self._poisson_mean = mean
            self._beta = math.pi / math.sqrt(3.0 * mean)
            self._alpha = self._beta * mean
            c = 0.767 - 3.36 / mean
            self._k = math.log(c) - mean - math.log(self._beta)

        alpha, beta, k = self._alpha, self._beta, self._k
        log_mean = math.log(mean)

        while True:
            while True:
                u1 = self.ranflat()
                if u1 >= 1.0:
                    continue
                x = (alpha - math.log((1.0 - u1) / u1)) / beta
                if x >= -0.5:
                    break

            n = int(x + 0.5)
            u2 = self.ranflat()
            y = alpha - beta * x
            lhs = _poisson_lhs(y, u2)
            rhs = k + n * log_mean - _log_factorial(n)
            if lhs <= rhs:
                return n

    def ranflat_array(self, n: int) -> np.ndarray:
        """
        Return ``n`` uniform random numbers, the same sequence as ``n`` calls to
        :meth:`ranflat`.
        """
        out = np.empty(n, dtype=np.float64)
        self._seed = int(_ranflat_fill(np.uint64(self._seed), out))
        return out

    def rangauss_array(self, n: int) -> np.ndarray:
        """
        Return ``n`` normally distributed random numbers drawn as by repeated calls
        to :meth:`rangauss`.
        """
        out = np.empty(n, dtype=np.float64)
        self._seed = int(_rangauss_fill(np.uint64(self._seed), out))
        return out

    def ranpoisson_array(self, means) -> np.ndarray:
        """
        Return one Poisson distributed random integer for every mean in ``means``,
        drawn in C order.
        """
        means = np.asarray(means, dtype=np.float64)
        if not np.all(np.isfinite(means)):
            raise ValueError("Poisson means must be finite")

        out = np.empty(means.shape, dtype=np.int64)
        self._seed = int(
            _ranpoisson_fill(np.uint64(self._seed), means.ravel(), out.reshape(-1), _LNF)
        )
        return out

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(init_seed={self._init_seed}, status={self._status!r})"


def _validate_seed(seed: int) -> int:
    seed = int(seed)
    if (seed <= 0) or (seed > _MASK):
        raise ValueError(f"seed must be an integer in the range [1, 2**64), not {seed}")
    return seed


def _poisson_lhs(y: float, u2: float) -> float:
    if y < 700.0:
        temp = 1.0 + math.exp(y)
        return y + math.log(u2 / (temp * temp))
    return math.log(u2) - y


def _log_factorial(n: int) -> float:
    if n < 255:
        return float(_LNF[n])

    x = float(n)  # Stirling
    return 0.5 * math.log(2 * math.pi) + (x + 0.5) * math.log(x) - x + 1.0 / (12.0 * x)


@jit(nopython=True, nogil=True)
def _next_flat(s):
    s ^= s >> _SHIFT_A
    s ^= s << _SHIFT_B
    s ^= s >> _SHIFT_C
    return s, _SCALE * np.float64(s * _MULTIPLIER_U64)


@jit(nopython=True, nogil=True)
def _ranflat_fill(s, out):
    for i in range(out.shape[0]):
        s, u = _next_flat(s)
        out[i] = u
    return s


@jit(nopython=True, nogil=True)
def _rangauss_fill(s, out):
    for i in range(out.shape[0]):
        while True:
            s, x1 = _next_flat(s)
            s, x2 = _next_flat(s)
            if (x1 >= _TINY) and (x2 >= _TINY):
                break
        out[i] = np.sqrt(-2.0 * np.log(x1)) * np.cos(_TPI * x2)
    return s


@jit(nopython=True, nogil=True)
def _ranpoisson_fill(s, means, out, lnf):
    previous = -1.0
    emean = alpha = beta = k = 0.0

    for i in range(means.shape[0]):
        mean = means[i]

        if mean <= 0.0:
            out[i] = 0
            continue

        if mean != previous:
            previous = mean
            emean = np.exp(-mean)
            beta = np.pi / np.sqrt(3.0 * mean)
            alpha = beta * mean
            k = np.log(0.767 - 3.36 / mean) - mean - np.log(beta) if mean >= 30.0 else 0.0

        if mean < 30.0:
            n = -1
            p = 1.0
            while True:
                n += 1
                s, u = _next_flat(s)
                p *= u
                if p < emean:
                    break
            out[i] = n
            continue

        log_mean = np.log(mean)
        while True:
            while True:
                s, u1 = _next_flat(s)
                if u1 >= 1.0:
                    continue
                x = (alpha - np.log((1.0 - u1) / u1)) / beta
                if x >= -0.5:
                    break

            n = int(x + 0.5)
            s, u2 = _next_flat(s)
            y = alpha - beta * x
            if y < 700.0:
                temp = 1.0 + np.exp(y)
                lhs = y + np.log(u2 / (temp * temp))
            else:
                lhs = np.log(u2) - y

            if n < 255:
                lnf0 = lnf[n]
            else:
                xn = float(n)
                lnf0 = (
                    0.5 * np.log(2 * np.pi)
                    + (xn + 0.5) * np.log(xn)
                    - xn
                    + 1.0 / (12.0 * xn)
                )

            if lhs <= k + n * log_mean - lnf0:
                out[i] = n
                break

    return s

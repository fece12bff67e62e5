"""Module for Fourier transform buffers with managed FFTW plans."""

from __future__ import annotations

import threading
from typing import Literal, Optional

import numpy as np
import pyfftw  # type: ignore

from temsim.core import config
from temsim.core.errors import (
    AllocationError,
    DimensionMismatchError,
    OutOfRangeError,
    TemsimError,
    UninitializedTransformError,
    message,
)
from temsim.core.utils import complex_dtype_of, get_dtype, real_dtype_of

PlanMode = Literal["measure", "estimate"]

_FFTW_FLAGS = {"measure": "FFTW_MEASURE", "estimate": "FFTW_ESTIMATE"}


def _validate_plan_mode(mode: Optional[str]) -> str:
    if mode is None:
        mode = config.get("fftw.planning_effort")

    if mode not in _FFTW_FLAGS:
        raise ValueError(
            f"transform plan mode must be one of {tuple(_FFTW_FLAGS)}, not {mode}"
        )
    return mode


def _new_fftw_object(
    input_array: np.ndarray,
    output_array: np.ndarray,
    direction: str,
    mode: str,
    threads: int,
) -> pyfftw.FFTW:
    # FFTW overwrites its arrays while measuring, so the plan is built on scratch
    # arrays of the same layout and then pointed at the real ones
    dummy_input = pyfftw.empty_aligned(input_array.shape, dtype=input_array.dtype)
    if output_array is input_array:
        dummy_output = dummy_input
    else:
        dummy_output = pyfftw.empty_aligned(
            output_array.shape, dtype=output_array.dtype
        )

    fftw_object = pyfftw.FFTW(
        dummy_input,
        dummy_output,
        axes=(-2, -1),
        direction=direction,
        threads=threads,
        flags=(_FFTW_FLAGS[mode],),
        planning_timelimit=config.get("fftw.planning_timelimit"),
    )

    fftw_object.update_arrays(input_array, output_array)
    return fftw_object


class TransformPlan:
    """
    A pair of forward and inverse FFTW plans for one array layout.

    A plan is created by the buffer that calls ``init`` and may be adopted by any
    number of buffers with identical dimensions through ``copy_init``. The plan
    never owns sample data; each execution is pointed at the arrays of the buffer
    executing it.

    Parameters
    ----------
    forward : pyfftw.FFTW
        The forward transform.
    inverse : pyfftw.FFTW
        The inverse transform.
    mode : str
        Planning mode used, 'measure' or 'estimate'.
    threads : int
        Number of threads used by the transforms.
    """

    def __init__(
        self, forward: pyfftw.FFTW, inverse: pyfftw.FFTW, mode: str, threads: int
    ):
        self._forward = forward
        self._inverse = inverse
        self._mode = mode
        self._threads = threads
        self._lock = threading.Lock()

    @classmethod
    def create(
        cls,
        real_space: np.ndarray,
        reciprocal_space: np.ndarray,
        mode: str,
        threads: int,
    ) -> TransformPlan:
        """
        Build plans transforming ``real_space`` into ``reciprocal_space`` and back.
        For complex-to-complex plans both arguments may be the same array.
        """
        forward = _new_fftw_object(
            real_space, reciprocal_space, "FFTW_FORWARD", mode, threads
        )
        inverse = _new_fftw_object(
            reciprocal_space, real_space, "FFTW_BACKWARD", mode, threads
        )
        return cls(forward, inverse, mode, threads)

    @property
    def mode(self) -> str:
        """Planning mode, 'measure' or 'estimate'."""
        return self._mode

    @property
    def threads(self) -> int:
        """Number of threads used by the transforms."""
        return self._threads

    @property
    def input_shape(self) -> tuple[int, ...]:
        """Shape of the real space array of the plan."""
        return tuple(self._forward.input_shape)

    @property
    def output_shape(self) -> tuple[int, ...]:
        """Shape of the reciprocal space array of the plan."""
        return tuple(self._forward.output_shape)

    def execute_forward(self, input_array: np.ndarray, output_array: np.ndarray):
        with self._lock:
            self._forward.update_arrays(input_array, output_array)
            self._forward.execute()

    def execute_inverse(self, input_array: np.ndarray, output_array: np.ndarray):
        with self._lock:
            self._inverse.update_arrays(input_array, output_array)
            self._inverse.execute()


class _BaseTransformBuffer:
    _nx: int
    _ny: int
    _plan: Optional[TransformPlan]

    def __init__(self, dtype=None):
        if dtype is None:
            dtype = get_dtype(complex=False)

        self._real_dtype = real_dtype_of(dtype)
        self._complex_dtype = complex_dtype_of(dtype)
        self._nx = 0
        self._ny = 0
        self._plan = None

    @property
    def nx(self) -> int:
        """Number of real space samples along x."""
        return self._nx

    @property
    def ny(self) -> int:
        """Number of real space samples along y."""
        return self._ny

    @property
    def shape(self) -> tuple[int, int]:
        """Real space dimensions ``(nx, ny)``."""
        return self._nx, self._ny

    @property
    def is_allocated(self) -> bool:
        return self._nx > 0 and self._ny > 0

    @property
    def dtype(self) -> np.dtype:
        """Dtype of the complex samples."""
        return np.dtype(self._complex_dtype)

    @property
    def plan(self) -> Optional[TransformPlan]:
        """The transform plans, None before ``init``."""
        return self._plan

    @property
    def init_level(self) -> Optional[str]:
        """Planning mode of the current plans, None if the buffer is uninitialized."""
        if self._plan is None:
            return None
        return self._plan.mode

    @property
    def normalization(self) -> float:
        """The factor ``1 / (nx * ny)`` normalizing a forward transform."""
        return 1.0 / (self._nx * self._ny)

    def init(self, mode: Optional[PlanMode] = None, threads: Optional[int] = None):
        """
        Create the forward and inverse transform plans for the current dimensions.

        Must be called again after every ``resize`` that changes the dimensions.
        The sample data is preserved.

        Parameters
        ----------
        mode : 'measure' or 'estimate', optional
            'measure' spends time once on finding a fast plan for repeated
            transforms, 'estimate' creates a plan immediately. Default is given by
            the 'fftw.planning_effort' configuration.
        threads : int, optional
            Number of threads used by the transforms. Default is given by the
            'fftw.threads' configuration.
        """
        mode = _validate_plan_mode(mode)
        threads = config.get("fftw.threads", override_with=threads)

        if threads < 1:
            raise ValueError(f"number of threads must be positive, not {threads}")

        if not self.is_allocated:
            raise UninitializedTransformError(
                f"{self.__class__.__name__}.init() called on an unallocated buffer"
            )

        self._plan = self._create_plan(mode, threads)

    def copy_init(self, other: _BaseTransformBuffer):
        """
        Adopt the transform plans of another buffer of the same kind. Nothing
        happens if the buffer types, dimensions or dtypes differ.
        """
        if (
            type(other) is not type(self)
            or other.shape != self.shape
            or other.dtype != self.dtype
        ):
            return

        self._plan = other._plan

    def _require_plan(self, name: str) -> TransformPlan:
        if self._plan is None:
            raise UninitializedTransformError(
                f"{self.__class__.__name__}.{name}() called before init()"
            )
        return self._plan

    def _check_index(self, ix: int, iy: int, ny: int, name: str):
        if not config.get("bounds_check"):
            return

        if (ix < 0) or (ix >= self._nx) or (iy < 0) or (iy >= ny):
            raise OutOfRangeError(
                f"out of bounds index in {self.__class__.__name__}.{name}(); "
                f"size = {self._nx} x {ny} access = ({ix}, {iy})"
            )

    def _create_plan(self, mode: str, threads: int) -> TransformPlan:
        raise NotImplementedError

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(nx={self._nx}, ny={self._ny}, "
            f"init_level={self.init_level})"
        )


class TransformBuffer(_BaseTransformBuffer):
    """
    A real space array paired with the complex array of its real-to-complex
    Fourier transform.

    The real array has shape ``(nx, ny)``, the complex array ``(nx, ny // 2 + 1)``.
    Both are row-major. The forward transform takes the real array into the
    complex array, the inverse transform takes it back and divides by ``nx * ny``.
    The inverse transform overwrites the complex array.

    Parameters
    ----------
    nx, ny : int, optional
        Real space dimensions. If either is zero the buffer is left unallocated.
    dtype : numpy dtype, optional
        Precision of the samples. Default is given by the 'precision' configuration.
    """

    def __init__(self, nx: int = 0, ny: int = 0, dtype=None):
        super().__init__(dtype=dtype)
        self._nyc = 0
        self._real: Optional[np.ndarray] = None
        self._complex: Optional[np.ndarray] = None

        if (nx > 0) and (ny > 0):
            self.resize(nx, ny)

    @property
    def nyc(self) -> int:
        """Length of the compressed reciprocal space axis, ``ny // 2 + 1``."""
        return self._nyc

    @property
    def real(self) -> np.ndarray:
        """The real space samples, shape ``(nx, ny)``."""
        return self._real

    @property
    def complex(self) -> np.ndarray:
        """The reciprocal space samples, shape ``(nx, ny // 2 + 1)``."""
        return self._complex

    def resize(self, nx: int, ny: int) -> bool:
        """
        Reallocate the buffer for new real space dimensions.

        Nothing happens if the dimensions are unchanged. Otherwise the old arrays
        and transform plans are discarded and the new arrays are zeroed;
        ``init`` must be called before the next transform.

        Returns
        -------
        bool
            False if the memory could not be allocated, leaving the buffer
            unallocated.
        """
        if (nx < 1) or (ny < 1):
            raise ValueError(f"buffer dimensions must be positive, not {nx} x {ny}")

        if (nx == self._nx) and (ny == self._ny):
            return True

        self._real = None
        self._complex = None
        self._plan = None
        self._nx = self._ny = self._nyc = 0

        nyc = ny // 2 + 1
        try:
            real = pyfftw.zeros_aligned((nx, ny), dtype=self._real_dtype)
            complex_ = pyfftw.zeros_aligned((nx, nyc), dtype=self._complex_dtype)
        except MemoryError:
            message(
                f"cannot allocate {nx} x {ny} arrays in {self.__class__.__name__}.resize()",
                level=2,
            )
            return False

        self._real = real
        self._complex = complex_
        self._nx, self._ny, self._nyc = nx, ny, nyc
        return True

    def _create_plan(self, mode: str, threads: int) -> TransformPlan:
        return TransformPlan.create(self._real, self._complex, mode, threads)

    def forward(self):
        """Real-to-complex transform of the real array into the complex array."""
        plan = self._require_plan("forward")
        plan.execute_forward(self._real, self._complex)

    def inverse(self):
        """
        Complex-to-real transform of the complex array into the real array, divided
        by ``nx * ny``.
        """
        plan = self._require_plan("inverse")
        plan.execute_inverse(self._complex, self._real)
        self._real *= self._real_dtype(self.normalization)

    def re(self, ix: int, iy: int) -> float:
        """Real part of the reciprocal space sample at ``(ix, iy)``."""
        self._check_index(ix, iy, self._nyc, "re")
        return float(self._complex[ix, iy].real)

    def im(self, ix: int, iy: int) -> float:
        """Imaginary part of the reciprocal space sample at ``(ix, iy)``."""
        self._check_index(ix, iy, self._nyc, "im")
        return float(self._complex[ix, iy].imag)

    def rre(self, ix: int, iy: int) -> float:
        """The real space sample at ``(ix, iy)``."""
        self._check_index(ix, iy, self._ny, "rre")
        return float(self._real[ix, iy])

    def set_complex(self, ix: int, iy: int, value: complex):
        self._check_index(ix, iy, self._nyc, "set_complex")
        self._complex[ix, iy] = value

    def set_real(self, ix: int, iy: int, value: float):
        self._check_index(ix, iy, self._ny, "set_real")
        self._real[ix, iy] = value

    def assign(self, other: TransformBuffer | float) -> TransformBuffer:
        """
        Copy the samples of another buffer, or fill with a scalar.

        A buffer must have the same dimensions; its plans are not copied. A scalar
        fills the real array and zeroes the complex array; an unallocated buffer is
        first allocated as 1 x 1.
        """
        if isinstance(other, TransformBuffer):
            if other.shape != self.shape:
                raise DimensionMismatchError(
                    f"{self.__class__.__name__}.assign() invoked with unequal sizes: "
                    f"{self._nx} x {self._ny} and {other.nx} x {other.ny}"
                )
            if not self.is_allocated:
                raise TemsimError(
                    f"{self.__class__.__name__}.assign() invoked on unallocated buffers"
                )
            self._complex[...] = other.complex
            self._real[...] = other.real
            return self

        if isinstance(other, _BaseTransformBuffer):
            raise TypeError(
                f"cannot assign {other.__class__.__name__} to {self.__class__.__name__}"
            )

        if not self.is_allocated and not self.resize(1, 1):
            raise AllocationError(
                f"{self.__class__.__name__}.assign() could not allocate a 1 x 1 buffer"
            )

        self._complex[...] = 0.0
        self._real[...] = other
        return self

    def find_range(self) -> Optional[tuple[float, float]]:
        """The minimum and maximum of the real array, None if unallocated."""
        if not self.is_allocated:
            return None
        return float(self._real.min()), float(self._real.max())

    def __imul__(self, other: float) -> TransformBuffer:
        self._real *= other
        self._complex *= other
        return self

    def __iadd__(self, other: TransformBuffer) -> TransformBuffer:
        if other.shape != self.shape:
            raise DimensionMismatchError(
                f"cannot add {other.nx} x {other.ny} buffer to "
                f"{self._nx} x {self._ny} buffer"
            )
        self._real += other.real
        self._complex += other.complex
        return self


class ComplexTransformBuffer(_BaseTransformBuffer):
    """
    A complex array with in-place complex-to-complex Fourier transforms.

    Both transforms are unnormalized; a forward transform followed by an inverse
    transform multiplies the samples by ``nx * ny``. The normalization is usually
    folded into a later operation, see
    :func:`temsim.transmission.bandwidth_limit`.

    Parameters
    ----------
    nx, ny : int, optional
        Dimensions. If either is zero the buffer is left unallocated.
    dtype : numpy dtype, optional
        Precision of the samples. Default is given by the 'precision' configuration.
    """

    def __init__(self, nx: int = 0, ny: int = 0, dtype=None):
        super().__init__(dtype=dtype)
        self._array: Optional[np.ndarray] = None

        if (nx > 0) and (ny > 0):
            self.resize(nx, ny)

    @property
    def array(self) -> np.ndarray:
        """The complex samples, shape ``(nx, ny)``."""
        return self._array

    def resize(self, nx: int, ny: int) -> bool:
        """
        Reallocate the buffer for new dimensions, discarding samples and plans.

        Returns
        -------
        bool
            False if the memory could not be allocated.
        """
        if (nx < 1) or (ny < 1):
            raise ValueError(f"buffer dimensions must be positive, not {nx} x {ny}")

        if (nx == self._nx) and (ny == self._ny):
            return True

        self._array = None
        self._plan = None
        self._nx = self._ny = 0

        try:
            array = pyfftw.zeros_aligned((nx, ny), dtype=self._complex_dtype)
        except MemoryError:
            message(
                f"cannot allocate {nx} x {ny} array in {self.__class__.__name__}.resize()",
                level=2,
            )
            return False

        self._array = array
        self._nx, self._ny = nx, ny
        return True

    def _create_plan(self, mode: str, threads: int) -> TransformPlan:
        return TransformPlan.create(self._array, self._array, mode, threads)

    def forward(self):
        plan = self._require_plan("forward")
        plan.execute_forward(self._array, self._array)

    def inverse(self):
        plan = self._require_plan("inverse")
        plan.execute_inverse(self._array, self._array)

    def re(self, ix: int, iy: int) -> float:
        self._check_index(ix, iy, self._ny, "re")
        return float(self._array[ix, iy].real)

    def im(self, ix: int, iy: int) -> float:
        self._check_index(ix, iy, self._ny, "im")
        return float(self._array[ix, iy].imag)

    def set_complex(self, ix: int, iy: int, value: complex):
        self._check_index(ix, iy, self._ny, "set_complex")
        self._array[ix, iy] = value

    def assign(self, other: ComplexTransformBuffer | complex) -> ComplexTransformBuffer:
        """
        Copy the samples of another buffer of equal dimensions, or fill with a
        scalar. An unallocated buffer filled with a scalar becomes 1 x 1.
        """
        if isinstance(other, ComplexTransformBuffer):
            if other.shape != self.shape:
                raise DimensionMismatchError(
                    f"{self.__class__.__name__}.assign() invoked with unequal sizes: "
                    f"{self._nx} x {self._ny} and {other.nx} x {other.ny}"
                )
            if not self.is_allocated:
                raise TemsimError(
                    f"{self.__class__.__name__}.assign() invoked on unallocated buffers"
                )
            self._array[...] = other.array
            return self

        if isinstance(other, _BaseTransformBuffer):
            raise TypeError(
                f"cannot assign {other.__class__.__name__} to {self.__class__.__name__}"
            )

        if not self.is_allocated and not self.resize(1, 1):
            raise AllocationError(
                f"{self.__class__.__name__}.assign() could not allocate a 1 x 1 buffer"
            )

        self._array[...] = other
        return self

    def find_range(
        self,
    ) -> Optional[tuple[tuple[float, float], tuple[float, float]]]:
        """
        The ranges ``((real_min, real_max), (imag_min, imag_max))`` of the samples,
        None if unallocated.
        """
        if not self.is_allocated:
            return None
        real, imag = self._array.real, self._array.imag
        return (
            (float(real.min()), float(real.max())),
            (float(imag.min()), float(imag.max())),
        )

    def __imul__(self, other) -> ComplexTransformBuffer:
        if isinstance(other, ComplexTransformBuffer):
            if other.shape != self.shape:
                raise DimensionMismatchError(
                    f"cannot multiply {self._nx} x {self._ny} buffer by "
                    f"{other.nx} x {other.ny} buffer"
                )
            self._array *= other.array
        else:
            self._array *= other
        return self

    def __iadd__(self, other: ComplexTransformBuffer) -> ComplexTransformBuffer:
        if other.shape != self.shape:
            raise DimensionMismatchError(
                f"cannot add {other.nx} x {other.ny} buffer to "
                f"{self._nx} x {self._ny} buffer"
            )
        self._array += other.array
        return self

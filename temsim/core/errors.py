"""Exceptions and the diagnostic message channel of *temsim*.

Precondition violations (a transform before its plans exist, assignment between
buffers of different size, out-of-range pixel access) raise a subclass of
:class:`TemsimError`. They are programming errors in the calling code and are not
meant to be recovered from halfway through a slice. Continuable conditions are
reported through :func:`message`, which emits a :class:`TemsimWarning` and can be
redirected with the standard :mod:`warnings` machinery.
"""

from __future__ import annotations

import warnings


class TemsimWarning(UserWarning):
    """Diagnostic emitted by temsim."""


class TemsimDegradedWarning(TemsimWarning):
    """A condition that lets the calculation continue with reduced guarantees."""


class TemsimError(RuntimeError):
    """Base class of temsim precondition violations."""

    kind: str = "error"


class UninitializedTransformError(TemsimError):
    """A transform was requested before plans were created for the current size."""

    kind = "uninitialized"


class DimensionMismatchError(TemsimError):
    """Two buffers or arrays that must have equal dimensions do not."""

    kind = "dimension-mismatch"


class AllocationError(TemsimError, MemoryError):
    """Memory for a buffer could not be allocated."""

    kind = "allocation-failure"


class OutOfRangeError(TemsimError, IndexError):
    """Pixel index outside the buffer (only raised when bounds checking is on)."""

    kind = "out-of-range"


_LEVELS = {0: "status", 1: "warning", 2: "error"}


def message(text: str, level: int = 0, category: type[Warning] = TemsimWarning):
    """
    Emit a diagnostic message.

    Parameters
    ----------
    text : str
        The message.
    level : int
        0 = status message, 1 = significant warning, 2 = possibly fatal error.
    category : Warning subclass
        Warning category, use :class:`TemsimDegradedWarning` for conditions where
        the calculation continues with reduced guarantees.
    """
    if level not in _LEVELS:
        raise ValueError(f"message level must be one of {tuple(_LEVELS)}, not {level}")

    warnings.warn(f"[{_LEVELS[level]}] {text}", category, stacklevel=3)

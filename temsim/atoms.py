"""Module for the per-slice atom records consumed by the potential kernels."""

from __future__ import annotations

from typing import Optional

import numpy as np
from ase import Atoms

from temsim.core.errors import DimensionMismatchError
from temsim.core.utils import get_dtype


class AtomRecords:
    """
    The atoms of one slice packed into a flat ``(n, 4)`` array of ``x, y,
    occupancy, atomic number`` records.

    The kernels only read the records. Thermal displacements create new records,
    see :func:`temsim.temperature.displace_atoms`.

    Parameters
    ----------
    positions : array of shape (n, 2) or (n, 3)
        Positions [Å]. Only the x and y coordinates are used.
    numbers : array of int
        Atomic numbers.
    occupancies : array of float, optional
        Site occupancy of each atom in the range [0, 1]. Default is 1.
    dtype : numpy dtype, optional
        Dtype of the packed records. Default is given by the 'precision' configuration.
    """

    def __init__(
        self,
        positions: np.ndarray,
        numbers: np.ndarray,
        occupancies: Optional[np.ndarray] = None,
        dtype=None,
    ):
        positions = np.asarray(positions, dtype=np.float64)
        _check_positions_shape(positions)
        numbers = np.asarray(numbers, dtype=int).ravel()

        if occupancies is None:
            occupancies = np.ones(len(numbers), dtype=np.float64)
        else:
            occupancies = np.asarray(occupancies, dtype=np.float64).ravel()

        if not (len(positions) == len(numbers) == len(occupancies)):
            raise DimensionMismatchError(
                f"got {len(positions)} positions, {len(numbers)} atomic numbers and "
                f"{len(occupancies)} occupancies"
            )

        if np.any(occupancies < 0.0) or np.any(occupancies > 1.0):
            raise ValueError("occupancies must be in the range [0, 1]")

        if np.any(numbers < 1):
            raise ValueError("atomic numbers must be positive")

        if dtype is None:
            dtype = get_dtype(complex=False)

        records = np.zeros((len(numbers), 4), dtype=dtype)
        records[:, 0] = positions[:, 0]
        records[:, 1] = positions[:, 1]
        records[:, 2] = occupancies
        records[:, 3] = numbers
        records.setflags(write=False)
        self._records = records

    @classmethod
    def from_ase(
        cls, atoms: Atoms, occupancies: Optional[np.ndarray] = None, dtype=None
    ) -> AtomRecords:
        """
        Create records from an ASE Atoms object. Occupancies are taken from the
        ``occupancies`` argument, else from an ``"occupancy"`` per-atom array of the
        atoms, else set to 1.
        """
        if occupancies is None and "occupancy" in atoms.arrays:
            occupancies = atoms.arrays["occupancy"]

        return cls(atoms.positions, atoms.numbers, occupancies, dtype=dtype)

    @classmethod
    def from_records(cls, records: np.ndarray) -> AtomRecords:
        """Create from an ``(n, 4)`` array of ``x, y, occupancy, atomic number``."""
        records = np.asarray(records)
        if records.ndim != 2 or records.shape[1] != 4:
            raise DimensionMismatchError(
                f"atom records must have shape (n, 4), not {records.shape}"
            )
        return cls(
            records[:, :2],
            np.rint(records[:, 3]).astype(int),
            records[:, 2],
            dtype=records.dtype,
        )

    @property
    def records(self) -> np.ndarray:
        """The packed (read only) records, shape ``(n, 4)``."""
        return self._records

    @property
    def positions(self) -> np.ndarray:
        """The xy-positions [Å], shape ``(n, 2)``."""
        return self._records[:, :2]

    @property
    def occupancies(self) -> np.ndarray:
        return self._records[:, 2]

    @property
    def numbers(self) -> np.ndarray:
        """Atomic numbers."""
        return self._records[:, 3].astype(int)

    def with_positions(self, positions: np.ndarray) -> AtomRecords:
        """New records with the same species and occupancies at new positions."""
        return self.__class__(
            positions, self.numbers, self.occupancies, dtype=self._records.dtype
        )

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(natoms={len(self)})"


def _check_positions_shape(positions: np.ndarray):
    shape = np.shape(positions)
    if len(shape) != 2 or shape[1] not in (2, 3):
        raise ValueError(f"positions must have shape (n, 2) or (n, 3), not {shape}")

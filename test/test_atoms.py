import numpy as np
import pytest
from ase import Atoms

from temsim.atoms import AtomRecords
from temsim.core.errors import DimensionMismatchError


def test_pack_records():
    atoms = AtomRecords([[1., 2., 3.], [4., 5., 6.]], [6, 14], [1., .5])

    assert len(atoms) == 2
    assert atoms.records.shape == (2, 4)
    assert atoms.records.dtype == np.float32
    assert np.allclose(atoms.positions, [[1., 2.], [4., 5.]])
    assert np.allclose(atoms.occupancies, [1., .5])
    assert atoms.numbers.tolist() == [6, 14]


def test_records_are_read_only():
    atoms = AtomRecords([[0., 0.]], [6])
    with pytest.raises(ValueError):
        atoms.records[0, 0] = 1.


def test_default_occupancy():
    atoms = AtomRecords(np.zeros((3, 2)), [1, 1, 1])
    assert np.all(atoms.occupancies == 1.)


def test_invalid_records():
    with pytest.raises(DimensionMismatchError):
        AtomRecords(np.zeros((2, 2)), [6])

    with pytest.raises(ValueError):
        AtomRecords(np.zeros((1, 2)), [6], [1.5])

    with pytest.raises(ValueError):
        AtomRecords(np.zeros((1, 2)), [0])

    with pytest.raises(ValueError):
        AtomRecords(np.zeros((1, 4)), [6])


def test_from_ase():
    atoms = Atoms("CSi", positions=[[0., 1., 2.], [3., 4., 5.]])
    records = AtomRecords.from_ase(atoms)

    assert records.numbers.tolist() == [6, 14]
    assert np.allclose(records.positions, [[0., 1.], [3., 4.]])

    atoms.set_array("occupancy", np.array([.25, .75]))
    assert np.allclose(AtomRecords.from_ase(atoms).occupancies, [.25, .75])
    assert np.allclose(AtomRecords.from_ase(atoms, occupancies=[1., 0.]).occupancies, [1., 0.])


def test_from_records_and_with_positions():
    atoms = AtomRecords([[1., 1.], [2., 2.]], [6, 8], [.5, 1.])
    copy = AtomRecords.from_records(atoms.records)

    assert np.all(copy.records == atoms.records)

    moved = atoms.with_positions([[0., 0.], [3., 3.]])
    assert np.allclose(moved.positions, [[0., 0.], [3., 3.]])
    assert moved.numbers.tolist() == [6, 8]
    assert np.allclose(atoms.positions, [[1., 1.], [2., 2.]])

    with pytest.raises(DimensionMismatchError):
        AtomRecords.from_records(np.zeros((2, 3)))

import numpy as np
import pyfftw
import pytest
from hypothesis import given

import strategies as temsim_st
from temsim import config
from temsim.core.errors import (
    AllocationError,
    DimensionMismatchError,
    OutOfRangeError,
    TemsimError,
    TemsimWarning,
    UninitializedTransformError,
)
from temsim.fft import ComplexTransformBuffer, TransformBuffer
from utils import random_complex, random_real


@given(gpts=temsim_st.gpts())
def test_round_trip(gpts):
    buffer = TransformBuffer(*gpts)
    buffer.init(mode="estimate")

    array = random_real(gpts)
    buffer.real[...] = array

    buffer.forward()
    buffer.inverse()

    assert np.allclose(buffer.real, array, atol=1e-5, rtol=1e-4)


@given(gpts=temsim_st.gpts())
def test_forward_matches_numpy(gpts):
    with config.set({"precision": "float64"}):
        buffer = TransformBuffer(*gpts)
    buffer.init(mode="estimate")

    array = random_real(gpts, dtype=np.float64)
    buffer.real[...] = array
    buffer.forward()

    assert buffer.complex.shape == (gpts[0], gpts[1] // 2 + 1)
    assert np.allclose(buffer.complex, np.fft.rfft2(array))


@given(gpts=temsim_st.gpts())
def test_resize_then_init(gpts):
    buffer = TransformBuffer()
    assert not buffer.is_allocated
    assert buffer.init_level is None

    assert buffer.resize(*gpts)
    buffer.init(mode="estimate")

    assert buffer.shape == gpts
    assert buffer.real.shape == gpts
    assert buffer.nyc == gpts[1] // 2 + 1
    assert buffer.init_level == "estimate"


def test_resize_discards_plans():
    buffer = TransformBuffer(8, 8)
    buffer.init(mode="estimate")

    assert buffer.resize(8, 8)
    assert buffer.init_level == "estimate"

    assert buffer.resize(8, 6)
    assert buffer.init_level is None

    with pytest.raises(UninitializedTransformError) as e:
        buffer.forward()

    assert e.value.kind == "uninitialized"


def test_resize_raises_non_positive():
    with pytest.raises(ValueError):
        TransformBuffer().resize(0, 4)

    with pytest.raises(ValueError):
        TransformBuffer().resize(0, 0)

    with pytest.raises(ValueError):
        ComplexTransformBuffer().resize(0, 0)


def test_init_preserves_samples():
    buffer = TransformBuffer(6, 4)
    array = random_real((6, 4))
    buffer.real[...] = array
    buffer.init(mode="measure")
    assert np.all(buffer.real == array)


def test_init_raises_unallocated():
    with pytest.raises(UninitializedTransformError):
        TransformBuffer().init()


def test_init_raises_invalid():
    buffer = TransformBuffer(4, 4)

    with pytest.raises(ValueError):
        buffer.init(mode="exhaustive")

    with pytest.raises(ValueError):
        buffer.init(threads=0)


def test_init_default_mode():
    buffer = TransformBuffer(4, 4)
    with config.set({"fftw.planning_effort": "measure"}):
        buffer.init()
    assert buffer.init_level == "measure"


@pytest.mark.parametrize("method", ["forward", "inverse"])
def test_transform_before_init_raises(method):
    buffer = TransformBuffer(4, 4)
    with pytest.raises(UninitializedTransformError):
        getattr(buffer, method)()


def test_allocation_failure(monkeypatch):
    def zeros_aligned(*args, **kwargs):
        raise MemoryError

    buffer = TransformBuffer(4, 4)
    monkeypatch.setattr(pyfftw, "zeros_aligned", zeros_aligned)

    with pytest.warns(TemsimWarning, match="cannot allocate"):
        assert not buffer.resize(8, 8)

    assert not buffer.is_allocated
    assert buffer.real is None


def test_copy_init_shares_plan():
    buffer = TransformBuffer(8, 6)
    buffer.init(mode="estimate")

    other = TransformBuffer(8, 6)
    other.copy_init(buffer)

    assert other.plan is buffer.plan
    assert other.init_level == "estimate"

    array = random_real((8, 6))
    other.real[...] = array
    other.forward()
    other.inverse()

    assert np.allclose(other.real, array, atol=1e-5, rtol=1e-4)


def test_copy_init_mismatched_is_noop():
    buffer = TransformBuffer(8, 6)
    buffer.init(mode="estimate")

    other = TransformBuffer(6, 8)
    other.copy_init(buffer)
    assert other.plan is None

    with config.set({"precision": "float64"}):
        other = TransformBuffer(8, 6)
    other.copy_init(buffer)
    assert other.plan is None


def test_copy_init_other_buffer_type_is_noop():
    buffer = TransformBuffer(4, 4)
    buffer.init(mode="estimate")

    complex_buffer = ComplexTransformBuffer(4, 4)
    complex_buffer.copy_init(buffer)
    assert complex_buffer.plan is None

    with pytest.raises(UninitializedTransformError):
        complex_buffer.forward()

    complex_buffer.init(mode="estimate")
    other = TransformBuffer(4, 4)
    other.copy_init(complex_buffer)
    assert other.plan is None


@given(gpts=temsim_st.gpts(), other_gpts=temsim_st.gpts())
def test_assign_mismatched_raises(gpts, other_gpts):
    buffer = TransformBuffer(*gpts)
    other = TransformBuffer(*other_gpts)

    if gpts == other_gpts:
        buffer.assign(other)
        return

    with pytest.raises(DimensionMismatchError) as e:
        buffer.assign(other)

    assert e.value.kind == "dimension-mismatch"


def test_assign_copies_samples():
    buffer = TransformBuffer(5, 7)
    other = TransformBuffer(5, 7)
    other.real[...] = random_real((5, 7))
    other.complex[...] = random_complex((5, 4))

    buffer.assign(other)

    assert np.all(buffer.real == other.real)
    assert np.all(buffer.complex == other.complex)
    assert buffer.real is not other.real


def test_assign_unallocated_raises():
    with pytest.raises(TemsimError):
        TransformBuffer().assign(TransformBuffer())


def test_assign_scalar():
    buffer = TransformBuffer(4, 4)
    buffer.complex[...] = 1.0 + 1.0j

    buffer.assign(3.0)

    assert np.all(buffer.real == 3.0)
    assert np.all(buffer.complex == 0.0)


def test_assign_scalar_unallocated():
    buffer = TransformBuffer().assign(2.0)
    assert buffer.shape == (1, 1)
    assert buffer.rre(0, 0) == 2.0


def test_assign_other_buffer_type_raises():
    with pytest.raises(TypeError):
        TransformBuffer(4, 4).assign(ComplexTransformBuffer(4, 4))

    with pytest.raises(TypeError):
        ComplexTransformBuffer(4, 4).assign(TransformBuffer(4, 4))


def test_assign_scalar_allocation_failure(monkeypatch):
    def zeros_aligned(*args, **kwargs):
        raise MemoryError

    monkeypatch.setattr(pyfftw, "zeros_aligned", zeros_aligned)

    with pytest.warns(TemsimWarning, match="cannot allocate"):
        with pytest.raises(AllocationError) as e:
            TransformBuffer().assign(2.0)

    assert e.value.kind == "allocation-failure"


def test_find_range():
    buffer = TransformBuffer(3, 3)
    buffer.real[...] = np.arange(9).reshape((3, 3)) - 4
    assert buffer.find_range() == (-4.0, 4.0)
    assert TransformBuffer().find_range() is None


def test_accessors():
    buffer = TransformBuffer(4, 6)
    buffer.set_complex(3, 3, 1.0 - 2.0j)
    buffer.set_real(3, 5, 7.0)

    assert buffer.re(3, 3) == 1.0
    assert buffer.im(3, 3) == -2.0
    assert buffer.rre(3, 5) == 7.0


def test_bounds_check():
    buffer = TransformBuffer(4, 6)

    with config.set({"bounds_check": True}):
        buffer.rre(3, 5)

        with pytest.raises(OutOfRangeError) as e:
            buffer.re(3, 4)

        assert e.value.kind == "out-of-range"

        with pytest.raises(IndexError):
            buffer.set_real(4, 0, 1.0)


def test_in_place_arithmetic():
    buffer = TransformBuffer(4, 4).assign(2.0)
    other = TransformBuffer(4, 4).assign(1.0)

    buffer *= 3.0
    buffer += other

    assert np.all(buffer.real == 7.0)

    with pytest.raises(DimensionMismatchError):
        buffer += TransformBuffer(2, 2)


def test_complex_round_trip_unnormalized():
    buffer = ComplexTransformBuffer(6, 10)
    buffer.init(mode="estimate")

    array = random_complex((6, 10))
    buffer.array[...] = array

    buffer.forward()
    assert np.allclose(buffer.array, np.fft.fft2(array), atol=1e-4, rtol=1e-4)

    buffer.inverse()
    assert np.allclose(buffer.array * buffer.normalization, array, atol=1e-5, rtol=1e-4)


def test_complex_buffer_arithmetic_and_range():
    buffer = ComplexTransformBuffer(3, 3).assign(1.0 + 2.0j)
    other = ComplexTransformBuffer(3, 3).assign(2.0)

    buffer *= other
    buffer += other

    assert np.all(buffer.array == 4.0 + 4.0j)
    assert buffer.find_range() == ((4.0, 4.0), (4.0, 4.0))

    with pytest.raises(DimensionMismatchError):
        buffer.assign(ComplexTransformBuffer(3, 4))


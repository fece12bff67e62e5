import numpy as np
import pytest

from temsim.core.backend import cp, get_array_module

gpu = pytest.param('gpu', marks=pytest.mark.skipif(cp is None, reason='no gpu'))


def assert_array_matches_device(array, device):
    assert get_array_module(array) is get_array_module(device)


def random_real(shape, seed=0, dtype=np.float32):
    return np.random.RandomState(seed).standard_normal(shape).astype(dtype)


def random_complex(shape, seed=0, dtype=np.complex64):
    rng = np.random.RandomState(seed)
    return (rng.standard_normal(shape) + 1.j * rng.standard_normal(shape)).astype(dtype)

import hypothesis.strategies as st


def sensible_floats(allow_nan=False, allow_infinity=False, **kwargs):
    return st.floats(allow_nan=allow_nan, allow_infinity=allow_infinity, **kwargs)


@st.composite
def gpts(draw, min_value=2, max_value=32):
    nx = draw(st.integers(min_value=min_value, max_value=max_value))
    ny = draw(st.integers(min_value=min_value, max_value=max_value))
    return nx, ny


@st.composite
def extent(draw, min_value=1., max_value=10.):
    extent = sensible_floats(min_value=min_value, max_value=max_value)
    return draw(extent), draw(extent)


@st.composite
def energy(draw, min_value=80e3, max_value=300e3):
    return draw(sensible_floats(min_value=min_value, max_value=max_value))


def seeds(min_value=1, max_value=2 ** 63):
    return st.integers(min_value=min_value, max_value=max_value)

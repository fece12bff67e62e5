"""Main temsim module."""

from temsim._version import __version__
from temsim.atoms import AtomRecords
from temsim.core import config
from temsim.core.errors import (
    AllocationError,
    DimensionMismatchError,
    OutOfRangeError,
    TemsimError,
    TemsimWarning,
    UninitializedTransformError,
)
from temsim.core.grid import FrequencyGrid, invert2d, spatial_frequencies
from temsim.detectors import (
    CollectorMode,
    DetectorGeometry,
    integrate_columns,
    integrate_detector,
)
from temsim.fft import ComplexTransformBuffer, TransformBuffer, TransformPlan
from temsim.noise import poisson_noise
from temsim.potentials import ScatteringParameters, project_potential, scattering_factor
from temsim.rng import RNGEngine
from temsim.temperature import displace_atoms, thermal_displacements
from temsim.transmission import bandwidth_limit, phase_grating, transmission_function
from temsim.waves import abs2, pixel_multiply, probe_shift, vector_multiply

__all__ = [
    "__version__",
    "config",
    "AtomRecords",
    "FrequencyGrid",
    "spatial_frequencies",
    "invert2d",
    "TransformPlan",
    "TransformBuffer",
    "ComplexTransformBuffer",
    "ScatteringParameters",
    "project_potential",
    "scattering_factor",
    "bandwidth_limit",
    "phase_grating",
    "transmission_function",
    "pixel_multiply",
    "vector_multiply",
    "probe_shift",
    "abs2",
    "CollectorMode",
    "DetectorGeometry",
    "integrate_columns",
    "integrate_detector",
    "RNGEngine",
    "thermal_displacements",
    "displace_atoms",
    "poisson_noise",
    "TemsimError",
    "TemsimWarning",
    "UninitializedTransformError",
    "DimensionMismatchError",
    "AllocationError",
    "OutOfRangeError",
]

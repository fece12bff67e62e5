from .core import gpts, extent, energy, sensible_floats, seeds
from .atoms import atom_records, scattering_parameters, CARBON, SILICON

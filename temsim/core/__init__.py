from temsim.core import config

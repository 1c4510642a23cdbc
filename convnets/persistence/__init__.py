"""Network persistence: XML descriptions, parameter files and name maps."""

from . import mapper, parameters
from .network_xml import Persistence

__all__ = ["Persistence", "mapper", "parameters"]

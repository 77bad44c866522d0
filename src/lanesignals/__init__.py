"""
lanesignals: raw street graph to lane and signal network converter
"""

from .config import ConverterConfig, get_config, validate_config
from .models import ConversionReport, ConversionResult
from .pipeline import NetworkConverter
from .raw import OverpassParser, RawGraph, RawNode, RawWay, RestrictionPolarity, RestrictionRelation
from .signals import UnexpectedJunctionError

__version__ = "0.1.0"

__all__ = [
    "ConverterConfig",
    "get_config",
    "validate_config",
    "ConversionReport",
    "ConversionResult",
    "NetworkConverter",
    "OverpassParser",
    "RawGraph",
    "RawNode",
    "RawWay",
    "RestrictionPolarity",
    "RestrictionRelation",
    "UnexpectedJunctionError",
]

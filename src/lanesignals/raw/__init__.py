"""
Raw street-graph records, the Overpass loader and API client
"""

from .models import RawGraph, RawNode, RawWay, RestrictionPolarity, RestrictionRelation
from .parser import OverpassParser
from .overpass import OverpassClient

__all__ = [
    "RawGraph",
    "RawNode",
    "RawWay",
    "RestrictionPolarity",
    "RestrictionRelation",
    "OverpassParser",
    "OverpassClient",
]

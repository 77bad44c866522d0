"""
Network stages: filtering, signal consolidation, clustering and topology
"""

from .usage import UsageFilter
from .signals import SignalConsolidator, SignalState
from .clustering import JunctionClusterer
from .topology import TopologyBuilder

__all__ = [
    "UsageFilter",
    "SignalConsolidator",
    "SignalState",
    "JunctionClusterer",
    "TopologyBuilder",
]

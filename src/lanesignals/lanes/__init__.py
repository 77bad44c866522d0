"""
Lane creation, downstream ordering and turn restrictions
"""

from .ordering import LinkVector, order_downstream_links, find_reverse, straight_candidate
from .restrictions import apply_restrictions
from .assignment import LaneAssigner, select_for_token

__all__ = [
    "LinkVector",
    "order_downstream_links",
    "find_reverse",
    "straight_candidate",
    "apply_restrictions",
    "LaneAssigner",
    "select_for_token",
]

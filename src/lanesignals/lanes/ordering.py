"""
Angular ordering of downstream links

Rotations are measured relative to the upstream link's direction plus pi:
straight ahead is pi, right turns lie below it, left turns above it and a
U-turn is close to 0 (or 2pi).
"""

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..geometry import TWO_PI, GeometryUtils
from ..models import DirectedLink, Network


RIGHT_CONE = 11 * math.pi / 12
LEFT_CONE = 13 * math.pi / 12
REVERSE_TOLERANCE = math.pi / 6
SHARP_RIGHT_LIMIT = math.pi / 2
SHARP_LEFT_LIMIT = 3 * math.pi / 2


@dataclass
class LinkVector:
    """A link's direction vector and its rotation against an upstream link"""
    link: DirectedLink
    dx: float
    dy: float
    bearing: float
    rotation: float = 0.0

    @property
    def is_reverse(self) -> bool:
        return GeometryUtils.circular_distance(self.rotation, 0.0) <= REVERSE_TOLERANCE

    @property
    def deviation_from_straight(self) -> float:
        return abs(self.rotation - math.pi)


def link_vector(network: Network, link: DirectedLink) -> LinkVector:
    start = network.nodes[link.from_node]
    end = network.nodes[link.to_node]
    dx = end.x - start.x
    dy = end.y - start.y
    return LinkVector(link=link, dx=dx, dy=dy, bearing=GeometryUtils.bearing(dx, dy))


def order_downstream_links(
    network: Network,
    link: DirectedLink,
    candidates: Iterable[DirectedLink]
) -> List[LinkVector]:
    """
    Order candidate links from sharp right to sharp left

    Args:
        network: Network holding node coordinates
        link: Upstream link
        candidates: Links leaving the upstream link's destination

    Returns:
        LinkVectors sorted by rotation, ties broken by link id
    """
    upstream = link_vector(network, link)
    vectors = []
    for candidate in candidates:
        vector = link_vector(network, candidate)
        vector.rotation = GeometryUtils.rotation(upstream.bearing, vector.bearing) % TWO_PI
        vectors.append(vector)
    return sorted(vectors, key=lambda v: (v.rotation, v.link.id))


def find_reverse(vectors: List[LinkVector]) -> Optional[LinkVector]:
    """The candidate pointing back the way the upstream link came, if any"""
    reverse = [v for v in vectors if v.is_reverse]
    if not reverse:
        return None
    return min(reverse, key=lambda v: (GeometryUtils.circular_distance(v.rotation, 0.0), v.link.id))


def straight_candidate(vectors: List[LinkVector]) -> Optional[LinkVector]:
    """The candidate closest to straight ahead"""
    if not vectors:
        return None
    return min(vectors, key=lambda v: (v.deviation_from_straight, v.link.id))


def turn_candidates(vectors: List[LinkVector]) -> List[LinkVector]:
    """Candidates without the reverse one, keeping the right to left order"""
    reverse = find_reverse(vectors)
    return [v for v in vectors if v is not reverse]

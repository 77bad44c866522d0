"""
Raw street-graph models

Data classes for raw nodes, ways and turn-restriction relations, plus the
graph container the conversion stages work on
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Set

from loguru import logger


class RestrictionPolarity(Enum):
    DENY = "deny"
    ONLY_ALLOW = "only_allow"


@dataclass
class RestrictionRelation:
    """Turn restriction from one way onto another across a node"""
    id: int
    node_id: Optional[int] = None
    from_way_id: Optional[int] = None
    to_way_id: Optional[int] = None
    polarity: Optional[RestrictionPolarity] = None

    @property
    def is_complete(self) -> bool:
        return None not in (self.node_id, self.from_way_id, self.to_way_id, self.polarity)


@dataclass
class RawNode:
    """Represents a raw node in projected coordinates"""
    id: int
    x: float
    y: float
    tags: Dict[str, str] = field(default_factory=dict)
    signalized: bool = False
    crossing: bool = False
    endpoint: bool = False
    used: bool = False
    representative: Optional[int] = None  # id of the junction node this node was merged into
    way_ids: Set[int] = field(default_factory=set)
    restrictions: List[RestrictionRelation] = field(default_factory=list)

    @property
    def degree(self) -> int:
        return len(self.way_ids)

    @property
    def is_junction(self) -> bool:
        return self.degree > 1

    def distance_to(self, other: "RawNode") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass
class RawWay:
    """Represents a raw way as an ordered list of node ids"""
    id: int
    node_ids: List[int]
    tags: Dict[str, str] = field(default_factory=dict)
    hierarchy: Optional[int] = None

    @property
    def highway(self) -> Optional[str]:
        return self.tags.get("highway")

    @property
    def oneway(self) -> Optional[str]:
        return self.tags.get("oneway")

    @property
    def is_roundabout(self) -> bool:
        return self.tags.get("junction") == "roundabout"


class RawGraph:
    """
    Nodes, ways and restriction relations of one raw extract

    Iteration is always in ascending id order so that every stage, and the
    ids it generates, are reproducible.
    """

    def __init__(self):
        self.nodes: Dict[int, RawNode] = {}
        self.ways: Dict[int, RawWay] = {}
        self.pending_restrictions: List[RestrictionRelation] = []

    def add_node(self, node: RawNode) -> RawNode:
        self.nodes[node.id] = node
        return node

    def add_way(self, way: RawWay) -> RawWay:
        self.ways[way.id] = way
        return way

    def add_restriction(self, relation: RestrictionRelation) -> None:
        self.pending_restrictions.append(relation)

    def iter_nodes(self) -> Iterator[RawNode]:
        for node_id in sorted(self.nodes):
            yield self.nodes[node_id]

    def iter_ways(self) -> Iterator[RawWay]:
        for way_id in sorted(self.ways):
            yield self.ways[way_id]

    def incident_ways(self, node: RawNode) -> List[RawWay]:
        return [self.ways[way_id] for way_id in sorted(node.way_ids) if way_id in self.ways]

    def next_node_id(self) -> int:
        return max(self.nodes, default=0) + 1

    def resolve_restrictions(self) -> List[int]:
        """
        Attach complete restrictions to their anchor node

        Returns:
            Ids of the relations dropped as incomplete
        """
        dropped = []
        for relation in sorted(self.pending_restrictions, key=lambda r: r.id):
            complete = (
                relation.is_complete
                and relation.node_id in self.nodes
                and relation.from_way_id in self.ways
                and relation.to_way_id in self.ways
            )
            if complete:
                self.nodes[relation.node_id].restrictions.append(relation)
            else:
                logger.warning(f"Restriction {relation.id} incomplete! Not processed!")
                dropped.append(relation.id)
        self.pending_restrictions = []
        return dropped

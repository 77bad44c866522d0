"""
Pydantic models for the converted network, lanes and signal plans
"""

from enum import Enum
from typing import Dict, List, Optional, Set

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


# ============================================================
# Network Models
# ============================================================

class SimplifiedNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    x: float
    y: float
    signalized: bool = False


class DirectedLink(BaseModel):
    id: int
    from_node: int
    to_node: int
    length: float
    freespeed: float  # meters/second
    capacity: float  # vehicles/hour
    number_of_lanes: float
    highway: str
    origin_way_id: int


class Network(BaseModel):
    """Simplified nodes and directed links with in/out adjacency"""
    capacity_period: float = 3600.0
    nodes: Dict[int, SimplifiedNode] = Field(default_factory=dict)
    links: Dict[int, DirectedLink] = Field(default_factory=dict)

    _out_links: Dict[int, List[int]] = PrivateAttr(default_factory=dict)
    _in_links: Dict[int, List[int]] = PrivateAttr(default_factory=dict)

    def add_node(self, node: SimplifiedNode) -> None:
        self.nodes[node.id] = node

    def add_link(self, link: DirectedLink) -> None:
        self.links[link.id] = link
        self._out_links.setdefault(link.from_node, []).append(link.id)
        self._in_links.setdefault(link.to_node, []).append(link.id)

    def out_links(self, node_id: int) -> List[DirectedLink]:
        return [self.links[i] for i in sorted(self._out_links.get(node_id, []))]

    def in_links(self, node_id: int) -> List[DirectedLink]:
        return [self.links[i] for i in sorted(self._in_links.get(node_id, []))]


# ============================================================
# Lane Models
# ============================================================

class LaneAlignment(str, Enum):
    THROUGH = "through"
    LEFT = "left"
    RIGHT = "right"
    NONE = "none"


class Lane(BaseModel):
    id: str
    ordinal: int  # 1 = rightmost lane
    alignment: LaneAlignment = LaneAlignment.NONE
    represented_lanes: float = 1.0
    capacity: float  # vehicles/hour
    starts_at_meter_from_link_end: float
    to_link_ids: List[int] = Field(default_factory=list)

    def add_to_link(self, link_id: int) -> None:
        if link_id not in self.to_link_ids:
            self.to_link_ids.append(link_id)


class AggregateLane(BaseModel):
    """Summary lane of a link, referencing all of its real lanes"""
    id: str
    represented_lanes: float = 0.0
    capacity: float = 0.0
    starts_at_meter_from_link_end: float
    to_lane_ids: List[str] = Field(default_factory=list)


class LanesToLinkAssignment(BaseModel):
    link_id: int
    lanes: Dict[str, Lane] = Field(default_factory=dict)  # ordered right to left
    aggregate: AggregateLane

    def lane(self, ordinal: int) -> Optional[Lane]:
        return self.lanes.get(f"Lane{self.link_id}.{ordinal}")

    def ordered_lanes(self) -> List[Lane]:
        return sorted(self.lanes.values(), key=lambda lane: lane.ordinal)


# ============================================================
# Signal Models
# ============================================================

class Signal(BaseModel):
    id: str
    link_id: int
    lane_ids: List[str] = Field(default_factory=list)


class SignalGroup(BaseModel):
    id: str
    signal_ids: List[str] = Field(default_factory=list)


class SignalGroupSettings(BaseModel):
    group_id: str
    onset: float
    dropping: float


class SignalPlan(BaseModel):
    id: str = "1"
    cycle_time: float
    offset: float = 0.0
    start_time: float = 0.0
    end_time: float = 0.0
    settings: Dict[str, SignalGroupSettings] = Field(default_factory=dict)


class SignalSystem(BaseModel):
    id: str
    node_id: int
    controller: str = "DefaultPlanbasedSignalSystemController"
    signals: Dict[str, Signal] = Field(default_factory=dict)
    groups: Dict[str, SignalGroup] = Field(default_factory=dict)
    plan: Optional[SignalPlan] = None


# ============================================================
# Report and Result
# ============================================================

class ConversionReport(BaseModel):
    """Distinct anomalies and counters of one conversion"""
    unknown_highways: Set[str] = Field(default_factory=set)
    unknown_maxspeed_tags: Set[str] = Field(default_factory=set)
    unknown_lanes_tags: Set[str] = Field(default_factory=set)
    unknown_oneway_tags: Set[str] = Field(default_factory=set)
    unknown_turn_lane_tokens: Set[str] = Field(default_factory=set)
    ways_missing_nodes: List[int] = Field(default_factory=list)
    incomplete_restrictions: List[int] = Field(default_factory=list)
    unexpected_junctions: List[int] = Field(default_factory=list)
    consistency_issues: List[str] = Field(default_factory=list)

    nodes_read: int = 0
    ways_read: int = 0
    signals_read: int = 0
    signals_relocated: int = 0
    signals_removed: int = 0
    clusters: Dict[str, int] = Field(default_factory=lambda: {"four_node": 0, "loop": 0, "pair": 0})
    nodes_created: int = 0
    links_created: int = 0
    lane_tables_created: int = 0
    signal_systems_created: int = 0

    def note_unknown(self, kind: str, value: str, message: str) -> bool:
        """
        Record a distinct unrecognized tag value

        Args:
            kind: One of highways, maxspeed, lanes, oneway, turn_lane
            value: The offending value
            message: Warning logged the first time the value is seen

        Returns:
            True if the value was new
        """
        values = {
            "highways": self.unknown_highways,
            "maxspeed": self.unknown_maxspeed_tags,
            "lanes": self.unknown_lanes_tags,
            "oneway": self.unknown_oneway_tags,
            "turn_lane": self.unknown_turn_lane_tokens,
        }[kind]
        if value in values:
            return False
        values.add(value)
        logger.warning(message)
        return True

    def log_summary(self) -> None:
        logger.info("= conversion statistics: ==========================")
        logger.info(f"raw: # nodes read:          {self.nodes_read}")
        logger.info(f"raw: # ways read:           {self.ways_read}")
        logger.info(f"raw: # signals read:        {self.signals_read}")
        logger.info(f"net: # nodes created:       {self.nodes_created}")
        logger.info(f"net: # links created:       {self.links_created}")
        logger.info(f"net: # lane tables created: {self.lane_tables_created}")
        logger.info(f"net: # signals created:     {self.signal_systems_created}")
        if self.unexpected_junctions:
            logger.info(f"Junctions with more than 4 in-links: {self.unexpected_junctions}")
        if self.consistency_issues:
            logger.info(f"Consistency issues: {len(self.consistency_issues)}")
        if self.unknown_highways:
            logger.info("The following highway-types had no defaults set and were thus NOT converted:")
            for highway in sorted(self.unknown_highways):
                logger.info(f"- \"{highway}\"")
        logger.info("= end of conversion statistics ====================")


class ConversionResult(BaseModel):
    network: Network
    lanes: Dict[int, LanesToLinkAssignment] = Field(default_factory=dict)
    signal_systems: Dict[str, SignalSystem] = Field(default_factory=dict)
    report: ConversionReport = Field(default_factory=ConversionReport)

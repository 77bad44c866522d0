"""
Topology materialization

Emits simplified nodes and directed links from the filtered, clustered raw
graph, and remembers the per-link data later stages need
"""

from typing import Dict, List, Optional

from loguru import logger

from ..config import ConverterConfig
from ..models import ConversionReport, DirectedLink, Network, SignalSystem, SimplifiedNode
from ..raw.models import RawGraph, RawNode, RawWay, RestrictionRelation
from .tags import TAG_ACCESS, LinkAttributes, TurnLaneStack, link_attributes
from .usage import in_hierarchy_layers


class TopologyBuilder:
    """
    Builds the directed network

    Attributes filled by `build`:
        network: Simplified nodes and links
        lane_stacks: Link id -> parsed turn-lane stack of its direction
        restrictions: Simplified node id -> restriction relations at that node
        signal_systems: Empty signal systems of signalized destination nodes
    """

    def __init__(self, config: ConverterConfig, report: ConversionReport):
        self.config = config
        self.report = report
        self.network = Network()
        self.lane_stacks: Dict[int, TurnLaneStack] = {}
        self.restrictions: Dict[int, List[RestrictionRelation]] = {}
        self.signal_systems: Dict[str, SignalSystem] = {}
        self._next_link_id = 1

    def build(self, graph: RawGraph) -> Network:
        self.create_nodes(graph)
        for way in graph.iter_ways():
            self.create_links_for_way(graph, way)
        self.report.nodes_created = len(self.network.nodes)
        self.report.links_created = len(self.network.links)
        logger.info(
            f"Network created: {len(self.network.nodes)} nodes, {len(self.network.links)} links, "
            f"{len(self.signal_systems)} signalized nodes"
        )
        return self.network

    def create_nodes(self, graph: RawGraph) -> None:
        for node in graph.iter_nodes():
            if not node.used or node.representative is not None:
                continue
            self.network.add_node(SimplifiedNode(id=node.id, x=node.x, y=node.y, signalized=node.signalized))
            if node.restrictions:
                self.restrictions[node.id] = list(node.restrictions)

    def create_links_for_way(self, graph: RawGraph, way: RawWay) -> None:
        """Walk the way and close a link at every used node"""
        from_node = graph.nodes[way.node_ids[0]]
        if not from_node.used:
            return
        last = from_node
        length = 0.0
        for node_id in way.node_ids[1:]:
            to_node = graph.nodes[node_id]
            if to_node.id == last.id:
                continue
            length += last.distance_to(to_node)
            if to_node.used:
                layers = self.config.hierarchy_layers
                if (in_hierarchy_layers(layers, from_node, way.hierarchy)
                        or in_hierarchy_layers(layers, to_node, way.hierarchy)):
                    self.create_link(graph, way, from_node, to_node, length)
                from_node = to_node
                length = 0.0
            last = to_node

    def _resolve(self, graph: RawGraph, node: RawNode) -> RawNode:
        if node.representative is None:
            return node
        return graph.nodes[node.representative]

    def create_link(
        self,
        graph: RawGraph,
        way: RawWay,
        from_node: RawNode,
        to_node: RawNode,
        length: float
    ) -> List[DirectedLink]:
        """
        Create the forward and/or backward link of one way segment

        Args:
            graph: Raw graph holding representatives
            way: Way the segment belongs to
            from_node: Used node opening the segment (in way order)
            to_node: Used node closing the segment
            length: Accumulated polyline length of the segment

        Returns:
            The links created (none for access=no ways or collapsed segments)
        """
        if way.tags.get(TAG_ACCESS) == "no":
            return []
        defaults = self.config.highway_defaults.get(way.highway)
        if defaults is None:
            return []

        start = self._resolve(graph, from_node)
        end = self._resolve(graph, to_node)
        if start is not from_node:
            length = to_node.distance_to(start)
        if end is not to_node:
            length = start.distance_to(end)
        if start.id == end.id:
            return []
        if start.id not in self.network.nodes or end.id not in self.network.nodes:
            return []

        attributes = link_attributes(way.tags, defaults, self.config.scale_max_speed, self.report)
        created = []
        if not attributes.reverse:
            created.append(self._add_link(way, start, end, length, attributes, attributes.lanes_forward,
                                          attributes.turn_lanes_forward))
        if not attributes.oneway:
            created.append(self._add_link(way, end, start, length, attributes, attributes.lanes_backward,
                                          attributes.turn_lanes_backward))
        return created

    def _add_link(
        self,
        way: RawWay,
        start: RawNode,
        end: RawNode,
        length: float,
        attributes: LinkAttributes,
        lanes: float,
        stack: Optional[TurnLaneStack]
    ) -> DirectedLink:
        link = DirectedLink(
            id=self._next_link_id,
            from_node=start.id,
            to_node=end.id,
            length=length,
            freespeed=attributes.freespeed,
            capacity=attributes.capacity(lanes),
            number_of_lanes=lanes,
            highway=attributes.highway,
            origin_way_id=way.id,
        )
        self._next_link_id += 1
        self.network.add_link(link)
        if stack is not None:
            self.lane_stacks[link.id] = stack

        if self.network.nodes[end.id].signalized:
            system_id = f"System{end.id}"
            if system_id not in self.signal_systems:
                self.signal_systems[system_id] = SignalSystem(id=system_id, node_id=end.id)
        return link

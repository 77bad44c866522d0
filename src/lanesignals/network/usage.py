"""
Usage and filtering

Decides which raw ways are converted and which raw nodes survive as
network nodes
"""

import math
from typing import List

from loguru import logger

from ..config import ConverterConfig, HierarchyLayer
from ..models import ConversionReport
from ..raw.models import RawGraph, RawNode


def in_hierarchy_layers(layers: List[HierarchyLayer], node: RawNode, hierarchy: int) -> bool:
    """True if no layers are configured or one covers the node at this level"""
    if not layers:
        return True
    return any(layer.contains(node.x, node.y, hierarchy) for layer in layers)


class UsageFilter:
    """Marks used nodes and drops ways that cannot be converted"""

    def __init__(self, config: ConverterConfig, report: ConversionReport):
        self.config = config
        self.report = report

    def in_layers(self, node: RawNode, hierarchy: int) -> bool:
        return in_hierarchy_layers(self.config.hierarchy_layers, node, hierarchy)

    def drop_ways_with_missing_nodes(self, graph: RawGraph) -> None:
        for way in list(graph.iter_ways()):
            if any(node_id not in graph.nodes for node_id in way.node_ids):
                del graph.ways[way.id]
                self.report.ways_missing_nodes.append(way.id)
        if self.report.ways_missing_nodes:
            logger.info(f"Dropped {len(self.report.ways_missing_nodes)} ways referencing missing nodes")

    def mark_used(self, graph: RawGraph) -> None:
        """
        Resolve highway classes and mark the nodes of retained ways

        Ways with fewer than two nodes or an unknown class are removed from
        the graph; an unknown class is reported once.
        """
        for way in list(graph.iter_ways()):
            if len(way.node_ids) < 2:
                del graph.ways[way.id]
                logger.debug(f"Way {way.id} has fewer than two nodes; dropped")
                continue
            highway = way.highway
            defaults = self.config.highway_defaults.get(highway) if highway else None
            if defaults is None:
                if highway is not None:
                    self.report.note_unknown(
                        "highways", highway, f"Highway type '{highway}' has no defaults; ways dropped"
                    )
                del graph.ways[way.id]
                continue

            way.hierarchy = defaults.hierarchy
            graph.nodes[way.node_ids[0]].endpoint = True
            graph.nodes[way.node_ids[-1]].endpoint = True

            for node_id in way.node_ids:
                node = graph.nodes[node_id]
                if self.in_layers(node, way.hierarchy):
                    node.used = True
                    node.way_ids.add(way.id)

        used = sum(1 for node in graph.nodes.values() if node.used)
        logger.info(f"{len(graph.ways)} ways retained, {used} nodes used")

    def collapse_paths(self, graph: RawGraph) -> None:
        """
        Drop pass-through nodes, keeping enough of them to preserve loops

        A node with one incident way that is neither signalized nor an
        endpoint is dropped. If a way then starts and ends at the same used
        node without another used node in between, sqrt(gap)-spaced nodes are
        kept so the loop does not collapse onto itself.
        """
        if self.config.keep_paths:
            return

        for node in graph.iter_nodes():
            if node.degree == 1 and not node.signalized and not node.endpoint:
                node.used = False

        restored = 0
        for way in graph.iter_ways():
            prev_index = 0
            prev_node = graph.nodes[way.node_ids[0]]
            for i in range(1, len(way.node_ids)):
                node = graph.nodes[way.node_ids[i]]
                if not node.used:
                    continue
                if node.id == prev_node.id:
                    increment = math.sqrt(i - prev_index)
                    j = prev_index + increment
                    while j < i:
                        graph.nodes[way.node_ids[int(math.floor(j))]].used = True
                        restored += 1
                        j += increment
                prev_index = i
                prev_node = node

        if restored:
            logger.debug(f"Restored {restored} nodes to keep loops")

"""
Signal consolidation

Moves raw traffic-signal markers from the middle of road segments onto the
junction nodes they control
"""

from enum import Enum
from typing import Dict, Optional

from loguru import logger

from ..config import SignalConsolidationConfig
from ..models import ConversionReport
from ..raw.models import RawGraph, RawNode, RawWay
from .tags import allows_backward, allows_forward


class SignalState(Enum):
    MID_SEGMENT = "mid_segment"
    CANDIDATE = "candidate"
    RELOCATED = "relocated"
    REMOVED = "removed"


class SignalConsolidator:
    """
    Relocates signals onto junction nodes

    `states` maps every signal node that was not already on a junction to
    its final state; `targets` maps relocated signals to the node that now
    carries them.
    """

    def __init__(self, config: SignalConsolidationConfig, report: ConversionReport):
        self.config = config
        self.report = report
        self.states: Dict[int, SignalState] = {}
        self.targets: Dict[int, int] = {}

    def run(self, graph: RawGraph) -> None:
        self.mark_mid_segment_signals(graph)
        self.push_to_junctions(graph)
        self.push_along_roundabouts(graph)
        self.remove_near_junction_signals(graph)
        self.bridge_short_ways(graph)
        logger.info(
            f"Signals consolidated: {self.report.signals_relocated} relocated, "
            f"{self.report.signals_removed} removed"
        )

    def mark_mid_segment_signals(self, graph: RawGraph) -> None:
        for node in graph.iter_nodes():
            if node.signalized and not node.is_junction:
                self.states[node.id] = SignalState.MID_SEGMENT

    def _relocate(self, signal: RawNode, junction: RawNode) -> None:
        signal.signalized = False
        junction.signalized = True
        self.states[signal.id] = SignalState.RELOCATED
        self.targets[signal.id] = junction.id
        self.report.signals_relocated += 1
        logger.debug(f"Signal pushed from node {signal.id} to junction {junction.id}")

    # ------------------------------------------------------------------
    # Mid-segment signals
    # ------------------------------------------------------------------

    def _nearest_junction_along(self, graph: RawGraph, way: RawWay, index: int, step: int) -> Optional[RawNode]:
        origin = graph.nodes[way.node_ids[index]]
        j = index + step
        while 0 <= j < len(way.node_ids):
            candidate = graph.nodes[way.node_ids[j]]
            if origin.distance_to(candidate) >= self.config.relocation_distance:
                return None
            if candidate.id != origin.id and candidate.is_junction:
                return candidate
            j += step
        return None

    def push_to_junctions(self, graph: RawGraph) -> None:
        for way in graph.iter_ways():
            if way.is_roundabout:
                continue
            for i in range(1, len(way.node_ids) - 1):
                node = graph.nodes[way.node_ids[i]]
                if not node.signalized or node.degree != 1:
                    continue
                self.states[node.id] = SignalState.CANDIDATE

                found = []
                if allows_forward(way.oneway):
                    found.append(self._nearest_junction_along(graph, way, i, 1))
                if allows_backward(way.oneway):
                    found.append(self._nearest_junction_along(graph, way, i, -1))
                found = [junction for junction in found if junction is not None]
                if found:
                    target = min(found, key=node.distance_to)
                    self._relocate(node, target)

    # ------------------------------------------------------------------
    # Roundabouts
    # ------------------------------------------------------------------

    @staticmethod
    def _is_ring_junction(graph: RawGraph, node: RawNode) -> bool:
        """A ring node where a non-roundabout road attaches"""
        return any(not way.is_roundabout for way in graph.incident_ways(node))

    @staticmethod
    def _continuing_ring_way(graph: RawGraph, way: RawWay, node: RawNode) -> Optional[RawWay]:
        closed = way.node_ids[0] == way.node_ids[-1]
        for other in graph.incident_ways(node):
            if not other.is_roundabout or other.node_ids[0] != node.id:
                continue
            if other.id != way.id or closed:
                return other
        return None

    def _next_ring_junction(self, graph: RawGraph, way: RawWay, index: int) -> Optional[RawNode]:
        start = graph.nodes[way.node_ids[index]]
        visited = {start.id}
        prev = start
        travelled = 0.0
        j = index + 1
        while True:
            if j >= len(way.node_ids):
                way = self._continuing_ring_way(graph, way, prev)
                if way is None or len(way.node_ids) < 2:
                    return None
                j = 1
                continue
            node = graph.nodes[way.node_ids[j]]
            travelled += prev.distance_to(node)
            if travelled >= self.config.relocation_distance or node.id in visited:
                return None
            if self._is_ring_junction(graph, node):
                return node
            visited.add(node.id)
            prev = node
            j += 1

    def push_along_roundabouts(self, graph: RawGraph) -> None:
        for way in graph.iter_ways():
            if not way.is_roundabout or not allows_forward(way.oneway):
                continue
            for i, node_id in enumerate(way.node_ids):
                node = graph.nodes[node_id]
                if not node.signalized or self._is_ring_junction(graph, node):
                    continue
                self.states[node.id] = SignalState.CANDIDATE
                junction = self._next_ring_junction(graph, way, i)
                if junction is not None:
                    self._relocate(node, junction)

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def remove_near_junction_signals(self, graph: RawGraph) -> None:
        """Drop single-way signals close to a node that already is a junction signal"""
        junction_signals = [n for n in graph.iter_nodes() if n.signalized and n.is_junction]
        for node in graph.iter_nodes():
            if not node.signalized or node.degree != 1:
                continue
            if any(node.distance_to(j) < self.config.relocation_distance for j in junction_signals):
                node.signalized = False
                self.states[node.id] = SignalState.REMOVED
                self.report.signals_removed += 1
                logger.debug(f"Signal deleted due to simplification @ {node.id}")

    def bridge_short_ways(self, graph: RawGraph) -> None:
        """Move a signal across a short connector onto the larger junction behind it"""
        for way in graph.iter_ways():
            if len(way.node_ids) != 2:
                continue
            first = graph.nodes[way.node_ids[0]]
            last = graph.nodes[way.node_ids[1]]
            if first.distance_to(last) >= self.config.short_way_distance:
                continue
            directions = []
            if allows_forward(way.oneway):
                directions.append((first, last))
            if allows_backward(way.oneway):
                directions.append((last, first))
            for near, far in directions:
                if near.degree == 2 and far.degree > 2 and near.signalized and not far.signalized:
                    self._relocate(near, far)
                    logger.debug(f"Signal pushed over short way {way.id} @ node {far.id}")

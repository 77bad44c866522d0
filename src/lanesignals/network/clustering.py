"""
Junction clustering

Merges groups of nearby junction nodes (dual carriageway crossings, small
oneway loops) into one representative node each
"""

from typing import Callable, Iterator, List, Optional, Tuple

from loguru import logger

from ..config import ClusteringConfig
from ..geometry import GeometryUtils
from ..models import ConversionReport
from ..raw.models import RawGraph, RawNode, RawWay
from .tags import Oneway, oneway_from_tag


def travel_order(way: RawWay) -> Optional[List[int]]:
    """Node ids in driving order for oneway ways, None for two-way ways"""
    state = oneway_from_tag(way.oneway)
    if state is Oneway.FORWARD:
        return list(way.node_ids)
    if state is Oneway.REVERSE:
        return list(reversed(way.node_ids))
    return None


class JunctionClusterer:
    """
    Applies the three merge policies in order

    Each policy iterates the used junction nodes by ascending id and skips
    nodes that an earlier cluster already absorbed.
    """

    def __init__(self, config: ClusteringConfig, report: ConversionReport):
        self.config = config
        self.report = report

    def run(self, graph: RawGraph) -> List[RawNode]:
        representatives = []
        representatives += self.merge_signalized_quads(graph)
        representatives += self.merge_loops(graph)
        representatives += self.merge_oneway_pairs(graph)
        logger.info(
            f"Junction clusters: {self.report.clusters['four_node']} signalized 4-node, "
            f"{self.report.clusters['loop']} loops, {self.report.clusters['pair']} pairs"
        )
        return representatives

    # ------------------------------------------------------------------
    # Loop discovery
    # ------------------------------------------------------------------

    @staticmethod
    def _has_oneway(graph: RawGraph, node: RawNode) -> bool:
        return any(travel_order(way) is not None for way in graph.incident_ways(node))

    @staticmethod
    def _successors(
        graph: RawGraph,
        node: RawNode,
        start: RawNode,
        on_path: set,
        distance: float
    ) -> List[RawNode]:
        """Next eligible used node along each oneway way leaving `node`"""
        result = []
        for way in graph.incident_ways(node):
            order = travel_order(way)
            if order is None or node.id not in order:
                continue
            for node_id in order[order.index(node.id) + 1:]:
                other = graph.nodes[node_id]
                if not other.used or other.representative is not None:
                    continue
                if other.id in on_path and other.id != start.id:
                    continue
                if node.distance_to(other) < distance and other not in result:
                    result.append(other)
                break
        return result

    def find_loop(self, graph: RawGraph, start: RawNode, distance: float) -> List[RawNode]:
        """
        Search a closed loop of used nodes through `start`

        Args:
            graph: Raw graph
            start: Node the loop must return to
            distance: Maximum distance between consecutive loop nodes

        Returns:
            Loop members starting with `start`, or an empty list
        """
        path = [start]
        on_path = {start.id}
        explored = set()
        stack: List[Iterator[RawNode]] = [iter(self._successors(graph, start, start, on_path, distance))]

        while stack:
            successor = next(stack[-1], None)
            if successor is None:
                stack.pop()
                node = path.pop()
                on_path.discard(node.id)
                explored.add(node.id)
                continue
            if successor.id == start.id:
                return list(path)
            if successor.id in explored or successor.id in on_path:
                continue
            path.append(successor)
            on_path.add(successor.id)
            stack.append(iter(self._successors(graph, successor, start, on_path, distance)))
        return []

    # ------------------------------------------------------------------
    # Representatives
    # ------------------------------------------------------------------

    def _merge(
        self,
        graph: RawGraph,
        members: List[RawNode],
        center: Tuple[float, float],
        signalized: bool,
        policy: str
    ) -> RawNode:
        representative = RawNode(
            id=graph.next_node_id(),
            x=center[0],
            y=center[1],
            signalized=signalized,
            used=True,
        )
        seen = set()
        for member in sorted(members, key=lambda n: n.id):
            member.representative = representative.id
            for relation in member.restrictions:
                if relation.id not in seen:
                    seen.add(relation.id)
                    representative.restrictions.append(relation)
        graph.add_node(representative)
        self.report.clusters[policy] += 1
        logger.debug(
            f"{policy} junction node {representative.id} created for "
            f"{', '.join(str(m.id) for m in members)}"
        )
        return representative

    def _candidates(self, graph: RawGraph, accept: Callable[[RawNode], bool]) -> Iterator[RawNode]:
        for node in list(graph.iter_nodes()):
            if node.used and node.is_junction and node.representative is None and accept(node):
                yield node

    def merge_signalized_quads(self, graph: RawGraph) -> List[RawNode]:
        """Exact 4-node loops of signalized junctions -> mean coordinate"""
        created = []
        for node in self._candidates(graph, lambda n: n.signalized):
            if node.representative is not None:
                continue
            loop = self.find_loop(graph, node, self.config.signal_cluster_distance)
            if len(loop) == 4:
                center = GeometryUtils.mean_point([(n.x, n.y) for n in loop])
                created.append(self._merge(graph, loop, center, True, "four_node"))
        return created

    def merge_loops(self, graph: RawGraph) -> List[RawNode]:
        """Any closed loop of two or more junctions -> bounding box center"""
        created = []
        for node in self._candidates(graph, lambda n: True):
            if node.representative is not None:
                continue
            loop = self.find_loop(graph, node, self.config.cluster_distance)
            if len(loop) > 1:
                center = GeometryUtils.bbox_center((n.x, n.y) for n in loop)
                signalized = any(n.signalized for n in loop)
                created.append(self._merge(graph, loop, center, signalized, "loop"))
        return created

    def merge_oneway_pairs(self, graph: RawGraph) -> List[RawNode]:
        """Pair a oneway junction with the nearest oneway junction on one of its ways"""
        created = []
        for node in self._candidates(graph, lambda n: self._has_oneway(graph, n)):
            if node.representative is not None:
                continue
            partner = self._nearest_partner(graph, node)
            if partner is None:
                continue
            center = GeometryUtils.mean_point([(node.x, node.y), (partner.x, partner.y)])
            signalized = node.signalized or partner.signalized
            created.append(self._merge(graph, [node, partner], center, signalized, "pair"))
        return created

    def _nearest_partner(self, graph: RawGraph, node: RawNode) -> Optional[RawNode]:
        best = None
        best_distance = self.config.pair_distance
        for way in graph.incident_ways(node):
            for node_id in way.node_ids:
                other = graph.nodes[node_id]
                if other.id == node.id or not other.used or not other.is_junction:
                    continue
                if other.representative is not None or not self._has_oneway(graph, other):
                    continue
                distance = node.distance_to(other)
                if distance < best_distance or (distance == best_distance and best is not None and other.id < best.id):
                    best = other
                    best_distance = distance
        return best

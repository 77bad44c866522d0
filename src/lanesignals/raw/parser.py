"""
Overpass response parser

Parses Overpass API JSON responses (`out body`) into a RawGraph with
coordinates projected to a metric CRS
"""

from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from pyproj import Transformer

from .models import RawGraph, RawNode, RawWay, RestrictionPolarity, RestrictionRelation


def utm_epsg_for(lon: float, lat: float) -> int:
    """EPSG code of the UTM zone containing the given WGS84 point"""
    utm_zone = int((lon + 180) / 6) + 1
    if lat >= 0:
        return 32600 + utm_zone  # Northern hemisphere
    return 32700 + utm_zone  # Southern hemisphere


def restriction_polarity(value: Optional[str]) -> Optional[RestrictionPolarity]:
    """Map a `restriction` tag value (no_left_turn, only_straight_on, ...) to its polarity"""
    if not value:
        return None
    if value.startswith("no_"):
        return RestrictionPolarity.DENY
    if value.startswith("only_"):
        return RestrictionPolarity.ONLY_ALLOW
    return None


class OverpassParser:
    """Parses Overpass API responses into raw graph records"""

    def __init__(self, target_crs: Optional[str] = None):
        self.target_crs = target_crs
        self.nodes_read = 0
        self.ways_read = 0
        self.signals_read = 0

    def parse(self, data: Dict[str, Any]) -> RawGraph:
        """
        Parse Overpass response into a raw graph

        Args:
            data: JSON response from Overpass API

        Returns:
            RawGraph with projected nodes, ways and pending restrictions
        """
        elements = data.get("elements", [])
        node_elements = [e for e in elements if e.get("type") == "node"]
        transformer = self._transformer(node_elements)

        graph = RawGraph()
        for element in node_elements:
            x, y = transformer.transform(element["lon"], element["lat"])
            tags = element.get("tags", {})
            node = RawNode(
                id=element["id"],
                x=x,
                y=y,
                tags=tags,
                signalized=tags.get("highway") == "traffic_signals",
                crossing=tags.get("highway") == "crossing",
            )
            if node.signalized:
                self.signals_read += 1
            graph.add_node(node)
            self.nodes_read += 1

        for element in elements:
            if element.get("type") == "way":
                node_ids = list(element.get("nodes", []))
                if not node_ids:
                    continue
                graph.add_way(RawWay(id=element["id"], node_ids=node_ids, tags=element.get("tags", {})))
                self.ways_read += 1
            elif element.get("type") == "relation":
                relation = self._parse_relation(element)
                if relation is not None:
                    graph.add_restriction(relation)

        logger.info(
            f"Parsed {self.nodes_read} nodes ({self.signals_read} signals), "
            f"{self.ways_read} ways, {len(graph.pending_restrictions)} restrictions"
        )
        return graph

    def _transformer(self, node_elements: List[Dict[str, Any]]) -> Transformer:
        target = self.target_crs
        if target is None:
            lon, lat = self._center(node_elements)
            target = f"EPSG:{utm_epsg_for(lon, lat)}"
            logger.info(f"Projecting raw graph to {target}")
        return Transformer.from_crs("EPSG:4326", target, always_xy=True)

    @staticmethod
    def _center(node_elements: List[Dict[str, Any]]) -> Tuple[float, float]:
        if not node_elements:
            return 0.0, 0.0
        lon = sum(e["lon"] for e in node_elements) / len(node_elements)
        lat = sum(e["lat"] for e in node_elements) / len(node_elements)
        return lon, lat

    @staticmethod
    def _parse_relation(element: Dict[str, Any]) -> Optional[RestrictionRelation]:
        """Only restriction relations are kept; members are resolved later"""
        tags = element.get("tags", {})
        if tags.get("type") != "restriction" and "restriction" not in tags:
            return None
        relation = RestrictionRelation(id=element["id"], polarity=restriction_polarity(tags.get("restriction")))
        for member in element.get("members", []):
            role = member.get("role")
            if member.get("type") == "node" and role == "via":
                relation.node_id = member["ref"]
            elif member.get("type") == "way" and role == "from":
                relation.from_way_id = member["ref"]
            elif member.get("type") == "way" and role == "to":
                relation.to_way_id = member["ref"]
        return relation

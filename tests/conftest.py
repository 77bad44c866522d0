"""
Shared fixtures: small hand-built raw graphs in projected meters
"""

from typing import Dict, List, Optional

import pytest
from loguru import logger

from lanesignals.config import ConverterConfig
from lanesignals.models import ConversionReport
from lanesignals.raw.models import RawGraph, RawNode, RawWay, RestrictionPolarity, RestrictionRelation


class GraphBuilder:
    """Fluent helper for building raw graphs in tests"""

    def __init__(self):
        self.graph = RawGraph()

    def node(self, node_id: int, x: float, y: float, signalized: bool = False,
             tags: Optional[Dict[str, str]] = None) -> "GraphBuilder":
        tags = dict(tags or {})
        if signalized:
            tags["highway"] = "traffic_signals"
        self.graph.add_node(RawNode(id=node_id, x=x, y=y, tags=tags, signalized=signalized))
        return self

    def way(self, way_id: int, node_ids: List[int], tags: Optional[Dict[str, str]] = None,
            highway: str = "residential") -> "GraphBuilder":
        tags = dict(tags or {})
        tags.setdefault("highway", highway)
        self.graph.add_way(RawWay(id=way_id, node_ids=list(node_ids), tags=tags))
        return self

    def restriction(self, relation_id: int, node_id: int, from_way: int, to_way: int,
                    polarity: RestrictionPolarity = RestrictionPolarity.DENY) -> "GraphBuilder":
        self.graph.add_restriction(RestrictionRelation(
            id=relation_id, node_id=node_id, from_way_id=from_way, to_way_id=to_way, polarity=polarity
        ))
        return self

    def build(self) -> RawGraph:
        return self.graph


@pytest.fixture
def builder():
    return GraphBuilder()


@pytest.fixture
def report():
    return ConversionReport()


@pytest.fixture
def config():
    return ConverterConfig()


@pytest.fixture
def crossroads():
    """
    Signalized 4-way junction (node 0) of two secondary roads

    Arms end 200 m east (1), north (2), west (3) and south (4).
    """
    return (
        GraphBuilder()
        .node(0, 0, 0, signalized=True)
        .node(1, 200, 0)
        .node(2, 0, 200)
        .node(3, -200, 0)
        .node(4, 0, -200)
        .way(10, [3, 0, 1], highway="secondary")
        .way(20, [4, 0, 2], highway="secondary")
        .build()
    )


@pytest.fixture
def turn_lane_junction():
    """
    A oneway 3-lane approach from the west (way 1) ending at node 2, where
    residential roads continue east (way 2), north (way 3) and south (way 4)
    """
    return (
        GraphBuilder()
        .node(1, -200, 0)
        .node(2, 0, 0)
        .node(3, 200, 0)
        .node(4, 0, 200)
        .node(5, 0, -200)
        .way(1, [1, 2], {"oneway": "yes", "lanes": "3", "turn:lanes": "left|through|right"}, highway="primary")
        .way(2, [2, 3])
        .way(3, [2, 4])
        .way(4, [2, 5])
    )


@pytest.fixture
def capture_logs():
    """Collect loguru messages emitted during a test"""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)

"""
Tests for node and link materialization
"""

import pytest

from lanesignals.config import ConverterConfig
from lanesignals.network.clustering import JunctionClusterer
from lanesignals.network.topology import TopologyBuilder
from lanesignals.network.usage import UsageFilter


def build(graph, report, config=None):
    config = config or ConverterConfig()
    usage = UsageFilter(config, report)
    usage.mark_used(graph)
    usage.collapse_paths(graph)
    JunctionClusterer(config.clustering, report).run(graph)
    topology = TopologyBuilder(config, report)
    topology.build(graph)
    return topology


def test_two_way_road_gets_two_links(builder, report):
    graph = builder.node(1, 0, 0).node(2, 30, 40).node(3, 60, 80).way(7, [1, 2, 3]).build()
    network = build(graph, report).network

    assert set(network.nodes) == {1, 3}
    assert sorted(network.links) == [1, 2]
    forward, backward = network.links[1], network.links[2]
    assert (forward.from_node, forward.to_node) == (1, 3)
    assert (backward.from_node, backward.to_node) == (3, 1)
    assert forward.length == pytest.approx(100)
    assert forward.origin_way_id == 7
    assert forward.highway == "residential"
    assert report.links_created == 2


def test_oneway_and_reverse_oneway(builder, report):
    graph = (
        builder
        .node(1, 0, 0).node(2, 100, 0).node(3, 200, 0)
        .way(1, [1, 2], {"oneway": "yes"})
        .way(2, [2, 3], {"oneway": "-1"})
        .build()
    )
    network = build(graph, report).network

    assert [(l.from_node, l.to_node) for l in network.links.values()] == [(1, 2), (3, 2)]


def test_access_no_creates_no_link(builder, report):
    graph = builder.node(1, 0, 0).node(2, 100, 0).way(1, [1, 2], {"access": "no"}).build()
    network = build(graph, report).network

    assert network.links == {}


def test_duplicate_consecutive_nodes_are_skipped(builder, report):
    graph = builder.node(1, 0, 0).node(2, 100, 0).way(1, [1, 1, 2]).build()
    network = build(graph, report).network

    assert network.links[1].length == pytest.approx(100)


def test_lane_split_and_capacity(builder, report):
    graph = builder.node(1, 0, 0).node(2, 100, 0).way(1, [1, 2], {"lanes": "4"}, highway="primary").build()
    network = build(graph, report).network

    link = network.links[1]
    assert link.number_of_lanes == 2
    assert link.capacity == 2 * 1500


def test_turn_lane_stacks_recorded_per_direction(builder, report):
    graph = (
        builder
        .node(1, 0, 0).node(2, 100, 0)
        .way(1, [1, 2], {"lanes": "4", "turn:lanes:forward": "left|through", "turn:lanes:backward": "through|right"})
        .build()
    )
    topology = build(graph, report)

    assert len(topology.lane_stacks[1]) == 2
    assert topology.lane_stacks[2][1][0].name == "RIGHT"


def test_signal_system_for_signalized_destination(crossroads, report):
    topology = build(crossroads, report)

    assert list(topology.signal_systems) == ["System0"]
    assert len(topology.network.in_links(0)) == 4
    assert len(topology.network.out_links(0)) == 4


def test_links_attach_to_representative(builder, report):
    graph = (
        builder
        .node(1, -200, 0).node(2, 0, 0).node(3, 30, 0).node(4, 200, 0)
        .node(5, 0, -200).node(6, 30, 200)
        .way(1, [1, 2, 3, 4], {"oneway": "yes"})
        .way(2, [5, 2])
        .way(3, [3, 6])
        .build()
    )
    network = build(graph, report).network

    assert set(network.nodes) == {1, 4, 5, 6, 7}
    links = {(l.from_node, l.to_node): l for l in network.links.values()}
    assert (7, 7) not in links
    # lengths measured to the merged node at (15, 0)
    assert links[(1, 7)].length == pytest.approx(215)
    assert links[(7, 4)].length == pytest.approx(185)
    assert links[(5, 7)].length == pytest.approx((15 ** 2 + 200 ** 2) ** 0.5)


def test_both_ends_redirected(builder, report):
    graph = (
        builder
        .node(1, 0, 0).node(2, 100, 0).node(11, 0, 10).node(12, 100, 30)
        .way(1, [1, 2])
        .build()
    )
    for node in graph.nodes.values():
        node.used = True
    graph.nodes[1].representative = 11
    graph.nodes[2].representative = 12
    topology = TopologyBuilder(ConverterConfig(), report)
    topology.create_nodes(graph)

    forward, backward = topology.create_link(graph, graph.ways[1], graph.nodes[1], graph.nodes[2], 100.0)

    assert (forward.from_node, forward.to_node) == (11, 12)
    # measured between the two representatives
    assert forward.length == pytest.approx((100 ** 2 + 20 ** 2) ** 0.5)
    assert backward.length == forward.length


def test_hierarchy_layer_filters_links(builder, report):
    config = ConverterConfig()
    config.add_hierarchy_layer(-10, -10, 150, 10, hierarchy=6)
    graph = (
        builder
        .node(1, 0, 0).node(2, 100, 0).node(3, 300, 0).node(4, 500, 0)
        .way(1, [1, 2])
        .way(2, [3, 4])
        .build()
    )
    network = build(graph, report, config).network

    assert {l.origin_way_id for l in network.links.values()} == {1}

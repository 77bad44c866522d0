"""
End-to-end conversion tests
"""

import json

import pytest

from lanesignals import NetworkConverter
from lanesignals.config import ConverterConfig


def overpass_crossing():
    """Signalized crossing near Berlin whose signal is mapped 20 m before the junction"""
    nodes = [
        (1, 52.5000, 13.3970),
        (2, 52.5000, 13.39970),
        (3, 52.5000, 13.4000),
        (4, 52.5000, 13.4030),
        (5, 52.5027, 13.4000),
        (6, 52.4973, 13.4000),
    ]
    elements = [{"type": "node", "id": i, "lat": lat, "lon": lon} for i, lat, lon in nodes]
    elements[1]["tags"] = {"highway": "traffic_signals"}
    elements += [
        {"type": "way", "id": 10, "nodes": [1, 2, 3, 4], "tags": {"highway": "secondary", "lanes": "4"}},
        {"type": "way", "id": 20, "nodes": [5, 3, 6], "tags": {"highway": "residential"}},
        {"type": "way", "id": 30, "nodes": [6, 7], "tags": {"highway": "residential"}},
        {"type": "way", "id": 40, "nodes": [3, 5], "tags": {"highway": "footway"}},
    ]
    return {"elements": elements}


def test_overpass_crossing_end_to_end():
    result = NetworkConverter(ConverterConfig()).convert_overpass(overpass_crossing())
    report = result.report

    # the mid-segment signal moves onto the junction, the pass-through node disappears
    assert report.signals_read == 1
    assert report.signals_relocated == 1
    assert set(result.network.nodes) == {1, 3, 4, 5, 6}
    assert list(result.signal_systems) == ["System3"]
    assert report.ways_missing_nodes == [30]
    assert report.unknown_highways == {"footway"}

    system = result.signal_systems["System3"]
    assert system.plan.cycle_time == 90
    assert len(system.groups) == 4
    assert report.consistency_issues == []
    assert report.lane_tables_created == len(result.lanes) == 2


def test_crossroads_report(crossroads):
    result = NetworkConverter(ConverterConfig()).convert(crossroads)
    report = result.report

    assert (report.nodes_read, report.ways_read, report.signals_read) == (5, 2, 1)
    assert (report.nodes_created, report.links_created) == (5, 8)
    assert report.lane_tables_created == 4
    assert report.signal_systems_created == 1


def test_single_node_roundabout_way_converts(builder):
    graph = (
        builder
        .node(1, 0, 0, signalized=True).node(2, 100, 0)
        .way(1, [1], {"junction": "roundabout"})
        .way(2, [1, 2], {"junction": "roundabout"})
        .build()
    )
    result = NetworkConverter(ConverterConfig()).convert(graph)

    assert set(result.network.nodes) == {1, 2}
    assert [(l.from_node, l.to_node) for l in result.network.links.values()] == [(1, 2)]


def test_conversion_is_deterministic(crossroads, builder):
    first = NetworkConverter(ConverterConfig()).convert(crossroads)
    second_graph = (
        builder
        .node(4, 0, -200).node(2, 0, 200).node(0, 0, 0, signalized=True).node(3, -200, 0).node(1, 200, 0)
        .way(20, [4, 0, 2], highway="secondary")
        .way(10, [3, 0, 1], highway="secondary")
        .build()
    )
    second = NetworkConverter(ConverterConfig()).convert(second_graph)

    assert first.model_dump(mode="json") == second.model_dump(mode="json")


def test_save_writes_json(crossroads, tmp_path):
    converter = NetworkConverter(ConverterConfig())
    result = converter.convert(crossroads)

    path = converter.save(result, str(tmp_path / "out" / "network.json"))

    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    assert set(data) == {"network", "lanes", "signal_systems", "report"}
    assert data["signal_systems"]["System0"]["plan"]["settings"]["Group1"]["dropping"] == 40
    assert data["lanes"]["1"]["aggregate"]["id"] == "Lane1.ol"
    assert data["report"]["unknown_highways"] == []


def test_invalid_config_rejected():
    config = ConverterConfig()
    config.timing.min_green_share = 70

    with pytest.raises(ValueError, match="green shares"):
        NetworkConverter(config)

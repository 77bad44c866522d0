"""
Tests for the post-conversion consistency checks
"""

from lanesignals.config import ConverterConfig, SignalTimingConfig
from lanesignals.consistency import ConsistencyChecker
from lanesignals.models import Signal
from lanesignals.pipeline import NetworkConverter


def converted(graph):
    return NetworkConverter(ConverterConfig()).convert(graph)


def checker_for(result):
    return ConsistencyChecker(result.network, result.lanes, result.signal_systems, SignalTimingConfig())


def test_clean_conversion_has_no_issues(crossroads):
    result = converted(crossroads)

    assert result.report.consistency_issues == []


def test_signal_on_missing_link_removed(crossroads):
    result = converted(crossroads)
    system = result.signal_systems["System0"]
    system.signals["Signal99"] = Signal(id="Signal99", link_id=99)
    system.groups["Group1"].signal_ids.append("Signal99")

    issues = checker_for(result).check()

    assert len(issues) == 1
    assert "Signal99" not in system.signals
    assert "Signal99" not in system.groups["Group1"].signal_ids


def test_signal_on_missing_lane_removed_with_empty_group(crossroads):
    result = converted(crossroads)
    system = result.signal_systems["System0"]
    system.groups["Group4"].signal_ids = ["Signal4.1"]
    system.signals["Signal4.1"].lane_ids = ["Lane4.7"]

    issues = checker_for(result).check()

    assert any("Lane4.7" in issue for issue in issues)
    assert "Group4" not in system.groups
    assert "Group4" not in system.plan.settings


def test_foreign_to_link_reported(crossroads):
    result = converted(crossroads)
    result.lanes[1].lane(1).to_link_ids.append(4)

    issues = checker_for(result).check()

    assert issues == ["Lane Lane1.1 leads to 4, which does not leave node 0"]


def test_lane_conservation_reported(crossroads):
    result = converted(crossroads)
    result.lanes[1].lane(2).represented_lanes = 0.5

    issues = checker_for(result).check()

    assert len(issues) == 1
    assert "represent 1.5 lanes" in issues[0]


def test_intergreen_reported(crossroads):
    result = converted(crossroads)
    result.signal_systems["System0"].plan.settings["Group5"].onset = 42

    issues = checker_for(result).check()

    assert issues == [
        "Groups Group1 and Group5 of system System0 are closer than the intergreen",
        "Groups Group4 and Group5 of system System0 are closer than the intergreen",
    ]

"""
Tests for tag interpretation: maxspeed, lanes, oneway and turn:lanes
"""

import pytest

from lanesignals.config import HighwayDefaults
from lanesignals.network.tags import (
    Oneway, TurnDirection, allows_backward, allows_forward, link_attributes,
    oneway_from_tag, parse_lane_count, parse_maxspeed, parse_turn_lanes, resolve_lanes, resolve_oneway
)


RESIDENTIAL = HighwayDefaults(6, 1, 30.0 / 3.6, 1.0, 600)
PRIMARY_SINGLE = HighwayDefaults(3, 1, 80.0 / 3.6, 0.5, 1500)


class TestMaxspeed:

    def test_plain_kmh(self):
        assert parse_maxspeed("50") == pytest.approx(50 / 3.6)

    def test_explicit_kmh(self):
        assert parse_maxspeed("30 km/h") == pytest.approx(30 / 3.6)

    def test_mph(self):
        assert parse_maxspeed("30 mph") == pytest.approx(30 * 1.609344 / 3.6)

    def test_unreadable(self):
        assert parse_maxspeed("walk") is None
        assert parse_maxspeed("DE:urban") is None


class TestOneway:

    def test_lookup(self):
        assert oneway_from_tag("yes") is Oneway.FORWARD
        assert oneway_from_tag("1") is Oneway.FORWARD
        assert oneway_from_tag("-1") is Oneway.REVERSE
        assert oneway_from_tag("no") is Oneway.BOTH
        assert oneway_from_tag("reversible") is None
        assert oneway_from_tag(None) is None

    def test_direction_gates(self):
        assert allows_forward("yes") and not allows_backward("yes")
        assert allows_backward("-1") and not allows_forward("-1")
        assert allows_forward(None) and allows_backward(None)

    def test_roundabout_implies_oneway(self, report):
        assert resolve_oneway({"junction": "roundabout"}, RESIDENTIAL, report) == (True, False)

    def test_tag_overrides_roundabout(self, report):
        assert resolve_oneway({"junction": "roundabout", "oneway": "no"}, RESIDENTIAL, report) == (False, False)

    def test_reverse(self, report):
        assert resolve_oneway({"oneway": "-1"}, RESIDENTIAL, report) == (False, True)

    def test_unknown_value_reported_once(self, report, capture_logs):
        resolve_oneway({"oneway": "alternating"}, RESIDENTIAL, report)
        resolve_oneway({"oneway": "alternating"}, RESIDENTIAL, report)
        assert report.unknown_oneway_tags == {"alternating"}
        assert sum("alternating" in m for m in capture_logs) == 1


class TestLanes:

    def test_parse_lane_count(self):
        assert parse_lane_count("3") == 3.0
        assert parse_lane_count("2.5") == 2.5
        assert parse_lane_count("two") is None
        assert parse_lane_count("-1") is None

    def test_total_split_evenly(self, report):
        assert resolve_lanes({"lanes": "4"}, 1, False, False, report) == (2.0, 2.0)

    def test_total_on_oneway(self, report):
        assert resolve_lanes({"lanes": "3"}, 1, True, False, report) == (3.0, 3.0)

    def test_forward_with_total(self, report):
        assert resolve_lanes({"lanes": "3", "lanes:forward": "2"}, 1, False, False, report) == (2.0, 1.0)

    def test_both_directions(self, report):
        tags = {"lanes": "5", "lanes:forward": "3", "lanes:backward": "1"}
        assert resolve_lanes(tags, 1, False, False, report) == (3.0, 1.0)

    def test_forward_only_leaves_no_backward_lanes(self, report):
        # 2 x 1 default lanes, all taken by the forward direction
        assert resolve_lanes({"lanes:forward": "3"}, 1, False, False, report) == (3.0, 1)
        assert report.unknown_lanes_tags == {"3 of 2"}

    def test_forward_takes_whole_total(self, report):
        assert resolve_lanes({"lanes": "2", "lanes:forward": "2"}, 1, False, False, report) == (2.0, 1)

    def test_backward_only_on_reverse_oneway(self, report):
        assert resolve_lanes({"lanes:backward": "3"}, 1, False, True, report) == (3.0, 3.0)

    def test_unparsable_falls_back(self, report):
        assert resolve_lanes({"lanes": "many"}, 1, False, False, report) == (1, 1)
        assert report.unknown_lanes_tags == {"many"}


class TestTurnLanes:

    def test_tokens_left_to_right(self, report):
        stack = parse_turn_lanes("left|through;right|right", 3, report)
        assert stack == [
            [TurnDirection.LEFT],
            [TurnDirection.THROUGH, TurnDirection.RIGHT],
            [TurnDirection.RIGHT],
        ]

    def test_padded_on_the_right(self, report):
        stack = parse_turn_lanes("left", 3, report)
        assert stack == [[TurnDirection.LEFT], [None], [None]]

    def test_empty_and_none_tokens(self, report):
        stack = parse_turn_lanes("none||through", 3, report)
        assert stack == [[None], [None], [TurnDirection.THROUGH]]
        assert not report.unknown_turn_lane_tokens

    def test_unknown_token(self, report):
        stack = parse_turn_lanes("left|bogus", 2, report)
        assert stack[1] == [None]
        assert report.unknown_turn_lane_tokens == {"bogus"}


class TestLinkAttributes:

    def test_forward_lanes_keep_backward_capacity_positive(self, report):
        attributes = link_attributes({"highway": "residential", "lanes:forward": "3"}, RESIDENTIAL, False, report)
        assert attributes.lanes_forward == 3.0
        assert attributes.lanes_backward == 1
        assert attributes.capacity(attributes.lanes_backward) == 600

    def test_defaults(self, report):
        attributes = link_attributes({"highway": "residential"}, RESIDENTIAL, False, report)
        assert attributes.lanes_forward == 1
        assert attributes.freespeed == pytest.approx(30 / 3.6)
        assert attributes.capacity(attributes.lanes_forward) == 600

    def test_oneway_major_road_gets_two_lanes(self, report):
        attributes = link_attributes({"highway": "primary", "oneway": "yes"}, PRIMARY_SINGLE, False, report)
        assert attributes.lanes_forward == 2.0
        assert attributes.capacity(attributes.lanes_forward) == 3000

    def test_maxspeed_and_scaling(self, report):
        attributes = link_attributes({"highway": "primary", "maxspeed": "72"}, PRIMARY_SINGLE, True, report)
        assert attributes.freespeed == pytest.approx(72 / 3.6 * 0.5)

    def test_bad_maxspeed_keeps_default(self, report):
        attributes = link_attributes({"highway": "residential", "maxspeed": "fast"}, RESIDENTIAL, False, report)
        assert attributes.freespeed == pytest.approx(30 / 3.6)
        assert report.unknown_maxspeed_tags == {"fast"}

    def test_turn_lanes_by_direction(self, report):
        tags = {
            "highway": "residential",
            "lanes": "4",
            "turn:lanes:forward": "left|through",
            "turn:lanes:backward": "through|right",
        }
        attributes = link_attributes(tags, RESIDENTIAL, False, report)
        assert attributes.turn_lanes_forward == [[TurnDirection.LEFT], [TurnDirection.THROUGH]]
        assert attributes.turn_lanes_backward == [[TurnDirection.THROUGH], [TurnDirection.RIGHT]]

    def test_plain_turn_lanes_follow_reverse_oneway(self, report):
        tags = {"highway": "residential", "oneway": "-1", "lanes": "2", "turn:lanes": "left|right"}
        attributes = link_attributes(tags, RESIDENTIAL, False, report)
        assert attributes.reverse
        assert attributes.turn_lanes_forward is None
        assert attributes.turn_lanes_backward == [[TurnDirection.LEFT], [TurnDirection.RIGHT]]

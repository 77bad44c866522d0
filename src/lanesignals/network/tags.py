"""
Tag interpretation

Lookup tables from raw tag values to enums, and pure functions computing
per-direction link attributes from a way's tags
"""

import math
import re
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Tuple

from ..config import HighwayDefaults
from ..models import ConversionReport


TAG_HIGHWAY = "highway"
TAG_LANES = "lanes"
TAG_LANES_FORWARD = "lanes:forward"
TAG_LANES_BACKWARD = "lanes:backward"
TAG_MAXSPEED = "maxspeed"
TAG_JUNCTION = "junction"
TAG_ONEWAY = "oneway"
TAG_ACCESS = "access"
TAG_TURN_LANES = "turn:lanes"
TAG_TURN_LANES_FORWARD = "turn:lanes:forward"
TAG_TURN_LANES_BACKWARD = "turn:lanes:backward"

KMH_PER_MS = 3.6
KMH_PER_MPH = 1.609344

# Major classes that get two lanes when tagged oneway with a one-lane default
ONEWAY_DOUBLING_CLASSES = {"trunk", "primary", "secondary"}


class Oneway(Enum):
    FORWARD = "forward"
    REVERSE = "reverse"
    BOTH = "both"


ONEWAY_VALUES: Dict[str, Oneway] = {
    "yes": Oneway.FORWARD,
    "true": Oneway.FORWARD,
    "1": Oneway.FORWARD,
    "-1": Oneway.REVERSE,
    "no": Oneway.BOTH,
}


class TurnDirection(IntEnum):
    THROUGH = 0
    LEFT = 1
    SLIGHT_LEFT = 2
    SHARP_LEFT = 3
    MERGE_TO_RIGHT = 4
    REVERSE = 5
    RIGHT = -1
    SLIGHT_RIGHT = -2
    SHARP_RIGHT = -3
    MERGE_TO_LEFT = -5


TURN_TOKENS: Dict[str, TurnDirection] = {
    "left": TurnDirection.LEFT,
    "slight_left": TurnDirection.SLIGHT_LEFT,
    "sharp_left": TurnDirection.SHARP_LEFT,
    "merge_to_right": TurnDirection.MERGE_TO_RIGHT,
    "reverse": TurnDirection.REVERSE,
    "through": TurnDirection.THROUGH,
    "right": TurnDirection.RIGHT,
    "slight_right": TurnDirection.SLIGHT_RIGHT,
    "sharp_right": TurnDirection.SHARP_RIGHT,
    "merge_to_left": TurnDirection.MERGE_TO_LEFT,
}

# One entry per lane, left to right; each entry holds the lane's direction tokens
TurnLaneStack = List[List[Optional[TurnDirection]]]


def is_right_turn(direction: TurnDirection) -> bool:
    return direction in (TurnDirection.RIGHT, TurnDirection.SLIGHT_RIGHT, TurnDirection.SHARP_RIGHT)


def is_left_turn(direction: TurnDirection) -> bool:
    return direction in (TurnDirection.LEFT, TurnDirection.SLIGHT_LEFT, TurnDirection.SHARP_LEFT)


def is_forward(direction: TurnDirection) -> bool:
    return direction in (TurnDirection.THROUGH, TurnDirection.MERGE_TO_LEFT, TurnDirection.MERGE_TO_RIGHT)


def oneway_from_tag(value: Optional[str]) -> Optional[Oneway]:
    if value is None:
        return None
    return ONEWAY_VALUES.get(value)


def allows_forward(oneway_tag: Optional[str]) -> bool:
    """Traffic may follow the way's node order"""
    return oneway_from_tag(oneway_tag) is not Oneway.REVERSE


def allows_backward(oneway_tag: Optional[str]) -> bool:
    """Traffic may travel against the way's node order"""
    return oneway_from_tag(oneway_tag) is not Oneway.FORWARD


def parse_maxspeed(value: str) -> Optional[float]:
    """Speed limit in meters/second from `50`, `50 km/h` or `30 mph`; None if unreadable"""
    match = re.fullmatch(r"\s*(\d+(?:\.\d+)?)\s*(km/h|kmh|kph|mph)?\s*", value)
    if not match:
        return None
    speed = float(match.group(1))
    if match.group(2) == "mph":
        speed *= KMH_PER_MPH
    return speed / KMH_PER_MS


def parse_lane_count(value: str) -> Optional[float]:
    try:
        lanes = float(value)
    except ValueError:
        return None
    if math.isnan(lanes) or lanes < 0:
        return None
    return lanes


def parse_turn_lanes(value: str, lane_count: float, report: ConversionReport) -> TurnLaneStack:
    """
    Parse a turn:lanes value into per-lane direction tokens

    Args:
        value: e.g. "left|through;right|right"
        lane_count: Lanes of the link; missing entries are padded on the right
        report: Collects unrecognized tokens

    Returns:
        Lanes left to right, each a list of directions (None = no direction)
    """
    stack: TurnLaneStack = []
    for lane in value.split("|"):
        directions: List[Optional[TurnDirection]] = []
        for token in lane.split(";"):
            token = token.strip()
            direction = TURN_TOKENS.get(token)
            if direction is None and token not in ("", "none"):
                report.note_unknown("turn_lane", token, f"Could not read turn lane token '{token}'")
            directions.append(direction)
        stack.append(directions)
    while len(stack) < lane_count:
        stack.append([None])
    return stack


@dataclass
class LinkAttributes:
    """Per-direction attributes of the link(s) created for one way segment"""
    highway: str
    oneway: bool
    reverse: bool
    lanes_forward: float
    lanes_backward: float
    freespeed: float
    lane_capacity: float
    turn_lanes_forward: Optional[TurnLaneStack] = None
    turn_lanes_backward: Optional[TurnLaneStack] = None

    def capacity(self, lanes: float) -> float:
        return lanes * self.lane_capacity


def resolve_oneway(tags: Dict[str, str], defaults: HighwayDefaults, report: ConversionReport) -> Tuple[bool, bool]:
    """`oneway` tag > `junction=roundabout` > class default; returns (oneway, reverse)"""
    oneway = defaults.oneway
    reverse = False
    if tags.get(TAG_JUNCTION) == "roundabout":
        oneway = True
    tag = tags.get(TAG_ONEWAY)
    if tag is not None:
        state = oneway_from_tag(tag)
        if state is Oneway.FORWARD:
            oneway = True
        elif state is Oneway.REVERSE:
            oneway, reverse = False, True
        elif state is Oneway.BOTH:
            oneway = False
        else:
            report.note_unknown("oneway", tag, f"Could not interpret oneway tag: {tag}. Ignoring it.")
    return oneway, reverse


def _remaining_lanes(
    total: float,
    tagged: float,
    default_lanes: float,
    oneway: bool,
    report: ConversionReport
) -> float:
    """Lanes of the untagged direction; falls back when the tagged one takes them all"""
    remaining = total - tagged
    if remaining > 0:
        return remaining
    fallback = tagged if oneway else default_lanes
    value = f"{tagged:g} of {total:g}"
    report.note_unknown(
        "lanes", value, f"Tagged direction has {tagged:g} of {total:g} lanes. Using {fallback:g} for the other."
    )
    return fallback


def resolve_lanes(
    tags: Dict[str, str],
    default_lanes: float,
    oneway: bool,
    reverse: bool,
    report: ConversionReport
) -> Tuple[float, float]:
    """`lanes:forward`/`lanes:backward` > `lanes` split evenly unless oneway > default"""
    forward = backward = default_lanes
    lanes_tag = tags.get(TAG_LANES)
    forward_tag = tags.get(TAG_LANES_FORWARD)
    backward_tag = tags.get(TAG_LANES_BACKWARD)
    if lanes_tag is None and forward_tag is None and backward_tag is None:
        return forward, backward

    parsed = {key: parse_lane_count(value) for key, value in
              ((TAG_LANES, lanes_tag), (TAG_LANES_FORWARD, forward_tag), (TAG_LANES_BACKWARD, backward_tag))
              if value is not None}
    for key, count in parsed.items():
        if count is None:
            value = tags[key]
            report.note_unknown("lanes", value, f"Could not parse {key} tag: {value}. Ignoring it.")
            return forward, backward

    total = parsed.get(TAG_LANES, 2 * forward)
    if forward_tag is not None and backward_tag is not None:
        return parsed[TAG_LANES_FORWARD], parsed[TAG_LANES_BACKWARD]
    if forward_tag is not None:
        forward = parsed[TAG_LANES_FORWARD]
        return forward, _remaining_lanes(total, forward, default_lanes, oneway or reverse, report)
    if backward_tag is not None:
        backward = parsed[TAG_LANES_BACKWARD]
        return _remaining_lanes(total, backward, default_lanes, oneway or reverse, report), backward
    if oneway or reverse:
        return total, total
    return total / 2.0, total / 2.0


def link_attributes(
    tags: Dict[str, str],
    defaults: HighwayDefaults,
    scale_max_speed: bool,
    report: ConversionReport
) -> LinkAttributes:
    """Combine class defaults and tag overrides for one way"""
    highway = tags[TAG_HIGHWAY]
    oneway, reverse = resolve_oneway(tags, defaults, report)

    default_lanes = defaults.lanes_per_direction
    if highway in ONEWAY_DOUBLING_CLASSES and (oneway or reverse) and default_lanes == 1.0:
        default_lanes = 2.0
    lanes_forward, lanes_backward = resolve_lanes(tags, default_lanes, oneway, reverse, report)

    freespeed = defaults.freespeed
    maxspeed = tags.get(TAG_MAXSPEED)
    if maxspeed is not None:
        parsed = parse_maxspeed(maxspeed)
        if parsed is None:
            report.note_unknown("maxspeed", maxspeed, f"Could not parse maxspeed tag: {maxspeed}. Ignoring it.")
        else:
            freespeed = parsed
    if scale_max_speed:
        freespeed *= defaults.freespeed_factor

    attributes = LinkAttributes(
        highway=highway,
        oneway=oneway,
        reverse=reverse,
        lanes_forward=lanes_forward,
        lanes_backward=lanes_backward,
        freespeed=freespeed,
        lane_capacity=defaults.lane_capacity,
    )

    forward_turns = tags.get(TAG_TURN_LANES_FORWARD)
    if forward_turns is None and not reverse:
        forward_turns = tags.get(TAG_TURN_LANES)
    if forward_turns is not None:
        attributes.turn_lanes_forward = parse_turn_lanes(forward_turns, lanes_forward, report)

    backward_turns = tags.get(TAG_TURN_LANES_BACKWARD)
    if backward_turns is None and reverse:
        backward_turns = tags.get(TAG_TURN_LANES)
    if backward_turns is not None:
        attributes.turn_lanes_backward = parse_turn_lanes(backward_turns, lanes_backward, report)

    return attributes

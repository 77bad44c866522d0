"""
Lane creation and turn assignment

Builds lanes for links ending at branching nodes, assigns each lane the
downstream links it may turn into (from turn:lanes tags or default modes),
merges redundant lanes and derives lane alignments.
"""

import math
from typing import Dict, List, Optional

from loguru import logger

from ..config import LaneAssignmentConfig, MidLaneMode, OutLaneMode
from ..models import (
    AggregateLane, ConversionReport, DirectedLink, Lane, LaneAlignment,
    LanesToLinkAssignment, Network
)
from ..network.tags import TurnDirection, TurnLaneStack, is_forward, is_left_turn, is_right_turn
from ..raw.models import RestrictionRelation
from .ordering import (
    LEFT_CONE, RIGHT_CONE, SHARP_LEFT_LIMIT, SHARP_RIGHT_LIMIT,
    LinkVector, find_reverse, order_downstream_links, straight_candidate, turn_candidates
)
from .restrictions import apply_restrictions


def select_for_token(token: Optional[TurnDirection], candidates: List[LinkVector]) -> List[LinkVector]:
    """
    Downstream links a single turn:lanes token permits

    Args:
        token: Direction token, None for a lane without direction
        candidates: Remaining candidates ordered right to left

    Returns:
        Selected candidates (possibly empty)
    """
    reverse = find_reverse(candidates)
    turns = [v for v in candidates if v is not reverse]

    if token is None:
        return turns or list(candidates)

    if token == TurnDirection.REVERSE:
        if reverse is not None:
            return [reverse]
        return [max(candidates, key=lambda v: (v.deviation_from_straight, -v.link.id))] if candidates else []

    if is_forward(token):
        straight = straight_candidate(turns)
        return [straight] if straight is not None else []

    if is_right_turn(token):
        cone = [v for v in turns if v.rotation < RIGHT_CONE]
        if not cone:
            return turns[:1]
        if len(cone) == 1 or token == TurnDirection.SHARP_RIGHT:
            return cone[:1]
        if token == TurnDirection.SLIGHT_RIGHT:
            return [cone[1]] if cone[0].rotation < SHARP_RIGHT_LIMIT else [cone[0]]
        return cone[:2]

    if is_left_turn(token):
        cone = [v for v in turns if v.rotation > LEFT_CONE]
        if not cone:
            return turns[-1:]
        if len(cone) == 1 or token == TurnDirection.SHARP_LEFT:
            return cone[-1:]
        if token == TurnDirection.SLIGHT_LEFT:
            return [cone[-2]] if cone[-1].rotation > SHARP_LEFT_LIMIT else [cone[-1]]
        return cone[-2:]

    return []


class LaneAssigner:
    """Creates lane tables for the links of a network"""

    def __init__(self, config: LaneAssignmentConfig, report: ConversionReport):
        self.config = config
        self.report = report

    def assign(
        self,
        network: Network,
        lane_stacks: Dict[int, TurnLaneStack],
        restrictions: Dict[int, List[RestrictionRelation]]
    ) -> Dict[int, LanesToLinkAssignment]:
        """
        Build lane tables for every link that needs one

        Args:
            network: Simplified network
            lane_stacks: Parsed turn:lanes stacks per link id
            restrictions: Restrictions per simplified node id

        Returns:
            Link id -> lane table
        """
        tables = {}
        for link_id in sorted(network.links):
            link = network.links[link_id]
            table = self.assign_link(network, link, lane_stacks.get(link_id), restrictions.get(link.to_node, []))
            if table is not None:
                tables[link_id] = table
        self.report.lane_tables_created = len(tables)
        logger.info(f"Lane tables created for {len(tables)} links")
        return tables

    def assign_link(
        self,
        network: Network,
        link: DirectedLink,
        stack: Optional[TurnLaneStack],
        node_restrictions: List[RestrictionRelation]
    ) -> Optional[LanesToLinkAssignment]:
        out_links = network.out_links(link.to_node)
        if len(out_links) <= 1:
            return None
        if link.number_of_lanes <= 1 and not node_restrictions:
            return None

        vectors = order_downstream_links(network, link, out_links)
        candidates = apply_restrictions(link, vectors, node_restrictions)
        restricted = len(candidates) != len(vectors)
        if not candidates:
            logger.warning(f"All downstream links of link {link.id} are restricted; no lanes created")
            return None

        table = self.create_lanes(link)
        lanes = table.ordered_lanes()
        if stack is not None:
            self.assign_from_stack(lanes, stack, candidates)
        else:
            if len(turn_candidates(vectors)) <= 1 and not restricted:
                logger.debug(f"Link {link.id} has a single downstream choice; lanes dropped")
                return None
            self.assign_defaults(lanes, candidates)

        self.consolidate(table)
        survivors = table.ordered_lanes()
        if len(survivors) == 1 and set(survivors[0].to_link_ids) == {l.id for l in out_links}:
            return None

        self.set_alignments(survivors, vectors)
        self.build_aggregate(table)
        return table

    # ------------------------------------------------------------------
    # Lane creation
    # ------------------------------------------------------------------

    def lane_start(self, link: DirectedLink) -> float:
        if link.length > 2 * self.config.lane_offset_m:
            return self.config.lane_offset_m
        return link.length / 2

    def create_lanes(self, link: DirectedLink) -> LanesToLinkAssignment:
        """
        floor(N) lanes, ordinal 1 rightmost; the leftmost one carries the
        fractional remainder so represented lanes add up to N
        """
        total = link.number_of_lanes
        count = max(1, int(math.floor(total)))
        start = self.lane_start(link)
        table = LanesToLinkAssignment(
            link_id=link.id,
            aggregate=AggregateLane(id=f"Lane{link.id}.ol", starts_at_meter_from_link_end=link.length),
        )
        for ordinal in range(1, count + 1):
            represented = 1.0 if ordinal < count else total - (count - 1)
            capacity = link.capacity * represented / total if total > 0 else 0.0
            lane = Lane(
                id=f"Lane{link.id}.{ordinal}",
                ordinal=ordinal,
                represented_lanes=represented,
                capacity=capacity,
                starts_at_meter_from_link_end=start,
            )
            table.lanes[lane.id] = lane
        return table

    # ------------------------------------------------------------------
    # Turn assignment
    # ------------------------------------------------------------------

    @staticmethod
    def assign_from_stack(lanes: List[Lane], stack: TurnLaneStack, candidates: List[LinkVector]) -> None:
        """The lane of ordinal k consumes the k-th stack entry from the right"""
        count = len(lanes)
        for lane in lanes:
            k = lane.ordinal
            if k > len(stack):
                tokens = [None]
            elif k == count:
                # surplus entries on the left fold into the leftmost lane
                tokens = [t for entry in stack[:len(stack) - k + 1] for t in entry]
            else:
                tokens = stack[len(stack) - k]
            for token in tokens:
                for vector in select_for_token(token, candidates):
                    lane.add_to_link(vector.link.id)
            if not lane.to_link_ids:
                for vector in turn_candidates(candidates) or candidates:
                    lane.add_to_link(vector.link.id)

    def assign_defaults(self, lanes: List[Lane], candidates: List[LinkVector]) -> None:
        reverse = find_reverse(candidates)
        turns = [v for v in candidates if v is not reverse]
        if len(lanes) == 1 or not turns:
            for lane in lanes:
                for vector in candidates:
                    lane.add_to_link(vector.link.id)
            return

        straight = straight_candidate(turns)
        out_mode = self.config.out_lane_mode
        rightmost, leftmost = lanes[0], lanes[-1]

        rightmost.add_to_link(turns[0].link.id)
        leftmost.add_to_link(turns[-1].link.id)
        if out_mode is OutLaneMode.TURN_AND_STRAIGHT:
            rightmost.add_to_link(straight.link.id)
            leftmost.add_to_link(straight.link.id)
        elif out_mode is OutLaneMode.ALL:
            for vector in turns:
                rightmost.add_to_link(vector.link.id)
                leftmost.add_to_link(vector.link.id)
        if reverse is not None:
            leftmost.add_to_link(reverse.link.id)

        index = turns.index(straight)
        if self.config.mid_lane_mode is MidLaneMode.STRAIGHT_AND_ADJACENT:
            middle = turns[max(0, index - 1):index + 2]
        else:
            middle = [straight]
        for lane in lanes[1:-1]:
            for vector in middle:
                lane.add_to_link(vector.link.id)

        self._cover_unreached(lanes, turns)

    @staticmethod
    def _cover_unreached(lanes: List[Lane], turns: List[LinkVector]) -> None:
        """Give every unreached turn candidate to the lane at its proportional position"""
        reached = {link_id for lane in lanes for link_id in lane.to_link_ids}
        for i, vector in enumerate(turns):
            if vector.link.id in reached:
                continue
            position = round(i * (len(lanes) - 1) / (len(turns) - 1)) if len(turns) > 1 else 0
            lanes[position].add_to_link(vector.link.id)

    # ------------------------------------------------------------------
    # Consolidation
    # ------------------------------------------------------------------

    @staticmethod
    def consolidate(table: LanesToLinkAssignment) -> None:
        """Merge neighbouring lanes with identical to-links into the more-left lane"""
        lanes = table.ordered_lanes()
        right = lanes[0]
        for left in lanes[1:]:
            if set(right.to_link_ids) == set(left.to_link_ids):
                left.represented_lanes += right.represented_lanes
                left.capacity += right.capacity
                del table.lanes[right.id]
                logger.debug(f"Put together {left.id} and {right.id}")
            right = left

    @staticmethod
    def set_alignments(lanes: List[Lane], vectors: List[LinkVector]) -> None:
        """A U-turn link does not change a lane's alignment"""
        candidates = turn_candidates(vectors)
        straight = straight_candidate(candidates)
        if straight is None:
            return
        rotations = {v.link.id: v.rotation for v in candidates}
        for lane in lanes:
            link_ids = [link_id for link_id in lane.to_link_ids if link_id in rotations]
            turns = [rotations[link_id] for link_id in link_ids]
            if not turns:
                lane.alignment = LaneAlignment.NONE
            elif all(link_id == straight.link.id for link_id in link_ids):
                lane.alignment = LaneAlignment.THROUGH
            elif all(rotation > straight.rotation for rotation in turns):
                lane.alignment = LaneAlignment.LEFT
            elif all(rotation < straight.rotation for rotation in turns):
                lane.alignment = LaneAlignment.RIGHT
            else:
                lane.alignment = LaneAlignment.NONE

    @staticmethod
    def build_aggregate(table: LanesToLinkAssignment) -> None:
        aggregate = table.aggregate
        aggregate.to_lane_ids = []
        aggregate.represented_lanes = 0.0
        aggregate.capacity = 0.0
        for lane in table.ordered_lanes():
            aggregate.to_lane_ids.append(lane.id)
            aggregate.represented_lanes += lane.represented_lanes
            aggregate.capacity += lane.capacity

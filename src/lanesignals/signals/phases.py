"""
Signal phase synthesis

Creates the signals, signal groups and fixed-cycle plan of every signal
system, dispatched by the number of links entering the junction.
"""

import math
from itertools import combinations
from typing import Dict, List, Tuple

from loguru import logger

from ..config import SignalTimingConfig
from ..geometry import GeometryUtils
from ..models import (
    ConversionReport, DirectedLink, LaneAlignment, LanesToLinkAssignment, Network,
    Signal, SignalGroup, SignalGroupSettings, SignalPlan, SignalSystem
)


class UnexpectedJunctionError(RuntimeError):
    """A signalized junction has more in-links than phase synthesis supports"""


class Arm:
    """Signals of one in-link, split into straight and protected-turn signals"""

    def __init__(self, link: DirectedLink, vector: Tuple[float, float]):
        self.link = link
        self.vector = vector
        self.straight: List[str] = []
        self.protected: List[str] = []

    @property
    def signal_ids(self) -> List[str]:
        return self.straight + self.protected

    @property
    def lanes(self) -> float:
        return self.link.number_of_lanes


def pair_deviation(a: Arm, b: Arm) -> float:
    """How far the directions of two arms are from exactly opposite"""
    return math.pi - GeometryUtils.angle_between(a.vector, b.vector)


def best_pair(arms: List[Arm]) -> Tuple[Arm, Arm]:
    return min(combinations(arms, 2), key=lambda p: (pair_deviation(*p), p[0].link.id, p[1].link.id))


class PhaseSynthesizer:
    """Fills signal systems with signals, groups and a plan"""

    def __init__(self, timing: SignalTimingConfig, report: ConversionReport, strict: bool = False):
        self.timing = timing
        self.report = report
        self.strict = strict

    def synthesize(
        self,
        network: Network,
        lanes: Dict[int, LanesToLinkAssignment],
        systems: Dict[str, SignalSystem]
    ) -> None:
        for system_id in sorted(systems):
            self.synthesize_system(network, lanes, systems[system_id])
        self.report.signal_systems_created = len(systems)
        logger.info(f"Signal plans created for {len(systems)} junctions")

    def synthesize_system(
        self,
        network: Network,
        lanes: Dict[int, LanesToLinkAssignment],
        system: SignalSystem
    ) -> None:
        arms = self.create_signals(network, lanes, system)
        count = len(arms)
        if count == 2:
            self.plan_two_arms(system, arms)
        elif count == 3:
            self.plan_three_arms(system, arms)
        elif count == 4:
            self.plan_four_arms(system, arms)
        else:
            if count > 4:
                self.report.unexpected_junctions.append(system.node_id)
                message = f"Signalized node {system.node_id} has {count} in-links; default plan used"
                if self.strict:
                    raise UnexpectedJunctionError(message)
                logger.error(message)
            self.plan_default(system, arms)

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def create_signals(
        self,
        network: Network,
        lanes: Dict[int, LanesToLinkAssignment],
        system: SignalSystem
    ) -> List[Arm]:
        """One signal per real lane of an in-link with a lane table, else one per in-link"""
        arms = []
        node = network.nodes[system.node_id]
        for link in network.in_links(system.node_id):
            start = network.nodes[link.from_node]
            arm = Arm(link, (node.x - start.x, node.y - start.y))
            table = lanes.get(link.id)
            if table is None:
                signal = Signal(id=f"Signal{link.id}", link_id=link.id)
                system.signals[signal.id] = signal
                arm.straight.append(signal.id)
            else:
                for lane in table.ordered_lanes():
                    signal = Signal(id=f"Signal{link.id}.{lane.ordinal}", link_id=link.id, lane_ids=[lane.id])
                    system.signals[signal.id] = signal
                    if lane.alignment is LaneAlignment.LEFT:
                        arm.protected.append(signal.id)
                    else:
                        arm.straight.append(signal.id)
            arms.append(arm)
        return arms

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    @staticmethod
    def _add_group(plan: SignalPlan, system: SignalSystem, group_id: str, signal_ids: List[str],
                   onset: float, dropping: float) -> None:
        if not signal_ids:
            return
        system.groups[group_id] = SignalGroup(id=group_id, signal_ids=list(signal_ids))
        plan.settings[group_id] = SignalGroupSettings(group_id=group_id, onset=onset, dropping=dropping)

    def plan_default(self, system: SignalSystem, arms: List[Arm]) -> None:
        """Single group with every signal"""
        plan = SignalPlan(cycle_time=self.timing.default_cycle_time)
        signal_ids = [s for arm in arms for s in arm.signal_ids]
        self._add_group(plan, system, "1", signal_ids, 0.0, self.timing.default_dropping)
        system.plan = plan

    def plan_two_arms(self, system: SignalSystem, arms: List[Arm]) -> None:
        cycle = self.timing.cycle_time
        intergreen = self.timing.intergreen
        plan = SignalPlan(cycle_time=cycle)
        a, b = arms
        if pair_deviation(a, b) <= math.pi / 4:
            # both directions of one road, e.g. at a pedestrian crossing
            signal_ids = a.signal_ids + b.signal_ids
            self._add_group(plan, system, "1", signal_ids, 0.0, cycle - self.timing.crossing_margin)
        else:
            half = cycle / 2
            self._add_group(plan, system, f"Group{a.link.id}", a.signal_ids, 0.0, half - intergreen)
            self._add_group(plan, system, f"Group{b.link.id}", b.signal_ids, half, cycle - intergreen)
        system.plan = plan

    def split(self, main_lanes: float, other_lanes: float) -> float:
        """Green share of the main stage, clamped to the configured bounds"""
        cycle = self.timing.cycle_time
        total = main_lanes + other_lanes
        share = cycle * main_lanes / total if total > 0 else cycle / 2
        return min(max(share, self.timing.min_green_share), self.timing.max_green_share)

    def schedule_pair(self, plan: SignalPlan, system: SignalSystem, arms: List[Arm], start: float,
                      share: float) -> None:
        """
        Give one or two opposite arms the window [start, start + share)

        Without protected-turn lanes every arm gets one group green until
        start + share - intergreen. Otherwise the straight groups end early
        and the protected groups follow after one intergreen.
        """
        intergreen = self.timing.intergreen
        protected = self.timing.protected_phase
        end = start + share - intergreen
        if not any(arm.protected for arm in arms):
            for arm in arms:
                self._add_group(plan, system, f"Group{arm.link.id}", arm.straight, start, end)
            return
        for arm in arms:
            self._add_group(plan, system, f"Group{arm.link.id}.straight", arm.straight,
                            start, end - intergreen - protected)
            self._add_group(plan, system, f"Group{arm.link.id}.protected", arm.protected,
                            end - protected, end)

    def plan_three_arms(self, system: SignalSystem, arms: List[Arm]) -> None:
        main = list(best_pair(arms))
        minor = [arm for arm in arms if arm not in main][0]
        share = self.split((main[0].lanes + main[1].lanes) / 2, minor.lanes)
        plan = SignalPlan(cycle_time=self.timing.cycle_time)
        self.schedule_pair(plan, system, main, 0.0, share)
        self.schedule_pair(plan, system, [minor], share, self.timing.cycle_time - share)
        system.plan = plan

    def plan_four_arms(self, system: SignalSystem, arms: List[Arm]) -> None:
        first = list(best_pair(arms))
        second = [arm for arm in arms if arm not in first]
        share = self.split((first[0].lanes + first[1].lanes) / 2, (second[0].lanes + second[1].lanes) / 2)
        plan = SignalPlan(cycle_time=self.timing.cycle_time)
        self.schedule_pair(plan, system, first, 0.0, share)
        self.schedule_pair(plan, system, second, share, self.timing.cycle_time - share)
        system.plan = plan


def windows(plan: SignalPlan) -> List[Tuple[str, float, float]]:
    """(group id, onset, dropping) of every group in a plan"""
    return [(s.group_id, s.onset, s.dropping) for s in plan.settings.values()]


def circular_gap(first_dropping: float, second_onset: float, cycle: float) -> float:
    """Time from the end of one green window to the start of another, wrapping over the cycle"""
    return (second_onset - first_dropping) % cycle


def overlapping(a: Tuple[float, float], b: Tuple[float, float]) -> bool:
    return a[0] < b[1] and b[0] < a[1]


def find_intergreen_violations(plan: SignalPlan, intergreen: float) -> List[Tuple[str, str]]:
    """Pairs of non-overlapping groups whose windows are closer than the intergreen"""
    violations = []
    entries = windows(plan)
    for (id_a, on_a, drop_a), (id_b, on_b, drop_b) in combinations(entries, 2):
        if overlapping((on_a, drop_a), (on_b, drop_b)):
            continue
        gaps = (circular_gap(drop_a, on_b, plan.cycle_time), circular_gap(drop_b, on_a, plan.cycle_time))
        if min(gaps) < intergreen - 1e-9:
            violations.append((id_a, id_b))
    return violations

"""
Consistency checks run on a finished conversion

Signals that reference a missing link or lane are removed; every other
finding is logged and returned.
"""

import math
from typing import Dict, List, Tuple

from loguru import logger

from .config import SignalTimingConfig
from .models import LanesToLinkAssignment, Network, SignalSystem
from .signals.phases import find_intergreen_violations


class ConsistencyChecker:
    """Checks signals, lanes and plans against the network"""

    def __init__(
        self,
        network: Network,
        lanes: Dict[int, LanesToLinkAssignment],
        systems: Dict[str, SignalSystem],
        timing: SignalTimingConfig
    ):
        self.network = network
        self.lanes = lanes
        self.systems = systems
        self.timing = timing
        self.malformed_signals: List[Tuple[str, str]] = []
        self.issues: List[str] = []

    def check(self) -> List[str]:
        """Run every check and return the issues found"""
        self.check_signal_to_link()
        self.check_signal_to_lane()
        self.remove_malformed_signals()
        self.check_to_links()
        self.check_lane_conservation()
        self.check_intergreens()
        if self.issues:
            logger.warning(f"Consistency check found {len(self.issues)} issues")
        else:
            logger.info("Consistency check passed")
        return self.issues

    def _issue(self, message: str) -> None:
        logger.error(message)
        self.issues.append(message)

    def check_signal_to_link(self) -> None:
        for system in self.systems.values():
            for signal in system.signals.values():
                if signal.link_id not in self.network.links:
                    self._issue(f"No link for signal {signal.id} of system {system.id}: link {signal.link_id}")
                    self.malformed_signals.append((signal.id, system.id))

    def check_signal_to_lane(self) -> None:
        for system in self.systems.values():
            for signal in system.signals.values():
                if not signal.lane_ids:
                    continue
                table = self.lanes.get(signal.link_id)
                if table is None:
                    self._issue(f"No lanes for signal {signal.id} of system {system.id} on link {signal.link_id}")
                    self.malformed_signals.append((signal.id, system.id))
                    continue
                for lane_id in signal.lane_ids:
                    if lane_id not in table.lanes:
                        self._issue(f"No lane {lane_id} for signal {signal.id} of system {system.id}")
                        self.malformed_signals.append((signal.id, system.id))
                        break

    def remove_malformed_signals(self) -> None:
        for signal_id, system_id in self.malformed_signals:
            system = self.systems[system_id]
            system.signals.pop(signal_id, None)
            for group_id, group in list(system.groups.items()):
                if signal_id in group.signal_ids:
                    group.signal_ids.remove(signal_id)
                if not group.signal_ids:
                    del system.groups[group_id]
                    if system.plan is not None:
                        system.plan.settings.pop(group_id, None)
            logger.warning(f"Removed malformed signal {signal_id} of system {system_id}")
        self.malformed_signals = []

    def check_to_links(self) -> None:
        for link_id, table in self.lanes.items():
            link = self.network.links.get(link_id)
            if link is None:
                self._issue(f"Lanes for missing link {link_id}")
                continue
            out_links = {l.id for l in self.network.out_links(link.to_node)}
            for lane in table.lanes.values():
                for to_link in lane.to_link_ids:
                    if to_link not in out_links:
                        self._issue(f"Lane {lane.id} leads to {to_link}, which does not leave node {link.to_node}")

    def check_lane_conservation(self) -> None:
        for link_id, table in self.lanes.items():
            link = self.network.links.get(link_id)
            if link is None:
                continue
            represented = sum(lane.represented_lanes for lane in table.lanes.values())
            if not math.isclose(represented, link.number_of_lanes, abs_tol=1e-6):
                self._issue(
                    f"Lanes of link {link_id} represent {represented} lanes, link has {link.number_of_lanes}"
                )

    def check_intergreens(self) -> None:
        for system in self.systems.values():
            if system.plan is None:
                continue
            for a, b in find_intergreen_violations(system.plan, self.timing.intergreen):
                self._issue(f"Groups {a} and {b} of system {system.id} are closer than the intergreen")

"""
Configuration settings for the lanes and signals network converter
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from shapely.geometry import Point, box


@dataclass
class HighwayDefaults:
    """Defaults for converting one highway class into links"""
    hierarchy: int
    lanes_per_direction: float
    freespeed: float  # meters/second
    freespeed_factor: float
    lane_capacity: float  # vehicles/hour per lane
    oneway: bool = False


@dataclass
class HierarchyLayer:
    """
    Rectangle in projected coordinates plus the hierarchy ceiling of the
    highways converted inside it (1 = top layer, e.g. motorways only)
    """
    min_x: float
    min_y: float
    max_x: float
    max_y: float
    hierarchy: int

    def __post_init__(self):
        self._area = box(self.min_x, self.min_y, self.max_x, self.max_y)

    def contains(self, x: float, y: float, hierarchy_level: int) -> bool:
        """True if the coordinate lies strictly inside and the level is covered"""
        if self.hierarchy < hierarchy_level:
            return False
        return self._area.contains(Point(x, y))


class OutLaneMode(Enum):
    """Default turn assignment for the rightmost and leftmost lane"""
    TURN_ONLY = "turn_only"
    TURN_AND_STRAIGHT = "turn_and_straight"
    ALL = "all"


class MidLaneMode(Enum):
    """Default turn assignment for lanes between the two outer lanes"""
    STRAIGHT_ONLY = "straight_only"
    STRAIGHT_AND_ADJACENT = "straight_and_adjacent"


@dataclass
class APIConfig:
    """Overpass endpoint used to fetch raw extracts"""
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    overpass_timeout: int = 90
    max_retries: int = 3
    retry_delay: float = 5.0
    min_request_interval: float = 2.0
    user_agent: str = "lanesignals/0.1"


@dataclass
class SignalConsolidationConfig:
    """Distances (meters) used when moving signals onto junctions"""
    relocation_distance: float = 40.0
    short_way_distance: float = 25.0


@dataclass
class ClusteringConfig:
    """Distances (meters) used when merging junction nodes"""
    signal_cluster_distance: float = 30.0  # exact 4-node signalized loops
    cluster_distance: float = 40.0  # any closed loop of junction nodes
    pair_distance: float = 50.0  # fallback pairing of oneway junctions


@dataclass
class LaneAssignmentConfig:
    """Lane geometry and default turn assignment"""
    out_lane_mode: OutLaneMode = OutLaneMode.TURN_AND_STRAIGHT
    mid_lane_mode: MidLaneMode = MidLaneMode.STRAIGHT_AND_ADJACENT
    lane_offset_m: float = 35.0


@dataclass
class SignalTimingConfig:
    """Fixed-cycle timings (seconds)"""
    cycle_time: float = 90.0
    intergreen: float = 5.0
    protected_phase: float = 10.0
    min_green_share: float = 30.0
    max_green_share: float = 60.0
    crossing_margin: float = 15.0  # green of a pedestrian-style crossing ends cycle - margin
    default_cycle_time: float = 120.0
    default_dropping: float = 55.0


def default_highway_table() -> Dict[str, HighwayDefaults]:
    """Defaults for the most common highway classes"""
    return {
        "motorway": HighwayDefaults(1, 2, 120.0 / 3.6, 1.0, 2000, True),
        "motorway_link": HighwayDefaults(1, 1, 80.0 / 3.6, 1.0, 1500, True),
        "trunk": HighwayDefaults(2, 2, 80.0 / 3.6, 1.0, 2000),
        "trunk_link": HighwayDefaults(2, 1, 50.0 / 3.6, 1.0, 1500),
        "primary": HighwayDefaults(3, 2, 80.0 / 3.6, 1.0, 1500),
        "primary_link": HighwayDefaults(3, 1, 60.0 / 3.6, 1.0, 1500),
        "secondary": HighwayDefaults(4, 2, 60.0 / 3.6, 1.0, 1000),
        "tertiary": HighwayDefaults(5, 1, 45.0 / 3.6, 1.0, 600),
        "minor": HighwayDefaults(6, 1, 45.0 / 3.6, 1.0, 600),
        "unclassified": HighwayDefaults(6, 1, 45.0 / 3.6, 1.0, 600),
        "residential": HighwayDefaults(6, 1, 30.0 / 3.6, 1.0, 600),
        "living_street": HighwayDefaults(6, 1, 15.0 / 3.6, 1.0, 300),
    }


@dataclass
class ConverterConfig:
    """Converter configuration"""
    # Highway class -> defaults; ways with other classes are dropped
    highway_defaults: Dict[str, HighwayDefaults] = field(default_factory=default_highway_table)

    # Spatial filters; empty means every known highway is converted
    hierarchy_layers: List[HierarchyLayer] = field(default_factory=list)

    # Keep every node of the raw ways instead of only junctions
    keep_paths: bool = False

    # Multiply freespeed by the class freespeed_factor
    scale_max_speed: bool = False

    # Raise instead of logging when a junction has more than 4 in-links
    strict: bool = False

    # Target CRS for the Overpass loader (None = UTM zone of the data)
    target_crs: Optional[str] = None

    signals: SignalConsolidationConfig = field(default_factory=SignalConsolidationConfig)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    lanes: LaneAssignmentConfig = field(default_factory=LaneAssignmentConfig)
    timing: SignalTimingConfig = field(default_factory=SignalTimingConfig)
    api: APIConfig = field(default_factory=APIConfig)

    def set_highway_defaults(
        self,
        highway: str,
        hierarchy: int,
        lanes_per_direction: float,
        freespeed: float,
        freespeed_factor: float,
        lane_capacity: float,
        oneway: bool = False
    ) -> None:
        """Add or replace the defaults of one highway class"""
        self.highway_defaults[highway] = HighwayDefaults(
            hierarchy, lanes_per_direction, freespeed, freespeed_factor, lane_capacity, oneway
        )

    def add_hierarchy_layer(
        self,
        min_x: float,
        min_y: float,
        max_x: float,
        max_y: float,
        hierarchy: int
    ) -> None:
        """Add a rectangle converting highways up to the given hierarchy"""
        self.hierarchy_layers.append(HierarchyLayer(min_x, min_y, max_x, max_y, hierarchy))


# Global config instance
config = ConverterConfig()


def get_config() -> ConverterConfig:
    """Get global configuration"""
    return config


def validate_config(config: ConverterConfig) -> None:
    """
    Validate that all required configuration values are set.
    Raises ValueError if any required value is missing or invalid.
    """
    errors = []

    if not config.highway_defaults:
        errors.append("highway_defaults must contain at least one highway class")
    for highway, defaults in config.highway_defaults.items():
        if defaults.lanes_per_direction <= 0:
            errors.append(f"highway '{highway}': lanes_per_direction must be positive")
        if defaults.freespeed <= 0:
            errors.append(f"highway '{highway}': freespeed must be positive")
        if defaults.lane_capacity <= 0:
            errors.append(f"highway '{highway}': lane_capacity must be positive")

    for layer in config.hierarchy_layers:
        if layer.min_x >= layer.max_x or layer.min_y >= layer.max_y:
            errors.append(f"hierarchy layer {layer} has an empty extent")

    for name in ("relocation_distance", "short_way_distance"):
        if getattr(config.signals, name) <= 0:
            errors.append(f"signals.{name} must be positive")
    for name in ("signal_cluster_distance", "cluster_distance", "pair_distance"):
        if getattr(config.clustering, name) <= 0:
            errors.append(f"clustering.{name} must be positive")

    timing = config.timing
    if timing.intergreen < 0:
        errors.append("timing.intergreen must not be negative")
    if not 0 < timing.min_green_share <= timing.max_green_share < timing.cycle_time:
        errors.append(
            f"timing green shares must satisfy 0 < min ({timing.min_green_share}) <= "
            f"max ({timing.max_green_share}) < cycle ({timing.cycle_time})"
        )
    elif timing.min_green_share <= 2 * timing.intergreen + timing.protected_phase:
        errors.append("timing.min_green_share leaves no green for a split phase")
    if timing.crossing_margin >= timing.cycle_time:
        errors.append("timing.crossing_margin must be shorter than the cycle")
    if not 0 < timing.default_dropping < timing.default_cycle_time:
        errors.append("timing.default_dropping must lie inside the default cycle")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)

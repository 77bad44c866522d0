"""
Geometry utilities for planar distances, bearings and junction centers
"""

import math
from typing import Iterable, Sequence, Tuple

import numpy as np


TWO_PI = 2 * math.pi


class GeometryUtils:
    """Utility functions for geometric operations in projected coordinates"""

    @staticmethod
    def bearing(dx: float, dy: float) -> float:
        """Angle of a vector against the x axis, counter-clockwise in [0, 2pi)"""
        return math.atan2(dy, dx) % TWO_PI

    @staticmethod
    def rotation(from_bearing: float, to_bearing: float) -> float:
        """
        Turn angle of a downstream vector relative to an upstream one

        Straight ahead is pi, right turns lie below pi, left turns above it and
        a U-turn is close to 0 (or 2pi).
        """
        return (to_bearing - from_bearing - math.pi) % TWO_PI

    @staticmethod
    def angle_between(v1: Tuple[float, float], v2: Tuple[float, float]) -> float:
        """Unsigned angle between two vectors in [0, pi]"""
        n1 = math.hypot(*v1)
        n2 = math.hypot(*v2)
        if n1 == 0 or n2 == 0:
            return 0.0
        cos = (v1[0] * v2[0] + v1[1] * v2[1]) / (n1 * n2)
        return math.acos(max(-1.0, min(1.0, cos)))

    @staticmethod
    def circular_distance(a: float, b: float) -> float:
        """Smallest difference of two angles"""
        diff = abs(a - b) % TWO_PI
        return min(diff, TWO_PI - diff)

    @staticmethod
    def mean_point(coords: Sequence[Tuple[float, float]]) -> Tuple[float, float]:
        """Arithmetic mean of coordinates"""
        x, y = np.asarray(coords, dtype=float).mean(axis=0)
        return float(x), float(y)

    @staticmethod
    def bbox_center(coords: Iterable[Tuple[float, float]]) -> Tuple[float, float]:
        """Center of the bounding box of coordinates"""
        arr = np.asarray(list(coords), dtype=float)
        lo = arr.min(axis=0)
        hi = arr.max(axis=0)
        return float(lo[0] + (hi[0] - lo[0]) / 2), float(lo[1] + (hi[1] - lo[1]) / 2)

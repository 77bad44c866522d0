"""
Signal phase synthesis for signalized junctions
"""

from .phases import PhaseSynthesizer, UnexpectedJunctionError, find_intergreen_violations

__all__ = [
    "PhaseSynthesizer",
    "UnexpectedJunctionError",
    "find_intergreen_violations",
]

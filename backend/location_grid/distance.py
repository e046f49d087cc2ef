"""
distance.py — Great-circle distance between two longitude/latitude points.
"""

from __future__ import annotations

import math

# Nautical miles per degree of arc, and statute miles per nautical mile.
_NAUTICAL_MILES_PER_DEGREE = 60
_STATUTE_MILES_PER_NAUTICAL_MILE = 1.1515


def distance(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """
    Distance in statute miles, by the spherical law of cosines.

    The cosine is clamped to [-1, 1] so identical and antipodal points
    return 0 and half the circumference instead of NaN.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    theta = math.radians(lon1 - lon2)

    cosine = math.sin(phi1) * math.sin(phi2) + math.cos(phi1) * math.cos(phi2) * math.cos(theta)
    arc = math.acos(max(-1.0, min(1.0, cosine)))

    return math.degrees(arc) * _NAUTICAL_MILES_PER_DEGREE * _STATUTE_MILES_PER_NAUTICAL_MILE

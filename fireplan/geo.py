"""
Small geographic helpers.

Bearings are degrees clockwise from north. Distances are kilometres and use a
local flat-earth approximation of 111 km per degree of latitude, which is
adequate for the tens-of-kilometres extents fireplan works with.
"""

from __future__ import annotations

import math

import numpy as np

KM_PER_DEG_LAT = 111.0
EARTH_RADIUS_KM = 6371.0


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp ``value`` into ``[lower, upper]``."""
    return float(min(upper, max(lower, value)))


def normalize_bearing(deg: float) -> float:
    """Wrap a bearing into ``[0, 360)``."""
    wrapped = float(deg) % 360.0
    # -1e-15 % 360 == 360.0 in floating point
    return 0.0 if wrapped >= 360.0 else wrapped


def angular_difference(a: float, b: float) -> float:
    """Smallest absolute angle between two bearings, in ``[0, 180]``."""
    diff = abs(normalize_bearing(a) - normalize_bearing(b))
    return min(diff, 360.0 - diff)


def offset_point(
    latitude: float,
    longitude: float,
    distance_km: float,
    bearing_deg: float,
) -> tuple[float, float]:
    """
    Move a point ``distance_km`` along ``bearing_deg``.

    Parameters
    ----------
    latitude, longitude : float
        Origin in decimal degrees.
    distance_km : float
        Distance to travel in kilometres.
    bearing_deg : float
        Bearing in degrees clockwise from north.

    Returns
    -------
    tuple[float, float]
        ``(latitude, longitude)`` of the destination.
    """
    theta = np.deg2rad(bearing_deg)
    cos_lat = max(np.cos(np.deg2rad(latitude)), 1e-6)
    dlat = distance_km * np.cos(theta) / KM_PER_DEG_LAT
    dlon = distance_km * np.sin(theta) / (KM_PER_DEG_LAT * cos_lat)
    return float(latitude + dlat), float(longitude + dlon)


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))

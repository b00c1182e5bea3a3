"""
Trasformazioni di frame per orbite locali e coordinate geografiche.

Le lune e i satelliti sono propagati nel frame equatoriale del genitore;
apply_parent_tilt li riporta nel frame del piano orbitale del genitore
prima della traslazione sulla posizione del genitore stesso.
"""

from __future__ import annotations
import math

import numpy as np
from scipy.spatial.transform import Rotation

from core.errors import InvalidArgument
from core.settings import EARTH_RADIUS_KM


def apply_parent_tilt(v, tilt_deg: float) -> np.ndarray:
    """
    Rotate v about the X axis by the parent's axial tilt.

    Same formula for every tilt in [0°, 180°]; tilt 0 returns v unchanged.
    """
    vec = np.asarray(v, dtype=float)
    if vec.shape != (3,):
        raise InvalidArgument(f"expected a 3-vector, got shape {vec.shape}")
    if not math.isfinite(tilt_deg) or not 0.0 <= tilt_deg <= 180.0:
        raise InvalidArgument(f"tilt must be in [0, 180] degrees, got {tilt_deg!r}")
    if tilt_deg == 0.0:
        return vec.copy()
    return Rotation.from_euler("x", tilt_deg, degrees=True).apply(vec)


def normalize_longitude(lon_deg: float) -> float:
    """Wrap to [-180, 180)."""
    return (lon_deg + 180.0) % 360.0 - 180.0


def clamp_latitude(lat_deg: float) -> float:
    return max(-90.0, min(90.0, lat_deg))


def geographic_to_cartesian(lat_deg: float, lon_deg: float, radius: float) -> np.ndarray:
    """
    Latitude/longitude to a vector in the parent's equatorial frame
    (Z = rotation axis, X = prime meridian).
    """
    lat = math.radians(clamp_latitude(lat_deg))
    lon = math.radians(normalize_longitude(lon_deg))
    cos_lat = math.cos(lat)
    return np.array([
        radius * cos_lat * math.cos(lon),
        radius * cos_lat * math.sin(lon),
        radius * math.sin(lat),
    ])


def cartesian_to_geographic(v, surface_radius: float = EARTH_RADIUS_KM):
    """
    Inverse of geographic_to_cartesian: (latitude, longitude, altitude)
    with altitude measured above surface_radius, in the unit of v.
    """
    vec = np.asarray(v, dtype=float)
    if vec.shape != (3,):
        raise InvalidArgument(f"expected a 3-vector, got shape {vec.shape}")
    distance = float(np.linalg.norm(vec))
    if distance == 0.0:
        raise InvalidArgument("the origin has no geographic coordinates")
    x, y, z = vec
    lat = math.degrees(math.asin(max(-1.0, min(1.0, z / distance))))
    lon = normalize_longitude(math.degrees(math.atan2(y, x)))
    return lat, lon, distance - surface_radius


def great_circle_distance_km(lat1: float, lon1: float,
                             lat2: float, lon2: float,
                             radius_km: float = EARTH_RADIUS_KM) -> float:
    """Haversine distance between two geographic points."""
    p1, p2 = math.radians(lat1), math.radians(lat2)
    dp = p2 - p1
    dl = math.radians(lon2 - lon1)
    h = math.sin(dp / 2.0) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2.0) ** 2
    return 2.0 * radius_km * math.asin(min(1.0, math.sqrt(h)))

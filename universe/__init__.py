"""
Universe module — Solar System bodies and orbital propagation.

Usage:
    from universe import load_catalogue
    bodies = load_catalogue()             # built-in tables
    earth = next(b for b in bodies if b.key == "earth")
    xyz_au = earth.position_at(t)         # t = seconds since J2000
"""

from .orbital_body import (
    OrbitalBody,
    OrbitalElements,
    OrbitUnit,
    mean_anomaly_at,
    solve_kepler,
    eccentric_to_true_anomaly,
    position_at,
    rotation_angle_at,
    true_anomaly_at,
    orbit_path,
    perihelion,
    aphelion,
    validate_elements,
)
from .frames import (
    apply_parent_tilt,
    geographic_to_cartesian,
    cartesian_to_geographic,
    normalize_longitude,
    clamp_latitude,
    great_circle_distance_km,
)
from .solar_system import build_solar_system
from .catalogue_loader import load_catalogue, load_bodies, validate_catalogue

__all__ = [
    "OrbitalBody",
    "OrbitalElements",
    "OrbitUnit",
    "mean_anomaly_at",
    "solve_kepler",
    "eccentric_to_true_anomaly",
    "position_at",
    "rotation_angle_at",
    "true_anomaly_at",
    "orbit_path",
    "perihelion",
    "aphelion",
    "validate_elements",
    # frames
    "apply_parent_tilt",
    "geographic_to_cartesian",
    "cartesian_to_geographic",
    "normalize_longitude",
    "clamp_latitude",
    "great_circle_distance_km",
    # catalogue
    "build_solar_system",
    "load_catalogue",
    "load_bodies",
    "validate_catalogue",
]

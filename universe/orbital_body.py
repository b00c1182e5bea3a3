"""
OrbitalBody — propagazione kepleriana guidata dal tempo simulato.

Ogni corpo del sistema (Sole, pianeti, lune) è descritto da un OrbitalBody
con i suoi OrbitalElements. La posizione viene calcolata da:
  - elementi orbitali (epoca J2000, anomalia media all'epoca)
  - tempo simulato in secondi da J2000 (MAI l'orologio di sistema)

Catena di calcolo:
    M = M0 + 2π·t/P   (mod 2π)
    M → E             (Newton–Raphson, iterazioni limitate)
    E → ν, r = a(1 − e·cos E)
    piano orbitale → rotazioni ω, i, Ω → frame del genitore

Il frame di uscita è quello del genitore: eclittico J2000 per i pianeti
(AU), equatoriale del pianeta per le lune (km). La rotazione nel piano
orbitale del genitore è compito di universe.frames.apply_parent_tilt.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np
from scipy.spatial.transform import Rotation

from core.errors import InvalidConfiguration
from core.settings import BodyClass, SECONDS_PER_DAY, TWO_PI

logger = logging.getLogger(__name__)

# Sotto questa eccentricità si usa la scorciatoia circolare
_CIRCULAR_E = 1e-9

KEPLER_MAX_ITER = 10
KEPLER_TOL = 1e-12


class OrbitUnit(Enum):
    AU = "au"      # orbite eliocentriche
    KM = "km"      # orbite locali (lune, satelliti)


# ---------------------------------------------------------------------------
# Orbital Elements
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OrbitalElements:
    """
    Keplerian elements at J2000.0, immutable.

    Units:
        a            : semi-major axis (AU or km, see OrbitalBody.orbit_unit)
        e            : eccentricity (dimensionless, 0 <= e < 1)
        i            : inclination (degrees)
        node         : longitude of ascending node Ω (degrees)
        peri         : argument of periapsis ω (degrees)
        mean_anomaly : mean anomaly at epoch M0 (degrees)
        period_days  : orbital period (days)

    Optional spin data:
        axial_tilt_deg       : obliquity of the body's own axis
        rotation_period_days : sidereal spin period, negative = retrograde
        tidally_locked       : spin locked to orbital phase
        rotation_offset_deg  : fixed phase offset of the spin angle
    """
    a:            float = 1.0
    e:            float = 0.0
    i:            float = 0.0
    node:         float = 0.0
    peri:         float = 0.0
    mean_anomaly: float = 0.0
    period_days:  float = 365.25

    axial_tilt_deg:       float = 0.0
    rotation_period_days: Optional[float] = None
    tidally_locked:       bool = False
    rotation_offset_deg:  float = 0.0

    @classmethod
    def from_mean_longitude(cls, a: float, e: float, i: float,
                            L: float, w_bar: float, Om: float,
                            period_days: float, **spin) -> 'OrbitalElements':
        """
        Build from JPL-style elements (mean longitude L, longitude of
        perihelion ϖ): M0 = L − ϖ, ω = ϖ − Ω.
        """
        return cls(
            a=a, e=e, i=i, node=Om,
            peri=(w_bar - Om) % 360.0,
            mean_anomaly=(L - w_bar) % 360.0,
            period_days=period_days,
            **spin,
        )

    @property
    def period_s(self) -> float:
        return self.period_days * SECONDS_PER_DAY


def validate_elements(elems: OrbitalElements, key: str = "") -> OrbitalElements:
    """Raise InvalidConfiguration if the element set cannot be propagated."""
    values = (elems.a, elems.e, elems.i, elems.node, elems.peri,
              elems.mean_anomaly, elems.period_days, elems.axial_tilt_deg)
    if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in values):
        raise InvalidConfiguration(f"{key}: non-numeric orbital element", key)
    if elems.period_days <= 0:
        raise InvalidConfiguration(f"{key}: orbital period must be > 0", key)
    if elems.a <= 0:
        raise InvalidConfiguration(f"{key}: semi-major axis must be > 0", key)
    if not 0.0 <= elems.e < 1.0:
        raise InvalidConfiguration(f"{key}: eccentricity must be in [0, 1)", key)
    if not 0.0 <= elems.axial_tilt_deg <= 180.0:
        raise InvalidConfiguration(f"{key}: axial tilt must be in [0, 180]", key)
    rot = elems.rotation_period_days
    if rot is not None and (not math.isfinite(rot) or rot == 0):
        raise InvalidConfiguration(f"{key}: rotation period must be non-zero", key)
    return elems


# ---------------------------------------------------------------------------
# Kepler equation solver
# ---------------------------------------------------------------------------

def mean_anomaly_at(elems: OrbitalElements, t: float) -> float:
    """Mean anomaly (rad, in [0, 2π)) at t seconds since J2000."""
    if elems.period_days <= 0:
        raise InvalidConfiguration("orbital period must be > 0")
    M = math.radians(elems.mean_anomaly) + TWO_PI * (t / elems.period_s)
    M %= TWO_PI
    # -1e-17 % 2π restituisce 2π in floating point
    return 0.0 if M >= TWO_PI else M


def solve_kepler(M: float, e: float,
                 max_iter: int = KEPLER_MAX_ITER,
                 tol: float = KEPLER_TOL) -> float:
    """
    Solve Kepler's equation M = E − e·sin(E) for E (radians).

    Danby's starter keeps Newton–Raphson within a handful of steps for
    e < 0.9. The iteration count is capped: on non-convergence a warning is
    logged and the best estimate is returned.
    """
    M = M % TWO_PI
    E = M + 0.85 * e * math.copysign(1.0, math.sin(M)) if M != 0.0 else 0.0
    for _ in range(max_iter):
        dE = (E - e * math.sin(E) - M) / (1.0 - e * math.cos(E))
        E -= dE
        if abs(dE) < tol:
            return E
    logger.warning("Kepler solver did not converge after %d iterations (M=%.6f, e=%.4f)",
                   max_iter, M, e)
    return E


def eccentric_to_true_anomaly(E: float, e: float) -> float:
    """Half-angle form: ν = 2·atan2(√(1+e)·sin(E/2), √(1−e)·cos(E/2))."""
    return 2.0 * math.atan2(math.sqrt(1.0 + e) * math.sin(E / 2.0),
                            math.sqrt(1.0 - e) * math.cos(E / 2.0))


# ---------------------------------------------------------------------------
# Propagation
# ---------------------------------------------------------------------------

def _orbit_rotation(elems: OrbitalElements) -> Rotation:
    # R = Rz(Ω)·Rx(i)·Rz(ω), composizione intrinseca z-x-z
    return Rotation.from_euler("ZXZ", [elems.node, elems.i, elems.peri], degrees=True)


def _polar_at(elems: OrbitalElements, t: float):
    """(r, ν) in the orbital plane at t seconds since J2000."""
    M = mean_anomaly_at(elems, t)
    e = elems.e
    if e < _CIRCULAR_E:
        # orbita circolare: E = ν = M
        return elems.a, M
    E = solve_kepler(M, e)
    return elems.a * (1.0 - e * math.cos(E)), eccentric_to_true_anomaly(E, e)


def true_anomaly_at(elems: OrbitalElements, t: float) -> float:
    return _polar_at(elems, t)[1] % TWO_PI


def position_at(elems: OrbitalElements, t: float) -> np.ndarray:
    """
    Position (x, y, z) in the parent's reference frame at t seconds since
    J2000, in the same unit as elems.a.
    """
    r, nu = _polar_at(elems, t)
    in_plane = np.array([r * math.cos(nu), r * math.sin(nu), 0.0])
    return _orbit_rotation(elems).apply(in_plane)


def rotation_angle_at(elems: OrbitalElements, t: float) -> float:
    """
    Spin angle (rad, in [0, 2π)) about the body's own axis.

    Tidally locked bodies follow their true orbital longitude (Ω + ω + ν)
    plus a fixed offset, so the same face keeps pointing at the parent;
    bodies without a rotation period do not spin.
    """
    offset = math.radians(elems.rotation_offset_deg)
    if elems.tidally_locked:
        longitude = math.radians(elems.node + elems.peri) + true_anomaly_at(elems, t)
        return (longitude + offset) % TWO_PI
    if elems.rotation_period_days is None:
        return offset % TWO_PI
    spin_period_s = elems.rotation_period_days * SECONDS_PER_DAY
    return (offset + TWO_PI * (t / spin_period_s)) % TWO_PI


def orbit_path(elems: OrbitalElements, segments: int = 128) -> np.ndarray:
    """Closed orbit polyline, shape (segments + 1, 3), for orbit lines."""
    if segments < 3:
        raise ValueError("segments must be >= 3")
    step = elems.period_s / segments
    # il tempo di partenza annulla M0: il percorso parte dal periasse
    t0 = -math.radians(elems.mean_anomaly) / TWO_PI * elems.period_s
    points = np.array([position_at(elems, t0 + k * step) for k in range(segments)])
    return np.vstack([points, points[:1]])


def perihelion(a: float, e: float) -> float:
    return a * (1.0 - e)


def aphelion(a: float, e: float) -> float:
    return a * (1.0 + e)


# ---------------------------------------------------------------------------
# OrbitalBody
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OrbitalBody:
    """
    A body with static definition data.

    Fields:
        key               : stable identifier ("earth", "io", ...)
        name              : display name
        body_class        : BodyClass used for display radius scaling
        radius_km         : mean physical radius
        elements          : OrbitalElements (None for the Sun)
        parent            : key of the parent body (None = heliocentric / root)
        orbit_unit        : AU for heliocentric orbits, KM for local ones
        spin_period_days  : spin of a body without orbit (the Sun)
        spin_tilt_deg     : axial tilt of a body without orbit
    """
    key:        str
    name:       str
    body_class: BodyClass
    radius_km:  float
    elements:   Optional[OrbitalElements] = None
    parent:     Optional[str] = None
    orbit_unit: OrbitUnit = OrbitUnit.AU
    description: str = ""
    spin_period_days: Optional[float] = None
    spin_tilt_deg: float = 0.0

    @property
    def is_root(self) -> bool:
        return self.elements is None

    @property
    def is_moon(self) -> bool:
        return self.parent is not None and self.orbit_unit is OrbitUnit.KM

    @property
    def axial_tilt_deg(self) -> float:
        return self.elements.axial_tilt_deg if self.elements else self.spin_tilt_deg

    def position_at(self, t: float) -> np.ndarray:
        if self.elements is None:
            return np.zeros(3)
        return position_at(self.elements, t)

    def rotation_angle_at(self, t: float) -> float:
        if self.elements is None:
            if not self.spin_period_days:
                return 0.0
            return (TWO_PI * t / (self.spin_period_days * SECONDS_PER_DAY)) % TWO_PI
        return rotation_angle_at(self.elements, t)

    def validate(self) -> 'OrbitalBody':
        if not isinstance(self.radius_km, (int, float)) or not self.radius_km > 0:
            raise InvalidConfiguration(f"{self.key}: radius must be > 0", self.key)
        if self.parent is not None and not isinstance(self.parent, str):
            raise InvalidConfiguration(f"{self.key}: parent must be a body key", self.key)
        tilt = self.spin_tilt_deg
        if not isinstance(tilt, (int, float)) or not 0.0 <= tilt <= 180.0:
            raise InvalidConfiguration(f"{self.key}: spin tilt must be in [0, 180]", self.key)
        if self.elements is not None:
            validate_elements(self.elements, self.key)
        if self.orbit_unit is OrbitUnit.KM and (self.parent is None or self.elements is None):
            raise InvalidConfiguration(f"{self.key}: local orbit needs parent and elements", self.key)
        return self

    def __repr__(self) -> str:
        return f"<OrbitalBody {self.key} '{self.name}' parent={self.parent}>"

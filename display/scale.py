"""
ScaleConverter — physical units → display (scene) units.

Per ogni regime esiste UN solo fattore canonico per famiglia di unità:
    AU : scene_per_au
    km : scene_per_au / KM_PER_AU * local_scale
I moltiplicatori secondari (classe del corpo, orbite lunari) si applicano
sempre sopra il fattore canonico, mai al suo posto.

REAL     : local_scale comune a raggi, orbite locali e quote → rapporti esatti
ENLARGED : moltiplicatori per visibilità; l'orbita di ogni luna resta
           comunque fuori dal raggio visualizzato del genitore + margine
"""

from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Mapping, Optional

import numpy as np

from core.errors import InvalidArgument, InvalidConfiguration
from core.settings import (
    BodyClass, KM_PER_AU, RegimeFactors, ScaleRegime,
    REAL_FACTORS, ENLARGED_FACTORS,
)
from universe.orbital_body import OrbitalBody, OrbitUnit

logger = logging.getLogger(__name__)


class ScaleConverter:
    """Maps physical distances and radii to display units for each regime."""

    def __init__(self, regimes: Optional[Mapping[ScaleRegime, RegimeFactors]] = None):
        regimes = dict(regimes) if regimes else {
            ScaleRegime.REAL: REAL_FACTORS,
            ScaleRegime.ENLARGED: ENLARGED_FACTORS,
        }
        for regime, factors in regimes.items():
            if not isinstance(regime, ScaleRegime):
                raise InvalidConfiguration(f"unknown regime {regime!r}")
            factors.validate()
        self._regimes: Dict[ScaleRegime, RegimeFactors] = regimes

    def factors(self, regime: ScaleRegime) -> RegimeFactors:
        try:
            return self._regimes[regime]
        except KeyError:
            raise InvalidArgument(f"no scale factors for regime {regime!r}") from None

    # ── Distanze ────────────────────────────────────────────────────────────

    def unit_factor(self, unit: OrbitUnit, regime: ScaleRegime) -> float:
        """The canonical physical→display factor for a unit family."""
        f = self.factors(regime)
        if unit is OrbitUnit.AU:
            return f.scene_per_au
        if unit is OrbitUnit.KM:
            return f.scene_per_km
        raise InvalidArgument(f"unknown unit {unit!r}")

    def to_display_distance(self, value, unit: OrbitUnit, regime: ScaleRegime):
        """Scalar or vector distance → display units (canonical factor only)."""
        factor = self.unit_factor(unit, regime)
        if isinstance(value, np.ndarray):
            return value * factor
        return float(value) * factor

    def to_display_radius(self, radius_km: float, body_class: BodyClass,
                          regime: ScaleRegime) -> float:
        if radius_km <= 0:
            raise InvalidArgument(f"radius must be > 0, got {radius_km!r}")
        f = self.factors(regime)
        return radius_km * f.scene_per_km * f.radius_multiplier(body_class)

    def body_radius(self, body: OrbitalBody, regime: ScaleRegime) -> float:
        return self.to_display_radius(body.radius_km, body.body_class, regime)

    # ── Orbite lunari ───────────────────────────────────────────────────────

    def moon_orbit_factor(self, moon: OrbitalBody, parent: OrbitalBody,
                          regime: ScaleRegime) -> float:
        """
        km → display factor for a moon's local orbit.

        ENLARGED: if the periapsis would fall inside parent radius + margin,
        the factor is raised so it clears the surface by one moon radius.
        REAL: never adjusted, check_orbit_clearance reports violations.
        """
        if moon.elements is None:
            raise InvalidConfiguration(f"{moon.key}: moon without orbital elements", moon.key)
        f = self.factors(regime)
        factor = f.scene_per_km * f.moon_orbit_multiplier
        if regime is ScaleRegime.REAL:
            return factor

        periapsis_km = moon.elements.a * (1.0 - moon.elements.e)
        required = self.body_radius(parent, regime) + f.orbit_margin
        if periapsis_km * factor <= required:
            raised = (required + self.body_radius(moon, regime)) / periapsis_km
            logger.debug("Raising %s orbit factor %.3g -> %.3g to clear %s",
                         moon.key, factor, raised, parent.key)
            factor = raised
        return factor

    def moon_orbit_radius(self, moon: OrbitalBody, parent: OrbitalBody,
                          regime: ScaleRegime) -> float:
        """Display semi-major axis of a moon's orbit."""
        return moon.elements.a * self.moon_orbit_factor(moon, parent, regime)

    def check_orbit_clearance(self, bodies: Iterable[OrbitalBody],
                              regime: ScaleRegime) -> List[str]:
        """Keys of moons whose display periapsis is not outside parent radius + margin."""
        by_key = {b.key: b for b in bodies}
        margin = self.factors(regime).orbit_margin
        violations = []
        for body in by_key.values():
            if not body.is_moon or body.parent not in by_key:
                continue
            parent = by_key[body.parent]
            periapsis = body.elements.a * (1.0 - body.elements.e)
            display = periapsis * self.moon_orbit_factor(body, parent, regime)
            if not display > self.body_radius(parent, regime) + margin:
                violations.append(body.key)
        return violations

    # ── Satelliti ───────────────────────────────────────────────────────────

    def satellite_altitude(self, altitude_km: float, parent: OrbitalBody,
                           regime: ScaleRegime) -> float:
        """Display altitude above the parent's displayed surface."""
        if altitude_km < 0:
            raise InvalidArgument(f"altitude must be >= 0, got {altitude_km!r}")
        f = self.factors(regime)
        if f.satellite_altitude_fraction is None:
            return altitude_km * f.scene_per_km
        return self.body_radius(parent, regime) * f.satellite_altitude_fraction

    def satellite_orbit_radius(self, altitude_km: float, parent: OrbitalBody,
                               regime: ScaleRegime) -> float:
        return self.body_radius(parent, regime) + self.satellite_altitude(altitude_km, parent, regime)

    def au_in_km_family(self, regime: ScaleRegime) -> float:
        """Display length of one AU expressed through the km family."""
        return KM_PER_AU * self.factors(regime).scene_per_km

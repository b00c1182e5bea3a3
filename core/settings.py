"""
Impostazioni statiche del motore (costanti + dataclass di configurazione).

Unità:
  distanze eliocentriche in AU, distanze locali e raggi in km,
  tempi in secondi (periodi orbitali in giorni nelle tabelle),
  angoli in gradi nelle tabelle, radianti nei calcoli.

Tutto viene caricato una volta all'avvio e non è ricalcolato a runtime.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict

from .errors import InvalidConfiguration


# ---------------------------------------------------------------------------
# Costanti fisiche
# ---------------------------------------------------------------------------

KM_PER_AU = 149597870.7
SECONDS_PER_DAY = 86400.0
TWO_PI = 2.0 * math.pi

EARTH_RADIUS_KM = 6371.0

# ISS
ISS_ORBIT_ALTITUDE_KM = 408.0
ISS_ORBITAL_PERIOD_MIN = 92.68
ISS_INCLINATION_DEG = 51.6
ISS_RADIUS_KM = 0.0545          # ~109 m di apertura pannelli / 2

# Sorgente dati ISS (open-notify)
ISS_URL = "http://api.open-notify.org/iss-now.json"
FETCH_INTERVAL_S = 5.0
FETCH_TIMEOUT_S = 10.0
FETCH_RETRIES = 2
FETCH_BACKOFF_S = 0.6


# ---------------------------------------------------------------------------
# Tempo simulato
# ---------------------------------------------------------------------------

DEFAULT_TIME_SCALE = 500.0
MIN_TIME_SCALE = 1.0
MAX_TIME_SCALE = 50000.0


@dataclass(frozen=True)
class ClockCfg:
    time_scale: float = DEFAULT_TIME_SCALE
    min_time_scale: float = MIN_TIME_SCALE
    max_time_scale: float = MAX_TIME_SCALE
    start_time: float = 0.0       # secondi da J2000


# ---------------------------------------------------------------------------
# Regimi di scala
# ---------------------------------------------------------------------------

class ScaleRegime(Enum):
    REAL = "real"
    ENLARGED = "enlarged"


class BodyClass(Enum):
    STAR = "star"
    ROCKY = "rocky"
    GAS_GIANT = "gas_giant"
    ICE_GIANT = "ice_giant"
    MOON = "moon"
    SATELLITE = "satellite"


# Unità di scena per AU: Mercurio a ~193 unità
SCENE_PER_AU = 500.0

# REAL: un solo moltiplicatore comune per raggi, orbite locali e quote,
# così i rapporti fisici restano esatti.
REAL_LOCAL_SCALE = 100.0

# ENLARGED: moltiplicatori per classe, scelti per la visibilità
ENLARGED_RADIUS_MULTIPLIERS = {
    BodyClass.STAR:      60.0,
    BodyClass.ROCKY:     1500.0,
    BodyClass.GAS_GIANT: 250.0,
    BodyClass.ICE_GIANT: 450.0,
    BodyClass.MOON:      1000.0,
    BodyClass.SATELLITE: 30000.0,
}
ENLARGED_MOON_ORBIT_MULTIPLIER = 50.0
ENLARGED_SATELLITE_ALTITUDE_FRACTION = 0.15


@dataclass(frozen=True)
class RegimeFactors:
    """
    Fattori di scala di un regime.

    scene_per_au       : fattore canonico per la famiglia AU
    local_scale        : moltiplicatore comune della famiglia km
                         (scene_per_km = scene_per_au / KM_PER_AU * local_scale)
    radius_multipliers : moltiplicatore secondario per classe di corpo
    moon_orbit_multiplier : moltiplicatore secondario per le orbite lunari
    orbit_margin       : distanza minima (unità scena) tra superficie del
                         genitore e orbita della luna
    satellite_altitude_fraction : quota del satellite come frazione del
                         raggio visualizzato del genitore (None = quota vera)
    """
    scene_per_au: float = SCENE_PER_AU
    local_scale: float = 1.0
    radius_multipliers: Dict[BodyClass, float] = field(default_factory=dict)
    moon_orbit_multiplier: float = 1.0
    orbit_margin: float = 0.0
    satellite_altitude_fraction: float | None = None

    @property
    def scene_per_km(self) -> float:
        return self.scene_per_au / KM_PER_AU * self.local_scale

    def radius_multiplier(self, body_class: BodyClass) -> float:
        return self.radius_multipliers.get(body_class, 1.0)

    def validate(self) -> None:
        if self.scene_per_au <= 0 or self.local_scale <= 0:
            raise InvalidConfiguration("scale factors must be > 0")
        if self.moon_orbit_multiplier <= 0:
            raise InvalidConfiguration("moon_orbit_multiplier must be > 0")
        if any(m <= 0 for m in self.radius_multipliers.values()):
            raise InvalidConfiguration("radius multipliers must be > 0")
        if self.orbit_margin < 0:
            raise InvalidConfiguration("orbit_margin must be >= 0")
        frac = self.satellite_altitude_fraction
        if frac is not None and frac <= 0:
            raise InvalidConfiguration("satellite_altitude_fraction must be > 0")


REAL_FACTORS = RegimeFactors(
    local_scale=REAL_LOCAL_SCALE,
    orbit_margin=0.01,
)

ENLARGED_FACTORS = RegimeFactors(
    radius_multipliers=dict(ENLARGED_RADIUS_MULTIPLIERS),
    moon_orbit_multiplier=ENLARGED_MOON_ORBIT_MULTIPLIER,
    orbit_margin=2.0,
    satellite_altitude_fraction=ENLARGED_SATELLITE_ALTITUDE_FRACTION,
)


# ---------------------------------------------------------------------------
# Tracciamento satellite
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrackingCfg:
    stale_after_s: float = 3 * FETCH_INTERVAL_S   # LIVE -> CACHED
    grace_period_s: float = 60.0                  # CACHED -> SIMULATED
    cached_threshold: int = 3                     # errori prima di CACHED
    error_ceiling: int = 5                        # errori prima di SIMULATED
    advisory_every: int = 5                       # 1°, (1+k)°, (1+2k)° ...
    subscriber_eviction_threshold: int = 3
    trail_capacity: int = 50
    fetch_interval_s: float = FETCH_INTERVAL_S


@dataclass(frozen=True)
class EngineConfig:
    clock: ClockCfg = field(default_factory=ClockCfg)
    tracking: TrackingCfg = field(default_factory=TrackingCfg)
    regimes: Dict[ScaleRegime, RegimeFactors] = field(
        default_factory=lambda: {
            ScaleRegime.REAL: REAL_FACTORS,
            ScaleRegime.ENLARGED: ENLARGED_FACTORS,
        }
    )
    initial_regime: ScaleRegime = ScaleRegime.ENLARGED
    callback_eviction_threshold: int = 3


def validate_settings(cfg: EngineConfig) -> None:
    clock = cfg.clock
    if clock.min_time_scale <= 0:
        raise InvalidConfiguration("min_time_scale must be > 0")
    if clock.max_time_scale < clock.min_time_scale:
        raise InvalidConfiguration("max_time_scale must be >= min_time_scale")
    if not clock.min_time_scale <= clock.time_scale <= clock.max_time_scale:
        raise InvalidConfiguration("default time_scale outside allowed range")

    trk = cfg.tracking
    if trk.trail_capacity <= 0:
        raise InvalidConfiguration("trail_capacity must be > 0")
    if trk.cached_threshold <= 0 or trk.error_ceiling < trk.cached_threshold:
        raise InvalidConfiguration("need 0 < cached_threshold <= error_ceiling")
    if trk.advisory_every <= 0:
        raise InvalidConfiguration("advisory_every must be > 0")
    if trk.grace_period_s < trk.stale_after_s:
        raise InvalidConfiguration("grace_period_s must be >= stale_after_s")
    if trk.subscriber_eviction_threshold <= 0 or cfg.callback_eviction_threshold <= 0:
        raise InvalidConfiguration("eviction thresholds must be > 0")

    for regime in ScaleRegime:
        if regime not in cfg.regimes:
            raise InvalidConfiguration(f"missing factors for regime {regime.name}")
        cfg.regimes[regime].validate()

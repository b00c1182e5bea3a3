"""
TrackedObjectState — macchina a stati del satellite tracciato (ISS).

Modi:
    LIVE      : dati freschi entro la finestra di staleness
    CACHED    : ultimo fix valido, entro la finestra di grazia
    SIMULATED : fetch falliti ripetutamente → orbita di fallback deterministica

Transizioni:
    success            → LIVE, contatore errori = 0
    failure            → contatore += 1
                         < cached_threshold : modo invariato (SIMULATED se non c'è un fix)
                         ≥ cached_threshold : LIVE → CACHED
                         ≥ error_ceiling    : SIMULATED fino al prossimo successo
    refresh(now)       → LIVE vecchio > stale_after → CACHED
                         CACHED vecchio > grace_period → SIMULATED

Nessuna transizione solleva eccezioni: gli esiti del fetch sono assorbiti
nello stato e comunicati ai subscriber solo come Advisory.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from core.callbacks import CallbackRegistry
from core.settings import (
    TrackingCfg, ISS_ORBIT_ALTITUDE_KM, ISS_ORBITAL_PERIOD_MIN, ISS_INCLINATION_DEG,
    TWO_PI,
)
from universe.frames import normalize_longitude

logger = logging.getLogger(__name__)


class TrackingMode(Enum):
    LIVE = "live"
    CACHED = "cached"
    SIMULATED = "simulated"


@dataclass(frozen=True)
class GeoFix:
    """Geographic position of the satellite (degrees, km, unix seconds)."""
    latitude: float
    longitude: float
    altitude_km: float = ISS_ORBIT_ALTITUDE_KM
    timestamp: float = 0.0


@dataclass(frozen=True)
class Advisory:
    mode: TrackingMode
    message: str
    error_count: int = 0
    mode_changed: bool = False


def simulated_fix(sim_time: float,
                  period_min: float = ISS_ORBITAL_PERIOD_MIN,
                  inclination_deg: float = ISS_INCLINATION_DEG,
                  altitude_km: float = ISS_ORBIT_ALTITUDE_KM) -> GeoFix:
    """
    Fallback ground track driven by simulated time only:
    lat = i·sin(2π·t/P), lon advancing 360° per orbit.
    """
    period_s = period_min * 60.0
    phase = (sim_time / period_s) % 1.0
    lat = inclination_deg * math.sin(TWO_PI * phase)
    lon = normalize_longitude(phase * 360.0 - 180.0)
    return GeoFix(lat, lon, altitude_km, sim_time)


class TrackedObjectState:

    def __init__(self, cfg: Optional[TrackingCfg] = None, name: str = "ISS"):
        self.cfg = cfg or TrackingCfg()
        self.name = name
        self.mode = TrackingMode.SIMULATED
        self.last_known_position: Optional[GeoFix] = None
        self.last_fetch_timestamp: Optional[float] = None
        self.consecutive_error_count = 0
        self.last_failure_reason = ""
        self._subscribers = CallbackRegistry(self.cfg.subscriber_eviction_threshold,
                                             "advisory subscriber")

    # ── Subscriber ─────────────────────────────────────────────────────────

    def subscribe(self, callback: Callable[[Advisory], None]) -> Callable:
        return self._subscribers.add(callback)

    def unsubscribe(self, callback: Callable) -> bool:
        return self._subscribers.remove(callback)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # ── Esiti del fetch ────────────────────────────────────────────────────

    def record_success(self, fix: GeoFix, now: float) -> None:
        """`now` is the wall-clock (monotonic) time the result was applied."""
        self.last_known_position = fix
        self.last_fetch_timestamp = now
        self.consecutive_error_count = 0
        self.last_failure_reason = ""
        self._set_mode(TrackingMode.LIVE, f"{self.name} live data received")

    def record_failure(self, reason: object = "") -> None:
        self.consecutive_error_count += 1
        count = self.consecutive_error_count
        self.last_failure_reason = str(reason)
        logger.info("%s fetch failed (%d consecutive): %s", self.name, count, reason)

        if count >= self.cfg.error_ceiling or self.last_known_position is None:
            target = TrackingMode.SIMULATED
        elif self.mode is TrackingMode.SIMULATED:
            target = TrackingMode.SIMULATED
        elif count >= self.cfg.cached_threshold:
            target = TrackingMode.CACHED
        else:
            target = self.mode

        failure_note = None
        if (count - 1) % self.cfg.advisory_every == 0:
            failure_note = f"{self.name} data unavailable ({count} consecutive failures): {reason}"

        self._set_mode(target, failure_note, force_note=True)

    def refresh(self, now: float) -> None:
        """Time-driven staleness; `now` from the same clock as record_success."""
        if self.last_fetch_timestamp is None:
            return
        age = now - self.last_fetch_timestamp
        if self.mode is TrackingMode.LIVE and age > self.cfg.stale_after_s:
            self._set_mode(TrackingMode.CACHED, f"{self.name} data is {age:.0f}s old")
        if self.mode is TrackingMode.CACHED and age > self.cfg.grace_period_s:
            self._set_mode(TrackingMode.SIMULATED, f"{self.name} data expired after {age:.0f}s")

    # ── Posizione ──────────────────────────────────────────────────────────

    def position(self, sim_time: float) -> GeoFix:
        if self.mode is not TrackingMode.SIMULATED and self.last_known_position is not None:
            return self.last_known_position
        return simulated_fix(sim_time)

    # ------------------------------------------------------------------

    def _set_mode(self, target: TrackingMode, note: Optional[str],
                  force_note: bool = False) -> None:
        changed = target is not self.mode
        self.mode = target
        if changed:
            logger.info("%s tracking mode -> %s", self.name, target.name)

        parts = []
        if changed:
            parts.append(f"{self.name} tracking is now {target.name}")
        if note and (changed or force_note):
            parts.append(note)
        if not parts:
            return
        self._subscribers.dispatch(Advisory(
            mode=target,
            message="; ".join(parts),
            error_count=self.consecutive_error_count,
            mode_changed=changed,
        ))

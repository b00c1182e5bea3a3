"""
EngineContext — composizione esplicita del motore (nessun singleton).

Ordine per frame (step):
    1. drain dei risultati di rete → TrackedObjectState
    2. refresh della staleness (orologio di sistema, solo per questo)
    3. SimulationClock.advance(real_dt)
    4. corpi eliocentrici, poi lune (offset locale → tilt del genitore → traslazione)
    5. satellite tracciato + trail
    6. FrameSnapshot ai frame callback

Il calcolo di ogni corpo è isolato: un'eccezione viene loggata e quel corpo
manca dal frame, gli altri si aggiornano comunque.
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Optional, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

from core.callbacks import CallbackRegistry
from core.errors import EngineError, InvalidArgument
from core.settings import BodyClass, EngineConfig, ScaleRegime, ISS_RADIUS_KM, validate_settings
from core.sim_clock import SimulationClock
from display.scale import ScaleConverter
from display.trail import TrailBuffer
from tracking.fetch_channel import FetchChannel, FetchResult
from tracking.tracked_object import Advisory, GeoFix, TrackedObjectState, TrackingMode
from universe.catalogue_loader import load_catalogue, validate_catalogue
from universe.frames import apply_parent_tilt, geographic_to_cartesian
from universe.orbital_body import OrbitalBody, OrbitUnit, orbit_path
from universe.solar_system import EARTH_KEY

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Frame output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BodyState:
    key: str
    name: str
    body_class: BodyClass
    raw_position: np.ndarray          # AU o km, frame del genitore
    display_position: np.ndarray      # unità scena, eliocentrico
    rotation_angle: float             # rad
    display_radius: float
    parent: Optional[str] = None


@dataclass(frozen=True)
class SatelliteState:
    name: str
    mode: TrackingMode
    fix: GeoFix
    display_position: np.ndarray
    display_radius: float
    trail: Tuple[np.ndarray, ...] = ()


@dataclass(frozen=True)
class FrameSnapshot:
    simulated_time: float
    time_scale: float
    paused: bool
    regime: ScaleRegime
    bodies: Dict[str, BodyState] = field(default_factory=dict)
    satellite: Optional[SatelliteState] = None


# ---------------------------------------------------------------------------
# EngineContext
# ---------------------------------------------------------------------------

class EngineContext:
    """
    Owns the clock, the scale converter, the tracked satellite and its trail.

    Parametri
    ----------
    config        : EngineConfig (default: valori di core.settings)
    bodies        : catalogo; None = tabelle integrate
    fetch_channel : sorgente dei fix live; None = nessun fetch (solo fallback)
    wall_clock    : funzione monotona usata SOLO per la staleness
    satellite_parent : chiave del corpo attorno a cui orbita il satellite
    """

    def __init__(self,
                 config: Optional[EngineConfig] = None,
                 bodies: Optional[Iterable[OrbitalBody]] = None,
                 fetch_channel: Optional[FetchChannel] = None,
                 wall_clock: Callable[[], float] = time.monotonic,
                 satellite_parent: str = EARTH_KEY,
                 satellite_name: str = "ISS"):
        self.config = config or EngineConfig()
        validate_settings(self.config)

        catalogue = load_catalogue() if bodies is None else validate_catalogue(bodies)
        self.bodies: Dict[str, OrbitalBody] = {b.key: b for b in catalogue}

        self.clock = SimulationClock(self.config.clock)
        self.scale = ScaleConverter(self.config.regimes)
        self._regime = self.config.initial_regime
        self._exclude_uncleared_moons()

        self.tracked = TrackedObjectState(self.config.tracking, satellite_name)
        self.trail = TrailBuffer(self.config.tracking.trail_capacity)
        self.fetch_channel = fetch_channel
        self._wall_clock = wall_clock

        self.satellite_parent = satellite_parent if satellite_parent in self.bodies else None
        if self.satellite_parent is None:
            logger.warning("Satellite parent '%s' not in catalogue; satellite disabled",
                           satellite_parent)

        self._frame_callbacks = CallbackRegistry(self.config.callback_eviction_threshold,
                                                 "frame callback")
        self.last_snapshot: Optional[FrameSnapshot] = None
        logger.info("Engine ready: %d bodies, regime %s", len(self.bodies), self._regime.name)

    # ── UI API ─────────────────────────────────────────────────────────────

    def set_time_scale(self, factor: float) -> None:
        self.clock.set_time_scale(factor)

    def set_paused(self, paused: bool) -> None:
        self.clock.set_paused(paused)

    def toggle_pause(self) -> None:
        self.clock.toggle_pause()

    def get_simulated_time(self) -> float:
        return self.clock.get_simulated_time()

    @property
    def regime(self) -> ScaleRegime:
        return self._regime

    def set_scale_regime(self, regime: ScaleRegime) -> None:
        """Switch regime; the trail is cleared since old points use the old scale."""
        if not isinstance(regime, ScaleRegime):
            raise InvalidArgument(f"unknown scale regime {regime!r}")
        if regime is self._regime:
            return
        self._regime = regime
        self.trail.clear()
        logger.info("Scale regime -> %s", regime.name)

    def subscribe_advisory(self, callback: Callable[[Advisory], None]) -> Callable:
        return self.tracked.subscribe(callback)

    def unsubscribe_advisory(self, callback: Callable) -> bool:
        return self.tracked.unsubscribe(callback)

    def add_frame_callback(self, callback: Callable[[FrameSnapshot], None]) -> Callable:
        return self._frame_callbacks.add(callback)

    def remove_frame_callback(self, callback: Callable) -> bool:
        return self._frame_callbacks.remove(callback)

    @property
    def frame_callback_count(self) -> int:
        return len(self._frame_callbacks)

    # ── Rete ───────────────────────────────────────────────────────────────

    def apply_fetch_result(self, result: FetchResult, now: float) -> None:
        if result.ok:
            self.tracked.record_success(result.fix, now)
        else:
            self.tracked.record_failure(result.error)

    # ── Frame ──────────────────────────────────────────────────────────────

    def step(self, real_dt: float, now: Optional[float] = None) -> FrameSnapshot:
        if now is None:
            now = self._wall_clock()

        if self.fetch_channel is not None:
            for result in self.fetch_channel.drain():
                self.apply_fetch_result(result, now)
            self.fetch_channel.maybe_request(now)
        self.tracked.refresh(now)

        t = self.clock.advance(real_dt)

        states: Dict[str, BodyState] = {}
        for body in self.bodies.values():
            try:
                states[body.key] = self._body_state(body, t, states)
            except Exception:
                logger.exception("Body '%s' skipped this frame", body.key)

        satellite = None
        if self.satellite_parent is not None:
            try:
                satellite = self._satellite_state(t, states)
            except Exception:
                logger.exception("Satellite skipped this frame")

        snapshot = FrameSnapshot(
            simulated_time=t,
            time_scale=self.clock.time_scale,
            paused=self.clock.paused,
            regime=self._regime,
            bodies=states,
            satellite=satellite,
        )
        self.last_snapshot = snapshot
        self._frame_callbacks.dispatch(snapshot)
        return snapshot

    def orbit_lines(self, segments: int = 180) -> Dict[str, np.ndarray]:
        """Display-space orbit polylines for heliocentric bodies."""
        lines = {}
        for body in self.bodies.values():
            if body.elements is None or body.orbit_unit is not OrbitUnit.AU:
                continue
            path = orbit_path(body.elements, segments)
            lines[body.key] = self.scale.to_display_distance(path, OrbitUnit.AU, self._regime)
        return lines

    def close(self) -> None:
        if self.fetch_channel is not None:
            self.fetch_channel.close()

    # ------------------------------------------------------------------

    def _exclude_uncleared_moons(self) -> None:
        # esclusa se non libera il genitore in almeno un regime
        for regime in self.config.regimes:
            for key in self.scale.check_orbit_clearance(self.bodies.values(), regime):
                logger.error("Excluding body '%s': %s orbit not outside parent radius + margin",
                             key, regime.name)
                del self.bodies[key]
        # i figli di una luna esclusa cadono con lei
        self.bodies = {b.key: b for b in validate_catalogue(self.bodies.values())}

    def _parent_state(self, body: OrbitalBody, states: Dict[str, BodyState]) -> BodyState:
        try:
            return states[body.parent]
        except KeyError:
            raise EngineError(f"{body.key}: parent '{body.parent}' unavailable") from None

    def _body_state(self, body: OrbitalBody, t: float,
                    states: Dict[str, BodyState]) -> BodyState:
        regime = self._regime
        raw = body.position_at(t)

        if body.parent is None:
            display = self.scale.to_display_distance(raw, OrbitUnit.AU, regime)
        elif body.orbit_unit is OrbitUnit.AU:
            origin = self._parent_state(body, states).display_position
            display = origin + self.scale.to_display_distance(raw, OrbitUnit.AU, regime)
        else:
            parent_state = self._parent_state(body, states)
            parent = self.bodies[body.parent]
            local = raw * self.scale.moon_orbit_factor(body, parent, regime)
            display = parent_state.display_position + apply_parent_tilt(local, parent.axial_tilt_deg)

        return BodyState(
            key=body.key,
            name=body.name,
            body_class=body.body_class,
            raw_position=raw,
            display_position=display,
            rotation_angle=body.rotation_angle_at(t),
            display_radius=self.scale.body_radius(body, regime),
            parent=body.parent,
        )

    def _satellite_state(self, t: float, states: Dict[str, BodyState]) -> SatelliteState:
        parent = self.bodies[self.satellite_parent]
        parent_state = states.get(parent.key)
        if parent_state is None:
            raise EngineError(f"satellite parent '{parent.key}' unavailable")

        fix = self.tracked.position(t)
        radius = self.scale.satellite_orbit_radius(fix.altitude_km, parent, self._regime)
        # lat/lon sono nel frame solidale: si ruota con lo spin del genitore
        local = geographic_to_cartesian(fix.latitude, fix.longitude, radius)
        local = Rotation.from_euler("z", parent_state.rotation_angle).apply(local)
        display = parent_state.display_position + apply_parent_tilt(local, parent.axial_tilt_deg)

        self.trail.push(display)
        return SatelliteState(
            name=self.tracked.name,
            mode=self.tracked.mode,
            fix=fix,
            display_position=display,
            display_radius=self.scale.to_display_radius(ISS_RADIUS_KM, BodyClass.SATELLITE,
                                                        self._regime),
            trail=self.trail.snapshot(),
        )

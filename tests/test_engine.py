import dataclasses

import numpy as np
import pytest

from conftest import InlineExecutor, replace_body
from core.errors import InvalidArgument
from core.settings import BodyClass, EngineConfig, ScaleRegime
from tracking.fetch_channel import FetchChannel, FetchResult
from tracking.tracked_object import GeoFix, TrackingMode
from universe.orbital_body import OrbitalBody, OrbitalElements, OrbitUnit

FIX = GeoFix(latitude=10.0, longitude=20.0, timestamp=1.0)


class ExplodingBody(OrbitalBody):
    def position_at(self, t):
        raise RuntimeError("corrupted ephemeris")


def test_step_produces_full_snapshot(make_engine):
    engine = make_engine()
    snap = engine.step(1.0)
    assert snap.simulated_time == pytest.approx(500.0)
    assert len(snap.bodies) == 17
    assert snap.regime is ScaleRegime.ENLARGED
    earth = snap.bodies["earth"]
    assert earth.display_position.shape == (3,)
    assert earth.display_radius > 0
    assert 0.0 <= earth.rotation_angle < 2 * np.pi
    assert snap.satellite is not None
    assert snap.satellite.mode is TrackingMode.SIMULATED
    assert len(snap.satellite.trail) == 1
    assert engine.last_snapshot is snap


def test_planet_display_is_scaled_physical_position(make_engine):
    engine = make_engine()
    snap = engine.step(0.0)
    mars = snap.bodies["mars"]
    assert np.allclose(mars.display_position, mars.raw_position * 500.0)
    assert np.all(snap.bodies["sun"].display_position == 0.0)


@pytest.mark.parametrize("regime", [ScaleRegime.REAL, ScaleRegime.ENLARGED])
def test_moons_stay_outside_parents(make_engine, regime):
    engine = make_engine()
    engine.set_scale_regime(regime)
    margin = engine.config.regimes[regime].orbit_margin
    for t in (0.0, 1.0, 50.0):
        snap = engine.step(t)
        for state in snap.bodies.values():
            body = engine.bodies[state.key]
            if not body.is_moon:
                continue
            parent = snap.bodies[body.parent]
            gap = np.linalg.norm(state.display_position - parent.display_position)
            assert gap > parent.display_radius + margin, state.key


def test_moon_offset_is_tilted_by_parent_axis(make_engine):
    engine = make_engine()
    snap = engine.step(0.0)
    uranus_tilt = engine.bodies["uranus"].axial_tilt_deg
    assert uranus_tilt > 90.0
    moon = snap.bodies["moon"]
    earth = snap.bodies["earth"]
    offset = moon.display_position - earth.display_position
    factor = engine.scale.moon_orbit_factor(engine.bodies["moon"], engine.bodies["earth"],
                                            ScaleRegime.ENLARGED)
    assert np.linalg.norm(offset) == pytest.approx(np.linalg.norm(moon.raw_position) * factor)


def test_failing_body_is_isolated(make_engine, bodies, caplog):
    bodies = replace_body(bodies, "jupiter", cls=ExplodingBody)
    engine = make_engine(bodies=bodies)
    snap = engine.step(1.0)
    assert "jupiter" not in snap.bodies
    # moons of the failed parent are skipped with it
    assert "io" not in snap.bodies
    assert {"earth", "saturn", "titan", "moon"} <= set(snap.bodies)
    assert "jupiter" in caplog.text


def test_time_controls(make_engine):
    engine = make_engine()
    engine.step(1.0)
    t = engine.get_simulated_time()
    engine.set_time_scale(1000)
    assert engine.get_simulated_time() == t
    with pytest.raises(InvalidArgument):
        engine.set_time_scale(0)
    engine.set_paused(True)
    assert engine.step(1.0).simulated_time == t
    assert engine.step(1.0).paused
    engine.set_paused(False)
    assert engine.step(1.0).simulated_time == pytest.approx(t + 1000.0)


def test_wall_clock_never_moves_bodies(make_engine):
    ticks = iter(range(0, 10_000_000, 1_000_000))
    engine = make_engine(wall_clock=lambda: float(next(ticks)))
    engine.set_paused(True)
    first = engine.step(0.5)
    second = engine.step(0.5)
    for key, state in first.bodies.items():
        assert np.array_equal(state.display_position, second.bodies[key].display_position)


def test_regime_switch_clears_trail(make_engine):
    engine = make_engine()
    for _ in range(5):
        engine.step(0.1)
    assert len(engine.trail) == 5
    engine.set_scale_regime(ScaleRegime.REAL)
    assert len(engine.trail) == 0
    assert engine.step(0.1).regime is ScaleRegime.REAL
    with pytest.raises(InvalidArgument):
        engine.set_scale_regime("huge")


def test_trail_capacity_from_config(make_engine):
    cfg = EngineConfig(tracking=dataclasses.replace(EngineConfig().tracking, trail_capacity=3))
    engine = make_engine(config=cfg)
    for _ in range(10):
        snap = engine.step(0.1)
    assert len(snap.satellite.trail) == 3


def test_satellite_sits_at_orbit_radius(make_engine):
    for regime in ScaleRegime:
        engine = make_engine()
        engine.set_scale_regime(regime)
        snap = engine.step(0.2)
        earth = snap.bodies["earth"]
        gap = np.linalg.norm(snap.satellite.display_position - earth.display_position)
        expected = engine.scale.satellite_orbit_radius(snap.satellite.fix.altitude_km,
                                                       engine.bodies["earth"], regime)
        assert gap == pytest.approx(expected)


def test_live_fix_applied_on_next_frame(make_engine):
    channel = FetchChannel(lambda: FIX, executor=InlineExecutor())
    engine = make_engine(fetch_channel=channel)
    first = engine.step(0.016, now=0.0)
    assert first.satellite.mode is TrackingMode.SIMULATED
    second = engine.step(0.016, now=0.016)
    assert second.satellite.mode is TrackingMode.LIVE
    assert second.satellite.fix == FIX


def test_fetch_failures_degrade_to_simulated(make_engine):
    engine = make_engine()
    advisories = []
    engine.subscribe_advisory(advisories.append)
    engine.apply_fetch_result(FetchResult(1, fix=FIX), now=0.0)
    for seq in range(2, 7):
        engine.apply_fetch_result(FetchResult(seq, error="timeout"), now=0.0)
    assert engine.tracked.mode is TrackingMode.SIMULATED
    assert advisories[0].mode is TrackingMode.LIVE
    assert advisories[-1].mode is TrackingMode.SIMULATED
    snap = engine.step(0.0, now=0.0)
    assert snap.satellite.fix != FIX


def test_frame_callbacks_and_eviction(make_engine):
    engine = make_engine()
    seen = []

    def broken(snapshot):
        raise ValueError("renderer bug")

    engine.add_frame_callback(broken)
    engine.add_frame_callback(seen.append)
    for _ in range(4):
        engine.step(0.1)
    assert engine.frame_callback_count == 1
    assert len(seen) == 4
    assert engine.remove_frame_callback(seen.append)


def _tight_moon():
    return OrbitalBody(key="pebble", name="Pebble", body_class=BodyClass.MOON,
                       radius_km=100.0, parent="earth", orbit_unit=OrbitUnit.KM,
                       elements=OrbitalElements(a=5000.0, period_days=0.2))


def test_moon_inside_parent_is_excluded_not_fatal(make_engine, bodies, caplog):
    engine = make_engine(bodies=bodies + [_tight_moon()])
    assert "pebble" not in engine.bodies
    assert "pebble" in caplog.text
    engine.set_scale_regime(ScaleRegime.REAL)
    snap = engine.step(0.1)
    assert "pebble" not in snap.bodies
    assert {"sun", "earth", "moon"} <= set(snap.bodies)
    assert snap.satellite is not None


@pytest.mark.parametrize("regime", [ScaleRegime.REAL, ScaleRegime.ENLARGED])
def test_shrunken_moon_orbit_drops_only_that_moon(make_engine, bodies, regime):
    elements = dataclasses.replace(
        next(b for b in bodies if b.key == "moon").elements, a=6000.0)
    engine = make_engine(bodies=replace_body(bodies, "moon", elements=elements),
                         config=EngineConfig(initial_regime=regime))
    snap = engine.step(0.1)
    assert "moon" not in snap.bodies
    assert len(snap.bodies) == 16
    assert snap.satellite is not None


def test_orbit_lines(make_engine):
    engine = make_engine()
    lines = engine.orbit_lines(segments=36)
    assert set(lines) == {"mercury", "venus", "earth", "mars", "jupiter",
                          "saturn", "uranus", "neptune"}
    assert lines["earth"].shape == (37, 3)
    radii = np.linalg.norm(lines["earth"], axis=1)
    assert radii.min() > 480 and radii.max() < 520


def test_missing_satellite_parent_disables_satellite(make_engine, bodies):
    no_earth = [b for b in bodies if b.key not in ("earth", "moon")]
    engine = make_engine(bodies=no_earth)
    assert engine.step(0.1).satellite is None

import pytest

from core.errors import ExternalDataUnavailable
from core.settings import TrackingCfg
from tracking.tracked_object import GeoFix, TrackedObjectState, TrackingMode, simulated_fix

FIX = GeoFix(latitude=12.5, longitude=-45.25, timestamp=1_700_000_000.0)


def test_starts_simulated_without_data():
    state = TrackedObjectState()
    assert state.mode is TrackingMode.SIMULATED
    assert state.last_known_position is None
    assert state.consecutive_error_count == 0


def test_success_goes_live():
    state = TrackedObjectState()
    state.record_success(FIX, now=10.0)
    assert state.mode is TrackingMode.LIVE
    assert state.last_fetch_timestamp == 10.0
    assert state.position(123.0) == FIX


def test_five_failures_then_one_success():
    state = TrackedObjectState(TrackingCfg(error_ceiling=5))
    state.record_success(FIX, now=0.0)
    for _ in range(5):
        state.record_failure(ExternalDataUnavailable("timeout"))
    assert state.mode is TrackingMode.SIMULATED
    assert state.consecutive_error_count == 5

    state.record_success(FIX, now=1.0)
    assert state.mode is TrackingMode.LIVE
    assert state.consecutive_error_count == 0


def test_failure_ladder_with_known_position():
    state = TrackedObjectState(TrackingCfg(cached_threshold=3, error_ceiling=5))
    state.record_success(FIX, now=0.0)
    modes = []
    for _ in range(6):
        state.record_failure("down")
        modes.append(state.mode)
    L, C, S = TrackingMode.LIVE, TrackingMode.CACHED, TrackingMode.SIMULATED
    assert modes == [L, L, C, C, S, S]
    assert state.last_known_position == FIX


def test_failure_without_position_is_simulated():
    state = TrackedObjectState()
    state.record_failure("dns")
    assert state.mode is TrackingMode.SIMULATED
    assert state.consecutive_error_count == 1


def test_simulated_stays_until_success():
    state = TrackedObjectState(TrackingCfg(cached_threshold=3, error_ceiling=5))
    state.record_success(FIX, now=0.0)
    for _ in range(5):
        state.record_failure("x")
    state.refresh(1.0)
    state.record_failure("x")
    assert state.mode is TrackingMode.SIMULATED


def test_refresh_staleness():
    state = TrackedObjectState(TrackingCfg(stale_after_s=15.0, grace_period_s=60.0))
    state.record_success(FIX, now=100.0)
    state.refresh(110.0)
    assert state.mode is TrackingMode.LIVE
    state.refresh(116.0)
    assert state.mode is TrackingMode.CACHED
    assert state.position(0.0) == FIX
    state.refresh(161.0)
    assert state.mode is TrackingMode.SIMULATED
    assert state.position(0.0) != FIX


def test_refresh_without_data_is_noop():
    state = TrackedObjectState()
    state.refresh(1e9)
    assert state.mode is TrackingMode.SIMULATED


def test_transitions_are_idempotent():
    state = TrackedObjectState()
    state.record_success(FIX, now=0.0)
    state.record_success(FIX, now=0.0)
    state.refresh(0.0)
    state.refresh(0.0)
    assert state.mode is TrackingMode.LIVE
    assert state.consecutive_error_count == 0


def test_advisories_are_rate_limited():
    received = []
    state = TrackedObjectState(TrackingCfg(advisory_every=5))
    state.subscribe(received.append)
    for _ in range(11):
        state.record_failure("offline")
    assert [a.error_count for a in received] == [1, 6, 11]
    assert all(a.mode is TrackingMode.SIMULATED for a in received)
    assert "offline" in received[0].message


def test_mode_change_advisory():
    received = []
    state = TrackedObjectState()
    state.subscribe(received.append)
    state.record_success(FIX, now=0.0)
    state.record_success(FIX, now=1.0)
    assert len(received) == 1
    assert received[0].mode is TrackingMode.LIVE
    assert received[0].mode_changed


def test_failing_subscriber_is_evicted():
    good = []

    def bad(advisory):
        raise RuntimeError("ui crashed")

    state = TrackedObjectState(TrackingCfg(advisory_every=1, subscriber_eviction_threshold=3))
    state.subscribe(bad)
    state.subscribe(good.append)
    for _ in range(4):
        state.record_failure("x")
    assert state.subscriber_count == 1
    assert len(good) == 4


def test_unsubscribe():
    received = []
    state = TrackedObjectState()
    state.subscribe(received.append)
    assert state.unsubscribe(received.append)
    assert not state.unsubscribe(received.append)
    state.record_success(FIX, now=0.0)
    assert received == []


def test_simulated_fix_is_deterministic():
    period_s = 92.68 * 60.0
    start = simulated_fix(0.0)
    assert start.latitude == pytest.approx(0.0)
    assert start.longitude == pytest.approx(-180.0)
    quarter = simulated_fix(period_s / 4)
    assert quarter.latitude == pytest.approx(51.6)
    assert quarter.longitude == pytest.approx(-90.0)
    assert simulated_fix(1234.5) == simulated_fix(1234.5)
    assert simulated_fix(period_s + 10.0).latitude == pytest.approx(simulated_fix(10.0).latitude)

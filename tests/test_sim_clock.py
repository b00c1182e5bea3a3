import math
from datetime import datetime, timezone

import pytest

from core.errors import InvalidArgument
from core.settings import ClockCfg
from core.sim_clock import (
    J2000_JD, J2000_UTC, SimulationClock, datetime_to_jd, seconds_since_j2000,
)


def test_defaults():
    clock = SimulationClock()
    assert clock.get_simulated_time() == 0.0
    assert clock.time_scale == 500.0
    assert not clock.paused


def test_advance_multiplies_by_time_scale():
    clock = SimulationClock()
    assert clock.advance(0.1) == pytest.approx(50.0)
    assert clock.simulated_time == pytest.approx(50.0)


def test_advance_is_strictly_monotonic():
    clock = SimulationClock(ClockCfg(time_scale=3.0))
    previous = clock.get_simulated_time()
    for _ in range(100):
        current = clock.advance(1 / 60)
        assert current > previous
        previous = current


def test_pause_stops_time():
    clock = SimulationClock()
    clock.advance(1.0)
    clock.set_paused(True)
    assert clock.advance(10.0) == pytest.approx(500.0)
    clock.toggle_pause()
    assert clock.advance(1.0) == pytest.approx(1000.0)


def test_set_time_scale_does_not_touch_time():
    clock = SimulationClock()
    clock.advance(2.0)
    before = clock.get_simulated_time()
    clock.set_time_scale(20000)
    assert clock.get_simulated_time() == before
    clock.advance(1.0)
    assert clock.get_simulated_time() == pytest.approx(before + 20000)


@pytest.mark.parametrize("bad", [0, -5, float("nan"), float("inf"), 1e9, 0.5, "fast", True])
def test_invalid_time_scale_rejected(bad):
    clock = SimulationClock()
    with pytest.raises(InvalidArgument):
        clock.set_time_scale(bad)
    assert clock.time_scale == 500.0


def test_negative_or_non_finite_dt_rejected():
    clock = SimulationClock()
    with pytest.raises(InvalidArgument):
        clock.advance(-0.01)
    with pytest.raises(InvalidArgument):
        clock.advance(float("nan"))
    assert clock.get_simulated_time() == 0.0


def test_reset_is_the_only_jump():
    clock = SimulationClock()
    clock.advance(1.0)
    clock.reset(123.0)
    assert clock.get_simulated_time() == 123.0
    clock.reset()
    assert clock.get_simulated_time() == 0.0


def test_reset_to_datetime():
    clock = SimulationClock()
    clock.reset_to_datetime(datetime(2000, 1, 2, 12, tzinfo=timezone.utc))
    assert clock.simulated_time == pytest.approx(86400.0)
    assert clock.simulated_days == pytest.approx(1.0)
    assert clock.utc == datetime(2000, 1, 2, 12, tzinfo=timezone.utc)


def test_julian_date_helpers():
    assert seconds_since_j2000(J2000_UTC) == 0.0
    # naive datetimes are UTC
    assert seconds_since_j2000(datetime(2000, 1, 1, 13)) == pytest.approx(3600.0)
    assert datetime_to_jd(J2000_UTC) == J2000_JD
    assert math.isclose(SimulationClock().jd, J2000_JD)


def test_labels():
    clock = SimulationClock(ClockCfg(time_scale=1500, start_time=12.3 * 86400))
    assert clock.format_simulated_time() == "12.3 days"
    assert clock.format_time_scale() == "1.5kx"
    clock.set_time_scale(500)
    assert clock.format_time_scale() == "500x"
    clock.set_paused(True)
    assert clock.format_time_scale() == "PAUSED"
    clock.reset(2 * 3600)
    assert clock.format_simulated_time() == "2.0 hours"

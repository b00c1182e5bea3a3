import logging

import pytest

from core.callbacks import CallbackRegistry
from core.errors import InvalidArgument, InvalidConfiguration
from core.log import configure_logging
from core.settings import ClockCfg, EngineConfig, TrackingCfg, validate_settings


def test_failure_counter_resets_on_success():
    calls = {"n": 0}

    def flaky(_):
        calls["n"] += 1
        if calls["n"] % 2:
            raise RuntimeError("odd call")

    registry = CallbackRegistry(eviction_threshold=2)
    registry.add(flaky)
    for i in range(6):
        registry.dispatch(i)
    assert flaky in registry


def test_callback_removing_itself_during_dispatch():
    registry = CallbackRegistry()
    seen = []

    def once(value):
        seen.append(value)
        registry.remove(once)

    registry.add(once)
    registry.add(seen.append)
    registry.dispatch("a")
    registry.dispatch("b")
    assert seen == ["a", "a", "b"]
    assert len(registry) == 1


def test_callback_added_during_dispatch_runs_next_time():
    registry = CallbackRegistry()
    seen = []

    def adder(value):
        registry.add(seen.append)

    registry.add(adder)
    registry.dispatch(1)
    assert seen == []
    registry.remove(adder)
    registry.dispatch(2)
    assert seen == [2]


def test_registry_rejects_bad_input():
    with pytest.raises(InvalidArgument):
        CallbackRegistry(eviction_threshold=0)
    with pytest.raises(InvalidArgument):
        CallbackRegistry().add("not callable")


def test_default_settings_are_valid():
    validate_settings(EngineConfig())


@pytest.mark.parametrize("cfg", [
    EngineConfig(clock=ClockCfg(time_scale=0.5)),
    EngineConfig(clock=ClockCfg(min_time_scale=10, max_time_scale=5, time_scale=7)),
    EngineConfig(tracking=TrackingCfg(trail_capacity=0)),
    EngineConfig(tracking=TrackingCfg(cached_threshold=6, error_ceiling=5)),
    EngineConfig(tracking=TrackingCfg(grace_period_s=1.0)),
    EngineConfig(callback_eviction_threshold=0),
    EngineConfig(regimes={}),
])
def test_invalid_settings(cfg):
    with pytest.raises(InvalidConfiguration):
        validate_settings(cfg)


def test_configure_logging_is_idempotent():
    root = logging.getLogger()
    before = len(root.handlers)
    old_level = root.level
    configure_logging(logging.DEBUG)
    configure_logging(logging.INFO)
    try:
        assert len(root.handlers) == before + 1
        assert root.level == logging.INFO
    finally:
        for h in [h for h in root.handlers if getattr(h, "_orrery", False)]:
            root.removeHandler(h)
        root.setLevel(old_level)

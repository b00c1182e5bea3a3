import dataclasses
from concurrent.futures import Future

import pytest

from core.settings import EngineConfig
from engine.context import EngineContext
from universe.solar_system import build_solar_system


class InlineExecutor:
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        future.set_running_or_notify_cancel()
        future.set_result(fn(*args, **kwargs))
        return future

    def shutdown(self, wait=True, cancel_futures=False):
        pass


class DeferredExecutor:
    """
    Holds submitted work until the test runs it, in any order.
    With started=True every request counts as already picked up by a worker.
    """

    def __init__(self, started=False):
        self.pending = {}
        self.started = started

    def submit(self, fn, seq):
        future = Future()
        if self.started:
            future.set_running_or_notify_cancel()
        self.pending[seq] = (fn, future)
        return future

    def run(self, seq):
        fn, future = self.pending.pop(seq)
        if self.started or future.set_running_or_notify_cancel():
            fn(seq)
            future.set_result(None)

    def shutdown(self, wait=True, cancel_futures=False):
        pass



@pytest.fixture
def bodies():
    return build_solar_system()


@pytest.fixture
def by_key(bodies):
    return {b.key: b for b in bodies}


@pytest.fixture
def make_engine():
    def _make(bodies=None, config=None, **kwargs):
        kwargs.setdefault("wall_clock", lambda: 0.0)
        return EngineContext(config=config or EngineConfig(), bodies=bodies, **kwargs)
    return _make


def replace_body(bodies, key, cls=None, **changes):
    out = []
    for b in bodies:
        if b.key == key:
            fields = {f.name: getattr(b, f.name) for f in dataclasses.fields(b)}
            fields.update(changes)
            b = (cls or type(b))(**fields)
        out.append(b)
    return out

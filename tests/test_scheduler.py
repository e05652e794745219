"""Tests for the capture scheduler."""

import threading
import time

import pytest
from conftest import wait_for

from subtrans.capture.scheduler import CaptureScheduler


class BlockingTick:
    """Tick callback that blocks until released and tracks concurrency."""

    def __init__(self, block: bool = True):
        self.release = threading.Event()
        if not block:
            self.release.set()
        self.started = threading.Event()
        self.calls = 0
        self.running = 0
        self.max_running = 0
        self._lock = threading.Lock()

    def __call__(self, generation):
        with self._lock:
            self.calls += 1
            self.running += 1
            self.max_running = max(self.max_running, self.running)
        self.started.set()
        self.release.wait(5.0)
        with self._lock:
            self.running -= 1


@pytest.fixture
def make_scheduler():
    schedulers = []

    def factory(tick, interval=0.01):
        scheduler = CaptureScheduler(tick, lambda: interval)
        schedulers.append(scheduler)
        return scheduler

    yield factory
    for scheduler in schedulers:
        scheduler.stop()


class TestPeriodic:
    """Tests for periodic ticks."""

    def test_ticks_fire_when_enabled(self, make_scheduler):
        tick = BlockingTick(block=False)
        scheduler = make_scheduler(tick)

        scheduler.start()
        scheduler.enable()

        assert wait_for(lambda: tick.calls >= 3)

    def test_busy_tick_is_skipped_not_queued(self, make_scheduler):
        tick = BlockingTick()
        scheduler = make_scheduler(tick)
        scheduler.start()
        scheduler.enable()
        assert tick.started.wait(2.0)

        assert wait_for(lambda: scheduler.skipped_ticks >= 3)
        assert tick.calls == 1
        assert tick.max_running == 1

        tick.release.set()
        assert scheduler.wait_idle()

    def test_disable_stops_new_ticks(self, make_scheduler):
        tick = BlockingTick(block=False)
        scheduler = make_scheduler(tick)
        scheduler.start()
        scheduler.enable()
        assert wait_for(lambda: tick.calls >= 1)

        scheduler.disable()
        assert scheduler.wait_idle()
        calls = tick.calls
        time.sleep(0.1)

        assert tick.calls == calls
        assert scheduler.active is False

    def test_crashing_tick_does_not_stop_scheduler(self, make_scheduler):
        calls = []

        def tick(generation):
            calls.append(generation)
            raise RuntimeError("boom")

        scheduler = make_scheduler(tick)
        scheduler.start()
        scheduler.enable()

        assert wait_for(lambda: len(calls) >= 3)

    def test_toggle(self, make_scheduler):
        scheduler = make_scheduler(BlockingTick(block=False))

        assert scheduler.toggle() is True
        assert scheduler.active is True
        assert scheduler.toggle() is False
        assert scheduler.active is False


class TestGeneration:
    """Tests for stale-cycle detection."""

    def test_invalidate_makes_generation_stale(self, make_scheduler):
        scheduler = make_scheduler(BlockingTick(block=False))
        scheduler.enable()
        generation = scheduler.generation
        assert scheduler.is_current(generation)

        scheduler.invalidate()

        assert not scheduler.is_current(generation)
        assert scheduler.is_current(scheduler.generation)

    def test_disabled_is_never_current(self, make_scheduler):
        scheduler = make_scheduler(BlockingTick(block=False))
        scheduler.enable()
        generation = scheduler.generation

        scheduler.disable()

        assert not scheduler.is_current(generation)
        assert not scheduler.is_current(scheduler.generation)

    def test_tick_receives_current_generation(self, make_scheduler):
        seen = []
        scheduler = make_scheduler(lambda generation: seen.append(generation))
        scheduler.start()
        scheduler.enable()

        assert wait_for(lambda: len(seen) >= 1)
        assert seen[0] == scheduler.generation


class TestFireOnce:
    """Tests for one-shot cycles."""

    def test_runs_callback(self, make_scheduler):
        scheduler = make_scheduler(BlockingTick(block=False))
        done = threading.Event()

        assert scheduler.fire_once(done.set) is True
        assert done.wait(2.0)

    def test_ignored_while_previous_runs(self, make_scheduler):
        scheduler = make_scheduler(BlockingTick(block=False))
        release = threading.Event()
        started = threading.Event()

        def slow():
            started.set()
            release.wait(5.0)

        assert scheduler.fire_once(slow) is True
        assert started.wait(2.0)
        assert scheduler.fire_once(slow) is False

        release.set()
        assert scheduler.wait_idle()
        assert scheduler.fire_once(lambda: None) is True

    def test_independent_of_periodic_stream(self, make_scheduler):
        tick = BlockingTick()
        scheduler = make_scheduler(tick)
        scheduler.start()
        scheduler.enable()
        assert tick.started.wait(2.0)

        done = threading.Event()
        assert scheduler.fire_once(done.set) is True
        assert done.wait(2.0)

        tick.release.set()

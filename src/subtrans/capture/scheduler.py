"""Timer- and event-driven capture triggering.

Periodic mode runs on a dedicated scheduling thread that fires each cycle on
a short-lived worker thread, so a slow OCR or translation call never delays
the next tick. If the previous periodic cycle is still running when a tick
comes due, the tick is skipped rather than queued.

One-shot mode (hotkey) fires a single cycle on its own worker, independent of
the periodic stream.
"""

import threading
import time
from collections.abc import Callable

from .. import log

logger = log.get_logger()

# Sleep granularity while subtitle mode is off
IDLE_POLL_SECS = 0.5


class CaptureScheduler:
    """Drives periodic and one-shot capture cycles.

    Every enable, disable or invalidate() bumps a generation number. Cycles
    receive the generation they were started under and should drop their
    results if is_current() says it has moved on.
    """

    def __init__(self, on_tick: Callable[[int], object], interval: Callable[[], float]):
        """Initialize the scheduler.

        Args:
            on_tick: Runs one periodic cycle; receives the cycle's generation.
            interval: Returns the current tick interval in seconds. Called
                every tick so config changes apply without restart.
        """
        self._on_tick = on_tick
        self._interval = interval

        self._active = False
        self._generation = 0
        self._state_lock = threading.Lock()
        self._wake = threading.Event()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

        self._periodic_busy = threading.Lock()
        self._one_shot_busy = threading.Lock()
        self._skipped_ticks = 0
        self._fired_ticks = 0

    @property
    def active(self) -> bool:
        with self._state_lock:
            return self._active

    @property
    def generation(self) -> int:
        with self._state_lock:
            return self._generation

    @property
    def skipped_ticks(self) -> int:
        with self._state_lock:
            return self._skipped_ticks

    @property
    def fired_ticks(self) -> int:
        with self._state_lock:
            return self._fired_ticks

    def is_current(self, generation: int) -> bool:
        """Check whether a cycle started under `generation` may still publish."""
        with self._state_lock:
            return self._active and generation == self._generation

    def invalidate(self) -> int:
        """Invalidate in-flight periodic cycles (e.g. the region changed)."""
        with self._state_lock:
            self._generation += 1
            return self._generation

    def start(self) -> None:
        """Start the scheduling thread. Idempotent."""
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="capture-scheduler", daemon=True)
        self._thread.start()
        logger.debug("capture scheduler started")

    def stop(self, timeout: float = 2.0) -> None:
        """Stop the scheduling thread. Running cycles finish on their own."""
        self.disable()
        self._stop.set()
        self._wake.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.debug("capture scheduler stopped")

    def enable(self) -> None:
        """Start periodic capture."""
        with self._state_lock:
            if self._active:
                return
            self._active = True
            self._generation += 1
        self._wake.set()
        logger.info("periodic capture enabled")

    def disable(self) -> None:
        """Stop scheduling new periodic cycles; an in-flight one completes."""
        with self._state_lock:
            if not self._active:
                return
            self._active = False
            self._generation += 1
        self._wake.set()
        logger.info("periodic capture disabled")

    def toggle(self) -> bool:
        """Flip periodic capture on or off. Returns the new state."""
        if self.active:
            self.disable()
            return False
        self.enable()
        return True

    def _run(self) -> None:
        """Scheduling thread main loop."""
        next_tick = time.monotonic()
        while not self._stop.is_set():
            if not self.active:
                self._wake.wait(IDLE_POLL_SECS)
                self._wake.clear()
                next_tick = time.monotonic()
                continue

            now = time.monotonic()
            if now < next_tick:
                self._wake.wait(next_tick - now)
                self._wake.clear()
                continue

            self._fire_periodic()
            next_tick = max(next_tick + self._interval(), time.monotonic())

    def _fire_periodic(self) -> None:
        if not self._periodic_busy.acquire(blocking=False):
            with self._state_lock:
                self._skipped_ticks += 1
            logger.debug("previous cycle still running, tick skipped")
            return

        with self._state_lock:
            generation = self._generation
            self._fired_ticks += 1

        worker = threading.Thread(
            target=self._run_cycle,
            args=(self._on_tick, generation, self._periodic_busy),
            name="capture-cycle",
            daemon=True,
        )
        worker.start()

    def fire_once(self, callback: Callable[[], object]) -> bool:
        """Run a one-shot cycle on its own worker thread.

        Returns:
            False if the previous one-shot cycle is still running.
        """
        if not self._one_shot_busy.acquire(blocking=False):
            logger.info("capture already in progress, trigger ignored")
            return False

        worker = threading.Thread(
            target=self._run_cycle,
            args=(callback, None, self._one_shot_busy),
            name="capture-once",
            daemon=True,
        )
        worker.start()
        return True

    @staticmethod
    def _run_cycle(callback, generation, busy: threading.Lock) -> None:
        try:
            if generation is None:
                callback()
            else:
                callback(generation)
        except Exception as e:
            # A cycle must never take the scheduler down
            logger.error("capture cycle crashed", err=str(e))
        finally:
            busy.release()

    def wait_idle(self, timeout: float = 5.0) -> bool:
        """Block until no periodic or one-shot cycle is running."""
        deadline = time.monotonic() + timeout
        for busy in (self._periodic_busy, self._one_shot_busy):
            remaining = max(0.0, deadline - time.monotonic())
            if not busy.acquire(timeout=remaining):
                return False
            busy.release()
        return True

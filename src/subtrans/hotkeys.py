"""Hotkey event contract and a pynput-based global listener.

The pipeline only consumes HotkeyEvent values. Where they come from is the
host's business; the CLI uses HotkeyListener, tests call handle_event()
directly.
"""

import threading
from collections.abc import Callable
from enum import Enum

from . import log
from .config import HotkeyConfig

logger = log.get_logger()


class HotkeyEvent(Enum):
    TRIGGER_REGION_CAPTURE = "trigger_region_capture"
    TRIGGER_FULLSCREEN_CAPTURE = "trigger_fullscreen_capture"
    TOGGLE_SUBTITLE_MODE = "toggle_subtitle_mode"
    HIDE_TRANSLATION = "hide_translation"
    CLEAR_CACHE = "clear_cache"
    RESET_COUNTERS = "reset_counters"


def build_bindings(config: HotkeyConfig) -> dict[str, HotkeyEvent]:
    """Map key combinations to events. Empty combinations are unbound."""
    bindings = {}
    for event in HotkeyEvent:
        combo = getattr(config, event.value, "")
        if not combo:
            continue
        if combo in bindings:
            logger.warning("hotkey bound twice, keeping first", combo=combo, hotkey=event.value)
            continue
        bindings[combo] = event
    return bindings


class HotkeyListener:
    """Global keyboard listener that turns key combos into HotkeyEvents.

    The pynput listener runs on its own thread; on_event is called from it
    and must not block.
    """

    def __init__(self, config: HotkeyConfig, on_event: Callable[[HotkeyEvent], None]):
        self._bindings = build_bindings(config)
        self._on_event = on_event
        self._listener = None
        self._lock = threading.Lock()

    def _dispatch(self, event: HotkeyEvent) -> Callable[[], None]:
        def handler():
            logger.debug("hotkey pressed", hotkey=event.value)
            try:
                self._on_event(event)
            except Exception as e:
                logger.error("hotkey handler failed", hotkey=event.value, err=str(e))

        return handler

    def start(self) -> bool:
        """Start listening in a background thread.

        Returns:
            False if global hotkeys are unavailable on this system.
        """
        with self._lock:
            if self._listener is not None:
                return True
            try:
                from pynput import keyboard

                hotkeys = {combo: self._dispatch(event) for combo, event in self._bindings.items()}
                self._listener = keyboard.GlobalHotKeys(hotkeys)
                self._listener.daemon = True
                self._listener.start()
            except Exception as e:
                logger.warning("keyboard shortcuts unavailable", err=str(e))
                self._listener = None
                return False

        logger.info("hotkeys active", bindings=", ".join(f"{c}={e.value}" for c, e in self._bindings.items()))
        return True

    def stop(self) -> None:
        with self._lock:
            if self._listener is not None:
                self._listener.stop()
                self._listener = None

    def rebind(self, config: HotkeyConfig) -> None:
        """Apply new bindings from a reloaded config."""
        bindings = build_bindings(config)
        if bindings == self._bindings:
            return
        self.stop()
        self._bindings = bindings
        self.start()

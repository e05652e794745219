"""Capture cycle orchestration.

One cycle is a straight run of synchronous stages:

    capture -> preprocess -> OCR -> stability gate (subtitle mode only)
    -> cache -> provider chain -> cache put -> history commit -> display message

Blocking stages run on the scheduler's worker threads. Every fault turns the
cycle into a logged skip; nothing here is allowed to stop the scheduler.
Results reach the display only through `display_queue`.
"""

import queue
import time
from dataclasses import dataclass, replace
from enum import Enum

from . import log
from .backends.base import OCRBackend
from .cache import CacheKey
from .capture import CaptureMode, CaptureRegion, CaptureSource, RawFrame, create_capture_source
from .capture.scheduler import CaptureScheduler
from .config import Config, ConfigStore
from .errors import AllProvidersFailed, CaptureFault, OcrFault
from .hotkeys import HotkeyEvent
from .preprocess import process
from .providers import ProviderChain
from .session import SessionState
from .stability import StabilityEngine

logger = log.get_logger()


class CaptureStream(Enum):
    ONE_SHOT = "one_shot"
    SUBTITLE = "subtitle"


class CycleOutcome(Enum):
    DISPLAYED = "displayed"
    SUPPRESSED = "suppressed"  # nothing new or not yet stable
    NO_TEXT = "no_text"
    CAPTURE_FAILED = "capture_failed"
    OCR_FAILED = "ocr_failed"
    TRANSLATION_FAILED = "translation_failed"
    DISCARDED = "discarded"  # stream was invalidated mid-cycle


@dataclass
class CycleResult:
    outcome: CycleOutcome
    original: str = ""
    translated: str = ""
    cached: bool = False


@dataclass(frozen=True)
class DisplayMessage:
    """Payload for the display boundary.

    Attributes:
        text: Newest translated line.
        original: Its source text.
        display_until: Monotonic deadline after which nothing should be shown.
        lines: Translated lines to draw, oldest first (at most max_lines).
        hidden: True for a "clear the overlay" message.
    """

    text: str
    original: str = ""
    display_until: float = 0.0
    lines: tuple[str, ...] = ()
    hidden: bool = False

    @classmethod
    def hide(cls) -> "DisplayMessage":
        return cls(text="", hidden=True)


class Pipeline:
    """Wires capture, OCR, stability, cache, providers and history together."""

    def __init__(
        self,
        config_store: ConfigStore,
        session: SessionState,
        ocr: OCRBackend,
        capture_source: CaptureSource | None = None,
        chain: ProviderChain | None = None,
        display_queue: "queue.Queue[DisplayMessage] | None" = None,
    ):
        self._config_store = config_store
        self._session = session
        self._ocr = ocr
        config = config_store.snapshot()
        self._capture_source = capture_source or create_capture_source(
            config.capture.source, config.capture.screenshot_path, config.capture.monitor
        )
        self._chain = chain or ProviderChain(config_store, session)
        self.display_queue: "queue.Queue[DisplayMessage]" = display_queue or queue.Queue()

        self._stability = StabilityEngine(config.stability, config.capture.interval_secs)
        self._subtitle_region = CaptureRegion.from_config(
            config.capture.subtitle_region, CaptureMode.SUBTITLE_AREA
        )
        self.scheduler = CaptureScheduler(
            on_tick=self.subtitle_tick,
            interval=lambda: self._config_store.snapshot().capture.interval_secs,
        )

    @property
    def session(self) -> SessionState:
        return self._session

    @property
    def ocr(self) -> OCRBackend:
        return self._ocr

    @property
    def stability(self) -> StabilityEngine:
        return self._stability

    @property
    def subtitle_mode_active(self) -> bool:
        return self.scheduler.active

    # -- configuration -----------------------------------------------------

    def set_subtitle_region(self, region: CaptureRegion) -> None:
        """Replace the watched subtitle region; in-flight cycles are discarded."""
        self._subtitle_region = replace(region, mode=CaptureMode.SUBTITLE_AREA)
        self.scheduler.invalidate()
        self._stability.reset()
        logger.info(
            "subtitle region changed",
            region=f"{region.width}x{region.height}+{region.x}+{region.y}",
        )

    def _is_stale(self, generation: int | None) -> bool:
        return generation is not None and not self.scheduler.is_current(generation)

    def _apply_config(self, config: Config) -> None:
        self._session.history.configure(config.subtitle.history_size, config.subtitle.display_secs)
        self._stability.configure(config.stability, config.capture.interval_secs)

        region = CaptureRegion.from_config(config.capture.subtitle_region, CaptureMode.SUBTITLE_AREA)
        if region != self._subtitle_region:
            self.set_subtitle_region(region)

    # -- stages --------------------------------------------------------------

    def translate_text(self, text: str, config: Config) -> tuple[str, bool]:
        """Translate through the cache.

        Returns:
            (translated text, was_cached).

        Raises:
            AllProvidersFailed: On a cache miss when no provider succeeded.
        """
        source = config.translation.source_language
        target = config.translation.target_language
        key = CacheKey.for_text(text, source, target)

        cached = self._session.cache.get(key)
        if cached is not None:
            return cached, True

        translated = self._chain.translate(key.normalized_text, source, target)
        self._session.cache.put(key, translated)
        return translated, False

    def _publish(self, original: str, translated: str, config: Config) -> None:
        entry, display_until = self._session.history.commit(original, translated)
        lines = tuple(
            e.translated_text
            for e in self._session.history.visible(config.subtitle.visible_lines, entry.captured_at)
        )
        self.display_queue.put(
            DisplayMessage(
                text=translated,
                original=original,
                display_until=display_until,
                lines=lines,
            )
        )

    def run_cycle(
        self,
        frame: RawFrame,
        stream: CaptureStream,
        config: Config | None = None,
        generation: int | None = None,
    ) -> CycleResult:
        """Run preprocess → OCR → translate → display on one captured frame.

        Args:
            frame: Captured bitmap; owned by this cycle.
            stream: Which stream the frame belongs to. Only the subtitle
                stream goes through the stability gate.
            config: Snapshot to use; defaults to the live one.
            generation: Scheduler generation the cycle started under. If it
                is stale by the time results are ready they are dropped.

        Returns:
            CycleResult describing what happened.
        """
        if config is None:
            config = self._config_store.snapshot()
        cycle_start = time.perf_counter()

        if stream == CaptureStream.SUBTITLE:
            preprocess_config = config.subtitle_preprocess
        else:
            preprocess_config = config.preprocess
            if frame.region.mode == CaptureMode.FULLSCREEN:
                # Full screens are already large; upscaling only slows OCR down
                preprocess_config = replace(preprocess_config, upscale=1.0)

        processed = process(frame, preprocess_config, config.debug_image_path)

        try:
            ocr_start = time.perf_counter()
            result = self._ocr.recognize(processed)
            ocr_ms = int((time.perf_counter() - ocr_start) * 1000)
        except OcrFault as e:
            logger.error("OCR error, cycle skipped", err=str(e))
            return CycleResult(CycleOutcome.OCR_FAILED)

        text = result.text
        logger.debug("OCR text", text=text, confidence=result.confidence, ocr_ms=ocr_ms)

        if self._is_stale(generation):
            logger.debug("stream invalidated, result discarded", text=text)
            return CycleResult(CycleOutcome.DISCARDED, original=text)

        if stream == CaptureStream.SUBTITLE:
            observation = self._stability.observe(text, frame.captured_at)
            if observation.expired:
                self._session.history.hide()
                self.display_queue.put(DisplayMessage.hide())
            if observation.committed is None:
                outcome = CycleOutcome.SUPPRESSED if text.strip() else CycleOutcome.NO_TEXT
                return CycleResult(outcome, original=text)
            text = observation.committed
        elif not text.strip():
            logger.info("no text detected")
            return CycleResult(CycleOutcome.NO_TEXT)

        try:
            translate_start = time.perf_counter()
            translated, cached = self.translate_text(text, config)
            translate_ms = int((time.perf_counter() - translate_start) * 1000)
        except AllProvidersFailed as e:
            logger.error("translation failed, cycle skipped", text=text, err=str(e))
            if stream == CaptureStream.SUBTITLE and not self._is_stale(generation):
                self._stability.mark_failed()
            return CycleResult(CycleOutcome.TRANSLATION_FAILED, original=text)

        if self._is_stale(generation):
            logger.debug("stream invalidated, result discarded", text=text)
            return CycleResult(CycleOutcome.DISCARDED, original=text, translated=translated, cached=cached)

        self._publish(text, translated, config)
        if stream == CaptureStream.SUBTITLE:
            self._stability.mark_displayed()

        total_ms = int((time.perf_counter() - cycle_start) * 1000)
        translate_str = f"{translate_ms} (cached)" if cached else str(translate_ms)
        logger.info("subtitle committed", text=translated, original=text)
        logger.debug("frame processed", ocr_ms=ocr_ms, translate_ms=translate_str, total_ms=total_ms)
        return CycleResult(CycleOutcome.DISPLAYED, original=text, translated=translated, cached=cached)

    # -- streams -------------------------------------------------------------

    def subtitle_tick(self, generation: int | None = None) -> CycleResult:
        """One periodic subtitle-mode cycle.

        Args:
            generation: Scheduler generation; None skips the staleness check.
        """
        config = self._config_store.snapshot()
        self._apply_config(config)

        if not self._is_stale(generation) and self._stability.tick():
            self._session.history.hide()
            self.display_queue.put(DisplayMessage.hide())

        try:
            frame = self._capture_source.grab(self._subtitle_region)
        except CaptureFault as e:
            logger.error("capture failed, retrying next tick", err=str(e))
            return CycleResult(CycleOutcome.CAPTURE_FAILED)

        return self.run_cycle(frame, CaptureStream.SUBTITLE, config, generation)

    def run_one_shot(self, fullscreen: bool = False) -> CycleResult:
        """Capture once (region or full screen) and translate whatever is there."""
        config = self._config_store.snapshot()
        self._apply_config(config)

        if fullscreen:
            region = CaptureRegion.fullscreen()
        else:
            region = CaptureRegion.from_config(config.capture.region, CaptureMode.REGION)

        try:
            frame = self._capture_source.grab(region)
        except CaptureFault as e:
            logger.error("capture failed", err=str(e))
            return CycleResult(CycleOutcome.CAPTURE_FAILED)

        return self.run_cycle(frame, CaptureStream.ONE_SHOT, config)

    # -- hotkey contract ---------------------------------------------------

    def set_subtitle_mode(self, active: bool) -> None:
        if active == self.scheduler.active:
            return
        self._stability.reset()
        if active:
            self.scheduler.start()
            self.scheduler.enable()
        else:
            self.scheduler.disable()
            self._session.history.hide()
            self.display_queue.put(DisplayMessage.hide())

    def handle_event(self, event: HotkeyEvent) -> None:
        """Apply one hotkey event. Safe to call from the listener thread."""
        logger.debug("hotkey event", hotkey=event.value)

        if event == HotkeyEvent.TRIGGER_REGION_CAPTURE:
            self.scheduler.fire_once(lambda: self.run_one_shot(fullscreen=False))
        elif event == HotkeyEvent.TRIGGER_FULLSCREEN_CAPTURE:
            self.scheduler.fire_once(lambda: self.run_one_shot(fullscreen=True))
        elif event == HotkeyEvent.TOGGLE_SUBTITLE_MODE:
            self.set_subtitle_mode(not self.scheduler.active)
            logger.info("subtitle mode", active=self.scheduler.active)
        elif event == HotkeyEvent.HIDE_TRANSLATION:
            self._session.history.hide()
            self.display_queue.put(DisplayMessage.hide())
        elif event == HotkeyEvent.CLEAR_CACHE:
            self._session.cache.clear()
        elif event == HotkeyEvent.RESET_COUNTERS:
            self._session.counters.reset()

    def start(self) -> None:
        """Load the persisted cache (if configured) and start the scheduler thread."""
        path = self._config_store.snapshot().cache.persist_path
        if path:
            try:
                loaded = self._session.cache.load(path)
                logger.info("translation cache loaded", path=path, entries=loaded)
            except (OSError, ValueError) as e:
                logger.warning("could not load translation cache", path=path, err=str(e))
        self.scheduler.start()

    def shutdown(self) -> None:
        self.scheduler.stop()
        path = self._config_store.snapshot().cache.persist_path
        if path:
            try:
                self._session.cache.save(path)
            except OSError as e:
                logger.warning("could not save translation cache", path=path, err=str(e))

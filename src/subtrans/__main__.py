"""Main entry point for subtrans.

This module is executed when running:
- python -m subtrans
- subtrans (via pyproject.toml entry point)

The terminal is the display: committed translations are printed as they
arrive on the pipeline's display queue.
"""

import argparse
import queue
import sys
import time

from . import __version__, log
from .backends import Language, get_registry
from .backends.ocr import TesseractOCRBackend
from .config import ConfigStore
from .errors import OcrFault
from .hotkeys import HotkeyListener
from .pipeline import CycleOutcome, DisplayMessage, Pipeline
from .session import SessionState
from .subtitle import SubtitleHistory

logger = log.get_logger()

# Main loop timing constants
DISPLAY_POLL_INTERVAL = 0.1  # Wait for display messages (seconds)
CONFIG_RELOAD_INTERVAL = 2.0  # Check the config file for edits (seconds)


def list_providers() -> None:
    """Print every registered OCR and translation backend and exit."""
    registry = get_registry()

    print("OCR backends:")
    for info in registry.get_ocr_backends():
        languages = ", ".join(lang.value for lang in info.supported_languages)
        print(f"  {info.id:<16} {info.name} ({languages})")

    print("Translation providers:")
    for info in registry.get_translation_backends():
        key = " [api key]" if info.requires_key else ""
        print(f"  {info.id:<16} {info.description}{key}")


def _parse_arguments() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Live screen subtitle translator")
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to config file (default: ./config.yml, then ~/.subtrans/config.yml)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging and timing output",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Translate the configured region once and exit",
    )
    parser.add_argument(
        "--subtitle",
        action="store_true",
        help="Start with subtitle mode on",
    )
    parser.add_argument(
        "--list-providers", "-l",
        action="store_true",
        help="List available OCR and translation backends and exit",
    )
    parser.add_argument("--version", action="version", version=f"subtrans {__version__}")
    return parser.parse_args()


def _print_message(message: DisplayMessage) -> None:
    if message.hidden:
        print("[HIDE]")
        return
    print(f"[OCR] {message.original}")
    for line in message.lines:
        print(f"[TR]  {line}")
    print()


def _build_pipeline(config_store: ConfigStore) -> Pipeline:
    config = config_store.snapshot()
    session = SessionState(
        history=SubtitleHistory(config.subtitle.history_size, config.subtitle.display_secs),
    )

    try:
        language = Language.from_code(config.translation.source_language)
    except ValueError:
        logger.warning("unsupported OCR language, using English", language=config.translation.source_language)
        language = Language.ENGLISH
    ocr = TesseractOCRBackend(language=language)

    return Pipeline(config_store, session, ocr)


def _run_main_loop(pipeline: Pipeline, config_store: ConfigStore, listener: HotkeyListener) -> None:
    """Drain display messages and pick up config edits until interrupted."""
    last_reload = time.monotonic()
    while True:
        try:
            message = pipeline.display_queue.get(timeout=DISPLAY_POLL_INTERVAL)
        except queue.Empty:
            message = None
        if message is not None:
            _print_message(message)

        now = time.monotonic()
        if now - last_reload >= CONFIG_RELOAD_INTERVAL:
            last_reload = now
            if config_store.reload():
                listener.rebind(config_store.snapshot().hotkeys)


def main() -> None:
    """Main entry point."""
    args = _parse_arguments()
    log.configure(debug=args.debug)

    if args.list_providers:
        list_providers()
        return

    config_store = ConfigStore.from_file(args.config)
    pipeline = _build_pipeline(config_store)

    if args.once:
        result = pipeline.run_one_shot()
        while not pipeline.display_queue.empty():
            _print_message(pipeline.display_queue.get_nowait())
        if result.outcome != CycleOutcome.DISPLAYED:
            logger.info("nothing translated", outcome=result.outcome.value)
            sys.exit(1)
        return

    # Fail early if Tesseract is missing instead of on the first cycle
    try:
        pipeline.ocr.load()
    except OcrFault as e:
        logger.error("OCR unavailable", err=str(e))
        sys.exit(1)

    pipeline.start()
    listener = HotkeyListener(config_store.snapshot().hotkeys, pipeline.handle_event)
    if not listener.start():
        print("Global hotkeys unavailable; use --once or --subtitle.")
    if args.subtitle:
        pipeline.set_subtitle_mode(True)

    print("Ready. Press Ctrl+C to quit.")
    try:
        _run_main_loop(pipeline, config_store, listener)
    except KeyboardInterrupt:
        print("\nExiting...")
    finally:
        listener.stop()
        pipeline.shutdown()


if __name__ == "__main__":
    main()

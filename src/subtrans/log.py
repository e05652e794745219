"""Console logging through structlog.

One line per event, aligned on a 3-letter level:

    12:30:45 INF subtitle committed text="Olá, tudo bem?" original="Hello, how are you?"
    12:30:46 DBG frame processed ocr_ms=45 translate_ms="3 (cached)" total_ms=61
    12:30:47 WRN provider failed provider=deepl reason="HTTP 456: quota"
    12:30:48 ERR capture failed, retrying next tick err="screen grab failed: XGetImage"

Debug mode adds milliseconds to the timestamp so cycle timings line up.
"""

import logging
import os
import sys
from datetime import datetime

import structlog

LEVEL_NAMES = {
    "debug": "DBG",
    "info": "INF",
    "warning": "WRN",
    "error": "ERR",
    "critical": "CRT",
}

# Overrides the configured level when set
LEVEL_ENV_VAR = "SUBTRANS_LOG_LEVEL"

# OCR and translation text can be a whole screen; keep lines readable
MAX_VALUE_CHARS = 120


def _short_level(logger, method_name, event_dict):
    level = event_dict.get("level", method_name)
    event_dict["level"] = LEVEL_NAMES.get(level, level.upper()[:3])
    return event_dict


def _timestamper(with_millis: bool):
    def add_timestamp(logger, method_name, event_dict):
        now = datetime.now()
        stamp = now.strftime("%H:%M:%S")
        if with_millis:
            stamp = f"{stamp}.{now.microsecond // 1000:03d}"
        event_dict["timestamp"] = stamp
        return event_dict

    return add_timestamp


def _format_value(value) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:.2f}"
    text = str(value).replace("\n", " ")
    if len(text) > MAX_VALUE_CHARS:
        text = text[: MAX_VALUE_CHARS - 3] + "..."
    if not text or " " in text or "=" in text:
        return f'"{text}"'
    return text


def _render(logger, method_name, event_dict) -> str:
    """Render 'timestamp LVL [component] event key=value ...'."""
    parts = [event_dict.pop("timestamp", ""), event_dict.pop("level", "???")]
    component = event_dict.pop("logger", None)
    if component:
        parts.append(f"[{component}]")
    parts.append(str(event_dict.pop("event", "")))

    parts.extend(
        f"{key}={_format_value(value)}"
        for key, value in event_dict.items()
        if not key.startswith("_")
    )
    return " ".join(parts)


def configure(level: str = "INFO", debug: bool = False, stream=None) -> None:
    """Configure structlog for console output.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR). The
            SUBTRANS_LOG_LEVEL environment variable wins over this.
        debug: Shortcut for DEBUG with millisecond timestamps.
        stream: Output stream, stdout by default.
    """
    if debug:
        level = "DEBUG"
    level = os.environ.get(LEVEL_ENV_VAR, level).upper()
    numeric_level = getattr(logging, level, logging.INFO)

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            _timestamper(with_millis=numeric_level <= logging.DEBUG),
            _short_level,
            _render,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str | None = None) -> structlog.BoundLogger:
    """Get a logger, optionally tagged with a [component] prefix."""
    logger = structlog.get_logger()
    if component:
        return logger.bind(logger=component)
    return logger

"""Configuration management for subtrans.

The running pipeline never reads the YAML file directly. It asks a
ConfigStore for an immutable Config snapshot at the start of every cycle, so
the file can be edited (and reloaded) while capture is running.
"""

import os
import threading
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

import yaml

from . import log

logger = log.get_logger()

CONFIG_DIR = Path.home() / ".subtrans"
CONFIG_FILENAME = "config.yml"

# Capture interval bounds for subtitle mode (milliseconds)
MIN_INTERVAL_MS = 50
MAX_INTERVAL_MS = 2000

# Simultaneously displayed subtitle lines
MIN_LINES = 1
MAX_LINES = 10


@dataclass(frozen=True)
class RegionConfig:
    """Screen rectangle in pixels."""

    x: int = 0
    y: int = 0
    width: int = 1920
    height: int = 1080


@dataclass(frozen=True)
class PreprocessConfig:
    """Image transform parameters applied before OCR.

    Out-of-range values are accepted here and clamped by clamped(); the
    preprocessor never rejects a configuration.
    """

    enabled: bool = True
    grayscale: bool = True
    invert: bool = False
    contrast: float = 1.0
    threshold: int = 0
    upscale: float = 1.0
    blur: float = 0.0
    dilate: int = 0
    erode: int = 0
    edge_detection: int = 0
    save_debug_image: bool = False

    def clamped(self) -> "PreprocessConfig":
        """Return a copy with every numeric field inside its valid range."""
        contrast = self.contrast if self.contrast > 0 else 1.0
        return replace(
            self,
            contrast=min(float(contrast), 10.0),
            threshold=int(min(max(self.threshold, 0), 255)),
            upscale=float(min(max(self.upscale, 1.0), 4.0)),
            blur=float(min(max(self.blur, 0.0), 5.0)),
            dilate=int(min(max(self.dilate, 0), 5)),
            erode=int(min(max(self.erode, 0), 5)),
            edge_detection=int(min(max(self.edge_detection, 0), 150)),
        )


@dataclass(frozen=True)
class CaptureConfig:
    """Where and how frames are grabbed."""

    region: RegionConfig = field(default_factory=RegionConfig)
    subtitle_region: RegionConfig = field(
        default_factory=lambda: RegionConfig(x=0, y=860, width=1920, height=200)
    )
    source: str = "memory"  # "memory" or "file"
    screenshot_path: str = "screenshot.png"
    interval_ms: int = 500
    monitor: int = 1

    @property
    def interval_secs(self) -> float:
        """Capture interval clamped to the supported range, in seconds."""
        return min(max(self.interval_ms, MIN_INTERVAL_MS), MAX_INTERVAL_MS) / 1000.0


@dataclass(frozen=True)
class StabilityConfig:
    """Debounce and expiry tunables for subtitle mode."""

    min_text_length: int = 3
    stable_count: int = 2
    debounce_secs: float = 1.5
    expire_after_empty: int = 3
    max_display_secs: float = 5.0
    similarity_threshold: float = 1.0


@dataclass(frozen=True)
class SubtitleConfig:
    """History and on-screen display settings."""

    max_lines: int = 3
    history_size: int = 10
    display_secs: float = 5.0

    @property
    def visible_lines(self) -> int:
        return min(max(self.max_lines, MIN_LINES), MAX_LINES)


@dataclass(frozen=True)
class TranslationConfig:
    """Language pair, provider order and non-OpenAI credentials."""

    source_language: str = "en"
    target_language: str = "pt"
    providers: tuple[str, ...] = ("google",)
    fallback_provider: str = "google"
    timeout_secs: float = 10.0
    deepl_api_key: str = ""
    libretranslate_url: str = "https://libretranslate.com"
    libretranslate_api_key: str = ""


@dataclass(frozen=True)
class OpenAIConfig:
    """Settings for the OpenAI chat-completions provider."""

    api_key: str = ""
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    temperature: float = 0.3
    max_tokens: int = 1024
    max_requests_per_session: int = 0  # 0 = unlimited
    context_lines: int = 0
    game_context: str = ""


@dataclass(frozen=True)
class CacheConfig:
    persist_path: str = ""


@dataclass(frozen=True)
class HotkeyConfig:
    """Key combinations in pynput GlobalHotKeys syntax."""

    trigger_region_capture: str = "<ctrl>+<alt>+t"
    trigger_fullscreen_capture: str = "<ctrl>+<alt>+f"
    toggle_subtitle_mode: str = "<ctrl>+<alt>+s"
    hide_translation: str = "<ctrl>+<alt>+h"
    clear_cache: str = "<ctrl>+<alt>+c"
    reset_counters: str = "<ctrl>+<alt>+r"


def _build(cls, data: dict | None):
    """Build a section dataclass from a YAML mapping, ignoring unknown keys."""
    if not data:
        return cls()
    known = {f.name for f in fields(cls)}
    values = {}
    for key, value in data.items():
        if key not in known:
            logger.warning("unknown config key ignored", section=cls.__name__, key=key)
            continue
        if key in ("region", "subtitle_region") and isinstance(value, dict):
            value = _build(RegionConfig, value)
        elif isinstance(value, list):
            value = tuple(value)
        values[key] = value
    return cls(**values)


@dataclass(frozen=True)
class Config:
    """Application configuration snapshot."""

    capture: CaptureConfig = field(default_factory=CaptureConfig)
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    subtitle_preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    stability: StabilityConfig = field(default_factory=StabilityConfig)
    subtitle: SubtitleConfig = field(default_factory=SubtitleConfig)
    translation: TranslationConfig = field(default_factory=TranslationConfig)
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    hotkeys: HotkeyConfig = field(default_factory=HotkeyConfig)
    debug_image_path: str = "debug_preprocessed.png"

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Build a Config from a parsed YAML mapping.

        Credentials missing from the file are read from DEEPL_API_KEY,
        OPENAI_API_KEY and LIBRETRANSLATE_API_KEY.
        """
        translation = _build(TranslationConfig, data.get("translation"))
        openai = _build(OpenAIConfig, data.get("openai"))

        if not translation.deepl_api_key and os.environ.get("DEEPL_API_KEY"):
            translation = replace(translation, deepl_api_key=os.environ["DEEPL_API_KEY"])
        if not translation.libretranslate_api_key and os.environ.get("LIBRETRANSLATE_API_KEY"):
            translation = replace(
                translation, libretranslate_api_key=os.environ["LIBRETRANSLATE_API_KEY"]
            )
        if not openai.api_key and os.environ.get("OPENAI_API_KEY"):
            openai = replace(openai, api_key=os.environ["OPENAI_API_KEY"])

        return cls(
            capture=_build(CaptureConfig, data.get("capture")),
            preprocess=_build(PreprocessConfig, data.get("preprocess")),
            subtitle_preprocess=_build(PreprocessConfig, data.get("subtitle_preprocess")),
            stability=_build(StabilityConfig, data.get("stability")),
            subtitle=_build(SubtitleConfig, data.get("subtitle")),
            translation=translation,
            openai=openai,
            cache=_build(CacheConfig, data.get("cache")),
            hotkeys=_build(HotkeyConfig, data.get("hotkeys")),
            debug_image_path=data.get("debug_image_path", "debug_preprocessed.png"),
        )

    @classmethod
    def find_config_path(cls, config_path: str | None = None) -> Path | None:
        """Locate the config file.

        Args:
            config_path: Explicit path. If None, looks for config.yml in the
                current directory and then in ~/.subtrans.

        Returns:
            Path to an existing config file, or None.
        """
        if config_path is not None:
            path = Path(config_path)
            return path if path.exists() else None

        for path in (Path(CONFIG_FILENAME), CONFIG_DIR / CONFIG_FILENAME):
            if path.exists():
                return path
        return None

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load configuration from a YAML file.

        Args:
            config_path: Path to config file. If None, searches common locations
                and writes a commented default to ~/.subtrans when none exists.

        Returns:
            Config instance with loaded values.
        """
        path = cls.find_config_path(config_path)
        if path is not None:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            logger.info("config loaded", path=str(path))
            return cls.from_dict(data)

        if config_path is None:
            _create_default_config()
        return cls.from_dict({})


DEFAULT_CONFIG = """# Region captured by the one-shot "translate region" hotkey
capture:
  region: {x: 0, y: 0, width: 1920, height: 1080}
  # Region watched continuously while subtitle mode is on
  subtitle_region: {x: 0, y: 860, width: 1920, height: 200}
  # "memory" grabs straight into RAM, "file" round-trips through screenshot_path
  source: memory
  # Subtitle mode capture interval in milliseconds (50-2000)
  interval_ms: 500

preprocess:
  grayscale: true
  contrast: 1.0
  threshold: 0        # 0 disables binarization
  upscale: 1.0
  edge_detection: 0   # >0 replaces the threshold step

subtitle:
  max_lines: 3        # lines shown at once (1-10)
  history_size: 10
  display_secs: 5

stability:
  stable_count: 2     # sightings needed before a line is translated
  debounce_secs: 1.5
  expire_after_empty: 3
  max_display_secs: 5

translation:
  source_language: en
  target_language: pt
  # Tried in order until one succeeds
  providers: [google]
  fallback_provider: google

openai:
  model: gpt-4o-mini
  max_requests_per_session: 0   # 0 = unlimited
  context_lines: 0
  game_context: ""
"""


def _create_default_config() -> None:
    """Create a default config file in the user's home directory."""
    config_path = CONFIG_DIR / CONFIG_FILENAME
    if config_path.exists():
        return

    try:
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(DEFAULT_CONFIG)
        logger.info("created default config", path=str(config_path))
    except OSError as e:
        logger.warning("could not write default config", path=str(config_path), err=str(e))


class ConfigStore:
    """Thread-safe holder for the live configuration snapshot."""

    def __init__(self, config: Config | None = None, path: str | Path | None = None):
        self._config = config or Config()
        self._path = Path(path) if path else None
        self._mtime = self._path.stat().st_mtime if self._path and self._path.exists() else None
        self._lock = threading.Lock()

    @classmethod
    def from_file(cls, config_path: str | None = None) -> "ConfigStore":
        path = Config.find_config_path(config_path)
        return cls(Config.load(config_path), path)

    def snapshot(self) -> Config:
        """Get the current configuration. Snapshots are immutable."""
        with self._lock:
            return self._config

    def replace(self, config: Config) -> None:
        """Swap in a new configuration; takes effect on the next cycle."""
        with self._lock:
            self._config = config

    def reload(self) -> bool:
        """Re-read the config file if it changed on disk.

        Returns:
            True if a new snapshot was installed.
        """
        if self._path is None or not self._path.exists():
            return False

        mtime = self._path.stat().st_mtime
        if mtime == self._mtime:
            return False

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            config = Config.from_dict(data)
        except (OSError, yaml.YAMLError, TypeError) as e:
            logger.warning("config reload failed, keeping previous", err=str(e))
            return False

        self._mtime = mtime
        self.replace(config)
        logger.info("config reloaded", path=str(self._path))
        return True

"""Settings persistence (TOML) and config schema."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

import tomli_w

from taskgoblin.errors import InvalidArgument

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Config schema
# ---------------------------------------------------------------------------

GESTURE_KEYS = ("alt", "ctrl", "shift", "cmd")


@dataclass
class GestureConfig:
    key: str = "ctrl"  # modifier that is tapped, left/right variants both count
    taps: int = 3
    window_ms: int = 500  # max gap between consecutive taps
    poll_ms: int = 20


@dataclass
class JiggleConfig:
    enabled_on_start: bool = False
    period_ms: int = 50
    amplitude: int = 1


@dataclass
class CaptureConfig:
    temp_path: str = "/tmp/taskgoblin_ocr_capture.png"
    # Time given to the window manager to animate the panel away before capture.
    settle_ms: int = 300


@dataclass
class OCRConfig:
    languages: list[str] = field(default_factory=lambda: ["es-ES", "en-US"])
    accurate: bool = True
    language_correction: bool = True


@dataclass
class ShutdownConfig:
    presets_min: list[int] = field(default_factory=lambda: [15, 30, 60, 120])


@dataclass
class AppsConfig:
    # Never quit by "Close All Apps".
    keep: list[str] = field(default_factory=lambda: [
        "Finder", "TaskGoblin", "Terminal", "iTerm", "iTerm2", "System Events",
        "System Settings", "System Preferences", "Activity Monitor", "Console",
        "Docker Desktop", "Docker", "1Password", "1Password 8", "Alfred",
        "Raycast", "Dropbox", "Google Drive", "OneDrive", "Rectangle", "Magnet",
        "BetterTouchTool", "Logi Options", "Logi Options+", "Logitech G HUB",
    ])
    # Streaming, social and games.
    leisure: list[str] = field(default_factory=lambda: [
        "Spotify", "Netflix", "YouTube", "Hulu", "Disney+", "Prime Video",
        "Apple Music", "Music", "Discord", "Slack", "Telegram", "WhatsApp",
        "Messenger", "Facebook", "Twitch", "Steam", "Epic Games Launcher",
        "Battle.net", "Origin", "EA app", "GOG Galaxy", "iTunes", "TV",
        "Podcasts", "Books",
    ])
    # Browsers, IDEs, containers and meeting apps.
    heavy: list[str] = field(default_factory=lambda: [
        "Google Chrome", "Chrome", "Safari", "Firefox", "Arc", "Brave Browser",
        "Microsoft Edge", "Docker Desktop", "Docker", "Xcode",
        "Visual Studio Code", "Code", "Figma", "Zoom", "Microsoft Teams",
        "Webex", "Adobe Acrobat", "Adobe Acrobat DC", "IntelliJ IDEA",
        "WebStorm", "PhpStorm", "PyCharm", "Android Studio",
    ])


@dataclass
class WhatsAppConfig:
    focus_delay_secs: float = 4.0


@dataclass
class NotificationConfig:
    native: bool = False  # also post to Notification Centre, besides the in-app toast


@dataclass
class PanelConfig:
    width: int = 440
    height: int = 820


@dataclass
class AppConfig:
    gesture: GestureConfig = field(default_factory=GestureConfig)
    jiggle: JiggleConfig = field(default_factory=JiggleConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    shutdown: ShutdownConfig = field(default_factory=ShutdownConfig)
    apps: AppsConfig = field(default_factory=AppsConfig)
    whatsapp: WhatsAppConfig = field(default_factory=WhatsAppConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    panel: PanelConfig = field(default_factory=PanelConfig)


_SECTIONS: dict[str, type] = {
    "gesture": GestureConfig,
    "jiggle": JiggleConfig,
    "capture": CaptureConfig,
    "ocr": OCRConfig,
    "shutdown": ShutdownConfig,
    "apps": AppsConfig,
    "whatsapp": WhatsAppConfig,
    "notifications": NotificationConfig,
    "panel": PanelConfig,
}

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def get_home_dir() -> Path:
    """Return the TaskGoblin home directory (``$TASKGOBLIN_HOME`` or ~/.taskgoblin)."""
    override = os.getenv("TASKGOBLIN_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".taskgoblin"


def get_config_path() -> Path:
    return get_home_dir() / "config.toml"


def get_log_dir() -> Path:
    return get_home_dir() / "logs"


def _merge_into_dataclass(cls: type, data: dict) -> object:
    """Create a dataclass instance from *data*, ignoring unknown keys."""
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known})


def _deep_merge(defaults: dict, overrides: dict) -> dict:
    """Recursively merge *overrides* into *defaults* (non-destructive)."""
    merged = defaults.copy()
    for key, value in overrides.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _dict_to_config(data: dict) -> AppConfig:
    """Build an AppConfig from a plain dict (e.g. parsed TOML)."""
    sections = {
        name: _merge_into_dataclass(cls, data.get(name, {}))
        for name, cls in _SECTIONS.items()
    }
    return AppConfig(**sections)  # type: ignore[arg-type]


def validate_config(config: AppConfig) -> None:
    """Reject settings the background loops cannot run with.

    Raises:
        InvalidArgument: On the first offending value.
    """
    if config.gesture.key not in GESTURE_KEYS:
        raise InvalidArgument(
            f"Unknown gesture key {config.gesture.key!r}. "
            f"Supported keys: {', '.join(GESTURE_KEYS)}"
        )
    if config.gesture.taps < 2:
        raise InvalidArgument("gesture.taps must be at least 2")
    for name, value in (
        ("gesture.window_ms", config.gesture.window_ms),
        ("gesture.poll_ms", config.gesture.poll_ms),
        ("jiggle.period_ms", config.jiggle.period_ms),
        ("jiggle.amplitude", config.jiggle.amplitude),
    ):
        if value <= 0:
            raise InvalidArgument(f"{name} must be greater than 0 (got {value})")
    if config.capture.settle_ms < 0:
        raise InvalidArgument("capture.settle_ms must not be negative")
    if not config.ocr.languages:
        raise InvalidArgument("ocr.languages must name at least one language")
    if any(m <= 0 for m in config.shutdown.presets_min):
        raise InvalidArgument("shutdown.presets_min entries must be greater than 0")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config() -> AppConfig:
    """Load config from file, merge with defaults.

    Creates a default config file if one does not exist.
    """
    path = get_config_path()

    if not path.exists():
        config = AppConfig()
        save_config(config)
        return config

    with open(path, "rb") as f:
        file_data = tomllib.load(f)

    default_data = asdict(AppConfig())
    merged = _deep_merge(default_data, file_data)
    config = _dict_to_config(merged)
    validate_config(config)
    logger.debug("Loaded config from %s", path)
    return config


def save_config(config: AppConfig) -> None:
    """Save *config* to the TOML config file.

    Creates the home directory if it does not exist.
    """
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "wb") as f:
        tomli_w.dump(asdict(config), f)

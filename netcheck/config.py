"""
Load/save netcheck config (JSON) in the user app data directory.
Command-line flags override file values; validation happens before monitoring starts.
"""
import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from netcheck.errors import ConfigError

logger = logging.getLogger("netcheck.config")

# Default config
DEFAULT_FILE_PREFIX = "netcheck"
DEFAULT_MAX_SIZE = 2 * 1024 * 1024
DEFAULT_LOG_MODE = "all"
DEFAULT_INTERVAL = 5
DEFAULT_TIMEOUT = 3
DEFAULT_LATENCY_THRESHOLD_MS = 500
DEFAULT_TARGETS = (
    ("Google", "https://google.com/generate_204"),
    ("Example", "https://example.com"),
    ("IP", "https://1.1.1.1"),
)
LOG_MODES = ("silent", "stdout", "file", "all")


def get_config_dir() -> Path:
    """User app data directory for config and logs."""
    override = os.environ.get("NETCHECK_HOME")
    if override:
        return Path(override)
    if sys.platform == "win32":
        return Path(os.environ.get("APPDATA", os.path.expanduser("~"))) / "netcheck"
    return Path(os.path.expanduser("~")) / ".netcheck"


def get_config_path() -> Path:
    return get_config_dir() / "config.json"


def get_default_log_dir() -> Path:
    return get_config_dir() / "logs"


def get_default_config() -> dict[str, Any]:
    return {
        "log_dir": "",
        "file_prefix": DEFAULT_FILE_PREFIX,
        "max_size": DEFAULT_MAX_SIZE,
        "log_mode": DEFAULT_LOG_MODE,
        "interval": DEFAULT_INTERVAL,
        "timeout": DEFAULT_TIMEOUT,
        "latency_threshold_ms": DEFAULT_LATENCY_THRESHOLD_MS,
        "targets": [{"name": n, "url": u} for n, u in DEFAULT_TARGETS],
    }


def ensure_config_dir() -> None:
    get_config_dir().mkdir(parents=True, exist_ok=True)


def load_config() -> dict[str, Any]:
    path = get_config_path()
    if not path.exists():
        return get_default_config()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("top-level value is not an object")
    except (json.JSONDecodeError, ValueError, OSError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return get_default_config()
    # Merge with defaults so new keys exist
    default = get_default_config()
    for k, v in default.items():
        if k not in data:
            data[k] = v
    return data


def save_config(config: dict[str, Any]) -> Path:
    ensure_config_dir()
    path = get_config_path()
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2, ensure_ascii=False)
    return path


class TargetConfig:
    __slots__ = ("name", "url")

    def __init__(self, name: str, url: str):
        self.name = name.strip()
        self.url = url.strip()

    def __repr__(self) -> str:
        return f"TargetConfig({self.name!r}, {self.url!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TargetConfig):
            return NotImplemented
        return (self.name, self.url) == (other.name, other.url)


def target_to_dict(t: TargetConfig) -> dict[str, Any]:
    return {"name": t.name, "url": t.url}


def dict_to_target(d: Any) -> TargetConfig:
    if not isinstance(d, dict):
        raise ConfigError(f"target entry must be an object, got {d!r}")
    t = TargetConfig(name=str(d.get("name", "")), url=str(d.get("url", "")))
    if not t.name or not t.url:
        raise ConfigError(f"target entry needs both name and url: {d!r}")
    return t


def resolve_log_dir(value: Optional[str]) -> Path:
    if value:
        return Path(value).expanduser()
    return get_default_log_dir()


def _positive(config: dict[str, Any], key: str, kind: type) -> Any:
    raw = config.get(key)
    try:
        value = kind(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {raw!r}")
    return value


@dataclass
class MonitorSettings:
    log_dir: Path
    file_prefix: str
    max_size: int
    log_mode: str
    interval: float
    timeout: float
    latency_threshold_ms: int
    targets: list[TargetConfig]

    @classmethod
    def from_config(cls, config: dict[str, Any], overrides: Optional[dict[str, Any]] = None) -> "MonitorSettings":
        """Merge non-None overrides into config and validate. Raises ConfigError."""
        merged = dict(config)
        for k, v in (overrides or {}).items():
            if v is not None:
                merged[k] = v

        mode = str(merged.get("log_mode", DEFAULT_LOG_MODE)).lower()
        if mode not in LOG_MODES:
            raise ConfigError(f"log_mode must be one of {', '.join(LOG_MODES)}, got {mode!r}")
        prefix = str(merged.get("file_prefix") or "").strip()
        if not prefix:
            raise ConfigError("file_prefix must not be empty")
        raw_targets = merged.get("targets")
        if not isinstance(raw_targets, list) or not raw_targets:
            raise ConfigError("at least one target is required")

        return cls(
            log_dir=resolve_log_dir(merged.get("log_dir")),
            file_prefix=prefix,
            max_size=_positive(merged, "max_size", int),
            log_mode=mode,
            interval=_positive(merged, "interval", float),
            timeout=_positive(merged, "timeout", float),
            latency_threshold_ms=_positive(merged, "latency_threshold_ms", int),
            targets=[dict_to_target(d) for d in raw_targets],
        )

"""Settings loading: TOML file, then environment overrides."""

from __future__ import annotations

import json
import logging
import os
import tomllib
from dataclasses import dataclass, field, replace
from json import JSONDecodeError
from pathlib import Path
from typing import Any

from scanner import DEFAULT_MAX_CHARS

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "isbn_scanner.toml"
DEFAULT_MIME_TYPES_PATH = "mime_types.json"


class ConfigError(RuntimeError):
    """Raised when settings or the file-type map cannot be loaded."""


@dataclass(frozen=True, slots=True)
class Settings:
    max_chars: int = DEFAULT_MAX_CHARS
    workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    tika_host: str = "localhost"
    tika_port: int = 9998
    classify_host: str = "classify.oclc.org"
    classify_port: int = 80
    classify_path: str = "/classify2/Classify"
    classify_interval: float = 1.0


# env var -> (settings field, converter)
_ENV_OVERRIDES: dict[str, tuple[str, type]] = {
    "SCAN_MAX_CHARS": ("max_chars", int),
    "SCAN_WORKERS": ("workers", int),
    "TIKA_HOST": ("tika_host", str),
    "TIKA_PORT": ("tika_port", int),
    "CLASSIFY_HOST": ("classify_host", str),
    "CLASSIFY_PORT": ("classify_port", int),
    "CLASSIFY_PATH": ("classify_path", str),
    "CLASSIFY_INTERVAL": ("classify_interval", float),
}

# toml section -> {key: settings field}
_TOML_KEYS: dict[str, dict[str, str]] = {
    "scan": {"max_chars": "max_chars", "workers": "workers"},
    "tika": {"host": "tika_host", "port": "tika_port"},
    "classify": {
        "host": "classify_host",
        "port": "classify_port",
        "path": "classify_path",
        "interval_seconds": "classify_interval",
    },
}


def load_settings(path: str | Path | None = None, *, required: bool = False) -> Settings:
    """Build Settings from an optional TOML file plus environment overrides.

    Args:
        path: TOML file to read. Falls back to DEFAULT_CONFIG_PATH when None.
        required: Raise ConfigError if the file does not exist (set when the
            user named the file explicitly).
    """
    config_path = Path(path or DEFAULT_CONFIG_PATH)
    values: dict[str, Any] = {}

    if config_path.is_file():
        values.update(_read_toml(config_path))
    elif required:
        raise ConfigError(f"Config file not found: {config_path}")
    else:
        LOGGER.debug("No config file at %s, using defaults", config_path)

    for env_name, (field_name, convert) in _ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is None or raw == "":
            continue
        try:
            values[field_name] = convert(raw)
        except ValueError as exc:
            raise ConfigError(f"Invalid value for {env_name}: {raw!r}") from exc

    settings = replace(Settings(), **values)
    _check(settings)
    return settings


def load_mime_types(path: str | Path | None = None) -> dict[str, str]:
    """Load the extension -> MIME type map (keys normalized to lowercase, no dot)."""
    mime_path = Path(path or DEFAULT_MIME_TYPES_PATH)
    try:
        with mime_path.open(encoding="utf-8") as fh:
            payload = json.load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"File type map not found: {mime_path}") from exc
    except (OSError, JSONDecodeError) as exc:
        raise ConfigError(f"Could not read file type map {mime_path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigError(f"File type map {mime_path} must be a JSON object")

    return {
        str(ext).lower().lstrip("."): str(mime)
        for ext, mime in payload.items()
        if isinstance(mime, str) and mime
    }


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Could not read config file {path}: {exc}") from exc

    values: dict[str, Any] = {}
    for section, keys in _TOML_KEYS.items():
        table = data.get(section) or {}
        if not isinstance(table, dict):
            raise ConfigError(f"[{section}] in {path} must be a table")
        for key, field_name in keys.items():
            if key in table:
                values[field_name] = table[key]
    return values


def _check(settings: Settings) -> None:
    if not isinstance(settings.max_chars, int) or settings.max_chars <= 0:
        raise ConfigError("max_chars must be a positive integer")
    if not isinstance(settings.workers, int) or settings.workers <= 0:
        raise ConfigError("workers must be a positive integer")
    if not isinstance(settings.classify_interval, (int, float)) or settings.classify_interval < 0:
        raise ConfigError("classify interval must be a non-negative number")
    for name in ("tika_port", "classify_port"):
        if not isinstance(getattr(settings, name), int):
            raise ConfigError(f"{name} must be an integer")

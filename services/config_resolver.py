"""Resolve server configuration from an optional TOML document."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from models.schemas import (
    MAX_MICROCONTROLLER_COUNT,
    MAX_SENSORS_PER_MICROCONTROLLER,
    ServerConfig,
)
from settings import DEFAULT_CONFIG_PATH

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_STRING_KEYS = ("address", "database")
_INTEGER_LIMITS = {
    "microcontroller_count": MAX_MICROCONTROLLER_COUNT,
    "sensors_per_microcontroller": MAX_SENSORS_PER_MICROCONTROLLER,
}


class ConfigError(Exception):
    """Base class for configuration resolution failures."""


class ConfigIOError(ConfigError):
    """The configuration file exists but could not be read."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Unable to read config file {str(path)!r}: {reason}")
        self.path = path


class ConfigParseError(ConfigError):
    """The configuration file is not a well-formed TOML document."""

    def __init__(self, path: Path, diagnostic: str) -> None:
        super().__init__(f"Invalid config file {str(path)!r}: {diagnostic}")
        self.path = path
        self.diagnostic = diagnostic


class ConfigRangeError(ConfigError):
    """An integer value does not fit the width of its target field."""

    def __init__(self, key: str, value: int, maximum: int) -> None:
        super().__init__(f"{key}={value} is out of range (0..{maximum}).")
        self.key = key
        self.value = value
        self.maximum = maximum


def resolve(path: Optional[PathLike] = None) -> ServerConfig:
    """Return the server configuration found at ``path``.

    ``None`` resolves ``config.toml`` in the working directory. A missing file
    yields the built-in defaults. Each recognized key is overlaid on the
    defaults independently; keys with the wrong type keep their default.
    """

    explicit = path is not None
    config_path = Path(path) if explicit else Path(DEFAULT_CONFIG_PATH)

    if not config_path.exists():
        if explicit:
            logger.warning(
                "Config file not found; using defaults",
                extra={"config_path": str(config_path)},
            )
        else:
            logger.debug("No config file; using defaults", extra={"config_path": str(config_path)})
        return ServerConfig()

    try:
        contents = config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigIOError(config_path, str(exc)) from exc

    try:
        document = tomllib.loads(contents)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigParseError(config_path, str(exc)) from exc

    config = overlay(document)
    logger.info("Resolved configuration", extra={"config_path": str(config_path)})
    return config


def overlay(document: Mapping[str, Any]) -> ServerConfig:
    """Apply recognized keys from a parsed document onto the defaults."""

    overrides: dict[str, Any] = {}

    for key in _STRING_KEYS:
        if key not in document:
            continue
        value = document[key]
        if isinstance(value, str):
            overrides[key] = value
        else:
            _log_mismatch(key, value, "string")

    for key, maximum in _INTEGER_LIMITS.items():
        if key not in document:
            continue
        value = document[key]
        # TOML booleans arrive as ``bool``, which is an ``int`` subclass.
        if isinstance(value, int) and not isinstance(value, bool):
            if value < 0 or value > maximum:
                raise ConfigRangeError(key, value, maximum)
            overrides[key] = value
        else:
            _log_mismatch(key, value, "integer")

    return ServerConfig(**overrides)


def _log_mismatch(key: str, value: Any, expected: str) -> None:
    logger.debug(
        "Ignoring %s value of type %s; expected %s",
        key,
        type(value).__name__,
        expected,
        extra={"key": key},
    )

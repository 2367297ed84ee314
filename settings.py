from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_CONFIG_PATH_ENV = "WOMSCP_CONFIG_PATH"
_SEED_WORKERS_ENV = "WOMSCP_SEED_WORKERS"
_PROVISION_TIMEOUT_ENV = "WOMSCP_PROVISION_TIMEOUT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_CONFIG_PATH = "config.toml"


@dataclass(frozen=True)
class Settings:
    config_path: str
    seed_workers: int
    provision_timeout: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_worker_count(default: int) -> int:
    value = os.getenv(_SEED_WORKERS_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_timeout(default: float) -> float:
    value = os.getenv(_PROVISION_TIMEOUT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        config_path=_read_str_env(_CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH),
        seed_workers=_read_worker_count(4),
        provision_timeout=_read_timeout(60.0),
        log_level=_read_log_level("INFO"),
    )

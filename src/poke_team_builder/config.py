"""Configuration helpers for the local record cache and bulk sync."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

__all__ = [
    "CacheSettings",
    "DEFAULT_CACHE_DIR",
    "DEFAULT_SYNC_LIMIT",
    "DEFAULT_SYNC_DELAY",
    "load_settings",
]

DEFAULT_CACHE_DIR = Path.home() / ".poke_team_builder" / "pokemon_cache"
DEFAULT_SYNC_LIMIT = 1025
DEFAULT_SYNC_DELAY = 0.01

_ENV_PREFIX = "POKE_TEAM_BUILDER_"


@dataclass(frozen=True)
class CacheSettings:
    """Where the cache lives and how the bulk sync paces itself."""

    cache_dir: Path = DEFAULT_CACHE_DIR
    sync_limit: int = DEFAULT_SYNC_LIMIT
    sync_delay: float = DEFAULT_SYNC_DELAY
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.sync_limit <= 0:
            raise ValueError("sync_limit must be a positive integer.")
        if self.sync_delay < 0:
            raise ValueError("sync_delay cannot be negative.")

    @property
    def teams_file(self) -> Path:
        return self.cache_dir.parent / "teams.json"


def _env_int(env: Mapping[str, str], key: str) -> int | None:
    raw = env.get(_ENV_PREFIX + key)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{_ENV_PREFIX}{key} must be an integer.") from exc


def _env_float(env: Mapping[str, str], key: str) -> float | None:
    raw = env.get(_ENV_PREFIX + key)
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{_ENV_PREFIX}{key} must be a number.") from exc


def load_settings(env: Mapping[str, str] | None = None, **overrides: Any) -> CacheSettings:
    """Build settings from explicit overrides, then environment variables, then defaults."""

    env = os.environ if env is None else env
    overrides = {key: value for key, value in overrides.items() if value is not None}

    cache_dir = overrides.get("cache_dir") or env.get(_ENV_PREFIX + "CACHE_DIR") or DEFAULT_CACHE_DIR
    sync_limit = overrides.get("sync_limit")
    if sync_limit is None:
        sync_limit = _env_int(env, "SYNC_LIMIT")
    sync_delay = overrides.get("sync_delay")
    if sync_delay is None:
        sync_delay = _env_float(env, "SYNC_DELAY")
    log_level = overrides.get("log_level") or env.get(_ENV_PREFIX + "LOG_LEVEL") or "INFO"

    return CacheSettings(
        cache_dir=Path(cache_dir).expanduser(),
        sync_limit=DEFAULT_SYNC_LIMIT if sync_limit is None else int(sync_limit),
        sync_delay=DEFAULT_SYNC_DELAY if sync_delay is None else float(sync_delay),
        log_level=str(log_level).upper(),
    )

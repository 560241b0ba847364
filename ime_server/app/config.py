"""Process configuration for the reference server."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    normalized = str(value).strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    return default


def parse_timeout(value: Optional[str]) -> Optional[float]:
    """Return a positive timeout in seconds, or ``None`` to block."""

    if value is None or not str(value).strip():
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        return None
    return timeout if timeout > 0 else None


@dataclass(frozen=True)
class ReferenceSettings:
    db_path: str = "main.db"
    use_cache: bool = True
    cache_path: str = "reference_cache.json"
    request_timeout: Optional[float] = None
    log_level: Optional[str] = None
    seed_demo: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ReferenceSettings":
        """Build settings from ``IME_*`` environment variables."""

        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            db_path=env.get("IME_DB_PATH") or defaults.db_path,
            use_cache=parse_bool(env.get("IME_USE_CACHE"), defaults.use_cache),
            cache_path=env.get("IME_CACHE_PATH") or defaults.cache_path,
            request_timeout=parse_timeout(env.get("IME_REQUEST_TIMEOUT")),
            log_level=env.get("IME_LOG_LEVEL") or defaults.log_level,
            seed_demo=parse_bool(env.get("IME_SEED_DEMO"), defaults.seed_demo),
        )


__all__ = ["ReferenceSettings", "parse_bool", "parse_timeout"]

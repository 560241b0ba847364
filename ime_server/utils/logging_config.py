"""Process-wide logging setup for the reference server.

Lookups are answered on the request worker thread while callers block on
their own threads, so the line format carries the thread name to tell the
two apart.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

LOG_LEVEL_ENV = "IME_LOG_LEVEL"
PACKAGE_LOGGER = "ime_server"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"

_configured_level: Optional[int] = None


def resolve_level(level: str | int | None, default: int = logging.INFO) -> int:
    """Turn a level name or number into a :mod:`logging` level.

    Unknown names fall back to ``default`` rather than failing start-up.
    """

    if level is None:
        return default
    if isinstance(level, int):
        return level
    text = str(level).strip()
    if not text:
        return default
    if text.isdigit():
        return int(text)
    resolved = logging.getLevelName(text.upper())
    return resolved if isinstance(resolved, int) else default


def configure_logging(
    level: Optional[str | int] = None,
    *,
    force: bool = False,
    environ: Optional[Mapping[str, str]] = None,
) -> int:
    """Install the server's log handler once and return the active level.

    An explicit ``level`` (the ``--log-level`` flag) wins over
    ``IME_LOG_LEVEL``. Only the ``ime_server`` logger tree is set to the
    resolved level; the root handler stays permissive so library warnings
    still surface.
    """

    global _configured_level

    if _configured_level is not None and not force:
        return _configured_level

    env = os.environ if environ is None else environ
    resolved_level = resolve_level(level if level is not None else env.get(LOG_LEVEL_ENV))

    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT, force=force)
    logging.getLogger(PACKAGE_LOGGER).setLevel(resolved_level)
    _configured_level = resolved_level
    return resolved_level


__all__ = ["configure_logging", "resolve_level", "LOG_LEVEL_ENV", "LOG_FORMAT"]

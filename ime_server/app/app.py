"""Application wiring and command line entry point for the reference server."""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from typing import List, Optional, Sequence

from ime_server.app.config import ReferenceSettings
from ime_server.app.data.database import SQLiteCharacterRepository
from ime_server.app.services.lookup_service import LookupService
from ime_server.core.errors import StorageUnavailable
from ime_server.core.store import ReferenceStore
from ime_server.utils.logging_config import configure_logging
from ime_server.utils.observability import get_logger


class ReferenceApp:
    """High-level facade bundling the repository, store and front end."""

    def __init__(
        self,
        settings: Optional[ReferenceSettings] = None,
        *,
        repository: Optional[SQLiteCharacterRepository] = None,
        store: Optional[ReferenceStore] = None,
    ) -> None:
        self.settings = settings or ReferenceSettings.from_env()
        self._logger = get_logger(__name__).bind(component="app_facade")
        self._logger.info(
            "Initialising reference server",
            context={"db_path": self.settings.db_path, "use_cache": self.settings.use_cache},
        )

        self.repository = repository or SQLiteCharacterRepository(self.settings.db_path)
        try:
            row_count = self.repository.ensure_database(seed_demo=self.settings.seed_demo)
        except Exception as exc:
            self._logger.error(
                "Database initialisation failed",
                context={"db_path": self.settings.db_path, "error": str(exc)},
            )
            raise StorageUnavailable(
                f"unable to prepare database {self.settings.db_path}: {exc}"
            ) from exc
        self._logger.info("Database ready", context={"row_count": row_count})

        self.store = store or ReferenceStore(
            self.settings.db_path,
            use_cache=self.settings.use_cache,
            cache_path=self.settings.cache_path,
            request_timeout=self.settings.request_timeout,
        )
        self.lookup_service = LookupService(self.store)

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "ReferenceApp":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ime-server",
        description="Chinese character reference lookups.",
    )
    parser.add_argument("--db", dest="db_path", help="Path to the character database")
    parser.add_argument(
        "--cache",
        dest="use_cache",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Load and save the response cache snapshot",
    )
    parser.add_argument("--cache-path", dest="cache_path", help="Cache snapshot file")
    parser.add_argument(
        "--timeout",
        dest="request_timeout",
        type=float,
        help="Seconds a lookup may wait for its reply",
    )
    parser.add_argument("--log-level", dest="log_level", help="Logging level")
    parser.add_argument(
        "--seed-demo",
        dest="seed_demo",
        action="store_true",
        default=None,
        help="Fill an empty database with the bundled demo dictionary",
    )
    return parser


def settings_from_args(
    args: argparse.Namespace,
    base: Optional[ReferenceSettings] = None,
) -> ReferenceSettings:
    """Overlay command line flags on environment derived settings."""

    settings = base or ReferenceSettings.from_env()
    overrides = {
        key: value
        for key, value in vars(args).items()
        if value is not None and hasattr(settings, key)
    }
    return replace(settings, **overrides)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    settings = settings_from_args(args)
    configure_logging(settings.log_level)
    logger = get_logger(__name__).bind(component="main")

    try:
        app = ReferenceApp(settings)
    except StorageUnavailable as exc:
        logger.error("Reference server could not start", context={"error": str(exc)})
        return 1

    with app:
        counts: List[int] = []
        _, count = app.store.get_by_char("我")
        counts.append(count)
        _, count = app.store.get_by_pinyin("wo3")
        counts.append(count)
        _, count = app.store.get_by_pinyin("wo3")
        counts.append(count)
        logger.info("Demo lookups complete", context={"counts": counts})

    print(f"num{counts[-1]}")
    return 0


__all__ = ["ReferenceApp", "build_parser", "settings_from_args", "main"]


if __name__ == "__main__":
    sys.exit(main())

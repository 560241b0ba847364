"""Public facade for character lookups."""

from __future__ import annotations

import concurrent.futures
import threading
from pathlib import Path
from typing import Optional, Tuple

from .cache import ResponseCache
from .errors import CacheLoadFailed, CacheSaveFailed, LookupTimeout
from .phonetics import normalize
from .query import LookupBackend, SQLiteQueryExecutor
from .records import LookupFilter, ResultSet
from .router import RequestRouter, RouterState
from .snapshot import read_snapshot, write_snapshot
from ..utils.observability import create_counter, get_logger

DEFAULT_CACHE_PATH = "reference_cache.json"

LookupResult = Tuple[ResultSet, int]


class ReferenceStore:
    """Character dictionary lookups served by one storage-owning worker.

    The four ``get_by_*`` entry points block until the worker replies. When
    ``use_cache`` is set the response cache is loaded from ``cache_path`` on
    start-up and written back by :meth:`close`.
    """

    def __init__(
        self,
        db_path: Path | str = "main.db",
        *,
        use_cache: bool = True,
        cache_path: Optional[Path | str] = None,
        request_timeout: Optional[float] = None,
        backend: Optional[LookupBackend] = None,
    ) -> None:
        self.db_path = str(db_path)
        self.use_cache = bool(use_cache)
        self.cache_path = Path(cache_path) if cache_path is not None else Path(DEFAULT_CACHE_PATH)
        self.request_timeout = request_timeout
        self._logger = get_logger(__name__).bind(component="reference_store")
        self._metric_lookups = create_counter(
            "ime_reference_lookups_total",
            "Lookups received by the reference store.",
            label_names=("kind",),
        )
        self._close_lock = threading.Lock()
        self._closed = False

        # StorageUnavailable propagates: a store without storage is useless.
        self._backend: LookupBackend = backend or SQLiteQueryExecutor.open(self.db_path)

        try:
            cache = ResponseCache()
            if self.use_cache:
                self._load_cache(cache)
            self._router = RequestRouter(self._backend, cache)
        except Exception as exc:
            self._logger.error(
                "Reference store failed to start",
                context={"db_path": self.db_path, "error": str(exc)},
            )
            self._backend.close()
            raise

        self._logger.info(
            "Reference store ready",
            context={
                "db_path": self.db_path,
                "use_cache": self.use_cache,
                "cache_entries": len(cache),
            },
        )

    # Lookups ---------------------------------------------------------------
    def get_by_char(self, character: str) -> LookupResult:
        """Candidates whose character contains ``character``."""

        return self._lookup("char", LookupFilter(character=character))

    def get_by_zhuyin(self, zhuyin: str) -> LookupResult:
        stem, tone = normalize(zhuyin)
        return self._lookup("zhuyin", LookupFilter(zhuyin=stem, tone=tone))

    def get_by_pinyin(self, pinyin: str) -> LookupResult:
        stem, tone = normalize(pinyin)
        return self._lookup("pinyin", LookupFilter(pinyin=stem, tone=tone))

    def get_by_definition(self, definition: str) -> LookupResult:
        return self._lookup("definition", LookupFilter(definition=definition))

    def lookup(self, lookup_filter: LookupFilter) -> LookupResult:
        """Run an arbitrary filter through the worker."""

        return self._lookup("filter", lookup_filter)

    def _lookup(self, kind: str, lookup_filter: LookupFilter) -> LookupResult:
        self._metric_lookups.labels(kind=kind).inc()
        reply = self._router.submit(lookup_filter)
        try:
            result = reply.result(timeout=self.request_timeout)
        except concurrent.futures.TimeoutError as exc:
            reply.cancel()
            self._logger.warning(
                "Lookup timed out",
                context={"kind": kind, "timeout": self.request_timeout},
            )
            raise LookupTimeout(
                f"no reply within {self.request_timeout} seconds"
            ) from exc
        return result, result.count

    # Cache state -----------------------------------------------------------
    @property
    def cache(self) -> ResponseCache:
        return self._router.cache

    @property
    def router(self) -> RequestRouter:
        return self._router

    @property
    def closed(self) -> bool:
        return self._closed

    def _load_cache(self, cache: ResponseCache) -> None:
        try:
            entries = read_snapshot(self.cache_path)
        except CacheLoadFailed as exc:
            self._logger.warning(
                "Cache snapshot not loaded; continuing with an empty cache",
                context={"cache_path": str(self.cache_path), "error": str(exc)},
            )
            return
        cache.update(entries)
        self._logger.info(
            "Cache snapshot loaded",
            context={"cache_path": str(self.cache_path), "entries": len(entries)},
        )

    def save_cache(self) -> int:
        """Persist the cache; raises :class:`CacheSaveFailed` on error.

        Only safe once the worker has stopped, or from the worker itself.
        """

        written = write_snapshot(self.cache_path, self.cache.snapshot())
        self._logger.info(
            "Cache snapshot saved",
            context={"cache_path": str(self.cache_path), "entries": written},
        )
        return written

    # Lifecycle -------------------------------------------------------------
    def close(self) -> None:
        """Drain pending lookups, save the cache and release the database."""

        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        self._router.close()
        if self._router.state is not RouterState.CLOSED:
            self._logger.error("Request worker did not stop")

        if self.use_cache:
            try:
                self.save_cache()
            except CacheSaveFailed as exc:
                self._logger.error(
                    "Cache snapshot not saved",
                    context={"cache_path": str(self.cache_path), "error": str(exc)},
                )

        self._backend.close()
        self._logger.info("Reference store closed", context={"db_path": self.db_path})

    def __enter__(self) -> "ReferenceStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


__all__ = ["ReferenceStore", "DEFAULT_CACHE_PATH", "LookupResult"]

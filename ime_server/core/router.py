"""Serialised request worker owning the storage backend and the cache."""

from __future__ import annotations

import enum
import queue
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Optional

from .cache import ResponseCache
from .errors import QueryFailed, StoreClosed
from .query import LookupBackend
from .records import EMPTY_RESULT, LookupFilter, ResultSet
from ..utils.observability import create_counter, get_logger


class RouterState(enum.Enum):
    RUNNING = "running"
    DRAINING = "draining"
    CLOSED = "closed"


@dataclass
class LookupRequest:
    """A filter paired with the future its caller is waiting on."""

    lookup_filter: LookupFilter
    reply: "Future[ResultSet]" = field(default_factory=Future)
    sequence: int = 0


_STOP = object()


class RequestRouter:
    """Single worker thread that services lookups in arrival order.

    Callers only ever talk to the worker through :meth:`submit`; the backend
    connection and the cache are touched exclusively from the worker thread,
    so at most one query runs at any time.
    """

    def __init__(
        self,
        backend: LookupBackend,
        cache: Optional[ResponseCache] = None,
        *,
        name: str = "ime-reference-worker",
    ) -> None:
        self._backend = backend
        self._cache = cache if cache is not None else ResponseCache()
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._state = RouterState.RUNNING
        self._state_lock = threading.Lock()
        self._submitted = 0
        self._serviced = 0
        self._logger = get_logger(__name__).bind(component="request_router")
        self._metric_requests = create_counter(
            "ime_reference_router_requests_total",
            "Lookup requests handled by the request worker.",
            label_names=("outcome",),
        )
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()
        self._logger.info("Request worker started", context={"thread": name})

    @property
    def state(self) -> RouterState:
        return self._state

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def serviced(self) -> int:
        """Monotonic count of requests the worker has finished."""

        return self._serviced

    def submit(self, lookup_filter: LookupFilter) -> "Future[ResultSet]":
        """Queue ``lookup_filter`` and return the future holding its reply."""

        with self._state_lock:
            if self._state is not RouterState.RUNNING:
                raise StoreClosed("reference store is shut down")
            self._submitted += 1
            request = LookupRequest(lookup_filter, sequence=self._submitted)
            self._queue.put(request)
        return request.reply

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop accepting work, finish every queued request, then stop."""

        with self._state_lock:
            if self._state is RouterState.RUNNING:
                self._state = RouterState.DRAINING
                self._queue.put(_STOP)
                self._logger.info(
                    "Request worker draining",
                    context={"pending": self._queue.qsize() - 1},
                )
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            self._service(item)
        self._state = RouterState.CLOSED
        self._logger.info("Request worker stopped", context={"serviced": self._serviced})

    def _service(self, request: LookupRequest) -> None:
        if not request.reply.set_running_or_notify_cancel():
            self._metric_requests.labels(outcome="cancelled").inc()
            self._logger.debug(
                "Skipping cancelled request",
                context={"sequence": request.sequence},
            )
            return
        # The counter moves before the reply so a woken caller observes it.
        try:
            result = self.handle(request.lookup_filter)
        except Exception as exc:
            self._serviced += 1
            self._metric_requests.labels(outcome="error").inc()
            self._logger.error(
                "Lookup request failed",
                context={"sequence": request.sequence, "error": repr(exc)},
            )
            request.reply.set_exception(exc)
        else:
            self._serviced += 1
            self._metric_requests.labels(outcome="ok").inc()
            request.reply.set_result(result)

    def handle(self, lookup_filter: LookupFilter) -> ResultSet:
        """Answer one filter from the cache or the backend.

        Only called from the worker thread.
        """

        cached = self._cache.lookup(lookup_filter)
        if cached is not None:
            return cached

        try:
            result = self._backend.execute(lookup_filter)
        except QueryFailed as exc:
            self._logger.warning(
                "Answering failed query with an empty result",
                context={"filter": lookup_filter.describe(), "error": str(exc)},
            )
            return EMPTY_RESULT

        if result:
            self._cache.remember(lookup_filter, result)
        return result


__all__ = ["RequestRouter", "RouterState", "LookupRequest"]

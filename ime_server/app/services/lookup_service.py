"""Translate front end requests into reference store lookups.

Two request shapes are understood. The GET form ``/get/<verb>/<term>`` where
``verb`` is one of ``zhuyin``, ``pinyin``, ``def`` or ``char``, and the JSON
request object ``{"SessionID", "QueryType", "Query", "Timestamp"}`` used by
socket clients. Both produce the response envelope
``{"SessionID", "ResponseType", "Data", "Timestamp"}``.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
from urllib.parse import unquote

from ime_server.core.errors import LookupTimeout, StoreClosed
from ime_server.core.records import ResultSet
from ime_server.core.store import ReferenceStore
from ime_server.utils.observability import get_logger

ZHUYIN_QUERY = 0
PINYIN_QUERY = 1
DEFINITION_QUERY = 2
CHARACTER_QUERY = 3

VERB_QUERY_TYPES: Dict[str, int] = {
    "zhuyin": ZHUYIN_QUERY,
    "pinyin": PINYIN_QUERY,
    "def": DEFINITION_QUERY,
    "char": CHARACTER_QUERY,
}

DEFAULT_SESSION_ID = "102"

ERROR_BAD_REQUEST = {"code": 500}
ERROR_UNAVAILABLE = {"code": 503}

Payload = Dict[str, Any]


class LookupService:
    """Front end adapter between request envelopes and a :class:`ReferenceStore`."""

    def __init__(
        self,
        store: ReferenceStore,
        *,
        time_fn: Optional[Callable[[], float]] = None,
    ) -> None:
        self.store = store
        self._time_fn = time_fn or time.time
        self._logger = get_logger(__name__).bind(component="lookup_service")
        self._dispatch: Dict[int, Callable[[str], Tuple[ResultSet, int]]] = {
            ZHUYIN_QUERY: store.get_by_zhuyin,
            PINYIN_QUERY: store.get_by_pinyin,
            DEFINITION_QUERY: store.get_by_definition,
            CHARACTER_QUERY: store.get_by_char,
        }

    def query(self, query_type: int, term: str) -> ResultSet:
        """Run one lookup; raises ``KeyError`` for an unknown query type."""

        handler = self._dispatch[query_type]
        result, _ = handler(term)
        return result

    def envelope(self, session_id: str, response_type: int, result: ResultSet) -> Payload:
        return {
            "SessionID": session_id,
            "ResponseType": response_type,
            "Data": result.to_wire(),
            "Timestamp": int(self._time_fn()),
        }

    def _answer(self, session_id: str, query_type: int, term: str) -> Payload:
        try:
            result = self.query(query_type, term)
        except (StoreClosed, LookupTimeout) as exc:
            self._logger.warning(
                "Lookup unavailable",
                context={"query_type": query_type, "error": str(exc)},
            )
            return dict(ERROR_UNAVAILABLE)
        self._logger.debug(
            "Lookup answered",
            context={"query_type": query_type, "term": term, "count": result.count},
        )
        return self.envelope(session_id, query_type, result)

    def handle_path(self, path: str, *, session_id: str = DEFAULT_SESSION_ID) -> Payload:
        """Answer a GET path such as ``/get/pinyin/wo3``."""

        parts = path.lstrip("/").split("/")
        if len(parts) < 3:
            return dict(ERROR_BAD_REQUEST)
        query_type = VERB_QUERY_TYPES.get(parts[1])
        if query_type is None:
            self._logger.info("Unknown lookup verb", context={"verb": parts[1]})
            return dict(ERROR_BAD_REQUEST)
        return self._answer(session_id, query_type, unquote(parts[2]))

    def handle_request(self, request: Mapping[str, Any]) -> Payload:
        """Answer a decoded JSON request object."""

        try:
            query_type = int(request.get("QueryType"))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return dict(ERROR_BAD_REQUEST)
        query = request.get("Query")
        if query_type not in self._dispatch or not isinstance(query, str):
            return dict(ERROR_BAD_REQUEST)
        session_id = str(request.get("SessionID") or "")
        return self._answer(session_id, query_type, query)

    def handle_message(self, message: str) -> str:
        """Decode a JSON request string and encode the response."""

        try:
            request = json.loads(message)
        except json.JSONDecodeError:
            return json.dumps(ERROR_BAD_REQUEST)
        if not isinstance(request, dict):
            return json.dumps(ERROR_BAD_REQUEST)
        return json.dumps(self.handle_request(request), ensure_ascii=False)


__all__ = [
    "LookupService",
    "ZHUYIN_QUERY",
    "PINYIN_QUERY",
    "DEFINITION_QUERY",
    "CHARACTER_QUERY",
    "VERB_QUERY_TYPES",
]

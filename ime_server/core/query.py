"""SQLite query execution for character lookups."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, List, Optional, Protocol, Sequence, Tuple

from .errors import DecodeFailed, QueryFailed, StorageUnavailable
from .records import MAX_RESULTS, CharacterRecord, LookupFilter, ResultSet
from ..utils.observability import (
    add_span_attributes,
    create_counter,
    create_histogram,
    get_logger,
    record_exception,
    start_span,
)

_TEXT_COLUMNS = ("character", "zhuyin", "pinyin", "definition")
_SELECT_COLUMNS = "id, character, zhuyin, pinyin, tone, definition, freq"
_LIKE_ESCAPE = "\\"


class LookupBackend(Protocol):
    """What the request worker needs from a storage backend."""

    def execute(self, lookup_filter: LookupFilter) -> ResultSet:
        ...

    def close(self) -> None:
        ...


def escape_like(value: str) -> str:
    """Escape LIKE metacharacters so user input only matches literally."""

    return (
        value.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )


def build_query(
    lookup_filter: LookupFilter,
    *,
    limit: int = MAX_RESULTS,
) -> Tuple[str, List[Any]]:
    """Translate ``lookup_filter`` into SQL and its parameters.

    Every set text field becomes a substring match, tone an exact match, and
    all predicates are ANDed. Unset fields add no predicate at all.
    """

    conditions: List[str] = []
    params: List[Any] = []

    for column in _TEXT_COLUMNS:
        value = getattr(lookup_filter, column)
        if value is None:
            continue
        conditions.append(f"{column} LIKE ? ESCAPE '{_LIKE_ESCAPE}'")
        params.append(f"%{escape_like(value)}%")

    if lookup_filter.tone is not None:
        conditions.append("tone = ?")
        params.append(int(lookup_filter.tone))

    query = f"SELECT {_SELECT_COLUMNS} FROM characters"
    if conditions:
        query += " WHERE " + " AND ".join(conditions)
    query += " ORDER BY freq DESC, id ASC LIMIT ?"
    params.append(max(0, min(int(limit), MAX_RESULTS)))
    return query, params


def _text(value: Any, column: str, *, required: bool = False) -> str:
    if value is None:
        if required:
            raise DecodeFailed(f"{column} is NULL")
        return ""
    if isinstance(value, bytes):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeFailed(f"{column} is not valid UTF-8") from exc
    if not isinstance(value, str):
        raise DecodeFailed(f"{column} has unexpected type {type(value).__name__}")
    if required and not value:
        raise DecodeFailed(f"{column} is empty")
    return value


def _integer(value: Any, column: str) -> int:
    if isinstance(value, bool) or value is None:
        raise DecodeFailed(f"{column} is not an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise DecodeFailed(f"{column} is not an integer: {value!r}") from exc


def decode_row(row: Sequence[Any]) -> CharacterRecord:
    """Materialise one ``characters`` row, raising :class:`DecodeFailed`."""

    if len(row) != 7:
        raise DecodeFailed(f"expected 7 columns, got {len(row)}")
    row_id, character, zhuyin, pinyin, tone, definition, freq = row

    tone_value: Optional[int] = None
    if tone is not None:
        tone_value = _integer(tone, "tone")
        if not 0 <= tone_value <= 6:
            raise DecodeFailed(f"tone out of range: {tone_value}")

    return CharacterRecord(
        id=_integer(row_id, "id"),
        character=_text(character, "character", required=True),
        zhuyin=_text(zhuyin, "zhuyin"),
        pinyin=_text(pinyin, "pinyin"),
        tone=tone_value,
        definition=_text(definition, "definition"),
        freq=0 if freq is None else _integer(freq, "freq"),
    )


def _read_write_uri(path: str) -> str:
    if path == ":memory:":
        return "file::memory:"
    return f"{Path(path).absolute().as_uri()}?mode=rw"


class SQLiteQueryExecutor:
    """Runs lookup queries over a single SQLite connection.

    The connection is created with ``check_same_thread=False`` because it is
    opened by the constructing thread and then used exclusively by the
    request worker.
    """

    def __init__(self, connection: sqlite3.Connection, *, db_path: str = ":memory:") -> None:
        self._connection = connection
        self.db_path = db_path
        self._logger = get_logger(__name__).bind(component="query_executor", db_path=db_path)
        self._metric_queries = create_counter(
            "ime_reference_queries_total",
            "Lookup queries sent to the character database.",
        )
        self._metric_failures = create_counter(
            "ime_reference_query_failures_total",
            "Lookup queries the character database failed to execute.",
        )
        self._metric_decode_failures = create_counter(
            "ime_reference_decode_failures_total",
            "Result rows skipped because they could not be decoded.",
        )
        self._metric_latency = create_histogram(
            "ime_reference_query_seconds",
            "Latency of character database lookup queries.",
        )

    @classmethod
    def open(cls, db_path: Path | str) -> "SQLiteQueryExecutor":
        """Open ``db_path``, raising :class:`StorageUnavailable` on failure."""

        path = str(db_path)
        connection: Optional[sqlite3.Connection] = None
        try:
            # Read-write without create: a missing file is not an empty dictionary.
            connection = sqlite3.connect(_read_write_uri(path), uri=True, check_same_thread=False)
            # Forces SQLite to read the header so non-database files fail here.
            connection.execute("PRAGMA schema_version").fetchone()
        except sqlite3.Error as exc:
            if connection is not None:
                connection.close()
            raise StorageUnavailable(f"unable to open database {path}: {exc}") from exc
        return cls(connection, db_path=path)

    def execute(self, lookup_filter: LookupFilter) -> ResultSet:
        """Run ``lookup_filter`` and return at most 50 records by frequency."""

        query, params = build_query(lookup_filter)
        self._metric_queries.inc()

        with start_span("ime.reference.query", {"filter": str(lookup_filter.describe())}) as span:
            try:
                with self._metric_latency.time():
                    cursor = self._connection.execute(query, params)
                    try:
                        rows = cursor.fetchall()
                    finally:
                        cursor.close()
            except sqlite3.Error as exc:
                self._metric_failures.inc()
                record_exception(span, exc)
                self._logger.error(
                    "Lookup query failed",
                    context={"filter": lookup_filter.describe(), "error": str(exc)},
                )
                raise QueryFailed(str(exc)) from exc

            records: List[CharacterRecord] = []
            for row in rows:
                try:
                    records.append(decode_row(row))
                except DecodeFailed as exc:
                    self._metric_decode_failures.inc()
                    self._logger.warning(
                        "Skipping undecodable row",
                        context={"row_id": row[0] if row else None, "error": str(exc)},
                    )

            add_span_attributes(span, {"result.count": len(records)})

        self._logger.debug(
            "Lookup query completed",
            context={"filter": lookup_filter.describe(), "count": len(records)},
        )
        return ResultSet.of(records)

    def close(self) -> None:
        try:
            self._connection.close()
        except sqlite3.Error as exc:
            self._logger.warning("Closing database failed", context={"error": str(exc)})


__all__ = [
    "LookupBackend",
    "SQLiteQueryExecutor",
    "build_query",
    "decode_row",
    "escape_like",
]

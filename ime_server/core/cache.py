"""Response cache keyed by normalised phonetic identity."""

from __future__ import annotations

from typing import Dict, ItemsView, KeysView, List, Mapping, Optional

from .records import LookupFilter, ResultSet
from ..utils.observability import create_counter, get_logger

_PHONETIC_FIELDS = ("zhuyin", "pinyin")


def phonetic_key(stem: Optional[str], tone: Optional[int]) -> Optional[str]:
    """Return ``stem`` followed by the tone digit, or ``None`` for a blank stem."""

    cleaned = (stem or "").strip()
    if not cleaned:
        return None
    return cleaned if tone is None else f"{cleaned}{tone}"


def filter_keys(lookup_filter: LookupFilter) -> List[str]:
    """Keys a filter may be answered from, zhuyin first then pinyin."""

    if not lookup_filter.is_phonetic:
        return []
    keys: List[str] = []
    for name in _PHONETIC_FIELDS:
        key = phonetic_key(getattr(lookup_filter, name), lookup_filter.tone)
        if key is not None and key not in keys:
            keys.append(key)
    return keys


def result_keys(lookup_filter: LookupFilter, result: ResultSet) -> List[str]:
    """Keys under which ``result`` should be remembered.

    Keys come from the first record of the result, one per non-empty
    transcription. The tone digit is only part of the key when the lookup
    constrained the tone.
    """

    first = result.first
    if first is None or not lookup_filter.is_phonetic:
        return []

    tone = first.tone if lookup_filter.tone is not None else None
    keys: List[str] = []
    for name in _PHONETIC_FIELDS:
        key = phonetic_key(getattr(first, name), tone)
        if key is not None and key not in keys:
            keys.append(key)
    return keys


class ResponseCache:
    """Unbounded mapping of phonetic keys to previously computed results.

    Only the request worker reads and writes the cache while the store is
    running, so no locking is done here. Entries are write-once and are never
    evicted.
    """

    def __init__(self, entries: Optional[Mapping[str, ResultSet]] = None) -> None:
        self._entries: Dict[str, ResultSet] = {}
        self._logger = get_logger(__name__).bind(component="response_cache")
        self._metric_hits = create_counter(
            "ime_reference_cache_hits_total",
            "Lookups answered from the response cache.",
        )
        self._metric_misses = create_counter(
            "ime_reference_cache_misses_total",
            "Phonetic lookups that were not found in the response cache.",
        )
        if entries:
            self.update(entries)

    def get(self, key: Optional[str]) -> Optional[ResultSet]:
        if not key:
            return None
        return self._entries.get(key)

    def put(self, key: Optional[str], result: ResultSet) -> bool:
        """Store ``result`` under ``key`` unless the key is blank or taken."""

        if not key or not result or key in self._entries:
            return False
        self._entries[key] = result
        return True

    def update(self, entries: Mapping[str, ResultSet]) -> None:
        for key, result in entries.items():
            self.put(key, result)

    def lookup(self, lookup_filter: LookupFilter) -> Optional[ResultSet]:
        """Return a cached answer for ``lookup_filter`` if one exists."""

        keys = filter_keys(lookup_filter)
        if not keys:
            return None
        for key in keys:
            cached = self._entries.get(key)
            if cached is not None:
                self._metric_hits.inc()
                self._logger.debug(
                    "Cache lookup hit",
                    context={"key": key, "count": cached.count},
                )
                return cached
        self._metric_misses.inc()
        self._logger.debug("Cache lookup miss", context={"keys": keys})
        return None

    def remember(self, lookup_filter: LookupFilter, result: ResultSet) -> List[str]:
        """Index a fresh backend result; returns the keys actually written."""

        if not result:
            return []
        written = [key for key in result_keys(lookup_filter, result) if self.put(key, result)]
        if written:
            self._logger.debug(
                "Cache entries stored",
                context={"keys": written, "count": result.count},
            )
        return written

    def snapshot(self) -> Dict[str, ResultSet]:
        return dict(self._entries)

    def keys(self) -> KeysView[str]:
        return self._entries.keys()

    def items(self) -> ItemsView[str, ResultSet]:
        return self._entries.items()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["ResponseCache", "phonetic_key", "filter_keys", "result_keys"]

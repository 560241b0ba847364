"""Reference store core: normalisation, caching, querying and the worker."""

from .cache import ResponseCache, filter_keys, phonetic_key, result_keys
from .errors import (
    CacheLoadFailed,
    CacheSaveFailed,
    DecodeFailed,
    LookupTimeout,
    QueryFailed,
    ReferenceStoreError,
    StorageUnavailable,
    StoreClosed,
)
from .phonetics import PhoneticTerm, normalize
from .query import LookupBackend, SQLiteQueryExecutor, build_query, decode_row
from .records import MAX_RESULTS, CharacterRecord, LookupFilter, ResultSet
from .router import RequestRouter, RouterState
from .snapshot import read_snapshot, write_snapshot
from .store import ReferenceStore

__all__ = [
    "MAX_RESULTS",
    "CharacterRecord",
    "LookupFilter",
    "ResultSet",
    "PhoneticTerm",
    "normalize",
    "ResponseCache",
    "phonetic_key",
    "filter_keys",
    "result_keys",
    "LookupBackend",
    "SQLiteQueryExecutor",
    "build_query",
    "decode_row",
    "RequestRouter",
    "RouterState",
    "ReferenceStore",
    "read_snapshot",
    "write_snapshot",
    "ReferenceStoreError",
    "StorageUnavailable",
    "QueryFailed",
    "DecodeFailed",
    "CacheLoadFailed",
    "CacheSaveFailed",
    "StoreClosed",
    "LookupTimeout",
]

"""Exception hierarchy for the reference store."""

from __future__ import annotations


class ReferenceStoreError(Exception):
    """Base class for every error raised by the reference store."""


class StorageUnavailable(ReferenceStoreError):
    """The character database could not be opened."""


class QueryFailed(ReferenceStoreError):
    """The backend rejected or failed to execute a lookup query."""


class DecodeFailed(ReferenceStoreError):
    """A database row could not be turned into a :class:`CharacterRecord`."""


class CacheLoadFailed(ReferenceStoreError):
    """The cache snapshot was missing, unreadable or malformed."""


class CacheSaveFailed(ReferenceStoreError):
    """The cache snapshot could not be written."""


class StoreClosed(ReferenceStoreError):
    """A lookup was submitted after the store started shutting down."""


class LookupTimeout(ReferenceStoreError):
    """A caller gave up waiting for its reply."""


__all__ = [
    "ReferenceStoreError",
    "StorageUnavailable",
    "QueryFailed",
    "DecodeFailed",
    "CacheLoadFailed",
    "CacheSaveFailed",
    "StoreClosed",
    "LookupTimeout",
]

"""On-disk snapshot of the response cache.

The snapshot is a small JSON document::

    {"format": "ime-reference-cache", "version": 1,
     "entries": {"wo3": [{"id": 1, "character": "我", ...}, ...]}}

Only the key to result mapping is persisted. Records shared by several keys
are written once per key and compare equal again after loading.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Mapping

from .errors import CacheLoadFailed, CacheSaveFailed
from .records import CharacterRecord, ResultSet

SNAPSHOT_FORMAT = "ime-reference-cache"
SNAPSHOT_VERSION = 1


def encode_snapshot(entries: Mapping[str, ResultSet]) -> Dict[str, Any]:
    return {
        "format": SNAPSHOT_FORMAT,
        "version": SNAPSHOT_VERSION,
        "entries": {
            key: [record.to_dict() for record in result]
            for key, result in sorted(entries.items())
        },
    }


def decode_snapshot(payload: Any) -> Dict[str, ResultSet]:
    """Validate a parsed snapshot document and rebuild its result sets."""

    if not isinstance(payload, dict) or payload.get("format") != SNAPSHOT_FORMAT:
        raise CacheLoadFailed("not a reference cache snapshot")
    version = payload.get("version")
    if version != SNAPSHOT_VERSION:
        raise CacheLoadFailed(f"unsupported snapshot version {version!r}")
    raw_entries = payload.get("entries")
    if not isinstance(raw_entries, dict):
        raise CacheLoadFailed("snapshot entries must be an object")

    entries: Dict[str, ResultSet] = {}
    for key, raw_records in raw_entries.items():
        if not key or not isinstance(raw_records, list) or not raw_records:
            raise CacheLoadFailed(f"malformed snapshot entry {key!r}")
        try:
            records = [CharacterRecord.from_dict(item) for item in raw_records]
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise CacheLoadFailed(f"malformed record under {key!r}: {exc}") from exc
        entries[key] = ResultSet.of(records)
    return entries


def read_snapshot(path: Path | str) -> Dict[str, ResultSet]:
    """Load a snapshot file, raising :class:`CacheLoadFailed` on any problem."""

    snapshot_path = Path(path)
    try:
        with snapshot_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except FileNotFoundError as exc:
        raise CacheLoadFailed(f"snapshot not found: {snapshot_path}") from exc
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CacheLoadFailed(f"snapshot unreadable: {exc}") from exc
    return decode_snapshot(payload)


def write_snapshot(path: Path | str, entries: Mapping[str, ResultSet]) -> int:
    """Atomically write ``entries``; returns the number of keys written."""

    snapshot_path = Path(path)
    document = encode_snapshot(entries)
    try:
        snapshot_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{snapshot_path.name}.", dir=str(snapshot_path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, ensure_ascii=False)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, snapshot_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise
    except OSError as exc:
        raise CacheSaveFailed(f"cannot write snapshot {snapshot_path}: {exc}") from exc
    return len(document["entries"])


__all__ = [
    "SNAPSHOT_FORMAT",
    "SNAPSHOT_VERSION",
    "encode_snapshot",
    "decode_snapshot",
    "read_snapshot",
    "write_snapshot",
]

"""Value types exchanged between callers, the worker and the cache."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterator, Optional, Sequence, Tuple

MAX_RESULTS = 50

# Field names used on the wire by the JSON front end.
_WIRE_FIELDS = (
    ("id", "Id"),
    ("character", "Character"),
    ("zhuyin", "Zhuyin"),
    ("pinyin", "Pinyin"),
    ("tone", "Tone"),
    ("definition", "Definition"),
    ("freq", "Freq"),
)


@dataclass(frozen=True)
class CharacterRecord:
    """One row of the ``characters`` table."""

    id: int
    character: str
    zhuyin: str = ""
    pinyin: str = ""
    tone: Optional[int] = None
    definition: str = ""
    freq: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "CharacterRecord":
        return cls(
            id=int(payload["id"]),
            character=str(payload["character"]),
            zhuyin=str(payload.get("zhuyin") or ""),
            pinyin=str(payload.get("pinyin") or ""),
            tone=None if payload.get("tone") is None else int(payload["tone"]),
            definition=str(payload.get("definition") or ""),
            freq=int(payload.get("freq") or 0),
        )

    def to_wire(self) -> Dict[str, Any]:
        """Return the record keyed by the front end's field names."""

        return {wire: getattr(self, attr) for attr, wire in _WIRE_FIELDS}


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


@dataclass(frozen=True)
class LookupFilter:
    """Partial character description; ``None`` means "match anything".

    Text dimensions are matched as substrings and combined with AND. Blank
    strings are folded to ``None`` so they can never act as a cache key.
    """

    character: Optional[str] = None
    zhuyin: Optional[str] = None
    pinyin: Optional[str] = None
    tone: Optional[int] = None
    definition: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("character", "zhuyin", "pinyin", "definition"):
            object.__setattr__(self, name, _clean_text(getattr(self, name)))
        if self.tone is not None:
            object.__setattr__(self, "tone", int(self.tone))

    @property
    def is_phonetic(self) -> bool:
        """True when only phonetic dimensions (and tone) are constrained."""

        return (
            self.character is None
            and self.definition is None
            and (self.zhuyin is not None or self.pinyin is not None)
        )

    def describe(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class ResultSet:
    """Ordered, capped and immutable outcome of one lookup."""

    records: Tuple[CharacterRecord, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", tuple(self.records)[:MAX_RESULTS])

    @classmethod
    def of(cls, records: Sequence[CharacterRecord]) -> "ResultSet":
        return cls(tuple(records))

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def first(self) -> Optional[CharacterRecord]:
        return self.records[0] if self.records else None

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[CharacterRecord]:
        return iter(self.records)

    def __bool__(self) -> bool:
        return bool(self.records)

    def to_wire(self) -> list:
        return [record.to_wire() for record in self.records]


EMPTY_RESULT = ResultSet()


__all__ = [
    "MAX_RESULTS",
    "CharacterRecord",
    "LookupFilter",
    "ResultSet",
    "EMPTY_RESULT",
]

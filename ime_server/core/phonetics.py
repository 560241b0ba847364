"""Normalisation of phonetic query terms into a stem and an optional tone."""

from __future__ import annotations

import re
from typing import NamedTuple, Optional

# 1-12 non-digit characters followed by exactly one tone digit 0-6.
_TONED_TERM_PATTERN = re.compile(r"(\D{1,12})([0-6])")


class PhoneticTerm(NamedTuple):
    stem: str
    tone: Optional[int]


def normalize(term: Optional[str]) -> PhoneticTerm:
    """Split ``term`` into ``(stem, tone)``.

    ``"wo3"`` becomes ``("wo", 3)``. Terms without a single trailing digit in
    ``0..6`` (``"wo"``, ``"wo7"``, ``"wo33"``, a 13 character stem) are
    returned trimmed with tone ``None``.
    """

    cleaned = (term or "").strip()
    match = _TONED_TERM_PATTERN.fullmatch(cleaned)
    if match is None:
        return PhoneticTerm(cleaned, None)
    return PhoneticTerm(match.group(1), int(match.group(2)))


__all__ = ["PhoneticTerm", "normalize"]

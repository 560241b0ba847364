import sys
import threading
from pathlib import Path
from typing import Iterable, List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ime_server.app.data.database import SQLiteCharacterRepository
from ime_server.app.data.demo_data import DEMO_CHARACTERS
from ime_server.core.records import CharacterRecord, LookupFilter, ResultSet


def _matches(record: CharacterRecord, lookup_filter: LookupFilter) -> bool:
    for name in ("character", "zhuyin", "pinyin", "definition"):
        wanted = getattr(lookup_filter, name)
        if wanted is not None and wanted not in getattr(record, name):
            return False
    if lookup_filter.tone is not None and record.tone != lookup_filter.tone:
        return False
    return True


class CountingBackend:
    """In-memory backend that records every filter it is asked to run."""

    def __init__(self, records: Iterable[CharacterRecord] = ()) -> None:
        self.records: List[CharacterRecord] = list(records)
        self.calls: List[LookupFilter] = []
        self.closed = False
        self.gate: Optional[threading.Event] = None
        self.failures = {}

    def execute(self, lookup_filter: LookupFilter) -> ResultSet:
        self.calls.append(lookup_filter)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        error = self.failures.get(lookup_filter.definition)
        if error is not None:
            raise error
        matched = [record for record in self.records if _matches(record, lookup_filter)]
        matched.sort(key=lambda record: (-record.freq, record.id))
        return ResultSet.of(matched)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def demo_records() -> List[CharacterRecord]:
    return [
        CharacterRecord(
            id=index,
            character=character,
            zhuyin=zhuyin,
            pinyin=pinyin,
            tone=tone,
            definition=definition,
            freq=freq,
        )
        for index, (character, zhuyin, pinyin, tone, definition, freq) in enumerate(
            DEMO_CHARACTERS, start=1
        )
    ]


@pytest.fixture
def counting_backend(demo_records) -> CountingBackend:
    return CountingBackend(demo_records)


@pytest.fixture
def seeded_db(tmp_path) -> str:
    db_path = tmp_path / "characters.db"
    repository = SQLiteCharacterRepository(str(db_path))
    repository.ensure_database(seed_demo=True)
    return str(db_path)

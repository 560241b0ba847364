import logging
import threading

import pytest

from conftest import CountingBackend
from ime_server.core.errors import LookupTimeout, StorageUnavailable, StoreClosed
from ime_server.core.records import MAX_RESULTS, CharacterRecord
from ime_server.core.snapshot import read_snapshot
from ime_server.core.store import ReferenceStore


@pytest.fixture
def sqlite_store(seeded_db, tmp_path):
    store = ReferenceStore(seeded_db, use_cache=True, cache_path=tmp_path / "cache.json")
    yield store
    store.close()


@pytest.fixture
def counting_store(counting_backend, tmp_path):
    store = ReferenceStore(
        backend=counting_backend,
        use_cache=False,
        cache_path=tmp_path / "unused.json",
    )
    yield store
    if counting_backend.gate is not None:
        counting_backend.gate.set()
    store.close()


def test_lookup_by_known_character(sqlite_store):
    result, count = sqlite_store.get_by_char(" 我 ")

    assert count == result.count == 1
    assert 0 < count <= MAX_RESULTS
    assert all(record.character == "我" for record in result)


def test_lookup_by_pinyin_with_and_without_tone(sqlite_store):
    toned, toned_count = sqlite_store.get_by_pinyin("wo3")
    untoned, untoned_count = sqlite_store.get_by_pinyin("wo")

    assert toned_count == 1
    assert toned.first.character == "我"
    assert untoned_count == 5
    freqs = [record.freq for record in untoned]
    assert freqs == sorted(freqs, reverse=True)


def test_lookup_by_zhuyin_with_tone(sqlite_store):
    result, count = sqlite_store.get_by_zhuyin("ㄨㄛ4")

    assert count == 3
    assert [record.character for record in result] == ["握", "卧", "沃"]


def test_lookup_by_definition(sqlite_store):
    result, count = sqlite_store.get_by_definition("water")

    assert count == 1
    assert result.first.character == "水"


def test_unknown_term_returns_empty_result(sqlite_store):
    result, count = sqlite_store.get_by_pinyin("qqq2")

    assert count == 0
    assert not result


def test_repeated_phonetic_lookup_skips_backend(counting_store, counting_backend):
    first, _ = counting_store.get_by_pinyin("wo3")
    second, _ = counting_store.get_by_pinyin(" wo3 ")

    assert second == first
    assert len(counting_backend.calls) == 1


def test_repeated_lookup_with_overlapping_readings_skips_backend(counting_store, counting_backend):
    first, first_count = counting_store.get_by_zhuyin("ㄨㄛ3")
    second, second_count = counting_store.get_by_zhuyin("ㄨㄛ3")

    assert [record.character for record in first] == ["我", "火", "果"]
    assert second == first
    assert first_count == second_count == 3
    assert len(counting_backend.calls) == 1


def test_repeated_pinyin_lookup_matching_longer_syllable_skips_backend(tmp_path):
    backend = CountingBackend(
        [
            CharacterRecord(1, "马", "ㄇㄚ", "ma", 3, "horse", 500),
            CharacterRecord(2, "卯", "ㄇㄠ", "mao", 3, "fourth earthly branch", 40),
        ]
    )
    with ReferenceStore(backend=backend, use_cache=False, cache_path=tmp_path / "c.json") as store:
        first, _ = store.get_by_pinyin("ma3")
        second, _ = store.get_by_pinyin("ma3")

        assert "ma3" in store.cache
    assert second == first
    assert first.count == 2
    assert len(backend.calls) == 1


def test_seeded_store_caches_substring_lookup(sqlite_store):
    first, _ = sqlite_store.get_by_zhuyin("ㄨㄛ3")
    second, _ = sqlite_store.get_by_zhuyin("ㄨㄛ3")

    assert "ㄨㄛ3" in sqlite_store.cache
    assert sqlite_store.cache.get("ㄨㄛ3") == first
    assert second == first


def test_pinyin_result_is_reused_for_zhuyin_lookup(counting_store, counting_backend):
    by_pinyin, _ = counting_store.get_by_pinyin("wo3")
    by_zhuyin, _ = counting_store.get_by_zhuyin("ㄨㄛ3")

    assert by_zhuyin == by_pinyin
    assert len(counting_backend.calls) == 1


def test_character_lookups_always_reach_backend(counting_store, counting_backend):
    counting_store.get_by_char("我")
    counting_store.get_by_char("我")

    assert len(counting_backend.calls) == 2
    assert len(counting_store.cache) == 0


def test_misses_are_retried_against_backend(counting_store, counting_backend):
    counting_store.get_by_pinyin("zzz1")
    counting_store.get_by_pinyin("zzz1")

    assert len(counting_backend.calls) == 2


def test_concurrent_callers_are_all_answered(counting_store):
    terms = ["water", "fire", "fruit", "mud", "nest", "country", "person", "big"]
    results = {}

    def caller(term):
        results[term] = counting_store.get_by_definition(term)

    threads = [threading.Thread(target=caller, args=(term,)) for term in terms]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert all(results[term][1] == 1 for term in terms)
    assert counting_store.router.serviced == len(terms)


def test_lookup_after_close_raises_store_closed(counting_store, counting_backend):
    counting_store.close()

    with pytest.raises(StoreClosed):
        counting_store.get_by_pinyin("wo3")
    assert counting_backend.closed is True


def test_lookup_timeout_is_reported(counting_backend, tmp_path):
    counting_backend.gate = threading.Event()
    store = ReferenceStore(
        backend=counting_backend,
        use_cache=False,
        cache_path=tmp_path / "unused.json",
        request_timeout=0.05,
    )
    try:
        with pytest.raises(LookupTimeout):
            store.get_by_definition("water")
    finally:
        counting_backend.gate.set()
        store.close()


def test_missing_storage_is_fatal(tmp_path):
    with pytest.raises(StorageUnavailable):
        ReferenceStore(tmp_path / "missing" / "characters.db", cache_path=tmp_path / "c.json")


def test_backend_is_closed_when_start_up_fails(counting_backend, tmp_path, monkeypatch):
    def broken_router(*args, **kwargs):
        raise RuntimeError("worker could not start")

    monkeypatch.setattr("ime_server.core.store.RequestRouter", broken_router)

    with pytest.raises(RuntimeError):
        ReferenceStore(backend=counting_backend, use_cache=False, cache_path=tmp_path / "c.json")
    assert counting_backend.closed is True


def test_cache_snapshot_survives_restart(seeded_db, tmp_path):
    cache_path = tmp_path / "cache.json"
    first_store = ReferenceStore(seeded_db, use_cache=True, cache_path=cache_path)
    expected, _ = first_store.get_by_pinyin("wo3")
    saved_entries = first_store.cache.snapshot()
    first_store.close()

    assert set(read_snapshot(cache_path)) == {"wo3", "ㄨㄛ3"}

    backend = CountingBackend()
    second_store = ReferenceStore(backend=backend, use_cache=True, cache_path=cache_path)
    try:
        assert second_store.cache.snapshot() == saved_entries
        result, count = second_store.get_by_pinyin("wo3")
    finally:
        second_store.close()

    assert result == expected
    assert count == 1
    assert backend.calls == []


def test_disabled_cache_persistence_writes_nothing(counting_backend, tmp_path):
    cache_path = tmp_path / "cache.json"
    store = ReferenceStore(backend=counting_backend, use_cache=False, cache_path=cache_path)
    store.get_by_pinyin("wo3")
    store.close()

    assert not cache_path.exists()


def test_corrupt_snapshot_is_ignored(counting_backend, tmp_path, caplog):
    cache_path = tmp_path / "cache.json"
    cache_path.write_text("{broken", encoding="utf-8")
    caplog.set_level(logging.WARNING, logger="ime_server.core.store")

    store = ReferenceStore(backend=counting_backend, use_cache=True, cache_path=cache_path)
    try:
        assert len(store.cache) == 0
        assert store.get_by_pinyin("wo3")[1] == 1
    finally:
        store.close()

    assert any("Cache snapshot not loaded" in record.message for record in caplog.records)


def test_failed_snapshot_save_does_not_block_close(counting_backend, tmp_path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("file", encoding="utf-8")
    caplog.set_level(logging.ERROR, logger="ime_server.core.store")

    store = ReferenceStore(
        backend=counting_backend,
        use_cache=True,
        cache_path=blocker / "cache.json",
    )
    store.get_by_pinyin("wo3")
    store.close()

    assert store.closed is True
    assert counting_backend.closed is True
    assert any("Cache snapshot not saved" in record.message for record in caplog.records)


def test_store_works_as_context_manager(counting_backend, tmp_path):
    with ReferenceStore(
        backend=counting_backend, use_cache=False, cache_path=tmp_path / "c.json"
    ) as store:
        assert store.get_by_char("我")[1] == 1

    assert store.closed is True

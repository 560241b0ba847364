from ime_server.core.cache import ResponseCache, filter_keys, phonetic_key, result_keys
from ime_server.core.records import CharacterRecord, LookupFilter, ResultSet

WO3 = CharacterRecord(1, "我", "ㄨㄛ", "wo", 3, "I, me", 1000)
WO4 = CharacterRecord(2, "握", "ㄨㄛ", "wo", 4, "to hold", 120)
GUO3 = CharacterRecord(3, "果", "ㄍㄨㄛ", "guo", 3, "fruit", 250)


def test_phonetic_key_appends_tone_digit():
    assert phonetic_key("wo", 3) == "wo3"
    assert phonetic_key("wo", None) == "wo"
    assert phonetic_key(" ㄨㄛ ", 0) == "ㄨㄛ0"


def test_phonetic_key_refuses_blank_stems():
    assert phonetic_key("", 3) is None
    assert phonetic_key("   ", None) is None
    assert phonetic_key(None, None) is None


def test_filter_keys_only_for_phonetic_filters():
    assert filter_keys(LookupFilter(pinyin="wo", tone=3)) == ["wo3"]
    assert filter_keys(LookupFilter(zhuyin="ㄨㄛ", pinyin="wo")) == ["ㄨㄛ", "wo"]
    assert filter_keys(LookupFilter(character="我")) == []
    assert filter_keys(LookupFilter(definition="me")) == []
    assert filter_keys(LookupFilter(character="我", pinyin="wo")) == []
    assert filter_keys(LookupFilter(zhuyin="", pinyin="  ")) == []


def test_result_keys_come_from_first_record():
    result = ResultSet.of([WO3])

    assert result_keys(LookupFilter(pinyin="wo", tone=3), result) == ["ㄨㄛ3", "wo3"]


def test_result_keys_omit_tone_when_lookup_did_not_constrain_it():
    result = ResultSet.of([WO3, WO4])

    assert result_keys(LookupFilter(pinyin="wo"), result) == ["ㄨㄛ", "wo"]


def test_result_keys_use_first_record_even_when_readings_overlap():
    result = ResultSet.of([WO3, GUO3])

    assert result_keys(LookupFilter(zhuyin="ㄨㄛ", tone=3), result) == ["ㄨㄛ3", "wo3"]


def test_remember_indexes_substring_matches_under_first_reading():
    cache = ResponseCache()
    result = ResultSet.of([WO3, GUO3])

    cache.remember(LookupFilter(zhuyin="ㄨㄛ", tone=3), result)

    assert cache.lookup(LookupFilter(zhuyin="ㄨㄛ", tone=3)) is result


def test_result_keys_for_empty_or_non_phonetic_results():
    assert result_keys(LookupFilter(pinyin="wo", tone=3), ResultSet()) == []
    assert result_keys(LookupFilter(character="我"), ResultSet.of([WO3])) == []


def test_put_is_write_once_and_rejects_blank_keys():
    cache = ResponseCache()
    first = ResultSet.of([WO3])
    second = ResultSet.of([WO4])

    assert cache.put("wo3", first) is True
    assert cache.put("wo3", second) is False
    assert cache.put("", first) is False
    assert cache.put(None, first) is False
    assert cache.put("empty", ResultSet()) is False

    assert cache.get("wo3") is first
    assert cache.get("") is None
    assert len(cache) == 1


def test_lookup_checks_zhuyin_then_pinyin():
    cache = ResponseCache()
    zhuyin_result = ResultSet.of([WO3])
    pinyin_result = ResultSet.of([WO4])
    cache.put("ㄨㄛ3", zhuyin_result)
    cache.put("wo3", pinyin_result)

    found = cache.lookup(LookupFilter(zhuyin="ㄨㄛ", pinyin="wo", tone=3))

    assert found is zhuyin_result


def test_lookup_never_answers_character_or_definition_filters():
    cache = ResponseCache({"我": ResultSet.of([WO3])})

    assert cache.lookup(LookupFilter(character="我")) is None
    assert cache.lookup(LookupFilter(definition="我")) is None


def test_remember_indexes_result_under_both_transcriptions():
    cache = ResponseCache()
    result = ResultSet.of([WO3])

    written = cache.remember(LookupFilter(pinyin="wo", tone=3), result)

    assert written == ["ㄨㄛ3", "wo3"]
    assert cache.lookup(LookupFilter(zhuyin="ㄨㄛ", tone=3)) is result
    assert cache.lookup(LookupFilter(pinyin="wo", tone=3)) is result
    assert cache.lookup(LookupFilter(pinyin="wo")) is None


def test_cache_has_no_eviction_by_default():
    cache = ResponseCache()
    result = ResultSet.of([WO3])
    for index in range(2000):
        cache.put(f"key{index}", result)

    assert len(cache) == 2000
    assert "key0" in cache
    assert cache.get("key0") is result
